"""
Core constants for the Kingsmith treadmill protocol.
"""

# Command frame layout: [HEADER, ADDRESS, opcode, argument, checksum, TRAILER]
FRAME_HEADER = 0xF7
FRAME_ADDRESS = 0xA2
FRAME_TRAILER = 0xFD
COMMAND_FRAME_LENGTH = 6

# Telemetry frames shorter than this cannot be decoded
TELEMETRY_MIN_LENGTH = 14

# GATT characteristics (16-bit short UUIDs on the vendor service)
STATS_CHARACTERISTIC_UUID = "0000fe01-0000-1000-8000-00805f9b34fb"
COMMAND_CHARACTERISTIC_UUID = "0000fe02-0000-1000-8000-00805f9b34fb"

# Reference model, advertised as the peripheral name
REFERENCE_MODEL = "KS-ST-A1P"

# The belt controller drops commands written back to back
DEFAULT_COMMAND_INTERVAL = 0.7

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_SCAN_TIMEOUT = 10.0
DEFAULT_CONNECT_TIMEOUT = 5.0

