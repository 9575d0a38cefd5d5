"""
Frame codec for the treadmill wire protocol.

Command frame layout::

    +--------+---------+--------+----------+----------+---------+
    | Header | Address | Opcode | Argument | Checksum | Trailer |
    |  0xF7  |  0xA2   | 1 byte |  1 byte  |  1 byte  |  0xFD   |
    +--------+---------+--------+----------+----------+---------+

- Checksum: sum of the bytes from the address up to the argument, mod 256

Telemetry frames are at least 14 bytes long; the fields used are:

- offset 2: belt state (raw status code)
- offset 3: belt speed (device units)
- offset 4: belt mode (0 Auto, 1 Manual, 2 Standby)
- offsets 5-7, 8-10, 11-13: running time, distance and steps as 24-bit
  big-endian unsigned integers
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from .core import (
    COMMAND_FRAME_LENGTH,
    FRAME_ADDRESS,
    FRAME_HEADER,
    FRAME_TRAILER,
    TELEMETRY_MIN_LENGTH,
)
from .errors import InvalidArgument, MalformedFrame


class Opcode(IntEnum):
    """Command opcodes understood by the belt controller."""

    REQUEST_STATS = 0x00
    SET_SPEED = 0x01
    SET_MODE = 0x02
    START_BELT = 0x04


class BeltMode(IntEnum):
    """Operating mode reported in telemetry and accepted by SET_MODE."""

    AUTO = 0
    MANUAL = 1
    STANDBY = 2


@dataclass(frozen=True)
class TelemetryFields:
    """Raw telemetry values before unit translation."""

    belt_state: int
    raw_speed: int
    belt_mode: BeltMode
    running_time: int
    distance: int
    steps: int


def _check_byte(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an int, got {type(value).__name__}")
    if not 0 <= value <= 0xFF:
        raise InvalidArgument(f"{name} must be 0-255, got {value}")
    return value


def checksum(frame: bytes) -> int:
    """Compute the checksum byte for a frame.

    Sums every byte after the header and before the checksum slot.
    """
    return sum(frame[1 : len(frame) - 2]) % 256


def apply_checksum(frame: bytes) -> bytes:
    """Return a copy of ``frame`` with its checksum byte filled in.

    Args:
        frame: Frame of at least 3 bytes; the second-to-last byte is overwritten

    Returns:
        The frame with a valid checksum
    """
    if len(frame) < 3:
        raise InvalidArgument(f"Frame too short for a checksum: {len(frame)} bytes")
    out = bytearray(frame)
    out[-2] = checksum(out)
    return bytes(out)


def verify_checksum(frame: bytes) -> bool:
    """Check the checksum byte of a captured frame."""
    return len(frame) >= 3 and frame[-2] == checksum(frame)


def encode_command(opcode: int, argument: int = 0) -> bytes:
    """Build a checksummed 6-byte command frame.

    Args:
        opcode: Command opcode (0-255)
        argument: Single-byte argument (0-255)

    Returns:
        Frame ready to write to the command characteristic

    Raises:
        InvalidArgument: If opcode or argument does not fit in one byte
    """
    _check_byte("opcode", opcode)
    _check_byte("argument", argument)
    frame = bytearray(COMMAND_FRAME_LENGTH)
    frame[0] = FRAME_HEADER
    frame[1] = FRAME_ADDRESS
    frame[2] = int(opcode)
    frame[3] = int(argument)
    frame[-1] = FRAME_TRAILER
    return apply_checksum(frame)


def build_request_stats() -> bytes:
    """Build a request-stats command; the device answers with telemetry."""
    return encode_command(Opcode.REQUEST_STATS, 0)


def build_set_speed(raw_speed: int) -> bytes:
    """Build a set-speed command in device units (0 stops the belt)."""
    return encode_command(Opcode.SET_SPEED, raw_speed)


def build_stop_belt() -> bytes:
    """Build the stop command, which is set-speed 0."""
    return build_set_speed(0)


def build_start_belt() -> bytes:
    """Build the start-belt command."""
    return encode_command(Opcode.START_BELT, 1)


def build_set_mode(mode: BeltMode) -> bytes:
    """Build a set-mode command.

    Only Manual and Standby can be selected; Auto is entered by the device.
    """
    if mode not in (BeltMode.MANUAL, BeltMode.STANDBY):
        raise InvalidArgument(f"Mode {mode!r} cannot be selected")
    return encode_command(Opcode.SET_MODE, int(mode))


def be24(data: bytes) -> int:
    """Decode a 3-byte big-endian unsigned integer."""
    return data[0] * 65536 + data[1] * 256 + data[2]


def decode_telemetry(raw: bytes) -> TelemetryFields:
    """Parse a telemetry notification.

    Args:
        raw: Notification payload from the stats characteristic

    Returns:
        Decoded, untranslated fields

    Raises:
        MalformedFrame: If the payload is shorter than 14 bytes or the
            mode byte is unknown
    """
    data = bytes(raw)
    if len(data) < TELEMETRY_MIN_LENGTH:
        raise MalformedFrame(
            f"Telemetry frame needs {TELEMETRY_MIN_LENGTH} bytes, got {len(data)}",
            data,
        )

    try:
        mode = BeltMode(data[4])
    except ValueError:
        raise MalformedFrame(f"Unknown belt mode byte 0x{data[4]:02X}", data) from None

    return TelemetryFields(
        belt_state=data[2],
        raw_speed=data[3],
        belt_mode=mode,
        running_time=be24(data[5:8]),
        distance=be24(data[8:11]),
        steps=be24(data[11:14]),
    )
