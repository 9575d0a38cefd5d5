"""
Transport boundary between the protocol engine and the BLE stack.

The engine only needs ``Transport``: a ready flag, the connected model
name, an awaitable fire-and-forget write and a receive callback.
``BleakTransport`` implements it on top of bleak for the reference
treadmill, using the FE01 characteristic for telemetry notifications and
FE02 for command writes.
"""

import logging
from typing import Callable, Optional, Protocol, runtime_checkable

from bleak import BleakClient, BleakScanner
from bleak.backends.characteristic import BleakGATTCharacteristic
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError

from .core import (
    COMMAND_CHARACTERISTIC_UUID,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_SCAN_TIMEOUT,
    REFERENCE_MODEL,
    STATS_CHARACTERISTIC_UUID,
)
from .errors import NotReady, TransportError

logger = logging.getLogger(__name__)

ReceiveCallback = Callable[[bytes], None]


@runtime_checkable
class Transport(Protocol):
    """What the controller needs from a connected peripheral."""

    @property
    def is_ready(self) -> bool:
        """True when commands can be written."""
        ...

    @property
    def model_name(self) -> Optional[str]:
        """Model name of the connected peripheral, if known."""
        ...

    async def send_bytes(self, frame: bytes) -> None:
        """Write a frame to the command channel without acknowledgement."""
        ...

    def set_receive_callback(self, callback: Optional[ReceiveCallback]) -> None:
        """Register the handler for telemetry notifications."""
        ...


class BleakTransport:
    """Bleak-backed transport for a single treadmill."""

    def __init__(
        self,
        device_name: str = REFERENCE_MODEL,
        address: Optional[str] = None,
        scan_timeout: float = DEFAULT_SCAN_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self.device_name = device_name
        self.address = address
        self.scan_timeout = scan_timeout
        self.connect_timeout = connect_timeout

        self._device: Optional[BLEDevice] = None
        self._client: Optional[BleakClient] = None
        self._command_char: Optional[BleakGATTCharacteristic] = None
        self._stats_char: Optional[BleakGATTCharacteristic] = None

        # Callbacks
        self._on_receive: Optional[ReceiveCallback] = None
        self._on_disconnect: Optional[Callable[[], None]] = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    @property
    def is_ready(self) -> bool:
        return self.is_connected and self._command_char is not None

    @property
    def model_name(self) -> Optional[str]:
        if self._device is None:
            return None
        return self._device.name

    def set_receive_callback(self, callback: Optional[ReceiveCallback]) -> None:
        self._on_receive = callback

    def set_disconnect_callback(self, callback: Optional[Callable[[], None]]) -> None:
        """Set callback invoked when the peripheral drops the connection."""
        self._on_disconnect = callback

    async def discover(self) -> Optional[BLEDevice]:
        """Find the treadmill by address or by advertised name.

        Returns:
            The discovered device, or None if nothing matched
        """
        if self.address:
            logger.info(f"Looking for treadmill at {self.address}...")
            device = await BleakScanner.find_device_by_address(
                self.address, timeout=self.scan_timeout
            )
        else:
            logger.info(f"Scanning for {self.device_name}...")
            device = await BleakScanner.find_device_by_name(
                self.device_name, timeout=self.scan_timeout
            )

        if device is None:
            logger.warning("No treadmill found")
            return None

        logger.info(f"Found treadmill: {device.name} ({device.address})")
        self._device = device
        return device

    async def connect(self) -> None:
        """Connect, locate both characteristics and enable notifications.

        Raises:
            TransportError: If the device cannot be found, connected to or
                does not expose the expected characteristics
        """
        if self.is_ready:
            logger.warning("Already connected")
            return

        if self._device is None and await self.discover() is None:
            raise TransportError("Treadmill not found")

        client = BleakClient(
            self._device,
            disconnected_callback=self._handle_disconnect,
            timeout=self.connect_timeout,
        )
        try:
            await client.connect()
        except (BleakError, TimeoutError) as e:
            raise TransportError(f"Connection failed: {e}") from e

        self._client = client
        stats_char = client.services.get_characteristic(STATS_CHARACTERISTIC_UUID)
        command_char = client.services.get_characteristic(COMMAND_CHARACTERISTIC_UUID)
        if stats_char is None or command_char is None:
            await self.disconnect()
            raise TransportError("Treadmill characteristics FE01/FE02 not found")

        try:
            await client.start_notify(stats_char, self._handle_notification)
        except BleakError as e:
            await self.disconnect()
            raise TransportError(f"Could not enable notifications: {e}") from e

        self._stats_char = stats_char
        self._command_char = command_char
        logger.info(f"Connected to {self.model_name}")

    async def disconnect(self) -> None:
        """Disconnect from the peripheral if connected."""
        client = self._client
        self._client = None
        self._command_char = None
        self._stats_char = None
        if client is None:
            return

        try:
            logger.info("Disconnecting...")
            await client.disconnect()
            logger.info("Disconnected")
        except BleakError as e:
            logger.error(f"Disconnect failed: {e}")

    async def send_bytes(self, frame: bytes) -> None:
        """Write a frame to FE02 without response."""
        if not self.is_ready or self._client is None:
            raise NotReady("No connected treadmill")
        await self._client.write_gatt_char(self._command_char, frame, response=False)

    def _handle_notification(self, sender: BleakGATTCharacteristic, data: bytearray) -> None:
        """Forward FE01 notifications; runs on the event loop and must not block."""
        if self._on_receive is not None:
            self._on_receive(bytes(data))

    def _handle_disconnect(self, client: BleakClient) -> None:
        # disconnect() has already released the client
        if self._client is not client:
            return
        logger.warning("Device disconnected")
        self._client = None
        self._command_char = None
        self._stats_char = None
        if self._on_disconnect:
            try:
                self._on_disconnect()
            except Exception as e:
                logger.error(f"Disconnect callback error: {e}")
