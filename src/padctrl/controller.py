"""
High-level treadmill controller.

Ties the frame codec, dispatcher, telemetry processor and polling
scheduler to one transport, and exposes belt actions as plain methods.
Actions return immediately; frames are written later by the dispatcher.
"""

import logging
from typing import Optional

from .config import ControllerConfig
from .dispatcher import CommandDispatcher
from .errors import InvalidArgument, NotReady, UnknownModel
from .events import EventKind, EventSink, TreadmillEvent, TreadmillStats, null_sink
from .polling import PollingScheduler
from .protocol import (
    BeltMode,
    build_request_stats,
    build_set_mode,
    build_set_speed,
    build_start_belt,
    build_stop_belt,
)
from .telemetry import TelemetryProcessor
from .translators import ModelTranslator, translator_for
from .transport import BleakTransport, Transport

logger = logging.getLogger(__name__)


class TreadmillController:
    """Drives one treadmill through an abstract transport."""

    def __init__(
        self,
        transport: Optional[Transport] = None,
        config: Optional[ControllerConfig] = None,
        sink: EventSink = null_sink,
    ) -> None:
        """Initialize controller.

        Args:
            transport: Connected or connectable transport; a BleakTransport
                is created from ``config`` on ``connect()`` when omitted
            config: Session settings (defaults if None)
            sink: Callable receiving every TreadmillEvent
        """
        self.config = config or ControllerConfig()
        self.transport = transport
        self._sink = sink
        self._translator: Optional[ModelTranslator] = None
        self._attached = False

        self.dispatcher = CommandDispatcher(
            transport,
            min_interval=self.config.command_interval,
            on_not_ready=self._on_dispatch_not_ready,
        )
        self.telemetry = TelemetryProcessor(sink=self._emit)
        self.poller = PollingScheduler(self.request_stats)

    @property
    def is_connected(self) -> bool:
        return self.transport is not None and self.transport.is_ready

    @property
    def model_name(self) -> Optional[str]:
        if self.transport is None:
            return None
        return self.transport.model_name

    @property
    def translator(self) -> Optional[ModelTranslator]:
        """Translator selected at connection time."""
        return self._translator

    @property
    def degraded(self) -> bool:
        """True when connected to a model without a speed translator."""
        return self._attached and self._translator is None

    @property
    def last_stats(self) -> Optional[TreadmillStats]:
        return self.telemetry.last_stats

    @property
    def current_speed(self) -> float:
        """Last known speed in physical units (0.0 if unknown)."""
        stats = self.last_stats
        if stats is None or stats.belt_speed is None:
            return 0.0
        return stats.belt_speed

    def set_sink(self, sink: Optional[EventSink]) -> None:
        """Replace the event sink.

        Args:
            sink: Callable receiving TreadmillEvent values, None to discard
        """
        self._sink = sink or null_sink

    # ========== Connection ==========

    async def connect(self) -> None:
        """Connect the transport, then attach and start polling.

        Raises:
            TransportError: If the BLE connection cannot be established
        """
        if self.transport is None:
            self.transport = BleakTransport(
                device_name=self.config.device_name,
                address=self.config.address,
                scan_timeout=self.config.scan_timeout,
                connect_timeout=self.config.connect_timeout,
            )

        if isinstance(self.transport, BleakTransport):
            self.transport.set_disconnect_callback(self._on_transport_disconnect)
            await self.transport.connect()

        self.attach()
        if self.config.poll_interval > 0:
            self.start_polling()

    def attach(self, transport: Optional[Transport] = None) -> None:
        """Wire an already-connected transport into the controller.

        Looks up the speed translator once for the session.
        """
        if transport is not None:
            self.transport = transport
        if self.transport is None:
            raise NotReady("No transport to attach")

        self.dispatcher.transport = self.transport
        self.transport.set_receive_callback(self.on_bytes_received)
        self.telemetry.reset()

        model = self.transport.model_name
        self._translator = translator_for(model)
        self.telemetry.translator = self._translator
        self._attached = True
        logger.info(f"Attached to {model or 'unknown model'}")
        self._emit(TreadmillEvent(EventKind.CONNECTED, detail=model))

        if self._translator is None:
            error = UnknownModel(model)
            logger.warning(f"{error}; speed commands disabled, speed reported raw")
            self._emit(TreadmillEvent(EventKind.UNKNOWN_MODEL, error=error, detail=model))

    async def disconnect(self) -> None:
        """Stop polling, discard pending commands and drop the connection."""
        self.poller.close()
        await self.dispatcher.close()

        transport = self.transport
        if transport is None:
            return
        transport.set_receive_callback(None)
        if isinstance(transport, BleakTransport):
            await transport.disconnect()

        self._attached = False
        self.telemetry.reset()
        self._emit(TreadmillEvent(EventKind.DISCONNECTED, detail=transport.model_name))

    def on_bytes_received(self, raw: bytes) -> None:
        """Transport callback for telemetry notifications."""
        self.telemetry.on_telemetry(raw)

    # ========== Actions ==========

    def send(self, frame: bytes) -> bytes:
        """Queue a prebuilt frame and return it."""
        self.dispatcher.enqueue(frame)
        return frame

    def start_belt(self) -> bytes:
        """Start the belt."""
        logger.info("Starting belt")
        return self.send(build_start_belt())

    def stop_belt(self) -> bytes:
        """Stop the belt (set speed 0); works without a translator."""
        logger.info("Stopping belt")
        return self.send(build_stop_belt())

    def set_speed(self, speed: float) -> bytes:
        """Set belt speed in the model's physical unit.

        Raises:
            UnknownModel: If no translator is active
            InvalidArgument: If the speed is negative, not finite or too high
        """
        translator = self._translator
        if translator is None:
            raise UnknownModel(self.model_name)
        raw = translator.to_raw(speed)
        if raw > 0xFF:
            raise InvalidArgument(
                f"Speed {speed} above {translator.max_speed} {translator.unit}"
            )
        logger.info(f"Setting speed to {speed} {translator.unit} (raw {raw})")
        return self.send(build_set_speed(raw))

    def set_raw_speed(self, raw: int) -> bytes:
        """Set belt speed directly in device units.

        Raises:
            UnknownModel: If no translator is active and ``raw`` is non-zero
        """
        if self._translator is None and raw != 0:
            raise UnknownModel(self.model_name)
        logger.info(f"Setting raw speed {raw}")
        return self.send(build_set_speed(raw))

    def select_manual_mode(self) -> bytes:
        logger.info("Selecting manual mode")
        return self.send(build_set_mode(BeltMode.MANUAL))

    def select_standby_mode(self) -> bytes:
        logger.info("Selecting standby mode")
        return self.send(build_set_mode(BeltMode.STANDBY))

    def request_stats(self) -> bytes:
        """Ask the device for one telemetry notification."""
        return self.send(build_request_stats())

    def start_polling(self, interval: Optional[float] = None) -> None:
        """Request stats now and every ``interval`` seconds.

        Args:
            interval: Seconds between requests; defaults to the configured
                poll interval, non-positive polls once
        """
        if interval is None:
            interval = self.config.poll_interval
        self.poller.start_polling(interval)

    def stop_polling(self) -> None:
        self.poller.stop_polling()

    def get_status(self) -> dict:
        """Get the last snapshot as a dictionary."""
        stats = self.last_stats
        if stats is None:
            return {"status": "CONNECTED" if self.is_connected else "DISCONNECTED"}
        status = stats.to_dict()
        status["status"] = "RUNNING" if stats.is_moving else "STOPPED"
        return status

    # ========== Internal callbacks ==========

    def _emit(self, event: TreadmillEvent) -> None:
        try:
            self._sink(event)
        except Exception as e:
            logger.error(f"Event sink error on {event.kind.value}: {e}")

    def _on_dispatch_not_ready(self, frame: bytes, error: NotReady) -> None:
        self._emit(TreadmillEvent(EventKind.DISPATCH_NOT_READY, error=error, frame=frame))

    def _on_transport_disconnect(self) -> None:
        self.poller.close()
        dropped = self.dispatcher.clear()
        if dropped:
            logger.info(f"Discarded {dropped} pending command(s)")
        self._attached = False
        self.telemetry.reset()
        self._emit(TreadmillEvent(EventKind.DISCONNECTED, detail=self.model_name))
