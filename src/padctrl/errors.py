"""
Exception taxonomy for treadmill control.

Every error is recoverable at the component boundary: the controller
reports them as events or raises them to the caller of a single action,
it never stops because of one.
"""


class PadCtrlError(Exception):
    """Base class for all padctrl errors."""


class InvalidArgument(PadCtrlError, ValueError):
    """Caller supplied a value that does not fit the command frame."""


class MalformedFrame(PadCtrlError):
    """Telemetry frame is too short or carries an unknown mode byte."""

    def __init__(self, message: str, raw: bytes = b"") -> None:
        super().__init__(message)
        self.raw = bytes(raw)


class NotReady(PadCtrlError):
    """Transport cannot accept a command (not connected or not discovered)."""


class UnknownModel(PadCtrlError):
    """No speed translator is registered for the connected model."""

    def __init__(self, model_name: str | None) -> None:
        super().__init__(f"No speed translator for model {model_name!r}")
        self.model_name = model_name


class TransportError(PadCtrlError):
    """BLE transport failed to connect or set up its characteristics."""
