"""
PadCtrl - Kingsmith Treadmill Protocol Engine

A Python library for driving Kingsmith BLE treadmills: command framing,
rate-limited dispatch, telemetry decoding and state-change events.
"""

__version__ = "0.1.0"
__description__ = "Protocol engine for Kingsmith BLE treadmills"

from .config import ControllerConfig, configure_logging
from .controller import TreadmillController
from .errors import (
    InvalidArgument,
    MalformedFrame,
    NotReady,
    PadCtrlError,
    TransportError,
    UnknownModel,
)
from .events import EventKind, EventQueue, TreadmillEvent, TreadmillStats
from .protocol import BeltMode, Opcode, decode_telemetry, encode_command
from .translators import ModelTranslator, translator_for

__all__ = [
    "TreadmillController",
    "ControllerConfig",
    "configure_logging",
    "EventKind",
    "EventQueue",
    "TreadmillEvent",
    "TreadmillStats",
    "BeltMode",
    "Opcode",
    "encode_command",
    "decode_telemetry",
    "ModelTranslator",
    "translator_for",
    "PadCtrlError",
    "InvalidArgument",
    "MalformedFrame",
    "NotReady",
    "UnknownModel",
    "TransportError",
]
