"""Shared fixtures: an in-memory transport standing in for the treadmill."""

import asyncio
from typing import List, Optional, Tuple

import pytest

from padctrl.core import REFERENCE_MODEL
from padctrl.errors import NotReady


class FakeTransport:
    """Records writes with their loop timestamps."""

    def __init__(self, model_name: Optional[str] = REFERENCE_MODEL, ready: bool = True):
        self.model_name = model_name
        self.ready = ready
        self.fail_writes = False
        self.sent: List[Tuple[float, bytes]] = []
        self._callback = None

    @property
    def is_ready(self) -> bool:
        return self.ready

    async def send_bytes(self, frame: bytes) -> None:
        if self.fail_writes:
            raise OSError("write failed")
        if not self.ready:
            raise NotReady("not connected")
        self.sent.append((asyncio.get_running_loop().time(), bytes(frame)))

    def set_receive_callback(self, callback) -> None:
        self._callback = callback

    def deliver(self, raw: bytes) -> None:
        """Simulate a telemetry notification."""
        if self._callback is not None:
            self._callback(bytes(raw))

    @property
    def frames(self) -> List[bytes]:
        return [frame for _, frame in self.sent]


def telemetry(state: int = 1, speed: int = 0, mode: int = 2,
              time: int = 0, distance: int = 0, steps: int = 0) -> bytes:
    """Build a 14-byte telemetry frame."""
    return (
        bytes([0xF8, 0xA2, state, speed, mode])
        + time.to_bytes(3, "big")
        + distance.to_bytes(3, "big")
        + steps.to_bytes(3, "big")
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def unknown_transport() -> FakeTransport:
    return FakeTransport(model_name="KS-XX-UNKNOWN")


@pytest.fixture
def make_telemetry():
    return telemetry


@pytest.fixture
def events() -> list:
    """List usable as an event sink via ``events.append``."""
    return []
