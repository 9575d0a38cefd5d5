"""
Event values delivered to the caller.

The controller reports everything through a single sink: any callable
taking a ``TreadmillEvent``. ``EventQueue`` is a ready-made sink for
consumers that prefer to pull events with ``async for``.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncGenerator, Callable, Optional

from .protocol import BeltMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreadmillStats:
    """One decoded and translated telemetry snapshot."""

    belt_state: int
    belt_speed: Optional[float]
    belt_mode: BeltMode
    current_running_time: int
    current_distance: int
    current_steps: int
    raw_speed: int
    degraded: bool = False

    @property
    def is_moving(self) -> bool:
        """True when the belt reports a non-zero speed."""
        return self.raw_speed > 0

    def to_dict(self) -> dict:
        """Convert stats to a plain dictionary."""
        return {
            "belt_state": self.belt_state,
            "speed": self.belt_speed,
            "raw_speed": self.raw_speed,
            "mode": self.belt_mode.name,
            "time": self.current_running_time,
            "distance": self.current_distance,
            "steps": self.current_steps,
            "degraded": self.degraded,
        }


class EventKind(str, Enum):
    """Kinds of events emitted by the controller."""

    STATS_UPDATED = "stats_updated"
    SPEED_CHANGED = "speed_changed"
    BELT_STARTED = "belt_started"
    BELT_STOPPED = "belt_stopped"
    MODE_CHANGED = "mode_changed"
    DISPATCH_NOT_READY = "dispatch_not_ready"
    MALFORMED_TELEMETRY = "malformed_telemetry"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    UNKNOWN_MODEL = "unknown_model"


@dataclass(frozen=True)
class TreadmillEvent:
    """Tagged event value.

    ``stats`` is set for telemetry events, ``frame`` for dispatch errors,
    ``raw`` for malformed telemetry and ``error`` for every error event.
    """

    kind: EventKind
    stats: Optional[TreadmillStats] = None
    error: Optional[Exception] = None
    frame: Optional[bytes] = None
    raw: Optional[bytes] = None
    detail: Any = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


EventSink = Callable[[TreadmillEvent], None]


def null_sink(event: TreadmillEvent) -> None:
    """Sink that discards every event."""


class EventQueue:
    """Bounded event buffer usable as a controller sink.

    Events are dropped when the buffer is full; a slow consumer misses
    snapshots instead of stalling telemetry handling.
    """

    def __init__(self, maxsize: int = 64) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    def __call__(self, event: TreadmillEvent) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug(f"Event queue full, dropped {event.kind.value}")

    def qsize(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        """Stop accepting events; ``events()`` ends once drained."""
        self._closed = True

    async def events(self, poll: float = 0.5) -> AsyncGenerator[TreadmillEvent, None]:
        """Async generator yielding events until the queue is closed.

        Args:
            poll: Seconds to wait for an event before re-checking ``close()``

        Yields:
            TreadmillEvent values in arrival order
        """
        while not (self._closed and self._queue.empty()):
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=poll)
            except asyncio.TimeoutError:
                continue
            yield event
