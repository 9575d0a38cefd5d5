"""
Telemetry decoding and event derivation.

Every notification becomes a ``TreadmillStats`` snapshot. The snapshot is
always reported as ``stats_updated``; transition events come from
comparing it with the previous snapshot.
"""

import logging
from typing import List, Optional

from .errors import MalformedFrame
from .events import EventKind, EventSink, TreadmillEvent, TreadmillStats, null_sink
from .protocol import TelemetryFields, decode_telemetry
from .translators import ModelTranslator

logger = logging.getLogger(__name__)


def build_stats(
    fields: TelemetryFields, translator: Optional[ModelTranslator]
) -> TreadmillStats:
    """Apply a translator to decoded fields.

    Without a translator the speed is left in device units and the
    snapshot is flagged as degraded.
    """
    if translator is None:
        speed = None
    else:
        speed = translator.to_physical(fields.raw_speed)

    return TreadmillStats(
        belt_state=fields.belt_state,
        belt_speed=speed,
        belt_mode=fields.belt_mode,
        current_running_time=fields.running_time,
        current_distance=fields.distance,
        current_steps=fields.steps,
        raw_speed=fields.raw_speed,
        degraded=translator is None,
    )


def derive_events(
    previous: Optional[TreadmillStats], current: TreadmillStats
) -> List[EventKind]:
    """Transition events between two snapshots, in reporting order.

    Depends only on the two snapshots. Speed is compared in device units
    so degraded snapshots produce the same transitions.
    """
    events: List[EventKind] = []

    if previous is None or previous.raw_speed != current.raw_speed:
        events.append(EventKind.SPEED_CHANGED)

    was_moving = previous is not None and previous.is_moving
    if not was_moving and current.is_moving:
        events.append(EventKind.BELT_STARTED)
    if was_moving and not current.is_moving:
        events.append(EventKind.BELT_STOPPED)

    if previous is None or previous.belt_mode != current.belt_mode:
        events.append(EventKind.MODE_CHANGED)

    return events


class TelemetryProcessor:
    """Turns raw notifications into snapshots and events."""

    def __init__(
        self,
        sink: EventSink = null_sink,
        translator: Optional[ModelTranslator] = None,
    ) -> None:
        self.sink = sink
        self.translator = translator
        self._last_stats: Optional[TreadmillStats] = None

    @property
    def last_stats(self) -> Optional[TreadmillStats]:
        """Most recent snapshot, or None before the first one."""
        return self._last_stats

    def reset(self) -> None:
        """Forget the last snapshot, e.g. after a disconnect."""
        self._last_stats = None

    def on_telemetry(self, raw: bytes) -> List[TreadmillEvent]:
        """Handle one notification payload.

        Args:
            raw: Bytes received on the stats characteristic

        Returns:
            The events emitted to the sink, in order
        """
        try:
            fields = decode_telemetry(raw)
        except MalformedFrame as e:
            logger.warning(f"Malformed telemetry {bytes(raw).hex(' ')}: {e}")
            event = TreadmillEvent(
                EventKind.MALFORMED_TELEMETRY, error=e, raw=bytes(raw)
            )
            self._emit(event)
            return [event]

        stats = build_stats(fields, self.translator)
        emitted = [TreadmillEvent(EventKind.STATS_UPDATED, stats=stats)]
        for kind in derive_events(self._last_stats, stats):
            emitted.append(TreadmillEvent(kind, stats=stats))
        self._last_stats = stats

        for event in emitted:
            self._emit(event)
        return emitted

    def _emit(self, event: TreadmillEvent) -> None:
        try:
            self.sink(event)
        except Exception as e:
            logger.error(f"Event sink error on {event.kind.value}: {e}")
