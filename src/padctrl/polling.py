"""
Periodic stats polling.

The treadmill only reports telemetry when asked, so the controller
requests stats on a timer. Each tick re-checks the interval before
firing, which is how ``stop_polling`` takes effect.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PollingScheduler:
    """Self-rescheduling request-stats timer."""

    def __init__(self, request: Callable[[], object]) -> None:
        self._request = request
        self._interval = 0.0
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_polling(self) -> bool:
        return self._interval > 0 and self._handle is not None

    def start_polling(self, interval: float) -> None:
        """Request stats now and then every ``interval`` seconds.

        A non-positive interval polls once. Must be called from the event
        loop thread.
        """
        self._cancel_pending()
        self._interval = interval
        logger.debug(f"Polling every {interval}s" if interval > 0 else "Polling once")
        self._fire()
        if interval > 0:
            self._schedule(asyncio.get_running_loop())

    def stop_polling(self) -> None:
        """Stop repeating; the pending tick sees the zero interval and exits."""
        self._interval = 0.0

    def close(self) -> None:
        """Stop polling and cancel the pending tick immediately."""
        self.stop_polling()
        self._cancel_pending()

    def _schedule(self, loop: asyncio.AbstractEventLoop) -> None:
        self._handle = loop.call_later(self._interval, self._tick, loop)

    def _tick(self, loop: asyncio.AbstractEventLoop) -> None:
        self._handle = None
        if self._interval <= 0:
            return
        self._fire()
        self._schedule(loop)

    def _fire(self) -> None:
        try:
            self._request()
        except Exception as e:
            logger.error(f"Stats request failed: {e}")

    def _cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
