"""
Rate-limited command dispatcher.

The belt controller misbehaves when commands arrive back to back, so
frames are written strictly in submission order, one at a time, with a
fixed pause after each write. ``enqueue`` never blocks: it appends to the
pending queue and, when idle, starts a drain task on the running loop.
All queue mutation happens on the event loop thread.
"""

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, Optional

from .core import DEFAULT_COMMAND_INTERVAL
from .errors import NotReady
from .transport import Transport

logger = logging.getLogger(__name__)

NotReadyCallback = Callable[[bytes, NotReady], None]


class CommandDispatcher:
    """FIFO queue draining one frame per ``min_interval`` to a transport."""

    def __init__(
        self,
        transport: Optional[Transport] = None,
        min_interval: float = DEFAULT_COMMAND_INTERVAL,
        on_not_ready: Optional[NotReadyCallback] = None,
    ) -> None:
        if min_interval < 0:
            raise ValueError(f"min_interval must not be negative, got {min_interval}")
        self.transport = transport
        self.min_interval = min_interval
        self._on_not_ready = on_not_ready
        self._pending: Deque[bytes] = deque()
        self._drain_task: Optional[asyncio.Task] = None
        self.sent = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        """Number of frames waiting to be written."""
        return len(self._pending)

    @property
    def is_draining(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def enqueue(self, frame: bytes) -> None:
        """Queue a frame for transmission and start draining if idle.

        Must be called from the event loop thread; without a running loop
        nothing is queued and RuntimeError propagates.
        """
        loop = asyncio.get_running_loop()
        self._pending.append(bytes(frame))
        if not self.is_draining:
            self._drain_task = loop.create_task(self._drain())

    async def join(self) -> None:
        """Wait until every queued frame has been handled."""
        while self.is_draining:
            await asyncio.shield(self._drain_task)

    def clear(self) -> int:
        """Drop every pending frame; returns how many were dropped."""
        count = len(self._pending)
        self._pending.clear()
        return count

    async def close(self) -> None:
        """Drop pending frames and stop the drain task."""
        dropped = self.clear()
        if dropped:
            logger.info(f"Discarded {dropped} pending command(s)")
        task = self._drain_task
        self._drain_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _drain(self) -> None:
        while self._pending:
            frame = self._pending.popleft()
            await self._send(frame)
            # Spacing also follows the last frame so a new drain starts late enough
            await asyncio.sleep(self.min_interval)

    async def _send(self, frame: bytes) -> None:
        transport = self.transport
        if transport is None or not transport.is_ready:
            self._report_not_ready(frame, NotReady("Transport not ready"))
            return

        logger.debug(f"Sending {frame.hex(' ')}")
        try:
            await transport.send_bytes(frame)
        except NotReady as e:
            self._report_not_ready(frame, e)
            return
        except Exception as e:
            error = NotReady(f"Write failed: {e}")
            error.__cause__ = e
            self._report_not_ready(frame, error)
            return
        self.sent += 1

    def _report_not_ready(self, frame: bytes, error: NotReady) -> None:
        self.dropped += 1
        logger.warning(f"Dropped command {frame.hex(' ')}: {error}")
        if self._on_not_ready is not None:
            try:
                self._on_not_ready(frame, error)
            except Exception as e:
                logger.error(f"Not-ready callback error: {e}")
