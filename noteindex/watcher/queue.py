"""Bounded event queue between the watcher and the coordinator.

Producers call offer() on the event loop thread (the observer thread gets there via
loop.call_soon_threadsafe), so a full queue never blocks the OS callback: the event
is dropped, counted and logged as a QueueOverflow instead.
"""
from __future__ import annotations

import asyncio
import logging

from noteindex.models import FileChangeEvent
from noteindex.telemetry import PipelineMetrics
from noteindex.watcher.errors import QueueOverflow, WatchFailed

logger = logging.getLogger(__name__)


class EventQueue:
    """FIFO of FileChangeEvents with drop-on-full and an end-of-stream marker.

    Iterate with `async for`. Iteration ends when close() is called and every
    queued event has been consumed; if the queue was closed with an error, that
    error is raised instead of ending quietly.
    """

    def __init__(self, capacity: int = 100, metrics: PipelineMetrics | None = None) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._metrics = metrics or PipelineMetrics()
        # One slot beyond capacity is reserved for the end-of-stream marker.
        self._queue: asyncio.Queue[FileChangeEvent | None] = asyncio.Queue(maxsize=capacity + 1)
        self._closed = False
        self._error: WatchFailed | None = None
        self.dropped = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize() - (1 if self._closed else 0)

    def offer(self, event: FileChangeEvent) -> bool:
        """Enqueue without blocking. Returns False if the event was dropped."""
        if self._closed:
            logger.debug("Queue closed; ignoring event for %s", ", ".join(event.paths))
            return False
        if self._queue.qsize() >= self._capacity:
            self.dropped += 1
            self._metrics.events_dropped += 1
            overflow = QueueOverflow(event.paths, self._capacity)
            logger.warning(
                "%s (dropped so far: %s)",
                overflow,
                self.dropped,
                extra={"error_code": overflow.code, "dropped_total": self.dropped},
            )
            return False
        self._queue.put_nowait(event)
        self._metrics.events_received += 1
        return True

    def close(self, error: WatchFailed | None = None) -> None:
        """Mark end of stream. Events already queued are still delivered."""
        if self._closed:
            return
        self._closed = True
        self._error = error
        self._queue.put_nowait(None)

    def __aiter__(self) -> EventQueue:
        return self

    async def __anext__(self) -> FileChangeEvent:
        item = await self._queue.get()
        if item is None:
            # Leave the marker in place so later readers also see end of stream.
            self._queue.put_nowait(None)
            if self._error is not None:
                raise self._error
            raise StopAsyncIteration
        return item
