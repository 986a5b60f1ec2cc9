"""Directory watcher exceptions."""
from __future__ import annotations

from noteindex.errors import NoteIndexError


class WatchFailed(NoteIndexError):
    """The OS subscription could not be established or was lost (root missing or removed)."""

    def __init__(self, message: str = "Directory watch failed", **kwargs: object) -> None:
        super().__init__(message, code="WATCH_FAILED", retryable=False, fatal=True, **kwargs)


class QueueOverflow(NoteIndexError):
    """An event was dropped because the bounded event queue was full.

    Never raised across the observer thread; built for logging and counting only.
    """

    def __init__(self, paths: tuple[str, ...], capacity: int) -> None:
        super().__init__(
            f"Event queue full (capacity={capacity}); dropped event for {', '.join(paths)}",
            code="QUEUE_OVERFLOW",
            retryable=False,
        )
        self.paths = paths
        self.capacity = capacity
