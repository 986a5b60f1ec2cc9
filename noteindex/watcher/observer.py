"""Recursive note directory watcher built on watchdog.

The observer thread only translates watchdog events into FileChangeEvents and hands
them to the event loop with call_soon_threadsafe; it never waits on the queue.
No debouncing is done here: duplicate or rapid-fire OS events pass straight through.
"""
from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from noteindex.models import ChangeKind, FileChangeEvent
from noteindex.watcher.errors import WatchFailed
from noteindex.watcher.queue import EventQueue
from noteindex.watcher.settings import WatcherSettings

logger = logging.getLogger(__name__)

# How often the session checks that the observer thread and the root are still there
_SUPERVISE_INTERVAL_S = 1.0


def is_note_file(path: str, suffixes: list[str]) -> bool:
    """True for visible files with one of the note suffixes (editor temp files excluded)."""
    name = os.path.basename(path)
    if not name or name.startswith(".") or name.endswith("~"):
        return False
    return os.path.splitext(name)[1].lower() in {s.lower() for s in suffixes}


class _NoteEventHandler(FileSystemEventHandler):
    """Runs on the observer thread. Translates events and forwards them to the loop."""

    def __init__(self, watcher: DirectoryWatcher) -> None:
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher._forward(ChangeKind.CREATED, os.fsdecode(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher._forward(ChangeKind.MODIFIED, os.fsdecode(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        src = os.fsdecode(event.src_path)
        if event.is_directory:
            self._watcher._directory_gone(src)
        else:
            self._watcher._forward(ChangeKind.REMOVED, src)

    def on_moved(self, event: FileSystemEvent) -> None:
        src = os.fsdecode(event.src_path)
        dest = os.fsdecode(event.dest_path)
        if event.is_directory:
            self._watcher._directory_gone(src)
            return
        self._watcher._forward(ChangeKind.REMOVED, src)
        self._watcher._forward(ChangeKind.CREATED, dest)


class DirectoryWatcher:
    """Watch session for one root directory. Start once, stop once; not restartable."""

    def __init__(
        self,
        root: str | Path,
        queue: EventQueue,
        settings: WatcherSettings | None = None,
        *,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self._root = os.path.abspath(os.fspath(root))
        self._queue = queue
        self._settings = settings or WatcherSettings()
        self._observer_factory = observer_factory
        self._observer: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._supervisor: asyncio.Task[None] | None = None
        self._started = False
        self._stopped = False

    @property
    def root(self) -> str:
        return self._root

    @property
    def queue(self) -> EventQueue:
        return self._queue

    def start(self) -> None:
        """Subscribe recursively to root. Must be called from the event loop thread.

        Raises WatchFailed if root is missing or the OS subscription cannot be made.
        """
        if self._started:
            raise RuntimeError("DirectoryWatcher cannot be restarted")
        self._started = True
        self._loop = asyncio.get_running_loop()

        if not os.path.isdir(self._root):
            self._queue.close()
            raise WatchFailed(f"Watch root is not a directory: {self._root}")

        observer = self._observer_factory()
        observer.daemon = True
        try:
            observer.schedule(_NoteEventHandler(self), self._root, recursive=True)
            observer.start()
        except OSError as e:
            self._queue.close()
            raise WatchFailed(f"Failed to start watching {self._root}: {e}") from e
        self._observer = observer
        self._supervisor = self._loop.create_task(self._supervise())
        logger.info("Directory watcher started for: %s", self._root)

    def stop(self) -> None:
        """Stop the observer and close the queue. Safe to call more than once."""
        if self._stopped:
            return
        self._stopped = True
        if self._supervisor is not None:
            self._supervisor.cancel()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=self._settings.join_timeout_s)
            if self._observer.is_alive():
                logger.warning("Observer thread did not stop within %.1fs", self._settings.join_timeout_s)
        self._queue.close()
        logger.info("Directory watcher stopped for: %s", self._root)

    def _fail(self, error: WatchFailed) -> None:
        """Loop thread: end the session with an error the queue reader will see."""
        if self._stopped:
            return
        self._stopped = True
        logger.error("%s", error, extra={"error_code": error.code})
        if self._supervisor is not None and self._supervisor is not asyncio.current_task():
            self._supervisor.cancel()
        if self._observer is not None:
            self._observer.stop()
        self._queue.close(error)

    async def _supervise(self) -> None:
        while not self._stopped:
            await asyncio.sleep(_SUPERVISE_INTERVAL_S)
            if self._stopped:
                return
            if not os.path.isdir(self._root):
                self._fail(WatchFailed(f"Watch root disappeared: {self._root}"))
            elif self._observer is not None and not self._observer.is_alive():
                self._fail(WatchFailed(f"Observer thread for {self._root} exited"))

    # Called on the observer thread below this point.

    def _forward(self, kind: ChangeKind, path: str) -> None:
        if not is_note_file(path, self._settings.include_suffixes):
            return
        self._post(FileChangeEvent(paths=(path,), kind=kind))

    def _directory_gone(self, path: str) -> None:
        if os.path.normcase(path) == os.path.normcase(self._root):
            self._call_in_loop(self._fail, WatchFailed(f"Watch root removed: {self._root}"))
            return
        # Notes below a removed or moved-away directory may get no per-file events.
        self._post(FileChangeEvent(paths=(path,), kind=ChangeKind.REMOVED))

    def _post(self, event: FileChangeEvent) -> None:
        self._call_in_loop(self._queue.offer, event)

    def _call_in_loop(self, fn: Callable[..., Any], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            # Loop shut down between the check and the call
            logger.debug("Event loop closed; discarding watcher callback")
