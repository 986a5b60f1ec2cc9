"""Directory watcher: watchdog observer feeding a bounded event queue."""
from noteindex.watcher.errors import QueueOverflow, WatchFailed
from noteindex.watcher.observer import DirectoryWatcher, is_note_file
from noteindex.watcher.queue import EventQueue
from noteindex.watcher.settings import WatcherSettings

__all__ = [
    "DirectoryWatcher",
    "EventQueue",
    "QueueOverflow",
    "WatchFailed",
    "WatcherSettings",
    "is_note_file",
]
