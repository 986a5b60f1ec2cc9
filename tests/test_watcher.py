"""Unit tests for the directory watcher (fake observer) plus one real watchdog smoke test."""
import asyncio
from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from conftest import FakeObserver
from noteindex.models import ChangeKind
from noteindex.watcher import DirectoryWatcher, EventQueue, WatcherSettings, WatchFailed, is_note_file
from noteindex.watcher import observer as observer_module


async def _fire(observer: FakeObserver, *events) -> None:
    """Dispatch watchdog events from a foreign thread, as the real observer does."""
    for event in events:
        await asyncio.to_thread(observer.handler.dispatch, event)
    for _ in range(3):
        await asyncio.sleep(0)


def _start(root: Path, capacity: int = 100) -> tuple[DirectoryWatcher, FakeObserver]:
    fake = FakeObserver()
    watcher = DirectoryWatcher(root, EventQueue(capacity), WatcherSettings(), observer_factory=lambda: fake)
    watcher.start()
    return watcher, fake


def _pending(watcher: DirectoryWatcher) -> list[tuple[ChangeKind, tuple[str, ...]]]:
    q = watcher.queue._queue
    items = []
    while not q.empty():
        item = q.get_nowait()
        if item is not None:
            items.append((item.kind, item.paths))
    return items


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/notes/a.json", True),
        ("/notes/A.JSON", True),
        ("/notes/sub/b.json", True),
        ("/notes/.hidden.json", False),
        ("/notes/a.json~", False),
        ("/notes/a.json.swp", False),
        ("/notes/image.png", False),
    ],
)
def test_is_note_file(path: str, expected: bool) -> None:
    assert is_note_file(path, [".json"]) is expected


@pytest.mark.asyncio
async def test_start_missing_root_fails(tmp_path: Path) -> None:
    queue = EventQueue()
    watcher = DirectoryWatcher(tmp_path / "missing", queue, observer_factory=FakeObserver)
    with pytest.raises(WatchFailed):
        watcher.start()
    assert queue.closed


@pytest.mark.asyncio
async def test_schedules_recursive_watch(notes_dir: Path) -> None:
    watcher, fake = _start(notes_dir)
    assert fake.scheduled == (str(notes_dir), True)
    assert fake.daemon is True
    watcher.stop()


@pytest.mark.asyncio
async def test_events_are_normalized(notes_dir: Path) -> None:
    watcher, fake = _start(notes_dir)
    a = str(notes_dir / "a.json")
    await _fire(
        fake,
        FileCreatedEvent(a),
        FileModifiedEvent(a),
        FileModifiedEvent(a),
        FileCreatedEvent(str(notes_dir / "pic.png")),
        DirCreatedEvent(str(notes_dir / "folder")),
        FileDeletedEvent(a),
    )
    assert _pending(watcher) == [
        (ChangeKind.CREATED, (a,)),
        (ChangeKind.MODIFIED, (a,)),
        (ChangeKind.MODIFIED, (a,)),
        (ChangeKind.REMOVED, (a,)),
    ]
    watcher.stop()


@pytest.mark.asyncio
async def test_move_is_remove_then_create(notes_dir: Path) -> None:
    watcher, fake = _start(notes_dir)
    src = str(notes_dir / "old.json")
    dest = str(notes_dir / "new.json")
    await _fire(fake, FileMovedEvent(src, dest))
    assert _pending(watcher) == [(ChangeKind.REMOVED, (src,)), (ChangeKind.CREATED, (dest,))]
    watcher.stop()


@pytest.mark.asyncio
async def test_subdirectory_removal_is_reported(notes_dir: Path) -> None:
    watcher, fake = _start(notes_dir)
    sub = str(notes_dir / "folder")
    await _fire(fake, DirDeletedEvent(sub))
    assert _pending(watcher) == [(ChangeKind.REMOVED, (sub,))]
    watcher.stop()


@pytest.mark.asyncio
async def test_root_removal_fails_stream(notes_dir: Path) -> None:
    watcher, fake = _start(notes_dir)
    await _fire(fake, FileCreatedEvent(str(notes_dir / "a.json")), DirDeletedEvent(str(notes_dir)))

    received = []
    with pytest.raises(WatchFailed):
        async for event in watcher.queue:
            received.append(event)
    assert len(received) == 1
    assert fake.alive is False


@pytest.mark.asyncio
async def test_dead_observer_fails_stream(notes_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(observer_module, "_SUPERVISE_INTERVAL_S", 0.01)
    watcher, fake = _start(notes_dir)
    fake.alive = False
    with pytest.raises(WatchFailed):
        await asyncio.wait_for(watcher.queue.__anext__(), timeout=2.0)


@pytest.mark.asyncio
async def test_stop_closes_stream_and_cannot_restart(notes_dir: Path) -> None:
    watcher, fake = _start(notes_dir)
    watcher.stop()
    watcher.stop()
    assert fake.alive is False
    assert [e async for e in watcher.queue] == []
    with pytest.raises(RuntimeError):
        watcher.start()


@pytest.mark.asyncio
async def test_real_observer_reports_new_note(notes_dir: Path) -> None:
    queue = EventQueue()
    watcher = DirectoryWatcher(notes_dir, queue)
    watcher.start()
    try:
        await asyncio.sleep(0.2)
        note = notes_dir / "fresh.json"
        await asyncio.to_thread(note.write_text, "{}")
        event = await asyncio.wait_for(queue.__anext__(), timeout=5.0)
        assert event.paths == (str(note),)
        assert event.kind in (ChangeKind.CREATED, ChangeKind.MODIFIED)
    finally:
        watcher.stop()
