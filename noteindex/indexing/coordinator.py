"""Indexing coordinator: turns file change events into embed/upsert/delete tasks.

Each path in an event becomes one independent asyncio task. A semaphore caps how many
tasks talk to the embedding and vector services at once; the event pump itself never
waits for tasks. Tasks for different files are unordered; tasks for the same path run
one at a time in submission order, so a removal always lands after an earlier index of
that path. A note indexed while its parent directory is removed drops its own points.
"""
from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from noteindex.embeddings.errors import EmbeddingMalformedResponse
from noteindex.errors import NoteIndexError, ReadFailed
from noteindex.indexing.contracts import EmbeddingClientPort, VectorStorePort
from noteindex.indexing.settings import IndexingSettings
from noteindex.models import ChangeKind, FileChangeEvent
from noteindex.telemetry import PipelineMetrics, log_index_task
from noteindex.vectorstore.collections import CollectionLifecycleManager
from noteindex.vectorstore.ids import point_key
from noteindex.vectorstore.models import IndexPoint, NotePayload

logger = logging.getLogger(__name__)


class TaskState(str, Enum):
    PENDING = "pending"
    READING = "reading"
    EMBEDDING = "embedding"
    UPSERTING = "upserting"
    DELETING = "deleting"
    DONE = "done"
    FAILED = "failed"


_TERMINAL = {TaskState.DONE, TaskState.FAILED}


@dataclass
class FileTask:
    """Bookkeeping for one per-file task. States only move forward."""

    path: str
    action: str
    state: TaskState = TaskState.PENDING
    # submission order across all paths
    seq: int = 0

    def advance(self, state: TaskState) -> None:
        if self.state in _TERMINAL:
            raise RuntimeError(f"{self.action} task for {self.path} already {self.state.value}")
        self.state = state


def build_points(
    path: str,
    vectors: list[list[float]],
    embedded_at: datetime | None = None,
) -> list[IndexPoint]:
    """One point per chunk vector, chunk indexes counted from 0 without gaps."""
    return [
        IndexPoint(
            id=point_key(path, n),
            vector=vec,
            payload=NotePayload(index=n, path=path, embedded_at=embedded_at),
        )
        for n, vec in enumerate(vectors)
    ]


def _read_note(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ReadFailed(f"Cannot read {path}: {e.strerror or e}") from e


class IndexingCoordinator:
    """Consumes FileChangeEvents and keeps the note collection in step with the files."""

    def __init__(
        self,
        embedder: EmbeddingClientPort,
        store: VectorStorePort,
        lifecycle: CollectionLifecycleManager,
        settings: IndexingSettings | None = None,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._lifecycle = lifecycle
        self._settings = settings or IndexingSettings()
        self._metrics = metrics or PipelineMetrics()
        self._collection = lifecycle.spec.name
        self._sem = asyncio.Semaphore(self._settings.max_concurrency)
        self._tasks: dict[asyncio.Task[None], FileTask] = {}
        # path -> point keys last upserted for it; consulted on removal
        self._point_ids: dict[str, list[str]] = {}
        self._ids_lock = asyncio.Lock()
        # one lock per path with queued or running work; tasks for a path run in submission order
        self._path_locks: dict[str, asyncio.Lock] = {}
        self._path_users: dict[str, int] = {}
        # removed path -> seq of the removal, kept while older tasks may still be in flight
        self._removed_at: dict[str, int] = {}
        self._seq = 0
        self._stop = asyncio.Event()
        self.fatal_error: NoteIndexError | None = None

    @property
    def metrics(self) -> PipelineMetrics:
        return self._metrics

    @property
    def in_flight(self) -> list[FileTask]:
        return list(self._tasks.values())

    def point_ids_for(self, path: str) -> list[str]:
        return list(self._point_ids.get(path, []))

    def stop(self) -> None:
        """Stop consuming events. In-flight tasks keep running; see drain()."""
        self._stop.set()

    async def run(self, events: AsyncIterable[FileChangeEvent]) -> None:
        """Pump events until the stream ends or stop() is called.

        Errors raised by the stream itself (WatchFailed) propagate to the caller.
        """
        iterator = events.__aiter__()
        stop_wait = asyncio.ensure_future(self._stop.wait())
        try:
            while not self._stop.is_set():
                next_event = asyncio.ensure_future(iterator.__anext__())
                await asyncio.wait({next_event, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
                if not next_event.done():
                    next_event.cancel()
                    break
                try:
                    event = next_event.result()
                except StopAsyncIteration:
                    break
                self.submit(event)
        finally:
            stop_wait.cancel()
        logger.info("Event stream ended; %s task(s) in flight", len(self._tasks))

    def submit(self, event: FileChangeEvent) -> None:
        """Dispatch one task per path without waiting for it."""
        if self._stop.is_set():
            logger.debug("Coordinator stopped; ignoring %s event for %s", event.kind.value, event.paths)
            return
        for path in event.paths:
            self._seq += 1
            if event.kind is ChangeKind.REMOVED:
                self._removed_at[path] = self._seq
                self._spawn(FileTask(path=path, action="delete", seq=self._seq), self._delete_path)
            else:
                self._spawn(FileTask(path=path, action="index", seq=self._seq), self._index_path)

    def _spawn(self, file_task: FileTask, fn) -> None:
        path = file_task.path
        self._path_locks.setdefault(path, asyncio.Lock())
        self._path_users[path] = self._path_users.get(path, 0) + 1
        task = asyncio.create_task(self._serialized(file_task, fn), name=f"{file_task.action}:{path}")
        self._tasks[task] = file_task
        task.add_done_callback(self._task_done)

    async def _serialized(self, file_task: FileTask, fn) -> None:
        async with self._path_locks[file_task.path]:
            await fn(file_task)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        # Runs even for tasks cancelled before their first step
        file_task = self._tasks.pop(task, None)
        if file_task is not None:
            path = file_task.path
            self._path_users[path] -= 1
            if not self._path_users[path]:
                del self._path_users[path]
                del self._path_locks[path]
        if not self._tasks:
            self._removed_at.clear()

    def _removed_since(self, path: str, seq: int) -> bool:
        """True if a directory holding path was removed after the task with `seq` was submitted."""
        for removed, at in self._removed_at.items():
            if at > seq and path.startswith(removed.rstrip(os.sep) + os.sep):
                return True
        return False

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight tasks. Tasks still running after timeout are logged and cancelled.

        Returns True if every task finished on its own.
        """
        pending = set(self._tasks)
        if not pending:
            return True
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            file_task = self._tasks.get(task)
            if file_task is not None:
                logger.warning(
                    "%s task for %s did not finish within %ss (state=%s); cancelling",
                    file_task.action, file_task.path, timeout, file_task.state.value,
                )
            task.cancel()
        if not_done:
            await asyncio.gather(*not_done, return_exceptions=True)
        return not not_done

    async def _index_path(self, file_task: FileTask) -> None:
        async with self._sem:
            t0 = asyncio.get_running_loop().time()
            self._metrics.tasks_started += 1
            path = file_task.path
            try:
                file_task.advance(TaskState.READING)
                content = await asyncio.to_thread(_read_note, path)
                if not content.strip():
                    file_task.advance(TaskState.DELETING)
                    removed = await self._forget(path)
                    self._finish(file_task, t0, points=removed)
                    return

                limit = self._settings.max_input_chars
                if len(content) > limit:
                    logger.warning(
                        "Note %s has %s chars; embedding only the first %s", path, len(content), limit
                    )
                    content = content[:limit]

                file_task.advance(TaskState.EMBEDDING)
                vectors = await self._embedder.embed(content)
                if not vectors:
                    raise EmbeddingMalformedResponse("Embedding service returned no vectors")
                points = build_points(path, vectors, datetime.now(timezone.utc))

                file_task.advance(TaskState.UPSERTING)
                await self._lifecycle.ensure()
                await self._store.upsert(self._collection, points, wait=True)
                self._metrics.points_upserted += len(points)
                kept = await self._replace_point_ids(path, [p.id for p in points], file_task.seq)
                self._finish(file_task, t0, points=len(points) if kept else 0)
            except NoteIndexError as e:
                self._fail(file_task, t0, e)
            except Exception as e:
                logger.exception("index task failed: path=%s", path)
                self._fail(file_task, t0, e)

    async def _delete_path(self, file_task: FileTask) -> None:
        async with self._sem:
            t0 = asyncio.get_running_loop().time()
            self._metrics.tasks_started += 1
            try:
                file_task.advance(TaskState.DELETING)
                removed = await self._forget(file_task.path)
                self._finish(file_task, t0, points=removed)
            except NoteIndexError as e:
                self._fail(file_task, t0, e)
            except Exception as e:
                logger.exception("delete task failed: path=%s", file_task.path)
                self._fail(file_task, t0, e)

    async def _replace_point_ids(self, path: str, new_ids: list[str], seq: int) -> bool:
        """Record the fresh keys for path and delete points left over from a longer version.

        If a directory holding path was removed while the task ran, the keys just written
        are deleted instead of recorded; returns False in that case.
        """
        async with self._ids_lock:
            superseded = self._removed_since(path, seq)
            if not superseded:
                previous = self._point_ids.get(path, [])
                keep = set(new_ids)
                stale = [k for k in previous if k not in keep]
                self._point_ids[path] = new_ids + stale
        if superseded:
            await self._store.delete(self._collection, new_ids)
            self._metrics.points_deleted += len(new_ids)
            logger.info("%s was removed while being indexed; dropped %s point(s)", path, len(new_ids))
            return False
        if not stale:
            return True
        await self._store.delete(self._collection, stale)
        self._metrics.points_deleted += len(stale)
        async with self._ids_lock:
            current = self._point_ids.get(path)
            if current is not None:
                gone = set(stale)
                self._point_ids[path] = [k for k in current if k not in gone]
        return True

    async def _forget(self, path: str) -> int:
        """Delete every point derived from path (or from notes below it, for directories)."""
        prefix = path.rstrip(os.sep) + os.sep
        async with self._ids_lock:
            owned = {p: self._point_ids.pop(p) for p in list(self._point_ids) if p == path or p.startswith(prefix)}

        await self._lifecycle.ensure()
        try:
            if owned:
                keys = [k for ids in owned.values() for k in ids]
                await self._store.delete(self._collection, keys)
            else:
                # Indexed by an earlier process, or never indexed: match on payload instead.
                await self._store.delete_by_path(self._collection, path)
                keys = []
        except BaseException:
            async with self._ids_lock:
                for p, ids in owned.items():
                    self._point_ids.setdefault(p, ids)
            raise
        self._metrics.points_deleted += len(keys)
        return len(keys)

    def _finish(self, file_task: FileTask, t0: float, *, points: int) -> None:
        file_task.advance(TaskState.DONE)
        self._metrics.tasks_done += 1
        log_index_task(
            path=file_task.path,
            action=file_task.action,
            outcome="done",
            points=points,
            latency_ms=self._elapsed_ms(t0),
        )

    def _fail(self, file_task: FileTask, t0: float, error: Exception) -> None:
        file_task.advance(TaskState.FAILED)
        self._metrics.tasks_failed += 1
        code = error.code if isinstance(error, NoteIndexError) else type(error).__name__
        log_index_task(
            path=file_task.path,
            action=file_task.action,
            outcome="failed",
            latency_ms=self._elapsed_ms(t0),
            error_code=code,
            error=error,
        )
        if isinstance(error, NoteIndexError) and error.fatal:
            self._escalate(error)

    def _escalate(self, error: NoteIndexError) -> None:
        if self.fatal_error is None:
            self.fatal_error = error
            logger.critical(
                "Indexing halted by configuration error [%s]: %s",
                error.code, error, extra={"error_code": error.code},
            )
        self.stop()

    @staticmethod
    def _elapsed_ms(t0: float) -> int:
        return int((asyncio.get_running_loop().time() - t0) * 1000)
