"""Pipeline host: wires watcher, queue, clients and coordinator; exposes start/stop."""
from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.observers import Observer

from noteindex.embeddings.ollama import OllamaEmbedClient
from noteindex.embeddings.settings import EmbedSettings
from noteindex.errors import NoteIndexError
from noteindex.indexing.contracts import EmbeddingClientPort, VectorStorePort
from noteindex.indexing.coordinator import IndexingCoordinator
from noteindex.indexing.settings import IndexingSettings
from noteindex.models import ChangeKind, FileChangeEvent
from noteindex.telemetry import PipelineMetrics
from noteindex.vectorstore.client import build_qdrant_client
from noteindex.vectorstore.collections import CollectionLifecycleManager
from noteindex.vectorstore.models import CollectionSpec
from noteindex.vectorstore.repo import QdrantVectorStoreRepo
from noteindex.vectorstore.settings import VectorStoreSettings
from noteindex.watcher.errors import WatchFailed
from noteindex.watcher.observer import DirectoryWatcher, is_note_file
from noteindex.watcher.queue import EventQueue
from noteindex.watcher.settings import WatcherSettings

logger = logging.getLogger(__name__)


class IndexingPipeline:
    """Background note indexing for one root directory.

    Clients passed in are shared and left open; clients the pipeline builds itself
    are closed by aclose().
    """

    def __init__(
        self,
        root: str | Path | None = None,
        *,
        embedder: EmbeddingClientPort | None = None,
        store: VectorStorePort | None = None,
        settings: IndexingSettings | None = None,
        embed_settings: EmbedSettings | None = None,
        store_settings: VectorStoreSettings | None = None,
        watcher_settings: WatcherSettings | None = None,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self._settings = settings or IndexingSettings()
        root = root if root is not None else self._settings.notes_dir
        if root is None:
            raise ValueError("No notes directory given (pass root or set INDEX_NOTES_DIR)")
        self._root = os.path.abspath(os.fspath(root))
        self._embed_settings = embed_settings or EmbedSettings()
        self._store_settings = store_settings or VectorStoreSettings()
        self._watcher_settings = watcher_settings or WatcherSettings()
        self._observer_factory = observer_factory

        self._owned: list[Any] = []
        if embedder is None:
            embedder = OllamaEmbedClient(self._embed_settings)
            self._owned.append(embedder)
        if store is None:
            store = QdrantVectorStoreRepo(build_qdrant_client(self._store_settings), self._store_settings)
            self._owned.append(store)
        self._embedder = embedder
        self._store = store

        self.metrics = PipelineMetrics()
        self._watcher: DirectoryWatcher | None = None
        self._coordinator: IndexingCoordinator | None = None
        self._task: asyncio.Task[None] | None = None
        self._error: WatchFailed | None = None

    @property
    def root(self) -> str:
        return self._root

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def coordinator(self) -> IndexingCoordinator | None:
        return self._coordinator

    @property
    def fatal_error(self) -> NoteIndexError | None:
        """WatchFailed, or the configuration error that halted the coordinator."""
        if self._error is not None:
            return self._error
        return self._coordinator.fatal_error if self._coordinator else None

    async def start(self) -> None:
        """Start watching. Raises WatchFailed if the root cannot be watched."""
        if self._task is not None:
            raise RuntimeError("IndexingPipeline already started")
        spec = CollectionSpec(
            name=self._store_settings.collection,
            dimension=self._embed_settings.dims,
            distance=self._store_settings.distance,
        )
        queue = EventQueue(self._watcher_settings.queue_capacity, self.metrics)
        self._watcher = DirectoryWatcher(
            self._root,
            queue,
            self._watcher_settings,
            observer_factory=self._observer_factory,
        )
        self._coordinator = IndexingCoordinator(
            self._embedder,
            self._store,
            CollectionLifecycleManager(self._store, spec),
            self._settings,
            self.metrics,
        )
        self._watcher.start()
        if self._settings.scan_on_start:
            await self._scan_existing()
        self._task = asyncio.create_task(self._run(queue), name="note-indexing")

    async def _scan_existing(self) -> None:
        suffixes = self._watcher_settings.include_suffixes

        def _walk() -> list[str]:
            found = []
            for dirpath, dirnames, filenames in os.walk(self._root):
                dirnames[:] = [d for d in dirnames if not d.startswith(".")]
                found.extend(
                    os.path.join(dirpath, f) for f in filenames if is_note_file(f, suffixes)
                )
            return sorted(found)

        paths = await asyncio.to_thread(_walk)
        logger.info("Initial scan found %s note(s) under %s", len(paths), self._root)
        if paths:
            self._coordinator.submit(FileChangeEvent(paths=tuple(paths), kind=ChangeKind.CREATED))

    async def _run(self, queue: EventQueue) -> None:
        try:
            await self._coordinator.run(queue)
        except WatchFailed as e:
            self._error = e
            logger.error("Note indexing stopped: %s", e)
        finally:
            self._watcher.stop()
            await self._coordinator.drain(self._settings.shutdown_timeout_s)
            logger.info("Note indexing finished: %s", self.metrics.snapshot())

    async def wait(self) -> None:
        """Wait for the pipeline to end; re-raises WatchFailed if that is why it ended."""
        if self._task is None:
            return
        await self._task
        if self._error is not None:
            raise self._error

    async def stop(self) -> None:
        """Stop watching and let in-flight tasks finish (bounded by shutdown_timeout_s)."""
        if self._watcher is not None:
            self._watcher.stop()
        if self._coordinator is not None:
            self._coordinator.stop()
        if self._task is not None:
            await self._task

    async def aclose(self) -> None:
        await self.stop()
        for client in self._owned:
            if isinstance(client, OllamaEmbedClient):
                await client.aclose()
            elif isinstance(client, QdrantVectorStoreRepo):
                await client.close()
        self._owned.clear()

    async def __aenter__(self) -> IndexingPipeline:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
