"""Pytest fixtures and in-memory fakes for embedding and vector store services."""
from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from noteindex.indexing import IndexingCoordinator, IndexingSettings
from noteindex.models import FileChangeEvent
from noteindex.telemetry import PipelineMetrics
from noteindex.vectorstore import CollectionLifecycleManager, CollectionSpec, IndexPoint
from noteindex.vectorstore.errors import CollectionSchemaMismatch
from noteindex.watcher import EventQueue

DIMS = 384


def unit_vector(value: float, dims: int = DIMS) -> list[float]:
    return [value] * dims


class FakeEmbedder:
    """Deterministic embedder: one vector per paragraph, value derived from its length."""

    def __init__(self, fn: Callable[[str], list[list[float]]] | None = None) -> None:
        self._fn = fn or (lambda text: [unit_vector(float(len(p))) for p in text.split("\n\n") if p.strip()])
        self.texts: list[str] = []
        self.errors: dict[str, Exception] = {}
        self.gate: asyncio.Event | None = None
        self.active = 0
        self.max_active = 0

    async def embed(self, text: str) -> list[list[float]]:
        self.texts.append(text)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if text in self.errors:
                raise self.errors[text]
            return self._fn(text)
        finally:
            self.active -= 1


class FakeObserver:
    """Stands in for watchdog's Observer; tests dispatch events to the captured handler."""

    def __init__(self) -> None:
        self.daemon = False
        self.handler = None
        self.scheduled: tuple[str, bool] | None = None
        self.alive = False

    def schedule(self, handler, path, recursive=False):
        self.handler = handler
        self.scheduled = (path, recursive)

    def start(self) -> None:
        self.alive = True

    def stop(self) -> None:
        self.alive = False

    def join(self, timeout=None) -> None:
        pass

    def is_alive(self) -> bool:
        return self.alive


class FakeStore:
    """In-memory VectorStorePort keyed by point key ("<path>-<n>")."""

    def __init__(self) -> None:
        self.collections: dict[str, tuple[int, str]] = {}
        self.points: dict[str, dict[str, IndexPoint]] = {}
        self.calls: list[tuple] = []
        self.upsert_error: Exception | None = None
        self.delete_error: Exception | None = None

    async def collection_exists(self, name: str) -> bool:
        self.calls.append(("collection_exists", name))
        await asyncio.sleep(0)
        return name in self.collections

    async def verify_collection(self, name: str, dimension: int, distance: str) -> None:
        self.calls.append(("verify_collection", name))
        if self.collections[name] != (dimension, distance):
            raise CollectionSchemaMismatch(f"{name} has {self.collections[name]}")

    async def create_collection(self, name: str, dimension: int, distance: str) -> None:
        self.calls.append(("create_collection", name, dimension, distance))
        await asyncio.sleep(0)
        self.collections[name] = (dimension, distance)
        self.points.setdefault(name, {})

    async def upsert(self, collection: str, points: list[IndexPoint], wait: bool = True) -> None:
        self.calls.append(("upsert", collection, [p.id for p in points], wait))
        await asyncio.sleep(0)
        if self.upsert_error is not None:
            raise self.upsert_error
        for p in points:
            self.points[collection][p.id] = p

    async def delete(self, collection: str, point_ids: list[str]) -> None:
        self.calls.append(("delete", collection, list(point_ids)))
        if self.delete_error is not None:
            raise self.delete_error
        for key in point_ids:
            self.points.get(collection, {}).pop(key, None)

    async def delete_by_path(self, collection: str, path: str) -> None:
        self.calls.append(("delete_by_path", collection, path))
        stored = self.points.get(collection, {})
        for key in [k for k, p in stored.items() if p.payload.path == path]:
            del stored[key]

    def keys(self, collection: str = "notes") -> set[str]:
        return set(self.points.get(collection, {}))

    def count(self, call_name: str) -> int:
        return sum(1 for c in self.calls if c[0] == call_name)


@pytest.fixture
def notes_dir(tmp_path: Path) -> Path:
    d = tmp_path / "notes"
    d.mkdir()
    return d


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def spec() -> CollectionSpec:
    return CollectionSpec(name="notes", dimension=DIMS, distance="Dot")


@pytest.fixture
def make_coordinator(embedder: FakeEmbedder, store: FakeStore, spec: CollectionSpec):
    def _make(embedder_override: FakeEmbedder | None = None, **overrides) -> IndexingCoordinator:
        settings = IndexingSettings(**overrides)
        return IndexingCoordinator(
            embedder_override or embedder,
            store,
            CollectionLifecycleManager(store, spec),
            settings,
            PipelineMetrics(),
        )

    return _make


async def run_events(coordinator: IndexingCoordinator, *events: FileChangeEvent) -> None:
    """Feed events through a closed queue, then wait for every task to finish."""
    queue = EventQueue(capacity=max(1, len(events)))
    for event in events:
        queue.offer(event)
    queue.close()
    await coordinator.run(queue)
    await coordinator.drain(timeout=5.0)
