"""Integration tests for the Qdrant vector store repo. Require Docker Qdrant on localhost:6333."""
from uuid import uuid4

import pytest
import pytest_asyncio

# Skip all integration tests if Qdrant is not available
try:
    from qdrant_client import AsyncQdrantClient
    _client = AsyncQdrantClient(url="http://localhost:6333", timeout=2)
    import asyncio
    _ok = asyncio.run(_client.get_collections())
    del _client, _ok
    QDRANT_AVAILABLE = True
except Exception:
    QDRANT_AVAILABLE = False

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not QDRANT_AVAILABLE, reason="Qdrant not available at localhost:6333"),
]

from noteindex.indexing import build_points
from noteindex.vectorstore import (
    CollectionLifecycleManager,
    CollectionSchemaMismatch,
    CollectionSpec,
    QdrantVectorStoreRepo,
    VectorStoreSettings,
    build_qdrant_client,
    qdrant_point_id,
)

DIMS = 8


@pytest.fixture
def qdrant_settings() -> VectorStoreSettings:
    return VectorStoreSettings(url="http://localhost:6333")


@pytest_asyncio.fixture
async def repo(qdrant_settings: VectorStoreSettings):
    client = build_qdrant_client(qdrant_settings)
    r = QdrantVectorStoreRepo(client, qdrant_settings)
    yield r
    await r.close()


@pytest_asyncio.fixture
async def collection(repo: QdrantVectorStoreRepo):
    name = f"test-notes-{uuid4().hex[:8]}"
    yield name
    await repo._client.delete_collection(name)


async def _count(repo: QdrantVectorStoreRepo, name: str) -> int:
    result = await repo._client.count(name, exact=True)
    return result.count


@pytest.mark.asyncio
async def test_health(repo: QdrantVectorStoreRepo) -> None:
    assert await repo.health() is True


@pytest.mark.asyncio
async def test_lifecycle_creates_then_reuses(repo: QdrantVectorStoreRepo, collection: str) -> None:
    spec = CollectionSpec(name=collection, dimension=DIMS, distance="Dot")
    await CollectionLifecycleManager(repo, spec).ensure()
    assert await repo.collection_exists(collection)

    # A second process finds it and only validates
    await CollectionLifecycleManager(repo, spec).ensure()

    wrong = CollectionSpec(name=collection, dimension=DIMS * 2, distance="Dot")
    with pytest.raises(CollectionSchemaMismatch):
        await CollectionLifecycleManager(repo, wrong).ensure()


@pytest.mark.asyncio
async def test_upsert_is_idempotent_and_deletes(repo: QdrantVectorStoreRepo, collection: str) -> None:
    await repo.create_collection(collection, DIMS, "Dot")
    points = build_points("/notes/a.json", [[0.1] * DIMS, [0.2] * DIMS])

    await repo.upsert(collection, points)
    await repo.upsert(collection, points)
    assert await _count(repo, collection) == 2

    stored = await repo._client.retrieve(collection, [qdrant_point_id("/notes/a.json-1")], with_payload=True)
    assert stored[0].payload["path"] == "/notes/a.json"
    assert stored[0].payload["index"] == 1

    await repo.delete(collection, ["/notes/a.json-1"])
    assert await _count(repo, collection) == 1

    await repo.delete_by_path(collection, "/notes/a.json")
    assert await _count(repo, collection) == 0
