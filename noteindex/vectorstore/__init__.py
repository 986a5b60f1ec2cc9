"""Vector store (Qdrant) module: note collection lifecycle, upsert and delete."""

from noteindex.vectorstore.client import build_qdrant_client
from noteindex.vectorstore.collections import CollectionLifecycleManager, qdrant_distance, validate_collection
from noteindex.vectorstore.errors import (
    CollectionSchemaMismatch,
    StoreRejected,
    StoreUnavailable,
    VectorStoreError,
)
from noteindex.vectorstore.ids import point_key, qdrant_point_id
from noteindex.vectorstore.models import CollectionSpec, IndexPoint, NotePayload
from noteindex.vectorstore.repo import QdrantVectorStoreRepo
from noteindex.vectorstore.settings import VectorStoreSettings

__all__ = [
    "build_qdrant_client",
    "CollectionLifecycleManager",
    "qdrant_distance",
    "validate_collection",
    "CollectionSchemaMismatch",
    "StoreRejected",
    "StoreUnavailable",
    "VectorStoreError",
    "point_key",
    "qdrant_point_id",
    "CollectionSpec",
    "IndexPoint",
    "NotePayload",
    "QdrantVectorStoreRepo",
    "VectorStoreSettings",
    "get_vectorstore_repo",
]


_repo: QdrantVectorStoreRepo | None = None


def get_vectorstore_repo(
    settings: VectorStoreSettings | None = None,
) -> QdrantVectorStoreRepo:
    """Get or create the shared QdrantVectorStoreRepo (one per process)."""
    global _repo
    if _repo is None:
        s = settings or VectorStoreSettings()
        client = build_qdrant_client(s)
        _repo = QdrantVectorStoreRepo(client, s)
    return _repo
