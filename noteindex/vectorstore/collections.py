"""Collection creation, validation, and the once-per-process lifecycle guard."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from qdrant_client.http import models as qdrant_http

from noteindex.vectorstore.errors import CollectionSchemaMismatch
from noteindex.vectorstore.models import CollectionSpec

if TYPE_CHECKING:
    from noteindex.indexing.contracts import VectorStorePort

logger = logging.getLogger(__name__)


_DISTANCES = {
    "cosine": qdrant_http.Distance.COSINE,
    "dot": qdrant_http.Distance.DOT,
    "euclid": qdrant_http.Distance.EUCLID,
    "manhattan": qdrant_http.Distance.MANHATTAN,
}


def qdrant_distance(s: str) -> qdrant_http.Distance:
    """Map string distance to Qdrant enum (case-insensitive)."""
    try:
        return _DISTANCES[s.lower()]
    except KeyError:
        raise ValueError(f"Unknown distance metric {s!r}; expected one of {sorted(_DISTANCES)}") from None


def validate_collection(info: qdrant_http.CollectionInfo, spec: CollectionSpec) -> None:
    """Raise CollectionSchemaMismatch if an existing collection has wrong vector_size or distance."""
    vectors_config = info.config.params.vectors
    expected_distance = qdrant_distance(spec.distance)
    if not isinstance(vectors_config, qdrant_http.VectorParams):
        raise CollectionSchemaMismatch(
            f"Collection {spec.name} uses named vectors; expected a single unnamed vector "
            f"of size={spec.dimension} distance={expected_distance.value}"
        )
    if vectors_config.size != spec.dimension or vectors_config.distance != expected_distance:
        raise CollectionSchemaMismatch(
            f"Collection {spec.name} has size={vectors_config.size} distance={vectors_config.distance.value}, "
            f"expected size={spec.dimension} distance={expected_distance.value}. "
            "Migration (new collection + reindex) required."
        )


class CollectionLifecycleManager:
    """Ensures the target collection exists before the first upsert.

    Check-then-create runs at most once per process: concurrent callers wait on the
    lock and see the ready flag. A failed attempt leaves the flag unset so the next
    caller tries again.
    """

    def __init__(self, store: VectorStorePort, spec: CollectionSpec) -> None:
        self._store = store
        self._spec = spec
        self._lock = asyncio.Lock()
        self._ready = False

    @property
    def spec(self) -> CollectionSpec:
        return self._spec

    @property
    def ready(self) -> bool:
        return self._ready

    async def ensure(self) -> None:
        if self._ready:
            return
        async with self._lock:
            if self._ready:
                return
            name = self._spec.name
            if await self._store.collection_exists(name):
                await self._store.verify_collection(name, self._spec.dimension, self._spec.distance)
                logger.info("Using existing collection %s", name)
            else:
                await self._store.create_collection(name, self._spec.dimension, self._spec.distance)
                logger.info(
                    "Created collection %s (size=%s distance=%s)",
                    name, self._spec.dimension, self._spec.distance,
                )
            self._ready = True
