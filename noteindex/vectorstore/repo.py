"""Qdrant vector store repository (async)."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import grpc
import httpx
from qdrant_client import AsyncQdrantClient, models as qdrant_models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from noteindex.retry import retry_transient
from noteindex.vectorstore.collections import qdrant_distance, validate_collection
from noteindex.vectorstore.errors import StoreRejected, StoreUnavailable, VectorStoreError
from noteindex.vectorstore.filters import path_filter
from noteindex.vectorstore.ids import qdrant_point_id
from noteindex.vectorstore.models import CollectionSpec, IndexPoint
from noteindex.vectorstore.settings import VectorStoreSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_STATUS = {408, 429}
_TRANSIENT_GRPC = {
    grpc.StatusCode.UNAVAILABLE,
    grpc.StatusCode.DEADLINE_EXCEEDED,
    grpc.StatusCode.RESOURCE_EXHAUSTED,
    grpc.StatusCode.ABORTED,
}


async def _translate(coro_func: Callable[..., Awaitable[T]], *args: object, **kwargs: object) -> T:
    """Run one Qdrant call, mapping client exceptions to StoreUnavailable / StoreRejected."""
    try:
        return await coro_func(*args, **kwargs)
    except VectorStoreError:
        raise
    except UnexpectedResponse as e:
        status = e.status_code or 0
        if status >= 500 or status in _TRANSIENT_STATUS:
            raise StoreUnavailable(f"Qdrant returned HTTP {status}", details=str(e)) from e
        raise StoreRejected(
            f"Qdrant rejected request with HTTP {status}", status_code=status, details=str(e)
        ) from e
    except grpc.RpcError as e:
        code = e.code() if callable(getattr(e, "code", None)) else None
        if code in _TRANSIENT_GRPC:
            raise StoreUnavailable(f"Qdrant gRPC call failed: {code}", details=str(e)) from e
        raise StoreRejected(f"Qdrant gRPC call rejected: {code}", details=str(e)) from e
    except (ResponseHandlingException, httpx.TransportError, ConnectionError, TimeoutError) as e:
        raise StoreUnavailable(f"Qdrant unreachable: {type(e).__name__}", details=str(e)) from e


class QdrantVectorStoreRepo:
    """Async Qdrant repository for note points.

    Every public call maps client errors onto StoreUnavailable / StoreRejected and
    retries the transient ones with exponential backoff.
    """

    def __init__(
        self,
        client: AsyncQdrantClient,
        settings: VectorStoreSettings | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or VectorStoreSettings()

    async def _call(self, what: str, coro_func: Callable[..., Awaitable[T]], *args: object, **kwargs: object) -> T:
        return await retry_transient(
            _translate,
            coro_func,
            *args,
            retries=self._settings.retries,
            backoff_base_s=self._settings.retry_backoff_base_s,
            what=f"Qdrant {what}",
            **kwargs,
        )

    async def health(self) -> bool:
        """Check connectivity to Qdrant."""
        try:
            await _translate(self._client.get_collections)
            return True
        except VectorStoreError as e:
            logger.warning("Qdrant health check failed: %s", e)
            return False

    async def close(self) -> None:
        await self._client.close()

    async def collection_exists(self, name: str) -> bool:
        return await self._call("collection_exists", self._client.collection_exists, name)

    async def verify_collection(self, name: str, dimension: int, distance: str) -> None:
        """Raise CollectionSchemaMismatch if `name` does not have the given vector config."""
        info = await self._call("get_collection", self._client.get_collection, name)
        validate_collection(info, CollectionSpec(name=name, dimension=dimension, distance=distance))

    async def create_collection(self, name: str, dimension: int, distance: str) -> None:
        """Create the collection; if it already exists, only validate its vector config.

        Never recreates or alters an existing collection.
        """
        if await self.collection_exists(name):
            await self.verify_collection(name, dimension, distance)
            return
        try:
            await self._call(
                "create_collection",
                self._client.create_collection,
                collection_name=name,
                vectors_config=qdrant_models.VectorParams(size=dimension, distance=qdrant_distance(distance)),
            )
        except StoreRejected as e:
            # Lost a create race with another writer
            if e.status_code != 409:
                raise
            await self.verify_collection(name, dimension, distance)
            return
        await self._ensure_payload_indexes(name)

    async def _ensure_payload_indexes(self, name: str) -> None:
        """Keyword index on `path` so delete-by-path does not scan the collection."""
        try:
            await self._call(
                "create_payload_index",
                self._client.create_payload_index,
                collection_name=name,
                field_name="path",
                field_schema=qdrant_models.PayloadSchemaType.KEYWORD,
            )
        except VectorStoreError as e:
            logger.warning("Could not create payload index on %s.path: %s", name, e)

    async def upsert(
        self,
        collection: str,
        points: list[IndexPoint],
        wait: bool = True,
    ) -> qdrant_models.UpdateResult | None:
        """Upsert all points in one call. With wait=True returns once Qdrant has applied them."""
        if not points:
            return None
        qdrant_points = [
            qdrant_models.PointStruct(
                id=qdrant_point_id(p.id),
                vector=p.vector,
                payload=p.payload.to_qdrant(),
            )
            for p in points
        ]
        result = await self._call(
            "upsert",
            self._client.upsert,
            collection_name=collection,
            points=qdrant_points,
            wait=wait,
        )
        logger.info("Upserted %s points to %s", len(points), collection)
        return result

    async def delete(self, collection: str, point_ids: list[str]) -> None:
        """Delete points by key ("<path>-<n>")."""
        if not point_ids:
            return
        await self._call(
            "delete",
            self._client.delete,
            collection_name=collection,
            points_selector=qdrant_models.PointIdsList(points=[qdrant_point_id(k) for k in point_ids]),
            wait=True,
        )
        logger.info("Deleted %s points from %s", len(point_ids), collection)

    async def delete_by_path(self, collection: str, path: str) -> None:
        """Delete every point whose payload path equals `path`."""
        await self._call(
            "delete",
            self._client.delete,
            collection_name=collection,
            points_selector=qdrant_models.FilterSelector(filter=path_filter(path)),
            wait=True,
        )
        logger.info("Deleted points for %s from %s", path, collection)
