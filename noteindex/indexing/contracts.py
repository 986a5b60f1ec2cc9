"""Minimal Protocols the coordinator depends on (not concrete implementations)."""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from noteindex.vectorstore.models import IndexPoint


@runtime_checkable
class EmbeddingClientPort(Protocol):
    """Embed one text and return its chunk vectors in order."""

    async def embed(self, text: str) -> list[list[float]]:
        ...


@runtime_checkable
class VectorStorePort(Protocol):
    """Collection lifecycle plus point upsert/delete."""

    async def collection_exists(self, name: str) -> bool:
        ...

    async def verify_collection(self, name: str, dimension: int, distance: str) -> None:
        ...

    async def create_collection(self, name: str, dimension: int, distance: str) -> None:
        ...

    async def upsert(self, collection: str, points: list[IndexPoint], wait: bool = True) -> Any:
        ...

    async def delete(self, collection: str, point_ids: list[str]) -> None:
        ...

    async def delete_by_path(self, collection: str, path: str) -> None:
        ...
