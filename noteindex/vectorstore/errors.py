"""Vector store exceptions."""
from __future__ import annotations

from noteindex.errors import NoteIndexError


class VectorStoreError(NoteIndexError):
    """Base exception for vector store operations."""


class StoreUnavailable(VectorStoreError):
    """Raised when connection to Qdrant fails, times out or returns 5xx (transient)."""

    def __init__(self, message: str = "Vector store unavailable", **kwargs: object) -> None:
        super().__init__(message, code="STORE_UNAVAILABLE", retryable=True, **kwargs)


class StoreRejected(VectorStoreError):
    """Raised when Qdrant rejects a request (bad request, unknown collection, wrong vector)."""

    def __init__(
        self,
        message: str = "Vector store rejected request",
        *,
        code: str = "STORE_REJECTED",
        status_code: int | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(message, code=code, retryable=False, **kwargs)
        self.status_code = status_code


class CollectionSchemaMismatch(StoreRejected):
    """Raised when collection vector size or distance does not match expectations.

    Indicates a migration (new collection + reindex) is required.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, code="COLLECTION_SCHEMA_MISMATCH", fatal=True)
