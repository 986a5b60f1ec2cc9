"""Embedding client exceptions."""
from __future__ import annotations

from noteindex.errors import NoteIndexError


class EmbeddingError(NoteIndexError):
    """Base exception for embedding calls."""


class EmbeddingUnavailable(EmbeddingError):
    """Embedding service unreachable, timed out, overloaded or returned 5xx (transient)."""

    def __init__(self, message: str = "Embedding service unavailable", **kwargs: object) -> None:
        super().__init__(message, code="EMBED_UNAVAILABLE", retryable=True, **kwargs)


class EmbeddingMalformedResponse(EmbeddingError):
    """Response lacks usable vector data, or the request was rejected as invalid."""

    def __init__(
        self,
        message: str = "Embedding response malformed",
        *,
        code: str = "EMBED_MALFORMED",
        **kwargs: object,
    ) -> None:
        super().__init__(message, code=code, retryable=False, **kwargs)


class EmbeddingDimensionMismatch(EmbeddingMalformedResponse):
    """Model returned vectors whose size differs from the configured dimension.

    This is a configuration error (wrong model for the collection), not a per-note one.
    """

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding model returned {actual}-dim vectors, expected {expected}",
            code="EMBED_DIMENSION_MISMATCH",
            fatal=True,
        )
        self.expected = expected
        self.actual = actual
