"""Embeddings module: Ollama embed client for note vectors."""
from noteindex.embeddings.errors import (
    EmbeddingDimensionMismatch,
    EmbeddingError,
    EmbeddingMalformedResponse,
    EmbeddingUnavailable,
)
from noteindex.embeddings.ollama import OllamaEmbedClient
from noteindex.embeddings.settings import EmbedSettings

__all__ = [
    "EmbedSettings",
    "EmbeddingDimensionMismatch",
    "EmbeddingError",
    "EmbeddingMalformedResponse",
    "EmbeddingUnavailable",
    "OllamaEmbedClient",
]
