"""Ollama embed client: POST to /api/embed."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from noteindex.embeddings.errors import (
    EmbeddingDimensionMismatch,
    EmbeddingMalformedResponse,
    EmbeddingUnavailable,
)
from noteindex.embeddings.settings import EmbedSettings
from noteindex.retry import retry_transient

logger = logging.getLogger(__name__)

# Status codes worth another attempt (model loading, overload)
_TRANSIENT_STATUS = {408, 429, 500, 502, 503, 504}


class OllamaEmbedClient:
    """Embed note text via Ollama /api/embed endpoint.

    Build one instance per process and share it; the underlying httpx.AsyncClient is
    created on first use and reused by all callers until aclose().
    """

    def __init__(
        self,
        settings: EmbedSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or EmbedSettings()
        self._base = self._settings.ollama_api_base.rstrip("/")
        self._model = self._settings.ollama_model
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._http_lock = asyncio.Lock()

    @property
    def model(self) -> str:
        return self._model

    @property
    def dims(self) -> int:
        return self._settings.dims

    async def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            async with self._http_lock:
                if self._http is None:
                    self._http = httpx.AsyncClient(
                        base_url=self._base,
                        timeout=self._settings.embed_timeout,
                        transport=self._transport,
                    )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def embed(self, text: str) -> list[list[float]]:
        """Embed one note. Returns one vector per chunk, in chunk order.

        Raises EmbeddingUnavailable after retries are exhausted, EmbeddingMalformedResponse
        when the response carries no usable vectors, EmbeddingDimensionMismatch when the
        model does not produce `dims`-sized vectors.
        """
        return await retry_transient(
            self._embed_once,
            text,
            retries=self._settings.retries,
            backoff_base_s=self._settings.retry_backoff_base_s,
            what="Embed request",
        )

    async def _embed_once(self, text: str) -> list[list[float]]:
        payload: dict[str, Any] = {
            "model": self._model,
            "input": text,
            "keep_alive": self._settings.ollama_keep_alive,
        }
        client = await self._client()
        try:
            resp = await client.post("/api/embed", json=payload)
        except httpx.TransportError as e:
            raise EmbeddingUnavailable(
                f"Embed request to {self._base} failed: {type(e).__name__}",
                details=str(e),
            ) from e

        if resp.status_code in _TRANSIENT_STATUS:
            raise EmbeddingUnavailable(
                f"Embed request returned HTTP {resp.status_code}",
                details=resp.text[:500],
            )
        if resp.is_error:
            raise EmbeddingMalformedResponse(
                f"Embed request rejected with HTTP {resp.status_code}",
                details=resp.text[:500],
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise EmbeddingMalformedResponse("Embed response is not JSON") from e

        return self._parse_vectors(data)

    def _parse_vectors(self, data: Any) -> list[list[float]]:
        raw = data.get("embeddings") if isinstance(data, dict) else None
        if not raw or not isinstance(raw, list):
            raise EmbeddingMalformedResponse("Embeddings not found in Ollama response")
        if isinstance(raw[0], (int, float)):
            raw = [raw]

        vectors: list[list[float]] = []
        for vec in raw:
            if not isinstance(vec, list) or not vec:
                raise EmbeddingMalformedResponse("Embedding entry is not a non-empty list")
            try:
                floats = [float(x) for x in vec]
            except (TypeError, ValueError) as e:
                raise EmbeddingMalformedResponse("Embedding contains non-numeric values") from e
            if len(floats) != self._settings.dims:
                raise EmbeddingDimensionMismatch(self._settings.dims, len(floats))
            vectors.append(floats)

        logger.debug("Ollama %s returned %s vector(s)", self._model, len(vectors))
        return vectors
