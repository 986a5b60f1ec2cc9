"""Typed models for Qdrant points, payloads and collections."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from noteindex.vectorstore.ids import point_key


class NotePayload(BaseModel):
    """Payload stored with each vector point."""

    index: int = Field(..., ge=0, description="Chunk index within the note")
    path: str = Field(..., description="Source note path")
    embedded_at: datetime | None = Field(default=None, description="When embedding was computed")

    def to_qdrant(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "index": self.index,
            "path": self.path,
            "point_key": point_key(self.path, self.index),
        }
        if self.embedded_at is not None:
            d["embedded_at"] = self.embedded_at.isoformat()
        return d


class IndexPoint(BaseModel):
    """A point to upsert: id ("<path>-<n>"), vector, payload."""

    id: str = Field(..., description="Point key, derived from (path, chunk index)")
    vector: list[float] = Field(..., description="Embedding vector")
    payload: NotePayload = Field(..., description="Payload for filtering")


class CollectionSpec(BaseModel):
    """Vector configuration a collection must have."""

    model_config = ConfigDict(frozen=True)

    name: str
    dimension: int = Field(..., ge=1)
    distance: str = "Dot"
