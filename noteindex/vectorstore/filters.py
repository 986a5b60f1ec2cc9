"""Payload filters for note points."""
from __future__ import annotations

from qdrant_client import models as qdrant_models


def path_filter(path: str) -> qdrant_models.Filter:
    """Match every point whose payload `path` equals `path`."""
    return qdrant_models.Filter(
        must=[
            qdrant_models.FieldCondition(
                key="path",
                match=qdrant_models.MatchValue(value=path),
            )
        ]
    )
