"""Filesystem change events passed from the watcher to the coordinator."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ChangeKind(str, Enum):
    """Normalized kind of a note file change."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileChangeEvent(BaseModel):
    """One change observed under the watched root. Immutable; consumed exactly once."""

    model_config = ConfigDict(frozen=True)

    paths: tuple[str, ...] = Field(..., min_length=1, description="Affected file paths")
    kind: ChangeKind
    observed_at: datetime = Field(default_factory=_utcnow, description="When the watcher saw it (UTC)")
