"""Indexing pipeline configuration. Env prefix: INDEX_."""
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IndexingSettings(BaseSettings):
    """Settings for the indexing coordinator and pipeline host."""

    model_config = SettingsConfigDict(
        env_prefix="INDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    notes_dir: Path | None = Field(default=None, description="Notes data directory to watch")
    max_concurrency: int = Field(default=4, ge=1, description="Max concurrent per-file tasks")
    max_input_chars: int = Field(default=65536, ge=1, description="Note text beyond this is not embedded")
    shutdown_timeout_s: float = Field(default=10.0, ge=0.0, description="Wait for in-flight tasks on stop")
    scan_on_start: bool = Field(default=False, description="Index notes already present when the pipeline starts")
