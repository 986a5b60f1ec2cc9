"""Directory watcher configuration. Env prefix: WATCH_."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WatcherSettings(BaseSettings):
    """Settings for the note directory watcher and its event queue."""

    model_config = SettingsConfigDict(
        env_prefix="WATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    queue_capacity: int = Field(default=100, ge=1, description="Pending events kept before new ones are dropped")
    include_suffixes: list[str] = Field(
        default_factory=lambda: [".json"],
        description="File suffixes treated as notes (case-insensitive)",
    )
    join_timeout_s: float = Field(default=5.0, ge=0.0, description="Max wait for the observer thread on stop")
