"""Embedding client configuration. Env prefix: EMBED_."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbedSettings(BaseSettings):
    """Settings for Ollama embedding client."""

    model_config = SettingsConfigDict(
        env_prefix="EMBED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ollama_api_base: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL (embed endpoint)",
    )
    ollama_model: str = Field(
        default="granite-embedding:30m",
        description="Ollama embedding model; must produce `dims`-sized vectors",
    )
    ollama_keep_alive: str = Field(
        default="30m",
        description="Ollama keep_alive for embed model (e.g. 30m, 1h, -1 for indefinite)",
    )
    embed_timeout: float = Field(
        default=60.0,
        ge=1.0,
        description="Timeout in seconds for each embed request (cold model load is slow)",
    )
    dims: int = Field(default=384, ge=1, description="Expected embedding dimensions (granite-embedding:30m=384)")
    retries: int = Field(default=3, ge=1, description="Max attempts for transient embed failures")
    retry_backoff_base_s: float = Field(default=1.0, ge=0.0, description="Base delay for exponential backoff")
