"""Configuration schema using Pydantic.

Single data model and defaults for shadowindex, persisted to ~/.shadowindex/config.json.
Environment variables (SHADOWINDEX_EMBEDDING__API_KEY etc.) fill in values the file does not set.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IndexingConfig(BaseModel):
    """Background indexing scheduler."""
    max_concurrent: int = Field(default=3, ge=1)  # Documents processed at the same time
    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)
    embed_timeout: float | None = None  # Seconds per embedding call; None waits forever


class EmbeddingConfig(BaseModel):
    """Embedding provider (LiteLLM model naming)."""
    provider: str = "gemini"
    model: str = "text-embedding-004"
    api_key: str = ""
    api_base: str | None = None
    batch_size: int = Field(default=100, ge=1)  # Inputs per provider request


class RetrievalConfig(BaseModel):
    """Query-time retrieval."""
    top_k: int = Field(default=15, ge=1)


class StoreConfig(BaseModel):
    """Document/chunk persistence. sqlite is local; rest talks to a PostgREST/Supabase endpoint."""
    backend: Literal["sqlite", "rest"] = "sqlite"
    sqlite_path: str = ""  # Empty -> <workspace>/shadowindex.db
    rest_url: str = ""
    rest_key: str = ""
    timeout: float = 30.0


class Config(BaseSettings):
    """Root configuration for shadowindex."""

    model_config = SettingsConfigDict(
        env_prefix="SHADOWINDEX_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    workspace: str = "~/.shadowindex/workspace"
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @field_validator("workspace")
    @classmethod
    def _workspace_not_blank(cls, v: str) -> str:
        return v.strip() or "~/.shadowindex/workspace"

    @property
    def workspace_path(self) -> Path:
        """Get expanded workspace path."""
        return Path(self.workspace).expanduser()

    @property
    def sqlite_path(self) -> Path:
        if self.store.sqlite_path:
            return Path(self.store.sqlite_path).expanduser()
        return self.workspace_path / "shadowindex.db"
