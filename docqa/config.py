"""Central configuration, loaded from .env and environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_BASE_DIR = Path(__file__).resolve().parent.parent

# Hard cap imposed by the embedding API on inputs per request
MAX_EMBEDDING_BATCH = 2048


class Settings(BaseSettings):
    """Application settings loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=str(_BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── LLM ──────────────────────────────────────────────────────
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1024

    # ── Embeddings ───────────────────────────────────────────────
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = Field(default=1536, gt=0)
    embedding_batch_size: int = Field(default=MAX_EMBEDDING_BATCH, ge=1, le=MAX_EMBEDDING_BATCH)

    # ── API Keys (provider-specific) ─────────────────────────────
    openai_api_key: str = ""
    google_api_key: str = ""
    anthropic_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # ── Upstream calls ───────────────────────────────────────────
    upstream_timeout_seconds: float = Field(default=30.0, gt=0)
    upstream_max_attempts: int = Field(default=3, ge=1)
    upstream_backoff_seconds: float = Field(default=1.0, ge=0)

    # ── Storage ──────────────────────────────────────────────────
    database_path: str = str(_BASE_DIR / "data" / "docqa.db")

    # ── Retrieval ────────────────────────────────────────────────
    retrieval_top_k: int = Field(default=5, ge=1)
    retrieval_distance_metric: Literal["cosine", "l2", "inner_product"] = "cosine"

    # ── Chunking ─────────────────────────────────────────────────
    chunk_size: int = Field(default=2400, ge=1)
    chunk_overlap: int = Field(default=480, ge=0)
    chunk_strategy: Literal["sentence", "fixed"] = "sentence"

    # ── Uploads ──────────────────────────────────────────────────
    upload_dir: str = str(_BASE_DIR / "data" / "uploads")
    max_upload_size_mb: int = Field(default=10, ge=1)

    # ── API ──────────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # ── Helpers ──────────────────────────────────────────────────
    def ensure_dirs(self) -> None:
        """Create all required data directories."""
        Path(self.upload_dir).mkdir(parents=True, exist_ok=True)
        Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance.

    Call ``get_settings.cache_clear()`` to reload from the environment.
    """
    return Settings()


if __name__ == "__main__":
    s = get_settings()
    s.ensure_dirs()
    print(f"Environment : {s.environment}")
    print(f"LLM         : {s.llm_provider} / {s.llm_model}")
    print(f"Embedding   : {s.embedding_provider} / {s.embedding_model} (dim={s.embedding_dimensions})")
    print(f"Chunking    : {s.chunk_strategy} size={s.chunk_size} overlap={s.chunk_overlap}")
    print(f"Database    : {s.database_path}")
    print("✓ Config loaded successfully")
