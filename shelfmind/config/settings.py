"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from TWO sources (in priority order):
#
#   1. **Environment variables** - e.g. OPENAI_API_KEY=sk-abc123
#   2. **.env file** - key=value lines in the project root .env file
#
# Field name `chunk_max_tokens` maps to env var `CHUNK_MAX_TOKENS`.
# Defaults below are used when neither source sets a value.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """shelfmind application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding backend ===
    # Empty key = "not configured" -> main.py falls through to fastembed.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (TogetherAI, local gateways)
    openai_embedding_model: str = ""  # Empty = text-embedding-3-small
    fastembed_model: str = "BAAI/bge-small-en-v1.5"

    # === Embedding client ===
    embedding_batch_limit: int = 64
    embedding_max_attempts: int = 5
    embedding_backoff_base: float = 0.5  # seconds, doubled per attempt
    embedding_backoff_max: float = 30.0
    embedding_timeout: float = 60.0
    query_cache_size: int = 256
    query_cache_ttl: int = 3600

    # === Chunking / vectorization ===
    chunk_max_tokens: int = 512
    chunk_overlap_tokens: int = 64
    vectorize_batch_size: int = 16

    # === Retrieval ===
    hybrid_semantic_weight: float = 0.7
    hybrid_keyword_weight: float = 0.3
    search_default_top_k: int = 5

    # === Storage / library ===
    db_path: str = "data/shelfmind.db"
    library_dir: str = "data/library"

    # === App Config ===
    app_host: str = "127.0.0.1"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_sizes(self) -> "Settings":
        if self.chunk_max_tokens <= 0:
            raise ValueError("chunk_max_tokens must be positive")
        if not 0 <= self.chunk_overlap_tokens < self.chunk_max_tokens:
            raise ValueError("chunk_overlap_tokens must be in [0, chunk_max_tokens)")
        if self.vectorize_batch_size <= 0 or self.embedding_batch_limit <= 0:
            raise ValueError("batch sizes must be positive")
        if self.vectorize_batch_size > self.embedding_batch_limit:
            raise ValueError("vectorize_batch_size cannot exceed embedding_batch_limit")
        if self.embedding_max_attempts < 1:
            raise ValueError("embedding_max_attempts must be at least 1")
        if self.hybrid_semantic_weight < 0 or self.hybrid_keyword_weight < 0:
            raise ValueError("hybrid weights must be non-negative")
        if self.hybrid_semantic_weight + self.hybrid_keyword_weight == 0:
            raise ValueError("hybrid weights cannot both be zero")
        return self

    def get_embedding_backend(self) -> str:
        """Return ``"openai"`` when an API key is configured, else ``"fastembed"``."""
        return "openai" if self.openai_api_key else "fastembed"
