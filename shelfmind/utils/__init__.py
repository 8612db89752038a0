"""Utility modules for shelfmind.

- **errors** -- Domain-specific exception hierarchy rooted at ShelfMindError;
  each layer raises its own subclass so callers can handle failures
  granularly without broad ``except Exception`` blocks.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text** -- word-span tokenization for chunking and term extraction for
  keyword scoring and highlight snippets.
"""

from shelfmind.utils.errors import (
    AlreadyRunning,
    ConfigurationError,
    DocumentUnreadable,
    EmbeddingError,
    EmbeddingInvalidInput,
    EmbeddingRateLimited,
    EmbeddingUnavailable,
    InvalidSearchMode,
    ShelfMindError,
    VectorStoreError,
)
from shelfmind.utils.logging import configure_logging, get_logger

__all__ = [
    "AlreadyRunning",
    "ConfigurationError",
    "DocumentUnreadable",
    "EmbeddingError",
    "EmbeddingInvalidInput",
    "EmbeddingRateLimited",
    "EmbeddingUnavailable",
    "InvalidSearchMode",
    "ShelfMindError",
    "VectorStoreError",
    "configure_logging",
    "get_logger",
]
