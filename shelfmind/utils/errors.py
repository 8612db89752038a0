"""Custom exception hierarchy for shelfmind.

All application exceptions inherit from :class:`ShelfMindError`, which
carries an optional ``provider_name`` so error handlers can identify which
external collaborator (e.g. "openai", "epub_reader", "sqlite") caused the
failure.

The hierarchy is organized by layer:

    ShelfMindError  (base -- catch-all for any shelfmind error)
    +-- DocumentUnreadable       (document reader could not supply chapters)
    +-- EmbeddingError           (any embedding-layer failure)
    |   +-- EmbeddingUnavailable     (capability down / unreachable / timed out)
    |   +-- EmbeddingRateLimited     (throttled -- retried with backoff)
    |   +-- EmbeddingInvalidInput    (text exceeds the model's input limit)
    +-- AlreadyRunning           (a vectorization run is active for the document)
    +-- InvalidSearchMode        (unknown search mode requested)
    +-- VectorStoreError         (durable store failure)
    +-- ConfigurationError       (startup / invalid config)

Only :class:`EmbeddingRateLimited` is retried automatically (inside the
embedding client).  Everything else is surfaced to the caller or recorded
on the failed run's status.
"""


class ShelfMindError(Exception):
    """Base exception for all shelfmind errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Document reader errors
# ---------------------------------------------------------------------------

class DocumentUnreadable(ShelfMindError):
    """Raised when the document reader cannot supply chapters for a document.

    Fatal for the vectorization run that hit it; never retried.
    """

    def __init__(
        self,
        message: str = "Document could not be read",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding errors
# ---------------------------------------------------------------------------

class EmbeddingError(ShelfMindError):
    """Base class for failures raised by the embedding layer."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingUnavailable(EmbeddingError):
    """Raised when the embedding capability is unreachable or misbehaving."""

    def __init__(
        self,
        message: str = "Embedding service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingRateLimited(EmbeddingError):
    """Raised when the embedding capability throttles the caller.

    The embedding client retries this with exponential backoff.  Providers
    may pass ``retry_after`` (seconds) when the backend announces it.
    """

    def __init__(
        self,
        message: str = "Embedding rate limit exceeded",
        provider_name: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._retry_after = retry_after

    @property
    def retry_after(self) -> float | None:
        return self._retry_after


class EmbeddingInvalidInput(EmbeddingError):
    """Raised when a text exceeds the embedding capability's input limit."""

    def __init__(
        self,
        message: str = "Embedding input rejected",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Caller errors
# ---------------------------------------------------------------------------

class AlreadyRunning(ShelfMindError):
    """Raised when a vectorization run is already active for a document."""

    def __init__(
        self,
        message: str = "Vectorization is already running for this document",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidSearchMode(ShelfMindError):
    """Raised when a search is requested with an unknown mode."""

    def __init__(
        self,
        message: str = "Unknown search mode",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage / configuration errors
# ---------------------------------------------------------------------------

class VectorStoreError(ShelfMindError):
    """Raised when a vector-store operation fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(ShelfMindError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
