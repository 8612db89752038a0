"""Embedding client: retry, timeout and normalization around a provider.

The client is the only component that talks to an
:class:`~shelfmind.interfaces.embedding_provider.IEmbeddingProvider`
directly.  It guarantees to its callers that:

* at most ``batch_limit`` texts go out per call,
* output ``i`` corresponds to input ``i`` and there are exactly as many
  vectors as texts,
* every vector has the provider's dimension ``D`` and unit L2 norm,
* throttling (:class:`EmbeddingRateLimited`) is retried with exponential
  backoff up to ``max_attempts`` before surfacing; every other failure
  propagates immediately,
* no call waits longer than ``timeout`` seconds per attempt.

Query embeddings are memoised in a small ``cachetools.TTLCache`` because
users tend to repeat and refine the same questions while reading.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import numpy as np
import structlog
from cachetools import TTLCache

from shelfmind.interfaces.embedding_provider import IEmbeddingProvider
from shelfmind.utils.errors import EmbeddingRateLimited, EmbeddingUnavailable

logger = structlog.get_logger(logger_name=__name__)


class EmbeddingClient:
    """Batch-oriented, retrying front end for an embedding provider.

    Parameters
    ----------
    provider:
        The embedding backend.
    batch_limit:
        Maximum number of texts accepted by :meth:`embed_batch`.
    max_attempts:
        Total attempts (first try included) for a rate-limited call.
    backoff_base / backoff_max:
        Delay before retry ``n`` is ``min(backoff_max, backoff_base * 2**(n-1))``
        unless the provider announced a longer ``retry_after``.
    timeout:
        Per-attempt timeout in seconds.
    sleep:
        Awaitable used for backoff delays (tests inject a recorder).
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        batch_limit: int = 64,
        max_attempts: int = 5,
        backoff_base: float = 0.5,
        backoff_max: float = 30.0,
        timeout: float = 60.0,
        query_cache_size: int = 256,
        query_cache_ttl: int = 3600,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if batch_limit < 1:
            raise ValueError(f"batch_limit must be >= 1, got {batch_limit}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._provider = provider
        self._batch_limit = batch_limit
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._timeout = timeout
        self._sleep = sleep
        self._query_cache: TTLCache[str, list[float]] = TTLCache(
            maxsize=max(1, query_cache_size), ttl=query_cache_ttl
        )

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    @property
    def batch_limit(self) -> int:
        return self._batch_limit

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed up to ``batch_limit`` texts, preserving input order.

        Raises
        ------
        ValueError
            If more than ``batch_limit`` texts are passed.
        EmbeddingRateLimited
            If throttling persists through every attempt.
        EmbeddingUnavailable / EmbeddingInvalidInput
            Propagated from the provider without retry.
        """
        if not texts:
            return []
        if len(texts) > self._batch_limit:
            raise ValueError(
                f"embed_batch accepts at most {self._batch_limit} texts, got {len(texts)}"
            )

        attempt = 1
        while True:
            try:
                vectors = await asyncio.wait_for(
                    self._provider.embed(list(texts)), timeout=self._timeout
                )
                break
            except asyncio.TimeoutError as exc:
                raise EmbeddingUnavailable(
                    message=f"Embedding call timed out after {self._timeout}s",
                    provider_name=self.provider_name,
                ) from exc
            except EmbeddingRateLimited as exc:
                if attempt >= self._max_attempts:
                    logger.error(
                        "embedding_rate_limit_exhausted",
                        provider=self.provider_name,
                        attempts=attempt,
                    )
                    raise
                delay = self._backoff_delay(attempt, exc.retry_after)
                logger.warning(
                    "embedding_rate_limited",
                    provider=self.provider_name,
                    attempt=attempt,
                    backoff_s=round(delay, 2),
                )
                await self._sleep(delay)
                attempt += 1

        return self._validate(texts, vectors)

    async def embed_query(self, query: str) -> list[float]:
        """Embed a single search query, served from the TTL cache when possible."""
        cached = self._query_cache.get(query)
        if cached is not None:
            logger.debug("query_embedding_cache_hit", query_len=len(query))
            return cached
        (vector,) = await self.embed_batch([query])
        self._query_cache[query] = vector
        return vector

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _backoff_delay(self, attempt: int, retry_after: float | None) -> float:
        delay = min(self._backoff_max, self._backoff_base * (2 ** (attempt - 1)))
        if retry_after is not None:
            delay = max(delay, min(retry_after, self._backoff_max))
        return delay

    def _validate(self, texts: list[str], vectors: list[list[float]]) -> list[list[float]]:
        """Check count and dimension, then L2-normalize each vector."""
        if len(vectors) != len(texts):
            raise EmbeddingUnavailable(
                message=f"Provider returned {len(vectors)} vectors for {len(texts)} texts",
                provider_name=self.provider_name,
            )

        dimension = self.dimension
        normalized: list[list[float]] = []
        for vector in vectors:
            arr = np.asarray(vector, dtype=np.float64)
            if arr.ndim != 1 or arr.shape[0] != dimension:
                raise EmbeddingUnavailable(
                    message=f"Provider returned a vector of length {arr.size}, expected {dimension}",
                    provider_name=self.provider_name,
                )
            norm = float(np.linalg.norm(arr))
            if norm > 0.0:
                arr = arr / norm
            normalized.append(arr.tolist())
        return normalized
