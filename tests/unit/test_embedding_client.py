"""Unit tests for EmbeddingClient: retry, timeout, validation, normalization."""

from __future__ import annotations

import asyncio
import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from shelfmind.interfaces.embedding_provider import IEmbeddingProvider
from shelfmind.services.embedding_client import EmbeddingClient
from shelfmind.utils.errors import (
    EmbeddingInvalidInput,
    EmbeddingRateLimited,
    EmbeddingUnavailable,
)


def _provider(dim: int = 3, embed: AsyncMock | None = None) -> MagicMock:
    mock = MagicMock(spec=IEmbeddingProvider)
    mock.get_dimension.return_value = dim
    mock.get_provider_name.return_value = "mock-embedding"
    mock.is_available.return_value = True
    mock.embed = embed or AsyncMock(side_effect=lambda texts: [[1.0, 2.0, 2.0] for _ in texts])
    return mock


class _SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class TestEmbedBatch:
    @pytest.mark.asyncio
    async def test_vectors_are_normalized_and_ordered(self) -> None:
        embed = AsyncMock(return_value=[[3.0, 0.0, 4.0], [0.0, 2.0, 0.0]])
        client = EmbeddingClient(_provider(embed=embed))

        result = await client.embed_batch(["a", "b"])

        assert result[0] == pytest.approx([0.6, 0.0, 0.8])
        assert result[1] == pytest.approx([0.0, 1.0, 0.0])
        for vec in result:
            assert math.isclose(sum(v * v for v in vec), 1.0)

    @pytest.mark.asyncio
    async def test_zero_vector_passes_through(self) -> None:
        client = EmbeddingClient(_provider(embed=AsyncMock(return_value=[[0.0, 0.0, 0.0]])))
        assert await client.embed_batch(["blank"]) == [[0.0, 0.0, 0.0]]

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_call(self) -> None:
        provider = _provider()
        client = EmbeddingClient(provider)
        assert await client.embed_batch([]) == []
        provider.embed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_over_batch_limit_rejected(self) -> None:
        client = EmbeddingClient(_provider(), batch_limit=2)
        with pytest.raises(ValueError):
            await client.embed_batch(["a", "b", "c"])

    @pytest.mark.asyncio
    async def test_wrong_count_is_unavailable(self) -> None:
        client = EmbeddingClient(_provider(embed=AsyncMock(return_value=[[1.0, 0.0, 0.0]])))
        with pytest.raises(EmbeddingUnavailable):
            await client.embed_batch(["a", "b"])

    @pytest.mark.asyncio
    async def test_wrong_dimension_is_unavailable(self) -> None:
        client = EmbeddingClient(_provider(embed=AsyncMock(return_value=[[1.0, 0.0]])))
        with pytest.raises(EmbeddingUnavailable):
            await client.embed_batch(["a"])


class TestRetryPolicy:
    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_succeeds(self) -> None:
        embed = AsyncMock(
            side_effect=[
                EmbeddingRateLimited(),
                EmbeddingRateLimited(),
                [[1.0, 0.0, 0.0]],
            ]
        )
        sleep = _SleepRecorder()
        client = EmbeddingClient(_provider(embed=embed), backoff_base=0.5, sleep=sleep)

        result = await client.embed_batch(["a"])

        assert result == [[1.0, 0.0, 0.0]]
        assert embed.await_count == 3
        assert sleep.delays == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_max_attempts(self) -> None:
        embed = AsyncMock(side_effect=EmbeddingRateLimited())
        sleep = _SleepRecorder()
        client = EmbeddingClient(
            _provider(embed=embed),
            max_attempts=4,
            backoff_base=1.0,
            backoff_max=3.0,
            sleep=sleep,
        )

        with pytest.raises(EmbeddingRateLimited):
            await client.embed_batch(["a"])

        assert embed.await_count == 4
        assert sleep.delays == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_retry_after_is_honoured(self) -> None:
        embed = AsyncMock(
            side_effect=[EmbeddingRateLimited(retry_after=7.0), [[1.0, 0.0, 0.0]]]
        )
        sleep = _SleepRecorder()
        client = EmbeddingClient(_provider(embed=embed), backoff_base=0.5, sleep=sleep)

        await client.embed_batch(["a"])
        assert sleep.delays == [7.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [EmbeddingUnavailable(), EmbeddingInvalidInput()])
    async def test_other_errors_not_retried(self, error: Exception) -> None:
        embed = AsyncMock(side_effect=error)
        sleep = _SleepRecorder()
        client = EmbeddingClient(_provider(embed=embed), sleep=sleep)

        with pytest.raises(type(error)):
            await client.embed_batch(["a"])

        assert embed.await_count == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self) -> None:
        async def _hang(texts: list[str]) -> list[list[float]]:
            await asyncio.sleep(10)
            return []

        client = EmbeddingClient(_provider(embed=AsyncMock(side_effect=_hang)), timeout=0.01)
        with pytest.raises(EmbeddingUnavailable, match="timed out"):
            await client.embed_batch(["a"])


class TestQueryCache:
    @pytest.mark.asyncio
    async def test_repeated_query_served_from_cache(self) -> None:
        provider = _provider()
        client = EmbeddingClient(provider)

        first = await client.embed_query("where is the whale")
        second = await client.embed_query("where is the whale")

        assert first == second
        assert provider.embed.await_count == 1

    @pytest.mark.asyncio
    async def test_distinct_queries_are_embedded(self) -> None:
        provider = _provider()
        client = EmbeddingClient(provider)

        await client.embed_query("one")
        await client.embed_query("two")
        assert provider.embed.await_count == 2


class TestConstruction:
    @pytest.mark.parametrize("kwargs", [{"batch_limit": 0}, {"max_attempts": 0}])
    def test_invalid_limits_rejected(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            EmbeddingClient(_provider(), **kwargs)
