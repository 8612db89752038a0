"""Unit tests for embedding provider adapters: OpenAI and fastembed."""

from __future__ import annotations

import sys
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import numpy as np
import openai
import pytest

from shelfmind.config.settings import Settings
from shelfmind.providers.embedding.fastembed_embedding_provider import (
    FastEmbedEmbeddingProvider,
)
from shelfmind.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from shelfmind.utils.errors import (
    EmbeddingInvalidInput,
    EmbeddingRateLimited,
    EmbeddingUnavailable,
)

_CLIENT_PATH = "shelfmind.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"
_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _response(vectors: list[list[float]], indices: list[int]) -> MagicMock:
    mock_response = MagicMock()
    mock_response.data = [
        MagicMock(embedding=vec, index=idx) for vec, idx in zip(vectors, indices)
    ]
    mock_response.usage = MagicMock(total_tokens=12)
    return mock_response


def _provider_with(create: AsyncMock, settings: Settings | None = None) -> OpenAIEmbeddingProvider:
    mock_client = AsyncMock()
    mock_client.embeddings.create = create
    with patch(_CLIENT_PATH, return_value=mock_client):
        return OpenAIEmbeddingProvider(settings or _settings())


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_metadata(self) -> None:
        provider = OpenAIEmbeddingProvider(_settings())
        assert provider.get_provider_name() == "openai_embedding"
        assert provider.get_dimension() == 1536
        assert provider.is_available() is True

    def test_unavailable_without_key(self) -> None:
        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    def test_compatible_endpoint_model_dimension(self) -> None:
        provider = OpenAIEmbeddingProvider(
            _settings(
                openai_base_url="https://api.together.xyz/v1",
                openai_embedding_model="BAAI/bge-base-en-v1.5",
            )
        )
        assert provider.get_provider_name() == "openai-compatible_embedding"
        assert provider.get_dimension() == 768

    @pytest.mark.asyncio
    async def test_embed_orders_by_index(self) -> None:
        create = AsyncMock(return_value=_response([[0.2, 0.2], [0.1, 0.1]], [1, 0]))
        provider = _provider_with(create)

        result = await provider.embed(["first", "second"])

        assert result == [[0.1, 0.1], [0.2, 0.2]]
        create.assert_awaited_once()
        assert create.await_args.kwargs["input"] == ["first", "second"]
        assert create.await_args.kwargs["model"] == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_embed_empty_skips_call(self) -> None:
        create = AsyncMock()
        provider = _provider_with(create)
        assert await provider.embed([]) == []
        create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limit_maps_with_retry_after(self) -> None:
        response = httpx.Response(429, headers={"retry-after": "3"}, request=_REQUEST)
        create = AsyncMock(
            side_effect=openai.RateLimitError("slow down", response=response, body=None)
        )
        provider = _provider_with(create)

        with pytest.raises(EmbeddingRateLimited) as exc_info:
            await provider.embed(["x"])
        assert exc_info.value.retry_after == 3.0
        assert exc_info.value.provider_name == "openai_embedding"

    @pytest.mark.asyncio
    async def test_bad_request_maps_to_invalid_input(self) -> None:
        response = httpx.Response(400, request=_REQUEST)
        create = AsyncMock(
            side_effect=openai.BadRequestError("too long", response=response, body=None)
        )
        provider = _provider_with(create)

        with pytest.raises(EmbeddingInvalidInput):
            await provider.embed(["x" * 10])

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_unavailable(self) -> None:
        create = AsyncMock(side_effect=openai.APIConnectionError(request=_REQUEST))
        provider = _provider_with(create)

        with pytest.raises(EmbeddingUnavailable):
            await provider.embed(["x"])

    @pytest.mark.asyncio
    async def test_server_error_maps_to_unavailable(self) -> None:
        response = httpx.Response(500, request=_REQUEST)
        create = AsyncMock(
            side_effect=openai.InternalServerError("boom", response=response, body=None)
        )
        provider = _provider_with(create)

        with pytest.raises(EmbeddingUnavailable):
            await provider.embed(["x"])


# ======================================================================
# FastEmbed Embedding Provider
# ======================================================================


class TestFastEmbedEmbeddingProvider:
    def test_metadata(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        assert provider.get_dimension() == 384
        assert provider.get_provider_name() == "fastembed_bge-small-en-v1.5"

    @pytest.mark.asyncio
    async def test_embed_uses_loaded_model(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        model = MagicMock()
        model.embed.return_value = iter([np.array([0.1, 0.2]), np.array([0.3, 0.4])])
        provider._model = model

        result = await provider.embed(["a", "b"])

        assert result == pytest.approx([[0.1, 0.2], [0.3, 0.4]])
        model.embed.assert_called_once_with(["a", "b"])

    @pytest.mark.asyncio
    async def test_model_load_failure_is_unavailable(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        with patch.dict(sys.modules, {"fastembed": None}):
            with pytest.raises(EmbeddingUnavailable):
                await provider.embed(["a"])

    @pytest.mark.asyncio
    async def test_inference_error_is_unavailable(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        model = MagicMock()
        model.embed.side_effect = RuntimeError("onnx exploded")
        provider._model = model

        with pytest.raises(EmbeddingUnavailable, match="onnx exploded"):
            await provider.embed(["a"])

    def test_is_available_reflects_import(self) -> None:
        with patch.dict(sys.modules, {"fastembed": None}):
            assert FastEmbedEmbeddingProvider().is_available() is False
