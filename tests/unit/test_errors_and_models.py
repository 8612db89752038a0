"""Unit tests for the error hierarchy and the frozen RAG models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from shelfmind.models.rag import Chapter, Chunk, PositionMarker, make_chunk_id
from shelfmind.utils.errors import (
    AlreadyRunning,
    DocumentUnreadable,
    EmbeddingError,
    EmbeddingInvalidInput,
    EmbeddingRateLimited,
    EmbeddingUnavailable,
    InvalidSearchMode,
    ShelfMindError,
    VectorStoreError,
)


class TestErrors:
    def test_provider_prefix(self) -> None:
        err = EmbeddingUnavailable(message="down", provider_name="openai_embedding")
        assert str(err) == "[openai_embedding] down"
        assert err.message == "down"

    def test_plain_message(self) -> None:
        assert str(AlreadyRunning(message="busy")) == "busy"

    @pytest.mark.parametrize(
        "cls", [EmbeddingUnavailable, EmbeddingRateLimited, EmbeddingInvalidInput]
    )
    def test_embedding_errors_share_base(self, cls: type) -> None:
        assert issubclass(cls, EmbeddingError)
        assert issubclass(cls, ShelfMindError)

    @pytest.mark.parametrize(
        "cls", [DocumentUnreadable, AlreadyRunning, InvalidSearchMode, VectorStoreError]
    )
    def test_caller_errors_are_shelfmind_errors(self, cls: type) -> None:
        assert issubclass(cls, ShelfMindError)
        assert not issubclass(cls, EmbeddingError)

    def test_retry_after(self) -> None:
        assert EmbeddingRateLimited(retry_after=2.5).retry_after == 2.5
        assert EmbeddingRateLimited().retry_after is None


class TestModels:
    def test_chunk_is_frozen(self) -> None:
        chunk = Chunk(
            id=make_chunk_id("d", 0, 0),
            document_id="d",
            chapter_index=0,
            sequence_index=0,
            content="text",
        )
        with pytest.raises(ValidationError):
            chunk.content = "changed"
        updated = chunk.model_copy(update={"embedding": [0.1]})
        assert updated.has_embedding
        assert not chunk.has_embedding

    def test_empty_embedding_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Chunk(
                id="d-0-0",
                document_id="d",
                chapter_index=0,
                sequence_index=0,
                content="text",
                embedding=[],
            )

    def test_empty_content_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Chunk(id="d-0-0", document_id="d", chapter_index=0, sequence_index=0, content="")

    def test_chunk_id_format(self) -> None:
        assert make_chunk_id("moby-dick", 3, 12) == "moby-dick-3-12"

    def test_negative_marker_offset_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PositionMarker(offset=-1, anchor="x")

    def test_chapter_defaults(self) -> None:
        chapter = Chapter()
        assert (chapter.title, chapter.text, chapter.is_html, chapter.markers) == ("", "", False, [])
