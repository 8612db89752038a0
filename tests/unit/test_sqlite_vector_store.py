"""Unit tests for SQLiteVectorStore."""

from __future__ import annotations

from pathlib import Path

import pytest

from shelfmind.models.rag import Chunk, make_chunk_id
from shelfmind.providers.vector_store.sqlite_vector_store import SQLiteVectorStore
from shelfmind.utils.errors import VectorStoreError


def _chunk(
    document_id: str = "doc",
    chapter: int = 0,
    seq: int = 0,
    content: str = "some text",
    embedding: list[float] | None = None,
) -> Chunk:
    return Chunk(
        id=make_chunk_id(document_id, chapter, seq),
        document_id=document_id,
        chapter_index=chapter,
        chapter_title=f"Chapter {chapter}",
        sequence_index=seq,
        content=content,
        token_count=len(content.split()),
        embedding=embedding,
    )


class TestPutAndScan:
    @pytest.mark.asyncio
    async def test_scan_returns_reading_order(self, sqlite_store: SQLiteVectorStore) -> None:
        chunks = [_chunk(chapter=1, seq=0), _chunk(chapter=0, seq=1), _chunk(chapter=0, seq=0)]
        assert await sqlite_store.put_chunks("doc", chunks) == 3

        scanned = await sqlite_store.scan("doc")
        assert [c.order_key for c in scanned] == [(0, 0), (0, 1), (1, 0)]

    @pytest.mark.asyncio
    async def test_embedding_round_trips_as_float32(self, sqlite_store: SQLiteVectorStore) -> None:
        await sqlite_store.put_chunks("doc", [_chunk(embedding=[0.25, -0.5, 1.0])])
        (stored,) = await sqlite_store.scan("doc")
        assert stored.embedding == pytest.approx([0.25, -0.5, 1.0])
        assert stored.chapter_title == "Chapter 0"

    @pytest.mark.asyncio
    async def test_put_is_idempotent(self, sqlite_store: SQLiteVectorStore) -> None:
        chunk = _chunk(embedding=[1.0, 0.0])
        await sqlite_store.put_chunks("doc", [chunk])
        await sqlite_store.put_chunks("doc", [chunk])
        assert (await sqlite_store.count("doc")).total == 1

    @pytest.mark.asyncio
    async def test_missing_embedding_keeps_stored_vector(
        self, sqlite_store: SQLiteVectorStore
    ) -> None:
        await sqlite_store.put_chunks("doc", [_chunk(embedding=[1.0, 0.0])])
        await sqlite_store.put_chunks("doc", [_chunk(content="rewritten")])

        (stored,) = await sqlite_store.scan("doc")
        assert stored.content == "rewritten"
        assert stored.embedding == pytest.approx([1.0, 0.0])

    @pytest.mark.asyncio
    async def test_empty_put_is_noop(self, sqlite_store: SQLiteVectorStore) -> None:
        assert await sqlite_store.put_chunks("doc", []) == 0

    @pytest.mark.asyncio
    async def test_unknown_document_scans_empty(self, sqlite_store: SQLiteVectorStore) -> None:
        assert await sqlite_store.scan("nope") == []


class TestDimensionChecks:
    @pytest.mark.asyncio
    async def test_mixed_dimensions_in_one_write_rejected(
        self, sqlite_store: SQLiteVectorStore
    ) -> None:
        chunks = [_chunk(seq=0, embedding=[1.0, 0.0]), _chunk(seq=1, embedding=[1.0, 0.0, 0.0])]
        with pytest.raises(VectorStoreError, match="Mixed"):
            await sqlite_store.put_chunks("doc", chunks)

    @pytest.mark.asyncio
    async def test_dimension_change_rejected_while_embeddings_exist(
        self, sqlite_store: SQLiteVectorStore
    ) -> None:
        await sqlite_store.put_chunks("doc", [_chunk(seq=0, embedding=[1.0, 0.0])])
        with pytest.raises(VectorStoreError, match="dimension"):
            await sqlite_store.put_chunks("doc", [_chunk(seq=1, embedding=[1.0, 0.0, 0.0])])

    @pytest.mark.asyncio
    async def test_dimension_change_allowed_after_delete(
        self, sqlite_store: SQLiteVectorStore
    ) -> None:
        await sqlite_store.put_chunks("doc", [_chunk(embedding=[1.0, 0.0])])
        await sqlite_store.delete_document("doc")
        await sqlite_store.put_chunks("doc", [_chunk(embedding=[1.0, 0.0, 0.0])])
        (stored,) = await sqlite_store.scan("doc")
        assert len(stored.embedding) == 3

    @pytest.mark.asyncio
    async def test_foreign_chunk_rejected(self, sqlite_store: SQLiteVectorStore) -> None:
        with pytest.raises(VectorStoreError):
            await sqlite_store.put_chunks("doc", [_chunk(document_id="other")])


class TestBookkeeping:
    @pytest.mark.asyncio
    async def test_count_splits_embedded(self, sqlite_store: SQLiteVectorStore) -> None:
        await sqlite_store.put_chunks(
            "doc", [_chunk(seq=0, embedding=[1.0]), _chunk(seq=1), _chunk(seq=2)]
        )
        counts = await sqlite_store.count("doc")
        assert (counts.total, counts.with_embedding) == (3, 1)

    @pytest.mark.asyncio
    async def test_delete_is_scoped_to_document(self, sqlite_store: SQLiteVectorStore) -> None:
        await sqlite_store.put_chunks("a", [_chunk("a", seq=0), _chunk("a", seq=1)])
        await sqlite_store.put_chunks("b", [_chunk("b")])
        await sqlite_store.set_content_hash("a", "hash-a")

        assert await sqlite_store.delete_document("a") == 2
        assert await sqlite_store.scan("a") == []
        assert await sqlite_store.get_content_hash("a") is None
        assert len(await sqlite_store.scan("b")) == 1

    @pytest.mark.asyncio
    async def test_delete_unknown_returns_zero(self, sqlite_store: SQLiteVectorStore) -> None:
        assert await sqlite_store.delete_document("ghost") == 0

    @pytest.mark.asyncio
    async def test_content_hash_round_trip(self, sqlite_store: SQLiteVectorStore) -> None:
        assert await sqlite_store.get_content_hash("doc") is None
        await sqlite_store.set_content_hash("doc", "abc")
        await sqlite_store.set_content_hash("doc", "def")
        assert await sqlite_store.get_content_hash("doc") == "def"

    @pytest.mark.asyncio
    async def test_list_documents(self, sqlite_store: SQLiteVectorStore) -> None:
        await sqlite_store.put_chunks("zeta", [_chunk("zeta")])
        await sqlite_store.put_chunks("alpha", [_chunk("alpha")])
        assert await sqlite_store.list_documents() == ["alpha", "zeta"]

    @pytest.mark.asyncio
    async def test_data_survives_new_instance(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "store.db"
        first = SQLiteVectorStore(db_path)
        await first.initialize()
        await first.put_chunks("doc", [_chunk(embedding=[0.5, 0.5])])

        second = SQLiteVectorStore(db_path)
        await second.initialize()
        assert (await second.count("doc")).with_embedding == 1

    def test_provider_name(self, tmp_path: Path) -> None:
        assert SQLiteVectorStore(tmp_path / "x.db").get_provider_name() == "sqlite_vector_store"
