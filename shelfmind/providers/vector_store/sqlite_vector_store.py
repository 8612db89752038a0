"""SQLite-backed chunk/vector store.

Persists chunks and their embeddings to a local SQLite database at
``data/shelfmind.db``.  Uses ``aiosqlite`` for async I/O.  Embeddings are
stored as little-endian float32 BLOBs (``numpy`` handles the packing).

Two tables:

``chunks``
    One row per chunk, keyed by the deterministic chunk id.
``documents``
    Per-document bookkeeping: the content hash of the chapters the stored
    chunks were produced from, and the embedding dimension in use.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import numpy as np
import structlog

from shelfmind.interfaces.vector_store_provider import IVectorStoreProvider
from shelfmind.models.rag import Chunk, ChunkCounts
from shelfmind.utils.errors import VectorStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/shelfmind.db")
_PROVIDER_NAME = "sqlite_vector_store"

_CREATE_CHUNKS_SQL = """\
CREATE TABLE IF NOT EXISTS chunks (
    id              TEXT    PRIMARY KEY,
    document_id     TEXT    NOT NULL,
    chapter_index   INTEGER NOT NULL,
    chapter_title   TEXT    NOT NULL DEFAULT '',
    sequence_index  INTEGER NOT NULL,
    content         TEXT    NOT NULL,
    token_count     INTEGER NOT NULL DEFAULT 0,
    start_anchor    TEXT,
    end_anchor      TEXT,
    embedding       BLOB
);
"""

_CREATE_DOCUMENTS_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    document_id   TEXT PRIMARY KEY,
    content_hash  TEXT,
    dimension     INTEGER,
    updated_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_document "
    "ON chunks(document_id, chapter_index, sequence_index);",
]

# A NULL embedding in the incoming row keeps whatever is already stored.
_UPSERT_CHUNK_SQL = """\
INSERT INTO chunks (
    id, document_id, chapter_index, chapter_title, sequence_index,
    content, token_count, start_anchor, end_anchor, embedding
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET chapter_index  = excluded.chapter_index,
              chapter_title  = excluded.chapter_title,
              sequence_index = excluded.sequence_index,
              content        = excluded.content,
              token_count    = excluded.token_count,
              start_anchor   = excluded.start_anchor,
              end_anchor     = excluded.end_anchor,
              embedding      = COALESCE(excluded.embedding, chunks.embedding);
"""

_SELECT_CHUNKS_SQL = """\
SELECT id, document_id, chapter_index, chapter_title, sequence_index,
       content, token_count, start_anchor, end_anchor, embedding
FROM chunks
WHERE document_id = ?
ORDER BY chapter_index, sequence_index;
"""

_COUNT_SQL = """\
SELECT COUNT(*) AS total,
       COUNT(embedding) AS with_embedding
FROM chunks
WHERE document_id = ?;
"""

_SELECT_DIMENSION_SQL = "SELECT dimension FROM documents WHERE document_id = ?;"

_UPSERT_DIMENSION_SQL = """\
INSERT INTO documents (document_id, dimension)
VALUES (?, ?)
ON CONFLICT(document_id)
DO UPDATE SET dimension  = excluded.dimension,
              updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_UPSERT_HASH_SQL = """\
INSERT INTO documents (document_id, content_hash)
VALUES (?, ?)
ON CONFLICT(document_id)
DO UPDATE SET content_hash = excluded.content_hash,
              updated_at   = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""


def _encode_embedding(embedding: list[float] | None) -> bytes | None:
    if embedding is None:
        return None
    return np.asarray(embedding, dtype="<f4").tobytes()


def _decode_embedding(blob: bytes | None) -> list[float] | None:
    if blob is None:
        return None
    return np.frombuffer(blob, dtype="<f4").astype(float).tolist()


class SQLiteVectorStore(IVectorStoreProvider):
    """SQLite-backed chunk persistence with brute-force friendly scans."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the chunks/documents tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("PRAGMA journal_mode=WAL;")
                await db.execute(_CREATE_CHUNKS_SQL)
                await db.execute(_CREATE_DOCUMENTS_SQL)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Failed to initialize vector store: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        logger.info("vector_store_initialized", path=str(self._db_path))

    async def put_chunks(self, document_id: str, chunks: list[Chunk]) -> int:
        """Upsert *chunks* in a single transaction.  Returns the count written."""
        if not chunks:
            return 0

        dimensions = set()
        for chunk in chunks:
            if chunk.document_id != document_id:
                raise VectorStoreError(
                    message=(
                        f"Chunk {chunk.id} belongs to document {chunk.document_id!r}, "
                        f"not {document_id!r}"
                    ),
                    provider_name=_PROVIDER_NAME,
                )
            if chunk.embedding is not None:
                dimensions.add(len(chunk.embedding))
        if len(dimensions) > 1:
            raise VectorStoreError(
                message=f"Mixed embedding dimensions in one write: {sorted(dimensions)}",
                provider_name=_PROVIDER_NAME,
            )

        rows = [
            (
                chunk.id,
                chunk.document_id,
                chunk.chapter_index,
                chunk.chapter_title,
                chunk.sequence_index,
                chunk.content,
                chunk.token_count,
                chunk.start_anchor,
                chunk.end_anchor,
                _encode_embedding(chunk.embedding),
            )
            for chunk in chunks
        ]

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                if dimensions:
                    (dimension,) = dimensions
                    cursor = await db.execute(_SELECT_DIMENSION_SQL, (document_id,))
                    row = await cursor.fetchone()
                    stored = row[0] if row is not None else None
                    if stored is not None and stored != dimension:
                        counts = await self._count(db, document_id)
                        if counts.with_embedding > 0:
                            raise VectorStoreError(
                                message=(
                                    f"Embedding dimension {dimension} does not match "
                                    f"stored dimension {stored} for {document_id!r}"
                                ),
                                provider_name=_PROVIDER_NAME,
                            )
                    await db.execute(_UPSERT_DIMENSION_SQL, (document_id, dimension))
                await db.executemany(_UPSERT_CHUNK_SQL, rows)
                await db.commit()
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Failed to write chunks for {document_id!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.debug(
            "chunks_written",
            document_id=document_id,
            count=len(rows),
            with_embedding=sum(1 for c in chunks if c.embedding is not None),
        )
        return len(rows)

    async def scan(self, document_id: str) -> list[Chunk]:
        """Return every chunk of a document in reading order."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_CHUNKS_SQL, (document_id,))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Failed to scan chunks for {document_id!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        return [
            Chunk(
                id=row["id"],
                document_id=row["document_id"],
                chapter_index=row["chapter_index"],
                chapter_title=row["chapter_title"],
                sequence_index=row["sequence_index"],
                content=row["content"],
                token_count=row["token_count"],
                start_anchor=row["start_anchor"],
                end_anchor=row["end_anchor"],
                embedding=_decode_embedding(row["embedding"]),
            )
            for row in rows
        ]

    async def delete_document(self, document_id: str) -> int:
        """Delete a document's chunks and bookkeeping row."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "DELETE FROM chunks WHERE document_id = ?", (document_id,)
                )
                deleted = cursor.rowcount
                await db.execute(
                    "DELETE FROM documents WHERE document_id = ?", (document_id,)
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Failed to delete chunks for {document_id!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.info("document_chunks_deleted", document_id=document_id, deleted=deleted)
        return deleted

    async def count(self, document_id: str) -> ChunkCounts:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                return await self._count(db, document_id)
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Failed to count chunks for {document_id!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

    async def get_content_hash(self, document_id: str) -> str | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "SELECT content_hash FROM documents WHERE document_id = ?",
                    (document_id,),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Failed to read content hash for {document_id!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        return row[0] if row is not None else None

    async def set_content_hash(self, document_id: str, content_hash: str) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_UPSERT_HASH_SQL, (document_id, content_hash))
                await db.commit()
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Failed to record content hash for {document_id!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

    async def list_documents(self) -> list[str]:
        """Return ids of documents with at least one stored chunk."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "SELECT DISTINCT document_id FROM chunks ORDER BY document_id"
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Failed to list documents: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        return [row[0] for row in rows]

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return _PROVIDER_NAME

    @staticmethod
    async def _count(db: aiosqlite.Connection, document_id: str) -> ChunkCounts:
        cursor = await db.execute(_COUNT_SQL, (document_id,))
        row = await cursor.fetchone()
        return ChunkCounts(total=row[0] or 0, with_embedding=row[1] or 0)
