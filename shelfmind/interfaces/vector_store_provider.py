"""Abstract base class for chunk/vector persistence.

Every operation is scoped to a ``document_id``.  The store is deliberately
dumb: no similarity operator, no index.  Scoring happens in application
code over a full :meth:`IVectorStoreProvider.scan` of one document, which
is the right trade-off at single-book scale (hundreds to a few thousand
chunks).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from shelfmind.models.rag import Chunk, ChunkCounts


# Concrete implementation: SQLiteVectorStore (shelfmind/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for the durable chunk store used by vectorization and search."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Must be idempotent."""

    @abstractmethod
    async def put_chunks(self, document_id: str, chunks: list[Chunk]) -> int:
        """Upsert *chunks* for *document_id* by chunk id.

        The whole call is atomic: a concurrent reader sees either none or
        all of the written rows, and never a partially written embedding.
        A chunk passed without an embedding does not erase an embedding
        already stored for the same id.

        Returns
        -------
        int
            The number of chunks written.

        Raises
        ------
        shelfmind.utils.errors.VectorStoreError
            If a chunk belongs to another document, an embedding has the
            wrong dimension, or the write fails.
        """

    @abstractmethod
    async def scan(self, document_id: str) -> list[Chunk]:
        """Return every chunk of *document_id* ordered by ``(chapter_index, sequence_index)``."""

    @abstractmethod
    async def delete_document(self, document_id: str) -> int:
        """Delete all chunks (and bookkeeping) for *document_id*.

        Returns
        -------
        int
            The number of chunks deleted.
        """

    @abstractmethod
    async def count(self, document_id: str) -> ChunkCounts:
        """Return ``(total, with_embedding)`` chunk counts for *document_id*."""

    @abstractmethod
    async def get_content_hash(self, document_id: str) -> str | None:
        """Return the content hash recorded when the stored chunks were produced."""

    @abstractmethod
    async def set_content_hash(self, document_id: str, content_hash: str) -> None:
        """Record the content hash of the chapters the stored chunks came from."""

    @abstractmethod
    async def list_documents(self) -> list[str]:
        """Return the ids of all documents that have at least one stored chunk."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store (e.g. ``"sqlite"``)."""
