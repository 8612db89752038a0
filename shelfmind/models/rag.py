"""RAG data models for shelfmind.

Defines Pydantic v2 models for chapters, chunks, search results, and
vectorization status.  All models use frozen config to enforce
immutability; updates produce new instances via
``model_copy(update={...})``.

Overview of the flow these models describe:

    1. READ: a document reader yields ordered :class:`Chapter` objects
       (title + text + optional position markers).
    2. CHUNK: :class:`~shelfmind.services.chunker.TextChunker` splits each
       chapter into bounded, overlapping :class:`Chunk` windows.
    3. EMBED: each chunk receives a fixed-length ``embedding`` vector.
    4. STORE: chunks are persisted per document in the vector store.
    5. SEARCH: the retrieval engine scores every chunk of a document
       against a query and returns ranked :class:`SearchResult` objects.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Reader output
# ---------------------------------------------------------------------------
class PositionMarker(BaseModel):
    """An opaque location in the source document at a known text offset.

    ``offset`` is a character offset into the chapter's plain text;
    ``anchor`` is owned by the reader (e.g. ``"chap03.xhtml#p12"``) and is
    handed back to the UI unchanged so it can jump to the source location.
    """

    model_config = ConfigDict(frozen=True)

    offset: int = Field(ge=0)
    anchor: str


class Chapter(BaseModel):
    """One chapter as supplied by a document reader."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    text: str = ""
    # When True the chunker strips markup before tokenizing.
    is_html: bool = False
    markers: list[PositionMarker] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Chunk: the atomic retrieval unit.
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A bounded span of chapter text with an optional embedding vector.

    Chunks of a document are totally ordered by
    ``(chapter_index, sequence_index)``, and that pair together with
    ``document_id`` identifies the chunk.  ``id`` is derived from the same
    triple so re-chunking unchanged content yields identical ids.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable identifier: <document_id>-<chapter>-<sequence>.")
    document_id: str
    chapter_index: int = Field(ge=0)
    chapter_title: str = ""
    sequence_index: int = Field(ge=0)
    content: str = Field(min_length=1)
    token_count: int = Field(default=0, ge=0)
    start_anchor: str | None = None
    end_anchor: str | None = None
    embedding: list[float] | None = None

    @field_validator("embedding")
    @classmethod
    def _embedding_not_empty(cls, value: list[float] | None) -> list[float] | None:
        if value is not None and len(value) == 0:
            raise ValueError("embedding must be absent or non-empty")
        return value

    @property
    def order_key(self) -> tuple[int, int]:
        """Sort key giving the chunk's position within its document."""
        return (self.chapter_index, self.sequence_index)

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None


def make_chunk_id(document_id: str, chapter_index: int, sequence_index: int) -> str:
    """Build the deterministic chunk id for a position within a document."""
    return f"{document_id}-{chapter_index}-{sequence_index}"


class ChunkCounts(BaseModel):
    """Stored chunk totals for one document."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    with_embedding: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
class SearchMode(str, Enum):  # noqa: UP042 (StrEnum needs 3.11)
    """Ranking modes understood by the retrieval engine."""

    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"


class SearchResult(BaseModel):
    """One ranked chunk returned from a search.  Never persisted."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    content: str
    score: float
    chapter_title: str = ""
    chapter_index: int = 0
    sequence_index: int = 0
    start_anchor: str | None = None
    end_anchor: str | None = None
    highlights: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Vectorization
# ---------------------------------------------------------------------------
class VectorizationState(str, Enum):  # noqa: UP042 (StrEnum needs 3.11)
    """States of a per-document vectorization run.

        IDLE → CHUNKING → EMBEDDING → COMPLETE
                   ↘          ↘
               FAILED / CANCELLED
    """

    IDLE = "idle"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in (VectorizationState.CHUNKING, VectorizationState.EMBEDDING)


class VectorizationStatus(BaseModel):
    """Snapshot of a document's vectorization progress."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    state: VectorizationState = VectorizationState.IDLE
    total_chunks: int = Field(default=0, ge=0)
    processed_chunks: int = Field(default=0, ge=0)
    error: str | None = None

    @property
    def progress(self) -> float:
        """Completion percentage (0.0 – 100.0)."""
        if self.total_chunks == 0:
            return 100.0 if self.state == VectorizationState.COMPLETE else 0.0
        return 100.0 * self.processed_chunks / self.total_chunks
