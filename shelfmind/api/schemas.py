"""Pydantic request/response schemas for the shelfmind API.

Request schemas end with ``Request``, response schemas with ``Response``.
Search hits reuse :class:`~shelfmind.models.rag.SearchResult` directly.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from shelfmind.models.rag import SearchResult, VectorizationState, VectorizationStatus


class VectorizationStatusResponse(BaseModel):
    """Vectorization progress for one document."""

    document_id: str
    state: VectorizationState
    total_chunks: int
    processed_chunks: int
    progress: float = Field(description="Completion percentage (0-100)")
    error: str | None = None

    @classmethod
    def from_status(cls, status: VectorizationStatus) -> VectorizationStatusResponse:
        return cls(
            document_id=status.document_id,
            state=status.state,
            total_chunks=status.total_chunks,
            processed_chunks=status.processed_chunks,
            progress=round(status.progress, 1),
            error=status.error,
        )


class CancelResponse(BaseModel):
    """Result of a cancellation request."""

    document_id: str
    cancelled: bool = Field(description="False when no run was active (no-op)")


class SearchRequest(BaseModel):
    """Search query against one document."""

    query: str = Field(..., min_length=1, max_length=2000)
    mode: str = Field(default="hybrid", description="semantic | keyword | hybrid")
    top_k: int | None = Field(default=None, ge=1, le=100)
    min_score: float | None = Field(default=None, ge=-1.0, le=1.0)


class SearchResponse(BaseModel):
    """Ranked search hits, best first."""

    document_id: str
    query: str
    mode: str
    results: list[SearchResult] = Field(default_factory=list)


class DeleteChunksResponse(BaseModel):
    """Result of removing a document's stored chunks."""

    document_id: str
    deleted: int


class DocumentListResponse(BaseModel):
    """Documents that have stored chunks."""

    documents: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    embedding_provider: str
    vector_store: str
    active_runs: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
