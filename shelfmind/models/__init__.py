"""shelfmind domain models: re-exports all public model classes."""

from __future__ import annotations

from shelfmind.models.rag import (
    Chapter,
    Chunk,
    ChunkCounts,
    PositionMarker,
    SearchMode,
    SearchResult,
    VectorizationState,
    VectorizationStatus,
    make_chunk_id,
)

__all__ = [
    "Chapter",
    "Chunk",
    "ChunkCounts",
    "PositionMarker",
    "SearchMode",
    "SearchResult",
    "VectorizationState",
    "VectorizationStatus",
    "make_chunk_id",
]
