"""Core services: chunking, embedding, vectorization and retrieval."""

from shelfmind.services.chunker import TextChunker, compute_content_hash
from shelfmind.services.embedding_client import EmbeddingClient
from shelfmind.services.retrieval_engine import RetrievalEngine, parse_search_mode
from shelfmind.services.vectorization_coordinator import VectorizationCoordinator

__all__ = [
    "EmbeddingClient",
    "RetrievalEngine",
    "TextChunker",
    "VectorizationCoordinator",
    "compute_content_hash",
    "parse_search_mode",
]
