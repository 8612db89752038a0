"""Shared pytest fixtures for the shelfmind test suite."""

from __future__ import annotations

import asyncio
import hashlib
import struct
from pathlib import Path

import pytest

from shelfmind.interfaces.document_reader import IDocumentReader
from shelfmind.interfaces.embedding_provider import IEmbeddingProvider
from shelfmind.models.rag import Chapter
from shelfmind.pipeline.progress_tracker import ProgressTracker
from shelfmind.providers.vector_store.sqlite_vector_store import SQLiteVectorStore
from shelfmind.services.chunker import TextChunker
from shelfmind.services.embedding_client import EmbeddingClient
from shelfmind.services.retrieval_engine import RetrievalEngine
from shelfmind.services.vectorization_coordinator import VectorizationCoordinator
from shelfmind.utils.errors import DocumentUnreadable

_EMBEDDING_DIM = 128


# ---------------------------------------------------------------------------
# Deterministic embedding provider
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length unit vector by hashing *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    # Bytes → uint32 → [-1, 1); avoids NaN/inf from reinterpreting as float.
    values = [(v / 2**31) - 1.0 for v in struct.unpack(f"<{dim}I", raw)]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider that records its calls."""

    def __init__(self, dim: int = _EMBEDDING_DIM) -> None:
        self._dim = dim
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_hash_to_vector(t, self._dim) for t in texts]

    def get_dimension(self) -> int:
        return self._dim

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class FakeDocumentReader(IDocumentReader):
    """Serves chapters from a dict; unknown ids are unreadable.

    Set ``gate`` to an :class:`asyncio.Event` to hold ``get_chapters``
    until the test releases it.
    """

    def __init__(self, documents: dict[str, list[Chapter]] | None = None) -> None:
        self.documents: dict[str, list[Chapter]] = dict(documents or {})
        self.gate: asyncio.Event | None = None

    async def get_chapters(self, document_id: str) -> list[Chapter]:
        if self.gate is not None:
            await self.gate.wait()
        if document_id not in self.documents:
            raise DocumentUnreadable(
                message=f"unknown document {document_id}",
                provider_name=self.get_provider_name(),
            )
        return self.documents[document_id]

    def get_provider_name(self) -> str:
        return "fake-reader"


async def _no_sleep(_seconds: float) -> None:
    return None


def make_words(count: int, prefix: str = "w") -> str:
    """Return *count* distinct space-separated words: ``w0 w1 w2 ...``."""
    return " ".join(f"{prefix}{i}" for i in range(count))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def embedding_client(mock_embedding_provider: MockEmbeddingProvider) -> EmbeddingClient:
    return EmbeddingClient(provider=mock_embedding_provider, batch_limit=64, sleep=_no_sleep)


@pytest.fixture
async def sqlite_store(tmp_path: Path) -> SQLiteVectorStore:
    """An initialized SQLite vector store in a temporary directory."""
    store = SQLiteVectorStore(db_path=tmp_path / "vectors.db")
    await store.initialize()
    return store


@pytest.fixture
def fake_reader() -> FakeDocumentReader:
    return FakeDocumentReader(
        {
            "book-1": [
                Chapter(title="One", text=make_words(1000)),
            ],
        }
    )


@pytest.fixture
def progress_tracker() -> ProgressTracker:
    return ProgressTracker()


@pytest.fixture
def coordinator(
    fake_reader: FakeDocumentReader,
    embedding_client: EmbeddingClient,
    sqlite_store: SQLiteVectorStore,
    progress_tracker: ProgressTracker,
) -> VectorizationCoordinator:
    return VectorizationCoordinator(
        reader=fake_reader,
        chunker=TextChunker(max_tokens=512, overlap_tokens=64),
        embedding_client=embedding_client,
        vector_store=sqlite_store,
        progress_tracker=progress_tracker,
        batch_size=16,
    )


@pytest.fixture
def retrieval_engine(
    sqlite_store: SQLiteVectorStore,
    embedding_client: EmbeddingClient,
) -> RetrievalEngine:
    return RetrievalEngine(vector_store=sqlite_store, embedding_client=embedding_client)
