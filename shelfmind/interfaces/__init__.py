"""Public interface definitions for all external collaborators.

Reading documents, generating embeddings and storing chunks all go
through the abstract base classes defined in this package.  Concrete
adapters live in ``shelfmind/providers/`` and are injected at runtime by ``shelfmind/main.py``.

CONCRETE PROVIDER MAP:
    Interface               →  Concrete implementations
    ─────────────────────────────────────────────────────────
    IDocumentReader         →  EPUBDocumentReader, TextDocumentReader,
                               LibraryDocumentReader
    IEmbeddingProvider      →  OpenAIEmbeddingProvider,
                               FastEmbedEmbeddingProvider
    IVectorStoreProvider    →  SQLiteVectorStore
"""

from shelfmind.interfaces.document_reader import IDocumentReader
from shelfmind.interfaces.embedding_provider import IEmbeddingProvider
from shelfmind.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IDocumentReader",
    "IEmbeddingProvider",
    "IVectorStoreProvider",
]
