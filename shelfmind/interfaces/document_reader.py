"""Abstract base class for document readers.

A reader turns a document id into an ordered sequence of
:class:`~shelfmind.models.rag.Chapter` objects.  Format parsing (EPUB,
plain text, ...) lives entirely behind this interface; the chunker and
coordinator are format-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from shelfmind.models.rag import Chapter


# Concrete implementations (shelfmind/providers/reader/):
#   EPUBDocumentReader     - ebooklib + BeautifulSoup
#   TextDocumentReader     - UTF-8 plain text with heading detection
#   LibraryDocumentReader  - resolves ids to files and dispatches by extension
class IDocumentReader(ABC):
    """Contract for the external document-reader capability."""

    @abstractmethod
    async def get_chapters(self, document_id: str) -> list[Chapter]:
        """Return the document's chapters in reading order.

        Raises
        ------
        shelfmind.utils.errors.DocumentUnreadable
            If the document cannot be located or parsed.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this reader."""
