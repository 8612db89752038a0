"""Library-backed document reader.

Resolves a document id to a file and dispatches to the format reader for
its extension.  A document is found either through an explicit
registration (``register(document_id, path)``) or by convention at
``<library_dir>/<document_id>.epub`` / ``.txt``.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from shelfmind.interfaces.document_reader import IDocumentReader
from shelfmind.models.rag import Chapter
from shelfmind.providers.reader.epub_reader import EPUBDocumentReader
from shelfmind.providers.reader.text_reader import TextDocumentReader
from shelfmind.utils.errors import DocumentUnreadable

logger = structlog.get_logger(logger_name=__name__)

_SUPPORTED_SUFFIXES = (".epub", ".txt")


class LibraryDocumentReader(IDocumentReader):
    """Reads EPUB and plain-text books from a library directory."""

    def __init__(self, library_dir: str | Path = "data/library", min_chapter_chars: int = 0) -> None:
        self._library_dir = Path(library_dir)
        self._registered: dict[str, Path] = {}
        self._readers = {
            ".epub": EPUBDocumentReader(self._library_dir, min_chapter_chars),
            ".txt": TextDocumentReader(self._library_dir, min_chapter_chars),
        }

    def register(self, document_id: str, path: str | Path) -> None:
        """Bind *document_id* to an explicit file path."""
        path = Path(path)
        if path.suffix.lower() not in _SUPPORTED_SUFFIXES:
            raise DocumentUnreadable(
                message=f"Unsupported document format: {path.suffix or path.name}",
                provider_name=self.get_provider_name(),
            )
        self._registered[document_id] = path
        logger.info("document_registered", document_id=document_id, path=str(path))

    def resolve(self, document_id: str) -> Path:
        """Return the file backing *document_id*.

        Raises
        ------
        DocumentUnreadable
            If the id is unsafe as a file name or no file exists for it.
        """
        if document_id in self._registered:
            return self._registered[document_id]

        if not document_id or "/" in document_id or "\\" in document_id or document_id in (".", ".."):
            raise DocumentUnreadable(
                message=f"Invalid document id: {document_id!r}",
                provider_name=self.get_provider_name(),
            )
        for suffix in _SUPPORTED_SUFFIXES:
            candidate = self._library_dir / f"{document_id}{suffix}"
            if candidate.is_file():
                return candidate

        raise DocumentUnreadable(
            message=f"No document found for id {document_id!r} in {self._library_dir}",
            provider_name=self.get_provider_name(),
        )

    async def get_chapters(self, document_id: str) -> list[Chapter]:
        path = self.resolve(document_id)
        reader = self._readers[path.suffix.lower()]
        return await reader.read_path(path)

    def get_provider_name(self) -> str:
        return "library_reader"
