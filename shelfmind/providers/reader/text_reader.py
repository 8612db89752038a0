"""Document reader for plain-text book files.

Reads a UTF-8 text file, detects chapter boundaries using heading patterns,
and returns one :class:`~shelfmind.models.rag.Chapter` per chapter/section.

Inline page markers such as ``[p.142]`` or ``[page 42]`` (common in
digitized texts) become position markers with anchors ``page-142``.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

import structlog

from shelfmind.interfaces.document_reader import IDocumentReader
from shelfmind.models.rag import Chapter, PositionMarker
from shelfmind.utils.errors import DocumentUnreadable

logger = structlog.get_logger(logger_name=__name__)

# Regex patterns for detecting chapter boundaries in plain-text books.
_CHAPTER_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^Chapter\s+\d+", re.IGNORECASE),  # "Chapter 1", "chapter 12"
    re.compile(r"^PART\s+[IVXLCDM\d]+", re.IGNORECASE),  # "PART I", "PART 3"
    re.compile(r"^\d+\.\s+\S"),  # "1. Introduction"
    re.compile(r"^[A-Z][A-Z\s]{4,}$"),  # ALL-CAPS heading lines (5+ chars)
]

_PAGE_MARKER = re.compile(r"\[p(?:age)?\.?\s*(\d+)\]", re.IGNORECASE)


class TextDocumentReader(IDocumentReader):
    """Reads ``<library_dir>/<document_id>.txt`` into chapters."""

    def __init__(self, library_dir: str | Path = "data/library", min_chapter_chars: int = 0) -> None:
        self._library_dir = Path(library_dir)
        self._min_chapter_chars = min_chapter_chars

    async def get_chapters(self, document_id: str) -> list[Chapter]:
        return await self.read_path(self._library_dir / f"{document_id}.txt")

    async def read_path(self, path: str | Path) -> list[Chapter]:
        path = Path(path)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("book_read_failed", file_path=str(path), error=str(exc))
            raise DocumentUnreadable(
                message=f"Failed to read text file {path.name}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        chapters = self.split_chapters(text)
        logger.info("text_book_read", file_path=str(path), chapters=len(chapters))
        return chapters

    def get_provider_name(self) -> str:
        return "text_reader"

    def split_chapters(self, text: str) -> list[Chapter]:
        """Split raw *text* into chapters at detected heading lines.

        Content before the first heading becomes an untitled leading
        chapter.  If no heading is detected the whole text is one chapter.
        """
        lines = text.split("\n")
        boundaries = [
            idx
            for idx, line in enumerate(lines)
            if line.strip() and any(p.match(line.strip()) for p in _CHAPTER_PATTERNS)
        ]

        sections: list[tuple[str, str]] = []
        if not boundaries:
            sections.append(("", text))
        else:
            if boundaries[0] > 0:
                sections.append(("", "\n".join(lines[: boundaries[0]])))
            for i, start in enumerate(boundaries):
                end = boundaries[i + 1] if i + 1 < len(boundaries) else len(lines)
                sections.append((lines[start].strip(), "\n".join(lines[start + 1 : end])))

        chapters: list[Chapter] = []
        for title, body in sections:
            body = body.strip()
            if not body or len(body) < self._min_chapter_chars:
                continue
            markers = [
                PositionMarker(offset=m.start(), anchor=f"page-{m.group(1)}")
                for m in _PAGE_MARKER.finditer(body)
            ]
            chapters.append(
                Chapter(
                    title=title or f"Section {len(chapters) + 1}",
                    text=body,
                    markers=markers,
                )
            )
        return chapters
