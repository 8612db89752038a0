"""Document reader for EPUB book files.

Reads EPUB files using ebooklib, walks the spine in reading order, and
turns each XHTML document item into one :class:`~shelfmind.models.rag.Chapter`.

Markup is flattened to plain text block by block (paragraphs, headings,
list items, ...) so that every block start can be recorded as a
:class:`~shelfmind.models.rag.PositionMarker`.  Anchors have the form
``<item href>#<element id>``, or ``<item href>#p<block number>`` when the
element carries no id, which lets a reading UI jump back to the source
location of a search hit.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

import ebooklib
import structlog
from bs4 import BeautifulSoup
from ebooklib import epub

from shelfmind.interfaces.document_reader import IDocumentReader
from shelfmind.models.rag import Chapter, PositionMarker
from shelfmind.utils.errors import DocumentUnreadable

logger = structlog.get_logger(logger_name=__name__)

_BLOCK_TAGS = [
    "p", "h1", "h2", "h3", "h4", "h5", "h6",
    "li", "blockquote", "pre", "dt", "dd", "td", "figcaption",
]
_HEADING = re.compile(r"^h[1-3]$")
_WHITESPACE = re.compile(r"\s+")


class EPUBDocumentReader(IDocumentReader):
    """Reads ``<library_dir>/<document_id>.epub`` into chapters.

    Parameters
    ----------
    library_dir:
        Directory holding the EPUB files.
    min_chapter_chars:
        Spine items whose plain text is shorter than this are skipped
        (cover pages, empty separators).
    """

    def __init__(self, library_dir: str | Path = "data/library", min_chapter_chars: int = 0) -> None:
        self._library_dir = Path(library_dir)
        self._min_chapter_chars = min_chapter_chars

    async def get_chapters(self, document_id: str) -> list[Chapter]:
        path = self._library_dir / f"{document_id}.epub"
        return await self.read_path(path)

    async def read_path(self, path: str | Path) -> list[Chapter]:
        """Parse the EPUB at *path*; parsing runs in a worker thread."""
        return await asyncio.to_thread(self._read_sync, Path(path))

    def get_provider_name(self) -> str:
        return "epub_reader"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _read_sync(self, path: Path) -> list[Chapter]:
        if not path.is_file():
            raise DocumentUnreadable(
                message=f"EPUB file not found: {path}",
                provider_name=self.get_provider_name(),
            )
        try:
            book = epub.read_epub(str(path), options={"ignore_ncx": True})
        except Exception as exc:
            logger.error("epub_open_failed", file_path=str(path), error=str(exc))
            raise DocumentUnreadable(
                message=f"Failed to open EPUB {path.name}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        toc_titles = self._toc_titles(book.toc)
        chapters: list[Chapter] = []

        for item in self._spine_items(book):
            html_content = item.get_content().decode("utf-8", errors="replace")
            href = item.get_name()
            text, markers, heading = self._flatten(html_content, href)

            if not text or len(text) < self._min_chapter_chars:
                continue

            title = toc_titles.get(href) or heading or f"Section {len(chapters) + 1}"
            chapters.append(Chapter(title=title, text=text, markers=markers))

        if not chapters:
            logger.warning("epub_no_chapters_extracted", file_path=str(path))

        logger.info("epub_read", file_path=str(path), chapters=len(chapters))
        return chapters

    @staticmethod
    def _spine_items(book: epub.EpubBook) -> list[epub.EpubItem]:
        """Return document items in spine (reading) order.

        Falls back to manifest order when the spine references nothing
        usable.
        """
        items = []
        for entry in book.spine:
            idref = entry[0] if isinstance(entry, tuple) else entry
            item = book.get_item_with_id(idref)
            if item is not None and item.get_type() == ebooklib.ITEM_DOCUMENT:
                items.append(item)
        if not items:
            items = list(book.get_items_of_type(ebooklib.ITEM_DOCUMENT))
        return items

    @classmethod
    def _toc_titles(cls, toc: list | tuple) -> dict[str, str]:
        """Map item hrefs (fragment stripped) to their first TOC label."""
        titles: dict[str, str] = {}
        for entry in toc:
            if isinstance(entry, tuple):
                section, children = entry[0], entry[1]
                cls._add_toc_title(titles, section)
                for href, title in cls._toc_titles(children).items():
                    titles.setdefault(href, title)
            else:
                cls._add_toc_title(titles, entry)
        return titles

    @staticmethod
    def _add_toc_title(titles: dict[str, str], entry: object) -> None:
        href = getattr(entry, "href", None)
        title = getattr(entry, "title", None)
        if href and title:
            titles.setdefault(href.split("#", 1)[0], title.strip())

    @staticmethod
    def _flatten(html_content: str, href: str) -> tuple[str, list[PositionMarker], str]:
        """Convert one XHTML document to ``(text, markers, first_heading)``."""
        soup = BeautifulSoup(html_content, "html.parser")
        root = soup.body or soup

        heading_el = root.find(_HEADING)
        heading = heading_el.get_text(strip=True) if heading_el else ""

        blocks = [el for el in root.find_all(_BLOCK_TAGS) if el.find_parent(_BLOCK_TAGS) is None]
        if not blocks:
            text = _WHITESPACE.sub(" ", root.get_text(separator=" ")).strip()
            markers = [PositionMarker(offset=0, anchor=href)] if text else []
            return text, markers, heading

        parts: list[str] = []
        markers: list[PositionMarker] = []
        offset = 0
        for number, block in enumerate(blocks):
            block_text = _WHITESPACE.sub(" ", block.get_text(separator=" ")).strip()
            if not block_text:
                continue
            if parts:
                offset += 2  # "\n\n" separator
            element_id = block.get("id")
            anchor = f"{href}#{element_id}" if element_id else f"{href}#p{number}"
            markers.append(PositionMarker(offset=offset, anchor=anchor))
            parts.append(block_text)
            offset += len(block_text)

        return "\n\n".join(parts), markers, heading
