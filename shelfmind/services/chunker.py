"""Text chunking with fixed-size overlapping word windows.

Splits each chapter of a document into :class:`~shelfmind.models.rag.Chunk`
objects sized for embedding models (512 words by default, 64-word overlap).

The chunking strategy has three goals:

1. **Bounded** -- No chunk holds more than ``max_tokens`` words, and no
   chunk is empty.  A chapter shorter than the budget becomes exactly one
   chunk.

2. **Overlapping windows** -- Consecutive chunks of a chapter share the
   last ``overlap_tokens`` words of the earlier chunk so that a passage
   straddling a boundary is fully contained in at least one chunk.

3. **Deterministic** -- Identical chapters always yield an identical
   chunk sequence (no randomness, no clock), which is what makes chunk ids
   derived from ``(document_id, chapter_index, sequence_index)`` stable
   across re-vectorization runs.

Chunk content is always an exact slice of the chapter's plain text, from
the first character of its first word to the last character of its last
word, so reader-supplied position markers can be mapped onto chunk
boundaries.
"""

from __future__ import annotations

import bisect
import hashlib

import structlog
from bs4 import BeautifulSoup

from shelfmind.models.rag import Chapter, Chunk, PositionMarker, make_chunk_id
from shelfmind.utils.text import word_spans

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MAX_TOKENS = 512
_DEFAULT_OVERLAP_TOKENS = 64


def compute_content_hash(chapters: list[Chapter]) -> str:
    """Return a SHA-256 hex digest over the titles and texts of *chapters*.

    Used by the vectorization coordinator to detect whether stored chunks
    still correspond to the document's current content.
    """
    digest = hashlib.sha256()
    for chapter in chapters:
        digest.update(chapter.title.encode("utf-8"))
        digest.update(b"\x1f")
        digest.update(chapter.text.encode("utf-8"))
        digest.update(b"\x1e")
    return digest.hexdigest()


class TextChunker:
    """Splits chapters into overlapping, size-bounded word windows.

    Parameters
    ----------
    max_tokens:
        Maximum number of words per chunk (default 512).
    overlap_tokens:
        Number of trailing words of a chunk repeated at the start of the
        next chunk of the same chapter (default 64).  Must be smaller than
        *max_tokens* so every window advances.
    """

    def __init__(
        self,
        max_tokens: int = _DEFAULT_MAX_TOKENS,
        overlap_tokens: int = _DEFAULT_OVERLAP_TOKENS,
    ) -> None:
        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")
        if not 0 <= overlap_tokens < max_tokens:
            raise ValueError(
                f"overlap_tokens must be in [0, {max_tokens}), got {overlap_tokens}"
            )
        self._max_tokens = max_tokens
        self._overlap_tokens = overlap_tokens

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    @property
    def overlap_tokens(self) -> int:
        return self._overlap_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, document_id: str, chapters: list[Chapter]) -> list[Chunk]:
        """Split every chapter of a document into ordered chunks.

        Parameters
        ----------
        document_id:
            Owning document; used for chunk ids.
        chapters:
            The document's chapters in reading order.  ``chapter_index`` is
            the position in this list, including chapters that produce no
            chunks because they contain no words.

        Returns
        -------
        list[Chunk]
            Chunks without embeddings, ordered by
            ``(chapter_index, sequence_index)``.
        """
        chunks: list[Chunk] = []
        for chapter_index, chapter in enumerate(chapters):
            chunks.extend(self.chunk_chapter(document_id, chapter_index, chapter))

        logger.debug(
            "chunking_complete",
            document_id=document_id,
            chapters=len(chapters),
            num_chunks=len(chunks),
            avg_tokens=self._avg_tokens(chunks),
        )
        return chunks

    def chunk_chapter(
        self,
        document_id: str,
        chapter_index: int,
        chapter: Chapter,
    ) -> list[Chunk]:
        """Split a single chapter into overlapping windows."""
        text = self._plain_text(chapter)
        spans = word_spans(text)
        if not spans:
            return []

        markers = sorted(chapter.markers, key=lambda m: m.offset)
        marker_offsets = [m.offset for m in markers]

        chunks: list[Chunk] = []
        start = 0
        total = len(spans)
        while True:
            end = min(start + self._max_tokens, total)
            char_start = spans[start][0]
            char_end = spans[end - 1][1]
            sequence_index = len(chunks)
            chunks.append(
                Chunk(
                    id=make_chunk_id(document_id, chapter_index, sequence_index),
                    document_id=document_id,
                    chapter_index=chapter_index,
                    chapter_title=chapter.title,
                    sequence_index=sequence_index,
                    content=text[char_start:char_end],
                    token_count=end - start,
                    start_anchor=self._nearest_anchor(markers, marker_offsets, char_start),
                    end_anchor=self._nearest_anchor(markers, marker_offsets, char_end),
                )
            )
            if end == total:
                break
            # Carry the tail of this window into the next one.
            start = end - self._overlap_tokens

        return chunks

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _plain_text(chapter: Chapter) -> str:
        """Return the chapter's text with markup stripped when it is HTML."""
        if not chapter.is_html:
            return chapter.text
        soup = BeautifulSoup(chapter.text, "html.parser")
        return soup.get_text(separator="\n")

    @staticmethod
    def _nearest_anchor(
        markers: list[PositionMarker],
        offsets: list[int],
        position: int,
    ) -> str | None:
        """Return the anchor of the marker closest to *position*.

        Ties go to the earlier marker.  Returns ``None`` when the reader
        supplied no markers.
        """
        if not markers:
            return None
        idx = bisect.bisect_left(offsets, position)
        if idx == 0:
            return markers[0].anchor
        if idx == len(markers):
            return markers[-1].anchor
        before, after = markers[idx - 1], markers[idx]
        if after.offset - position < position - before.offset:
            return after.anchor
        return before.anchor

    @staticmethod
    def _avg_tokens(chunks: list[Chunk]) -> int:
        """Return the average token count across *chunks*."""
        if not chunks:
            return 0
        return sum(c.token_count for c in chunks) // len(chunks)
