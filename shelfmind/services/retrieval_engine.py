"""Top-k search over one document's chunks.

Scoring is brute force in application code: the store returns every
chunk of the document and each one is scored here.  Three modes:

``semantic``
    Cosine similarity between the query embedding and each embedded
    chunk.  Chunks without an embedding are skipped, and when none is
    embedded no embedding call is made at all.
``keyword``
    Fraction of the query's distinct terms that appear in the chunk
    (case-insensitive).  Chunks sharing no term are dropped.
``hybrid``
    ``(w_s * max(0, cosine) + w_k * keyword) / (w_s + w_k)``.  A chunk
    without an embedding gets a cosine of 0, so only its weighted keyword
    share counts and it cannot outrank an embedded chunk on keywords
    alone.  When no chunk is embedded, or the query cannot be embedded,
    the ranking degrades to plain keyword mode.

Results are ordered by descending score, ties broken by document order
``(chapter_index, sequence_index)``.
"""

from __future__ import annotations

import numpy as np
import structlog

from shelfmind.interfaces.vector_store_provider import IVectorStoreProvider
from shelfmind.models.rag import Chunk, SearchMode, SearchResult
from shelfmind.services.embedding_client import EmbeddingClient
from shelfmind.utils.errors import EmbeddingError, InvalidSearchMode
from shelfmind.utils.text import highlight_snippets, search_terms

logger = structlog.get_logger(logger_name=__name__)

# Names the desktop UI historically sent for the first two modes.
_MODE_ALIASES: dict[str, SearchMode] = {
    "vector": SearchMode.SEMANTIC,
    "bm25": SearchMode.KEYWORD,
}


def parse_search_mode(mode: SearchMode | str) -> SearchMode:
    """Resolve *mode* (enum, value or alias) to a :class:`SearchMode`.

    Raises
    ------
    InvalidSearchMode
        For anything that is not a known mode or alias.
    """
    if isinstance(mode, SearchMode):
        return mode
    if isinstance(mode, str):
        key = mode.strip().lower()
        if key in _MODE_ALIASES:
            return _MODE_ALIASES[key]
        try:
            return SearchMode(key)
        except ValueError:
            pass
    valid = ", ".join([m.value for m in SearchMode] + list(_MODE_ALIASES))
    raise InvalidSearchMode(message=f"Unknown search mode {mode!r}; expected one of: {valid}")


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity in ``[-1, 1]``; 0.0 for zero or mismatched vectors."""
    if a.shape != b.shape:
        return 0.0
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom == 0.0:
        return 0.0
    return float(np.dot(a, b) / denom)


def keyword_score(terms: set[str], content: str) -> float:
    """Fraction of *terms* present among the terms of *content*."""
    if not terms:
        return 0.0
    present = terms & set(search_terms(content))
    return len(present) / len(terms)


class RetrievalEngine:
    """Ranks a document's chunks against a natural-language query."""

    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        embedding_client: EmbeddingClient,
        semantic_weight: float = 0.7,
        keyword_weight: float = 0.3,
        default_top_k: int = 5,
        highlight_context_chars: int = 50,
    ) -> None:
        if semantic_weight < 0 or keyword_weight < 0 or semantic_weight + keyword_weight == 0:
            raise ValueError("hybrid weights must be non-negative and not both zero")
        self._store = vector_store
        self._embedding_client = embedding_client
        self._semantic_weight = semantic_weight
        self._keyword_weight = keyword_weight
        self._default_top_k = default_top_k
        self._highlight_context_chars = highlight_context_chars

    async def search(
        self,
        document_id: str,
        query: str,
        mode: SearchMode | str = SearchMode.HYBRID,
        top_k: int | None = None,
        min_score: float | None = None,
    ) -> list[SearchResult]:
        """Return at most *top_k* results for *query*, best first.

        A document that was never vectorized, or a blank query, yields an
        empty list.

        Raises
        ------
        InvalidSearchMode
            For an unknown *mode*.
        ValueError
            If *top_k* is less than 1.
        """
        search_mode = parse_search_mode(mode)
        k = self._default_top_k if top_k is None else top_k
        if k < 1:
            raise ValueError(f"top_k must be >= 1, got {k}")

        terms = search_terms(query)
        if not query.strip():
            return []

        chunks = await self._store.scan(document_id)
        if not chunks:
            return []

        if search_mode == SearchMode.SEMANTIC:
            scored = await self._score_semantic(query, chunks)
        elif search_mode == SearchMode.KEYWORD:
            scored = self._score_keyword(set(terms), chunks)
        else:
            scored = await self._score_hybrid(query, set(terms), chunks)

        if min_score is not None:
            scored = [(score, chunk) for score, chunk in scored if score >= min_score]

        scored.sort(key=lambda item: (-item[0], item[1].chapter_index, item[1].sequence_index))
        results = [self._to_result(chunk, score, terms) for score, chunk in scored[:k]]

        logger.info(
            "search_complete",
            document_id=document_id,
            mode=search_mode.value,
            candidates=len(chunks),
            results=len(results),
            top_score=round(results[0].score, 4) if results else None,
        )
        return results

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def _score_semantic(self, query: str, chunks: list[Chunk]) -> list[tuple[float, Chunk]]:
        embedded = [chunk for chunk in chunks if chunk.has_embedding]
        if not embedded:
            return []
        query_vec = np.asarray(await self._embedding_client.embed_query(query), dtype=np.float64)
        return [
            (cosine_similarity(query_vec, np.asarray(chunk.embedding, dtype=np.float64)), chunk)
            for chunk in embedded
        ]

    @staticmethod
    def _score_keyword(terms: set[str], chunks: list[Chunk]) -> list[tuple[float, Chunk]]:
        scored = [(keyword_score(terms, chunk.content), chunk) for chunk in chunks]
        return [(score, chunk) for score, chunk in scored if score > 0.0]

    async def _score_hybrid(
        self,
        query: str,
        terms: set[str],
        chunks: list[Chunk],
    ) -> list[tuple[float, Chunk]]:
        query_vec = None
        if any(chunk.has_embedding for chunk in chunks):
            try:
                query_vec = np.asarray(
                    await self._embedding_client.embed_query(query), dtype=np.float64
                )
            except EmbeddingError as exc:
                logger.warning(
                    "hybrid_semantic_unavailable",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

        if query_vec is None:
            return self._score_keyword(terms, chunks)

        total_weight = self._semantic_weight + self._keyword_weight
        scored: list[tuple[float, Chunk]] = []
        for chunk in chunks:
            kw = keyword_score(terms, chunk.content)
            cos = 0.0
            if chunk.has_embedding:
                cos = cosine_similarity(query_vec, np.asarray(chunk.embedding, dtype=np.float64))
            score = (self._semantic_weight * max(0.0, cos) + self._keyword_weight * kw) / total_weight
            scored.append((score, chunk))
        return scored

    def _to_result(self, chunk: Chunk, score: float, terms: list[str]) -> SearchResult:
        return SearchResult(
            chunk_id=chunk.id,
            content=chunk.content,
            score=score,
            chapter_title=chunk.chapter_title,
            chapter_index=chunk.chapter_index,
            sequence_index=chunk.sequence_index,
            start_anchor=chunk.start_anchor,
            end_anchor=chunk.end_anchor,
            highlights=highlight_snippets(
                chunk.content, terms, context_chars=self._highlight_context_chars
            ),
        )
