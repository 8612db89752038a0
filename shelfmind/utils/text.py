"""Tokenization helpers shared by the chunker and the retrieval engine.

Two distinct notions of "token" live here:

1. **Word spans** -- whitespace-delimited runs with their character
   offsets.  The chunker counts and slices on these so a chunk's content
   is always an exact substring of the chapter text.

2. **Search terms** -- lower-cased runs of word characters with
   punctuation dropped.  Used for keyword overlap scoring and highlight
   snippets.  ``\\w`` is Unicode-aware, so CJK and accented text survive.
"""

import re

_WORD_SPAN = re.compile(r"\S+")
_TERM = re.compile(r"\w+")


def word_spans(text: str) -> list[tuple[int, int]]:
    """Return ``(start, end)`` character offsets of every word in *text*."""
    return [m.span() for m in _WORD_SPAN.finditer(text)]


def count_words(text: str) -> int:
    """Return the number of whitespace-delimited words in *text*."""
    return sum(1 for _ in _WORD_SPAN.finditer(text))


def search_terms(text: str) -> list[str]:
    """Lower-case *text* and split it into punctuation-free terms."""
    return _TERM.findall(text.lower())


def highlight_snippets(
    content: str,
    terms: list[str],
    context_chars: int = 50,
    limit: int = 3,
) -> list[str]:
    """Return up to *limit* snippets of *content* around the first hit of each term.

    Snippets are trimmed to *context_chars* on either side and marked with
    ``...`` where they were cut.
    """
    snippets: list[str] = []
    lowered = content.lower()
    seen: set[str] = set()

    for term in terms:
        if term in seen:
            continue
        seen.add(term)
        idx = lowered.find(term)
        if idx == -1:
            continue
        start = max(0, idx - context_chars)
        end = min(len(content), idx + len(term) + context_chars)
        prefix = "..." if start > 0 else ""
        suffix = "..." if end < len(content) else ""
        snippets.append(f"{prefix}{content[start:end]}{suffix}")
        if len(snippets) >= limit:
            break

    return snippets
