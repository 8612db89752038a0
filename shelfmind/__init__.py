"""shelfmind: retrieval-augmented lookup over the text of e-books.

Splits a book into addressable chunks, embeds each chunk, persists both,
and ranks chunks against natural-language queries in semantic, keyword,
or hybrid mode.
"""

__version__ = "0.1.0"
