"""Document reader implementations (EPUB, plain text, library dispatch)."""

from shelfmind.providers.reader.epub_reader import EPUBDocumentReader
from shelfmind.providers.reader.library_reader import LibraryDocumentReader
from shelfmind.providers.reader.text_reader import TextDocumentReader

__all__ = ["EPUBDocumentReader", "LibraryDocumentReader", "TextDocumentReader"]
