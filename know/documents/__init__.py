"""Document processing module."""

from know.documents.chunker import ChunkerConfig, TextChunker
from know.documents.extractor import DocumentExtractor
from know.documents.loader import TextFileLoader
from know.documents.models import Document, DocumentChunk, DocumentMetadata

__all__ = [
    "ChunkerConfig",
    "Document",
    "DocumentChunk",
    "DocumentExtractor",
    "DocumentMetadata",
    "TextChunker",
    "TextFileLoader",
]
