"""Text chunking for document processing."""

import re

from pydantic import BaseModel, Field

from know.documents.models import Document, DocumentChunk


class ChunkerConfig(BaseModel):
    """Configuration for text chunking.

    Attributes:
        chunk_size: Maximum size of each chunk in characters.
    """

    chunk_size: int = Field(default=512, ge=16, description="Maximum chunk size")


class TextChunker:
    """Split text into bounded chunks along natural boundaries.

    Text is split at paragraph breaks first, then sentence ends, then
    whitespace, and only cut mid-word when a single word exceeds the budget.
    Adjacent pieces are merged back greedily while they fit. The chunker is
    stateless: the same text always yields the same chunks.
    """

    PARAGRAPH_PATTERN = re.compile(r"\n\s*\n")
    SENTENCE_PATTERN = re.compile(r"(?<=[.!?])\s+")
    WORD_PATTERN = re.compile(r"\s+")

    # (pattern, joiner used when merging pieces back), coarsest first
    BOUNDARIES = (
        (PARAGRAPH_PATTERN, "\n\n"),
        (SENTENCE_PATTERN, " "),
        (WORD_PATTERN, " "),
    )

    def __init__(self, config: ChunkerConfig | None = None) -> None:
        """Initialize chunker with configuration.

        Args:
            config: Chunking configuration. Uses defaults if not provided.
        """
        self.config = config or ChunkerConfig()

    def chunk(self, document: Document) -> list[DocumentChunk]:
        """Split a document into chunks.

        Args:
            document: The document to chunk.

        Returns:
            Ordered chunks; empty for whitespace-only content.
        """
        source = document.metadata.source
        return [
            DocumentChunk.create(content=text, source=source, index=index)
            for index, text in enumerate(self.split_text(document.content))
        ]

    def split_text(self, text: str) -> list[str]:
        """Split raw text into non-empty segments of at most `chunk_size`."""
        return [segment for segment in self._split(text, 0) if segment.strip()]

    def _split(self, text: str, level: int) -> list[str]:
        text = text.strip()
        if not text:
            return []
        if len(text) <= self.config.chunk_size:
            return [text]
        if level >= len(self.BOUNDARIES):
            return self._hard_split(text)

        pattern, joiner = self.BOUNDARIES[level]
        pieces = [piece for piece in pattern.split(text) if piece.strip()]
        if len(pieces) <= 1:
            return self._split(text, level + 1)

        units: list[str] = []
        for piece in pieces:
            units.extend(self._split(piece, level + 1))
        return self._merge(units, joiner)

    def _merge(self, units: list[str], joiner: str) -> list[str]:
        """Greedily join adjacent units while they fit the budget."""
        merged: list[str] = []
        current = ""

        for unit in units:
            if not current:
                current = unit
            elif len(current) + len(joiner) + len(unit) <= self.config.chunk_size:
                current = f"{current}{joiner}{unit}"
            else:
                merged.append(current)
                current = unit

        if current:
            merged.append(current)
        return merged

    def _hard_split(self, text: str) -> list[str]:
        size = self.config.chunk_size
        pieces = (text[i : i + size].strip() for i in range(0, len(text), size))
        return [piece for piece in pieces if piece]
