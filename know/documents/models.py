"""Document data models."""

import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Namespace for content-derived chunk ids (UUIDv5).
CHUNK_NAMESPACE = uuid.UUID("3f9c1a52-6a0e-4a59-9c53-8d1f2b7e4c10")


class DocumentMetadata(BaseModel):
    """Metadata associated with a document.

    Attributes:
        source: Original source path or identifier.
        created_at: When the document was loaded.
        file_type: File extension or MIME type.
        extra: Additional metadata fields.
    """

    source: str = Field(description="Original source path or identifier")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the document was loaded",
    )
    file_type: str = Field(default="text/plain", description="File type or MIME type")
    extra: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata fields",
    )


class Document(BaseModel):
    """A document with normalized text content and metadata."""

    content: str = Field(description="Text content of the document")
    metadata: DocumentMetadata = Field(description="Document metadata")

    @classmethod
    def from_text(
        cls,
        content: str,
        source: str,
        file_type: str = "text/plain",
        **extra: Any,
    ) -> "Document":
        """Create a document from text content.

        Args:
            content: The text content.
            source: Source identifier.
            file_type: File type.
            **extra: Additional metadata.

        Returns:
            New Document instance.
        """
        metadata = DocumentMetadata(
            source=source,
            file_type=file_type,
            extra=extra,
        )
        return cls(content=content, metadata=metadata)


class DocumentChunk(BaseModel):
    """An immutable segment of a document, ready to embed and store.

    Attributes:
        id: Content-derived identifier, stable across re-ingestion.
        content: Chunk text.
        source: Origin file path.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Chunk identifier (UUID string)")
    content: str = Field(description="Chunk text")
    source: str = Field(description="Origin file path")

    @classmethod
    def create(cls, content: str, source: str, index: int) -> "DocumentChunk":
        """Create a chunk whose id is derived from its source, position and text.

        Identical input always yields the identical id, so re-ingesting an
        unchanged file overwrites its points rather than duplicating them.
        """
        return cls(
            id=chunk_id(source, index, content),
            content=content,
            source=source,
        )


def chunk_id(source: str, index: int, content: str) -> str:
    """Derive a deterministic UUID for a chunk."""
    return str(uuid.uuid5(CHUNK_NAMESPACE, f"{source}\x00{index}\x00{content}"))


def get_file_type(path: Path) -> str:
    """Determine file type from extension."""
    extension_map = {
        ".txt": "text/plain",
        ".md": "text/markdown",
        ".json": "application/json",
        ".html": "text/html",
        ".xml": "application/xml",
        ".csv": "text/csv",
        ".pdf": "application/pdf",
        ".docx": (
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        ),
        ".pptx": (
            "application/vnd.openxmlformats-officedocument.presentationml.presentation"
        ),
        ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    }
    return extension_map.get(path.suffix.lower(), "text/plain")
