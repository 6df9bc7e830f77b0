"""Retrieval data models."""

from pydantic import BaseModel, Field


class RetrievalResult(BaseModel):
    """A retrieved chunk.

    Attributes:
        content: The retrieved text content.
        score: Relevance score (higher is more relevant).
        source: Origin file path.
        chunk_id: Identifier of the stored chunk.
    """

    content: str = Field(description="Retrieved text content")
    score: float = Field(description="Relevance score")
    source: str = Field(description="Origin file path")
    chunk_id: str = Field(default="", description="Stored chunk identifier")
