"""Vector store data models.

Stored points carry a two-field payload: the chunk text under `content`
and the origin path under `source`.
"""

from typing import Any

from pydantic import BaseModel, Field

CONTENT_KEY = "content"
SOURCE_KEY = "source"


class VectorRecord(BaseModel):
    """A point to upsert.

    Attributes:
        id: Point id (a UUID string).
        vector: The embedding.
        payload: Stored alongside the vector.
    """

    id: str = Field(description="Point id")
    vector: list[float] = Field(description="Embedding vector")
    payload: dict[str, Any] = Field(default_factory=dict, description="Point payload")

    @classmethod
    def for_chunk(
        cls, chunk_id: str, vector: list[float], content: str, source: str
    ) -> "VectorRecord":
        return cls(
            id=chunk_id,
            vector=vector,
            payload={CONTENT_KEY: content, SOURCE_KEY: source},
        )


class SearchResult(BaseModel):
    """One hit from a cosine similarity search, best first."""

    id: str = Field(description="Point id")
    score: float = Field(description="Cosine similarity")
    payload: dict[str, Any] = Field(default_factory=dict, description="Point payload")

    @property
    def content(self) -> str | None:
        """Chunk text, if the payload holds a string under `content`."""
        value = self.payload.get(CONTENT_KEY)
        return value if isinstance(value, str) else None

    @property
    def source(self) -> str | None:
        """Origin path, if the payload holds a string under `source`."""
        value = self.payload.get(SOURCE_KEY)
        return value if isinstance(value, str) else None


class CollectionInfo(BaseModel):
    """State of an existing collection."""

    name: str = Field(description="Collection name")
    points_count: int = Field(default=0, description="Number of stored points")
    dimensions: int | None = Field(default=None, description="Vector size")

    @property
    def is_empty(self) -> bool:
        return self.points_count == 0
