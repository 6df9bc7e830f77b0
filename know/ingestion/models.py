"""Ingestion data models."""

from pydantic import BaseModel, Field


class FileFailure(BaseModel):
    """A file that could not be (fully) ingested."""

    path: str = Field(description="File path")
    reason: str = Field(description="What went wrong")


class IngestionReport(BaseModel):
    """Summary of one ingestion run.

    `chunks_stored` counts only chunks actually written to the store.
    """

    collection: str = Field(description="Target collection")
    dimensions: int | None = Field(default=None, description="Vector size used")
    collection_created: bool = Field(
        default=False,
        description="Whether the run created the collection",
    )
    files_found: int = Field(default=0, description="Files discovered")
    files_processed: int = Field(default=0, description="Files handled without error")
    chunks_stored: int = Field(default=0, description="Chunks written to the store")
    chunks_failed: int = Field(default=0, description="Chunks that failed to embed")
    failures: list[FileFailure] = Field(
        default_factory=list,
        description="Files skipped or partially ingested",
    )

    @property
    def files_failed(self) -> int:
        """Files that were skipped entirely."""
        return self.files_found - self.files_processed
