"""Document ingestion module."""

from know.ingestion.models import FileFailure, IngestionReport
from know.ingestion.pipeline import IngestionPipeline, discover_files

__all__ = [
    "FileFailure",
    "IngestionPipeline",
    "IngestionReport",
    "discover_files",
]
