"""RAG pipeline module."""

from know.rag.models import (
    EMPTY_KNOWLEDGE_BASE_MESSAGE,
    NO_RESULTS_MESSAGE,
    QueryStatus,
    RAGQuery,
    RAGResponse,
    SourceAttribution,
)
from know.rag.pipeline import RAGPipeline

__all__ = [
    "EMPTY_KNOWLEDGE_BASE_MESSAGE",
    "NO_RESULTS_MESSAGE",
    "QueryStatus",
    "RAGPipeline",
    "RAGQuery",
    "RAGResponse",
    "SourceAttribution",
]
