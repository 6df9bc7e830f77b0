"""Retrieval pipeline module."""

from know.retrieval.models import RetrievalResult
from know.retrieval.retriever import Retriever, SemanticRetriever

__all__ = [
    "Retriever",
    "RetrievalResult",
    "SemanticRetriever",
]

