"""Vector store module."""

from know.vectorstore.models import CollectionInfo, SearchResult, VectorRecord
from know.vectorstore.service import QdrantVectorStore, VectorStore

__all__ = [
    "CollectionInfo",
    "QdrantVectorStore",
    "SearchResult",
    "VectorRecord",
    "VectorStore",
]
