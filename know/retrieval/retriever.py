"""Retriever interface and implementations."""

from abc import ABC, abstractmethod

from know.exceptions import ErrorCode, KnowError, RetrievalError
from know.llm.base import LLMBackend
from know.logging_config import get_logger
from know.observability.metrics import track_retrieval_request
from know.retrieval.models import RetrievalResult
from know.vectorstore.service import VectorStore

logger = get_logger(__name__)


class Retriever(ABC):
    """Abstract base class for retrievers."""

    @abstractmethod
    async def retrieve(
        self,
        query: str,
        top_k: int = 5,
    ) -> list[RetrievalResult]:
        """Retrieve relevant chunks for a query.

        Args:
            query: The search query.
            top_k: Maximum number of results to return.

        Returns:
            List of retrieval results ordered by relevance.

        Raises:
            RetrievalError: If retrieval fails.
        """
        ...


class SemanticRetriever(Retriever):
    """Semantic search retriever using the backend's embeddings.

    Embeds the query and returns the nearest stored chunks in the order the
    store ranks them.
    """

    def __init__(
        self,
        backend: LLMBackend,
        vector_store: VectorStore,
        collection: str,
    ) -> None:
        """Initialize the semantic retriever.

        Args:
            backend: Backend used to embed the query.
            vector_store: Vector database for similarity search.
            collection: Name of the collection to search.
        """
        self._backend = backend
        self._vector_store = vector_store
        self._collection = collection

    async def retrieve(
        self,
        query: str,
        top_k: int = 5,
    ) -> list[RetrievalResult]:
        """Retrieve chunks using semantic similarity.

        Backend and store errors propagate unchanged; anything else is
        wrapped in RetrievalError.
        """
        if not query.strip():
            return []

        try:
            embedding_result = await self._backend.embed(query)

            search_results = await self._vector_store.search(
                collection=self._collection,
                vector=embedding_result.embedding,
                limit=top_k,
            )

        except KnowError:
            raise
        except Exception as e:
            logger.error(f"Retrieval failed: {e}")
            raise RetrievalError(
                f"Failed to retrieve documents: {e}",
                code=ErrorCode.RETRIEVAL_ERROR,
                details={"query": query[:100], "error": str(e)},
            ) from e

        results: list[RetrievalResult] = []
        for hit in search_results:
            if hit.content is None or hit.source is None:
                continue
            results.append(
                RetrievalResult(
                    content=hit.content,
                    score=hit.score,
                    source=hit.source,
                    chunk_id=hit.id,
                )
            )

        track_retrieval_request(
            chunks_returned=len(results),
            top_score=results[0].score if results else 0.0,
        )
        logger.debug(
            f"Retrieved {len(results)} results for query",
            extra={
                "query_length": len(query),
                "top_k": top_k,
                "results_count": len(results),
            },
        )

        return results
