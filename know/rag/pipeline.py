"""RAG pipeline orchestrator."""

import time

from know.exceptions import ValidationError
from know.llm.base import LLMBackend
from know.llm.prompts import RAGPromptTemplate
from know.logging_config import get_logger
from know.observability.metrics import track_query
from know.rag.models import (
    EMPTY_KNOWLEDGE_BASE_MESSAGE,
    NO_RESULTS_MESSAGE,
    QueryStatus,
    RAGQuery,
    RAGResponse,
    SourceAttribution,
)
from know.retrieval.models import RetrievalResult
from know.retrieval.retriever import Retriever, SemanticRetriever
from know.vectorstore.service import VectorStore

logger = get_logger(__name__)

SNIPPET_LENGTH = 200


def unique_sources(results: list[RetrievalResult]) -> list[str]:
    """Distinct source paths, keeping first-seen order."""
    return list(dict.fromkeys(r.source for r in results))


class RAGPipeline:
    """Orchestrates the RAG pipeline.

    Combines retrieval and generation into a single query interface.
    """

    def __init__(
        self,
        backend: LLMBackend,
        vector_store: VectorStore,
        collection: str,
        retriever: Retriever | None = None,
        prompt_template: RAGPromptTemplate | None = None,
    ) -> None:
        """Initialize the RAG pipeline.

        Args:
            backend: Selected backend for embeddings and generation.
            vector_store: Store holding the ingested chunks.
            collection: Collection to query.
            retriever: Chunk retriever (defaults to semantic search).
            prompt_template: Template used to format the context.
        """
        self._backend = backend
        self._vector_store = vector_store
        self._collection = collection
        self._retriever = retriever or SemanticRetriever(
            backend, vector_store, collection
        )
        self._prompt_template = prompt_template or RAGPromptTemplate()

    @property
    def backend(self) -> LLMBackend:
        return self._backend

    @property
    def vector_store(self) -> VectorStore:
        return self._vector_store

    @property
    def collection(self) -> str:
        return self._collection

    async def query(self, request: RAGQuery) -> RAGResponse:
        """Execute a RAG query.

        An empty or missing collection and a search with no hits are
        answered with informational messages rather than errors.

        Args:
            request: The RAG query request.

        Returns:
            RAGResponse with answer and sources.

        Raises:
            ValidationError: If the question is blank.
            EmbeddingError, LLMError, VectorStoreError: On backend or store failure.
        """
        question = request.question.strip()
        if not question:
            raise ValidationError("Question must not be empty")

        start_time = time.perf_counter()
        status = "error"
        try:
            response = await self._answer(question, request.top_k)
            status = response.status.value
            return response
        finally:
            track_query(status, time.perf_counter() - start_time)

    async def _answer(self, question: str, top_k: int) -> RAGResponse:
        logger.info(
            "Processing RAG query",
            extra={"question_length": len(question), "top_k": top_k},
        )

        info = await self._vector_store.collection_info(self._collection)
        if info is None or info.is_empty:
            logger.info(f"Collection '{self._collection}' is empty or missing")
            return self._informational(
                EMPTY_KNOWLEDGE_BASE_MESSAGE, QueryStatus.EMPTY_KNOWLEDGE_BASE
            )

        results = await self._retriever.retrieve(query=question, top_k=top_k)
        if not results:
            return self._informational(NO_RESULTS_MESSAGE, QueryStatus.NO_RESULTS)

        context = self._prompt_template.format_context(
            (r.source, r.content) for r in results
        )
        generation = await self._backend.generate(question, context)

        attributions = [
            SourceAttribution(
                source=r.source,
                content=(
                    r.content[:SNIPPET_LENGTH] + "..."
                    if len(r.content) > SNIPPET_LENGTH
                    else r.content
                ),
                score=r.score,
            )
            for r in results
        ]
        sources = unique_sources(results)

        logger.info(
            "RAG query completed",
            extra={
                "sources_count": len(sources),
                "tokens_used": generation.total_tokens,
            },
        )

        return RAGResponse(
            answer=generation.content,
            sources=sources,
            attributions=attributions,
            status=QueryStatus.ANSWERED,
            model=generation.model,
            backend=self._backend.name,
            tokens_used=generation.total_tokens,
        )

    def _informational(self, message: str, status: QueryStatus) -> RAGResponse:
        return RAGResponse(
            answer=message,
            status=status,
            model=self._backend.model_name,
            backend=self._backend.name,
        )

    async def query_simple(self, question: str, top_k: int = 5) -> str:
        """Simple query interface returning just the answer.

        Args:
            question: The question to answer.
            top_k: Number of chunks to retrieve.

        Returns:
            Generated answer string.
        """
        response = await self.query(RAGQuery(question=question, top_k=top_k))
        return response.answer
