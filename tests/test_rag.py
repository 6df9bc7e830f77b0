"""Tests for RAG pipeline module."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError as PydanticValidationError

from know.documents.models import DocumentChunk
from know.exceptions import ErrorCode, LLMError, ValidationError, VectorStoreError
from know.llm.models import GenerationResult
from know.rag.models import (
    EMPTY_KNOWLEDGE_BASE_MESSAGE,
    NO_RESULTS_MESSAGE,
    QueryStatus,
    RAGQuery,
    RAGResponse,
    SourceAttribution,
)
from know.rag.pipeline import RAGPipeline, unique_sources
from know.retrieval.models import RetrievalResult
from know.vectorstore.models import CollectionInfo


class TestSourceAttribution:
    """Tests for SourceAttribution model."""

    def test_create_attribution(self) -> None:
        """Attribution can be created."""
        attr = SourceAttribution(
            source="doc.txt",
            content="Sample content",
            score=0.95,
        )
        assert attr.source == "doc.txt"
        assert attr.score == 0.95


class TestRAGQuery:
    """Tests for RAGQuery model."""

    def test_default_values(self) -> None:
        """Query retrieves five chunks by default."""
        query = RAGQuery(question="What is the refund policy?")
        assert query.top_k == 5

    def test_empty_question_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            RAGQuery(question="")

    def test_top_k_bounds(self) -> None:
        with pytest.raises(PydanticValidationError):
            RAGQuery(question="q", top_k=0)


class TestRAGResponse:
    """Tests for RAGResponse model."""

    def test_create_response(self) -> None:
        """Response defaults to an answered status."""
        response = RAGResponse(
            answer="Refunds take 30 days.",
            sources=["refunds.md"],
            model="llama3.2",
            tokens_used=100,
        )
        assert response.status == QueryStatus.ANSWERED
        assert response.sources == ["refunds.md"]
        assert response.attributions == []


class TestUniqueSources:
    """Tests for source de-duplication."""

    def test_order_preserving(self) -> None:
        results = [
            RetrievalResult(content="1", score=0.9, source="b.md"),
            RetrievalResult(content="2", score=0.8, source="a.md"),
            RetrievalResult(content="3", score=0.7, source="b.md"),
        ]
        assert unique_sources(results) == ["b.md", "a.md"]


class TestRAGPipeline:
    """Tests for RAGPipeline with mocked collaborators."""

    def _create_mock_store(self, points: int | None = 3) -> AsyncMock:
        """Mock store whose collection holds `points` points (None: absent)."""
        store = AsyncMock()
        store.collection_info = AsyncMock(
            return_value=None
            if points is None
            else CollectionInfo(name="know", points_count=points, dimensions=4)
        )
        return store

    def _create_mock_backend(self) -> MagicMock:
        backend = MagicMock()
        backend.name = "Ollama"
        backend.model_name = "llama3.2"
        backend.generate = AsyncMock(
            return_value=GenerationResult(
                content="Generated answer",
                model="llama3.2",
                total_tokens=30,
            )
        )
        return backend

    def _create_mock_retriever(self, results: list[RetrievalResult]) -> AsyncMock:
        retriever = AsyncMock()
        retriever.retrieve = AsyncMock(return_value=results)
        return retriever

    @pytest.mark.asyncio
    async def test_missing_collection_is_empty_knowledge_base(self) -> None:
        backend = self._create_mock_backend()
        retriever = self._create_mock_retriever([])
        pipeline = RAGPipeline(
            backend, self._create_mock_store(points=None), "know", retriever=retriever
        )

        response = await pipeline.query(RAGQuery(question="Anything?"))

        assert response.status == QueryStatus.EMPTY_KNOWLEDGE_BASE
        assert response.answer == EMPTY_KNOWLEDGE_BASE_MESSAGE
        assert response.sources == []
        retriever.retrieve.assert_not_called()
        backend.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_zero_points_is_empty_knowledge_base(self) -> None:
        backend = self._create_mock_backend()
        pipeline = RAGPipeline(
            backend,
            self._create_mock_store(points=0),
            "know",
            retriever=self._create_mock_retriever([]),
        )

        response = await pipeline.query(RAGQuery(question="Anything?"))

        assert response.status == QueryStatus.EMPTY_KNOWLEDGE_BASE

    @pytest.mark.asyncio
    async def test_no_results_skips_generation(self) -> None:
        """A search with no hits answers with a message and no sources."""
        backend = self._create_mock_backend()
        pipeline = RAGPipeline(
            backend,
            self._create_mock_store(),
            "know",
            retriever=self._create_mock_retriever([]),
        )

        response = await pipeline.query(RAGQuery(question="Unrelated?"))

        assert response.status == QueryStatus.NO_RESULTS
        assert response.answer == NO_RESULTS_MESSAGE
        assert response.sources == []
        backend.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_context_and_sources(self) -> None:
        """Context keeps store order; sources are distinct in that order."""
        results = [
            RetrievalResult(content="Refunds take 30 days.", score=0.9, source="refunds.md"),
            RetrievalResult(content="Ship in 5 days.", score=0.8, source="shipping.md"),
            RetrievalResult(content="Store credit is instant.", score=0.7, source="refunds.md"),
        ]
        backend = self._create_mock_backend()
        retriever = self._create_mock_retriever(results)
        pipeline = RAGPipeline(backend, self._create_mock_store(), "know", retriever=retriever)

        response = await pipeline.query(RAGQuery(question="How do refunds work?", top_k=3))

        retriever.retrieve.assert_called_once_with(query="How do refunds work?", top_k=3)
        backend.generate.assert_called_once_with(
            "How do refunds work?",
            "[Source: refunds.md]\nRefunds take 30 days."
            "\n---\n"
            "[Source: shipping.md]\nShip in 5 days."
            "\n---\n"
            "[Source: refunds.md]\nStore credit is instant.",
        )
        assert response.status == QueryStatus.ANSWERED
        assert response.answer == "Generated answer"
        assert response.sources == ["refunds.md", "shipping.md"]
        assert [a.score for a in response.attributions] == [0.9, 0.8, 0.7]
        assert response.backend == "Ollama"
        assert response.tokens_used == 30

    @pytest.mark.asyncio
    async def test_long_content_snippet_truncated(self) -> None:
        results = [RetrievalResult(content="x" * 500, score=0.9, source="long.txt")]
        pipeline = RAGPipeline(
            self._create_mock_backend(),
            self._create_mock_store(),
            "know",
            retriever=self._create_mock_retriever(results),
        )

        response = await pipeline.query(RAGQuery(question="x?"))

        assert response.attributions[0].content == "x" * 200 + "..."

    @pytest.mark.asyncio
    async def test_blank_question_rejected(self) -> None:
        pipeline = RAGPipeline(
            self._create_mock_backend(),
            self._create_mock_store(),
            "know",
            retriever=self._create_mock_retriever([]),
        )

        with pytest.raises(ValidationError):
            await pipeline.query(RAGQuery(question="   "))

    @pytest.mark.asyncio
    async def test_generation_error_propagates(self) -> None:
        results = [RetrievalResult(content="c", score=0.9, source="s.md")]
        backend = self._create_mock_backend()
        backend.generate = AsyncMock(side_effect=LLMError("down"))
        pipeline = RAGPipeline(
            backend,
            self._create_mock_store(),
            "know",
            retriever=self._create_mock_retriever(results),
        )

        with pytest.raises(LLMError):
            await pipeline.query(RAGQuery(question="q?"))

    @pytest.mark.asyncio
    async def test_store_error_propagates(self) -> None:
        store = self._create_mock_store()
        store.collection_info = AsyncMock(
            side_effect=VectorStoreError("unreachable", code=ErrorCode.VECTOR_STORE_ERROR)
        )
        pipeline = RAGPipeline(
            self._create_mock_backend(),
            store,
            "know",
            retriever=self._create_mock_retriever([]),
        )

        with pytest.raises(VectorStoreError):
            await pipeline.query(RAGQuery(question="q?"))

    @pytest.mark.asyncio
    async def test_query_simple(self) -> None:
        results = [RetrievalResult(content="c", score=0.9, source="s.md")]
        pipeline = RAGPipeline(
            self._create_mock_backend(),
            self._create_mock_store(),
            "know",
            retriever=self._create_mock_retriever(results),
        )

        assert await pipeline.query_simple("q?") == "Generated answer"


class TestRAGPipelineInMemory:
    """End-to-end queries against the fake backend and in-memory Qdrant."""

    @pytest.mark.asyncio
    async def test_answer_cites_best_match_first(self, pipeline: RAGPipeline) -> None:
        texts = {
            "cats.md": "Cats purr when they are content.",
            "dogs.md": "Dogs bark at the mail carrier.",
        }
        chunks = [
            DocumentChunk.create(content=content, source=source, index=0)
            for source, content in texts.items()
        ]
        vectors = [(await pipeline.backend.embed(c.content)).embedding for c in chunks]
        await pipeline.vector_store.ensure_collection(pipeline.collection, len(vectors[0]))
        await pipeline.vector_store.upsert_batch(pipeline.collection, chunks, vectors)

        response = await pipeline.query(RAGQuery(question="Dogs bark at the mail carrier."))

        assert response.status == QueryStatus.ANSWERED
        assert response.sources[0] == "dogs.md"
        assert response.attributions[0].score == pytest.approx(1.0, abs=1e-4)
