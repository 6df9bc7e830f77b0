"""Pytest configuration and shared fixtures."""

import hashlib
import re
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from qdrant_client import AsyncQdrantClient

from know.api.app import create_app
from know.config import BackendKind, BackendSettings
from know.llm.base import EMBED, GENERATE, LLMBackend
from know.llm.models import GenerationResult
from know.rag.pipeline import RAGPipeline
from know.vectorstore.service import QdrantVectorStore

TEST_COLLECTION = "test-know"


class FakeBackend(LLMBackend):
    """Deterministic in-process backend.

    Embeddings are hashed bags of words, so identical texts get identical
    vectors and texts sharing words score higher than unrelated ones.
    """

    kind = BackendKind.OLLAMA
    display_name = "Fake"

    DEFAULT_BASE_URL = "http://fake"
    DEFAULT_GENERATION_MODEL = "fake-generate"
    DEFAULT_EMBEDDING_MODEL = "fake-embed"

    DIMENSIONS = 256

    def __init__(self, fail_embed_on: str | None = None, fail_generate: bool = False) -> None:
        super().__init__(settings=BackendSettings(base_url=None, model=None, embed_model=None))
        self.fail_embed_on = fail_embed_on
        self.fail_generate = fail_generate
        self.embed_calls: list[str] = []
        self.generate_calls: list[tuple[str, str]] = []

    async def _embed(self, text: str, timeout: float) -> list[float]:
        self.embed_calls.append(text)
        if self.fail_embed_on and self.fail_embed_on in text:
            raise self._error(EMBED, "embedding refused")

        vector = [0.0] * self.DIMENSIONS
        vector[0] = 0.01
        for token in re.findall(r"\w+", text.lower()):
            digest = hashlib.md5(token.encode()).digest()
            vector[1 + int.from_bytes(digest[:4], "big") % (self.DIMENSIONS - 1)] += 1.0
        return vector

    async def _generate(self, prompt: str, context: str, timeout: float) -> GenerationResult:
        self.generate_calls.append((prompt, context))
        if self.fail_generate:
            raise self._error(GENERATE, "generation refused")
        return GenerationResult(
            content=f"Answer to: {prompt}",
            model=self._generation_model,
            prompt_tokens=3,
            completion_tokens=4,
            total_tokens=7,
        )

    async def _check_available(self) -> None:
        return None

    def remediation(self) -> list[str]:
        return ["Nothing to do"]


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Deterministic backend."""
    return FakeBackend()


@pytest.fixture
async def memory_store() -> AsyncGenerator[QdrantVectorStore, None]:
    """Vector store backed by an in-memory Qdrant instance."""
    qdrant = AsyncQdrantClient(location=":memory:")
    yield QdrantVectorStore(client=qdrant)
    await qdrant.close()


@pytest.fixture
def pipeline(fake_backend: FakeBackend, memory_store: QdrantVectorStore) -> RAGPipeline:
    """Query pipeline over the fake backend and in-memory store."""
    return RAGPipeline(fake_backend, memory_store, TEST_COLLECTION)


@pytest.fixture
async def client(pipeline: RAGPipeline) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for the FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    app = create_app(pipeline=pipeline)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
