"""Integration tests for health check endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

from httpx import ASGITransport, AsyncClient

from know import __version__
from know.api.app import create_app
from know.rag.pipeline import RAGPipeline
from know.vectorstore.service import QdrantVectorStore


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    async def test_health_returns_200(self, client: AsyncClient) -> None:
        """Health endpoint returns 200 OK."""
        response = await client.get("/health")
        assert response.status_code == 200

    async def test_health_returns_status(
        self, client: AsyncClient, pipeline: RAGPipeline
    ) -> None:
        """Health endpoint reports ok with the active backend and collection."""
        response = await client.get("/health")
        data = response.json()
        assert data["status"] == "ok"
        assert data["backend"] == "Fake"
        assert data["collection"] == pipeline.collection

    async def test_health_returns_version(self, client: AsyncClient) -> None:
        """Health endpoint returns application version."""
        response = await client.get("/health")
        data = response.json()
        assert data["version"] == __version__

    async def test_health_returns_timestamp(self, client: AsyncClient) -> None:
        """Health endpoint returns ISO timestamp."""
        response = await client.get("/health")
        data = response.json()
        assert "timestamp" in data
        # Verify ISO format (contains T separator)
        assert "T" in data["timestamp"]


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    async def test_ready_when_store_answers(
        self,
        client: AsyncClient,
        memory_store: QdrantVectorStore,
    ) -> None:
        """Ready once the vector store answers its readiness probe."""
        memory_store.is_available = AsyncMock(return_value=True)

        response = await client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"] == {"pipeline": "ok", "vector_store": "ok"}
        assert "timestamp" in data

    async def test_not_ready_when_store_down(
        self,
        client: AsyncClient,
        memory_store: QdrantVectorStore,
    ) -> None:
        memory_store.is_available = AsyncMock(return_value=False)

        response = await client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["vector_store"] == "unavailable"

    async def test_not_ready_without_pipeline(self) -> None:
        """An app whose pipeline was never built is not ready."""
        transport = ASGITransport(app=create_app())
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"] == {"pipeline": "not_configured"}


class TestLivenessEndpoint:
    """Tests for /health/live endpoint."""

    async def test_liveness_returns_200(self, client: AsyncClient) -> None:
        """Liveness endpoint returns 200 OK."""
        response = await client.get("/health/live")
        assert response.status_code == 200

    async def test_liveness_returns_alive(self, client: AsyncClient) -> None:
        """Liveness endpoint returns alive status."""
        response = await client.get("/health/live")
        data = response.json()
        assert data["status"] == "alive"


class TestLifespan:
    """Client cleanup when the server shuts down."""

    @staticmethod
    def pipeline_double() -> MagicMock:
        pipeline = MagicMock()
        pipeline.collection = "know"
        pipeline.backend.name = "Fake"
        pipeline.backend.close = AsyncMock()
        pipeline.vector_store = MagicMock(spec=QdrantVectorStore)
        pipeline.vector_store.close = AsyncMock()
        return pipeline

    async def test_owned_pipeline_closed_on_shutdown(self) -> None:
        pipeline = self.pipeline_double()
        app = create_app(pipeline=pipeline, owns_pipeline=True)

        with patch("know.api.app.setup_logging"):
            async with app.router.lifespan_context(app):
                pipeline.backend.close.assert_not_awaited()

        pipeline.backend.close.assert_awaited_once()
        pipeline.vector_store.close.assert_awaited_once()

    async def test_borrowed_pipeline_left_open(self) -> None:
        pipeline = self.pipeline_double()
        app = create_app(pipeline=pipeline)

        with patch("know.api.app.setup_logging"):
            async with app.router.lifespan_context(app):
                pass

        pipeline.backend.close.assert_not_awaited()
        pipeline.vector_store.close.assert_not_awaited()
