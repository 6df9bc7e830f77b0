"""Tests for Prometheus instrumentation."""

import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY

from know.observability.metrics import (
    get_metrics,
    normalize_endpoint,
    track_backend_probe,
    track_backend_request,
    track_generation_tokens,
    track_ingested_file,
    track_query,
    track_retrieval_request,
    track_vectorstore_operation,
)


def sample(name: str, **labels: str) -> float:
    """Current value of a sample in the default registry (0 when absent)."""
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetricsEndpoint:
    """Tests for /metrics endpoint."""

    @pytest.mark.asyncio
    async def test_prometheus_format(self, client: AsyncClient) -> None:
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert b"# HELP know_" in response.content

    def test_get_metrics_returns_bytes(self) -> None:
        assert isinstance(get_metrics(), bytes)


class TestTrackingFunctions:
    """Each helper moves the counters it owns."""

    def test_query_outcome(self) -> None:
        before = sample("know_queries_total", status="no_results")

        track_query("no_results", 0.01)

        assert sample("know_queries_total", status="no_results") == before + 1
        assert sample("know_query_duration_seconds_count", status="no_results") >= 1

    def test_backend_request_labels(self) -> None:
        labels = {"backend": "Ollama", "operation": "embed", "status": "error"}
        before = sample("know_backend_requests_total", **labels)

        track_backend_request("Ollama", "embed", 0.2, success=False)

        assert sample("know_backend_requests_total", **labels) == before + 1

    def test_generation_tokens(self) -> None:
        prompt_before = sample("know_generation_tokens_total", backend="OpenAI", type="prompt")
        completion_before = sample(
            "know_generation_tokens_total", backend="OpenAI", type="completion"
        )

        track_generation_tokens("OpenAI", prompt_tokens=120, completion_tokens=0)

        assert sample(
            "know_generation_tokens_total", backend="OpenAI", type="prompt"
        ) == prompt_before + 120
        assert sample(
            "know_generation_tokens_total", backend="OpenAI", type="completion"
        ) == completion_before

    def test_retrieval_empty_search_has_no_score(self) -> None:
        scores_before = sample("know_retrieval_top_score_count")
        chunks_before = sample("know_retrieval_chunks_returned_count")

        track_retrieval_request(chunks_returned=0, top_score=0.0)

        assert sample("know_retrieval_chunks_returned_count") == chunks_before + 1
        assert sample("know_retrieval_top_score_count") == scores_before

    def test_vectorstore_operation(self) -> None:
        before = sample(
            "know_vectorstore_operation_duration_seconds_count",
            operation="search",
            status="error",
        )

        track_vectorstore_operation("search", 0.02, success=False)

        assert sample(
            "know_vectorstore_operation_duration_seconds_count",
            operation="search",
            status="error",
        ) == before + 1

    def test_ingested_file(self) -> None:
        stored_before = sample("know_ingest_chunks_total", status="stored")
        failed_files_before = sample("know_ingest_files_total", status="failed")

        track_ingested_file(success=True, chunks_stored=3, chunks_failed=1)
        track_ingested_file(success=False, chunks_stored=0)

        assert sample("know_ingest_chunks_total", status="stored") == stored_before + 3
        assert sample("know_ingest_files_total", status="failed") == failed_files_before + 1

    def test_backend_probe(self) -> None:
        before = sample("know_backend_probes_total", backend="Docker", result="unavailable")

        track_backend_probe("Docker", available=False)

        assert sample(
            "know_backend_probes_total", backend="Docker", result="unavailable"
        ) == before + 1


class TestMetricsMiddleware:
    """Tests for MetricsMiddleware."""

    @pytest.mark.asyncio
    async def test_records_requests(self, client: AsyncClient) -> None:
        labels = {"method": "GET", "endpoint": "/health/live", "status_code": "200"}
        before = sample("know_http_requests_total", **labels)

        await client.get("/health/live")

        assert sample("know_http_requests_total", **labels) == before + 1

    @pytest.mark.asyncio
    async def test_unknown_paths_collapse(self, client: AsyncClient) -> None:
        labels = {"method": "GET", "endpoint": "other", "status_code": "404"}
        before = sample("know_http_requests_total", **labels)

        await client.get("/does-not-exist")

        assert sample("know_http_requests_total", **labels) == before + 1

    @pytest.mark.asyncio
    async def test_metrics_scrape_not_recorded(self, client: AsyncClient) -> None:
        await client.get("/metrics")
        assert b'endpoint="/metrics"' not in get_metrics()

    def test_normalize_endpoint(self) -> None:
        assert normalize_endpoint("/v1/chat/completions") == "/v1/chat/completions"
        assert normalize_endpoint("/health/ready") == "/health/ready"
        assert normalize_endpoint("/v1/models") == "other"
        assert normalize_endpoint("/api/v1/query") == "other"
