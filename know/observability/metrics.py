"""Prometheus metrics for know.

Every metric is prefixed `know_`. Backend calls are labelled by provider
and operation (embed or generate) so a slow embedding model and a slow
chat model show up separately.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

# Paths reported under their own label; anything else is "other".
KNOWN_ENDPOINTS = frozenset(
    {"/health", "/health/ready", "/health/live", "/v1/chat/completions"}
)

# HTTP
HTTP_REQUEST_DURATION = Histogram(
    "know_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "know_http_requests_total",
    "HTTP requests served",
    ["method", "endpoint", "status_code"],
)

# Questions answered through the CLI or the API
QUERY_DURATION = Histogram(
    "know_query_duration_seconds",
    "End-to-end question answering time in seconds",
    ["status"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

QUERY_TOTAL = Counter(
    "know_queries_total",
    "Questions answered, by outcome",
    ["status"],  # answered, empty_knowledge_base, no_results, error
)

# Backend calls
BACKEND_REQUEST_DURATION = Histogram(
    "know_backend_request_duration_seconds",
    "Backend request duration in seconds",
    ["backend", "operation", "status"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

BACKEND_REQUEST_TOTAL = Counter(
    "know_backend_requests_total",
    "Backend requests",
    ["backend", "operation", "status"],
)

GENERATION_TOKENS_TOTAL = Counter(
    "know_generation_tokens_total",
    "Tokens reported by backends for generation requests",
    ["backend", "type"],  # prompt, completion
)

BACKEND_PROBE_TOTAL = Counter(
    "know_backend_probes_total",
    "Backend availability probes",
    ["backend", "result"],
)

# Retrieval
RETRIEVAL_CHUNKS_RETURNED = Histogram(
    "know_retrieval_chunks_returned",
    "Chunks returned per search",
    buckets=[0, 1, 2, 3, 5, 10, 20, 50],
)

RETRIEVAL_TOP_SCORE = Histogram(
    "know_retrieval_top_score",
    "Best cosine similarity per search",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# Vector store
VECTORSTORE_OPERATION_DURATION = Histogram(
    "know_vectorstore_operation_duration_seconds",
    "Qdrant operation duration in seconds",
    ["operation", "status"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

# Ingestion
INGEST_FILES_TOTAL = Counter(
    "know_ingest_files_total",
    "Files handled by ingestion runs",
    ["status"],  # processed, failed
)

INGEST_CHUNKS_TOTAL = Counter(
    "know_ingest_chunks_total",
    "Chunks handled by ingestion runs",
    ["status"],  # stored, failed
)


def normalize_endpoint(path: str) -> str:
    """Collapse unknown paths into one label to bound cardinality."""
    return path if path in KNOWN_ENDPOINTS else "other"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records duration and count for every request except /metrics."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        labels = {
            "method": request.method,
            "endpoint": normalize_endpoint(request.url.path),
            "status_code": response.status_code,
        }
        HTTP_REQUEST_DURATION.labels(**labels).observe(duration)
        HTTP_REQUEST_TOTAL.labels(**labels).inc()

        return response


def get_metrics() -> bytes:
    """Render the default registry in the Prometheus text format."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST


def track_query(status: str, duration: float) -> None:
    """Track one answered (or failed) question by outcome."""
    QUERY_DURATION.labels(status=status).observe(duration)
    QUERY_TOTAL.labels(status=status).inc()


def track_backend_request(
    backend: str,
    operation: str,
    duration: float,
    success: bool = True,
) -> None:
    """Track one embed or generate call against a backend.

    Args:
        backend: Backend display name.
        operation: "embed" or "generate".
        duration: Request duration in seconds.
        success: Whether the call returned a usable result.
    """
    labels = {
        "backend": backend,
        "operation": operation,
        "status": "success" if success else "error",
    }
    BACKEND_REQUEST_DURATION.labels(**labels).observe(duration)
    BACKEND_REQUEST_TOTAL.labels(**labels).inc()


def track_generation_tokens(backend: str, prompt_tokens: int, completion_tokens: int) -> None:
    """Add the token counts a backend reported for one generation."""
    if prompt_tokens:
        GENERATION_TOKENS_TOTAL.labels(backend=backend, type="prompt").inc(prompt_tokens)
    if completion_tokens:
        GENERATION_TOKENS_TOTAL.labels(backend=backend, type="completion").inc(
            completion_tokens
        )


def track_backend_probe(backend: str, available: bool) -> None:
    BACKEND_PROBE_TOTAL.labels(
        backend=backend,
        result="available" if available else "unavailable",
    ).inc()


def track_retrieval_request(chunks_returned: int, top_score: float) -> None:
    """Track one search: how many chunks came back and the best score."""
    RETRIEVAL_CHUNKS_RETURNED.observe(chunks_returned)
    if chunks_returned:
        RETRIEVAL_TOP_SCORE.observe(top_score)


def track_vectorstore_operation(
    operation: str,
    duration: float,
    success: bool = True,
) -> None:
    status = "success" if success else "error"
    VECTORSTORE_OPERATION_DURATION.labels(operation=operation, status=status).observe(
        duration
    )


def track_ingested_file(success: bool, chunks_stored: int, chunks_failed: int = 0) -> None:
    """Track one file's ingestion outcome."""
    INGEST_FILES_TOTAL.labels(status="processed" if success else "failed").inc()
    if chunks_stored:
        INGEST_CHUNKS_TOTAL.labels(status="stored").inc(chunks_stored)
    if chunks_failed:
        INGEST_CHUNKS_TOTAL.labels(status="failed").inc(chunks_failed)
