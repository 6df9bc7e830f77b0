"""Prometheus instrumentation."""

from know.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
    normalize_endpoint,
    track_backend_probe,
    track_backend_request,
    track_generation_tokens,
    track_ingested_file,
    track_query,
    track_retrieval_request,
    track_vectorstore_operation,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "get_metrics_content_type",
    "normalize_endpoint",
    "track_backend_probe",
    "track_backend_request",
    "track_generation_tokens",
    "track_ingested_file",
    "track_query",
    "track_retrieval_request",
    "track_vectorstore_operation",
]
