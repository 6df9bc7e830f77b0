"""FastAPI application entry point.

Configures the application with logging, exception handling, health checks
and the OpenAI-compatible chat route.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from know import __version__
from know.api.routes import get_pipeline, router
from know.config import Settings, get_settings
from know.exceptions import ErrorCode, KnowError
from know.llm.selector import select_backend
from know.logging_config import get_logger, setup_logging
from know.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from know.rag.pipeline import RAGPipeline
from know.vectorstore.service import QdrantVectorStore

logger = get_logger(__name__)


async def build_pipeline(settings: Settings) -> RAGPipeline:
    """Select a backend and connect the vector store.

    Raises:
        ConfigurationError: If no backend passes its probe.
    """
    backend = await select_backend(settings.backend)
    vector_store = QdrantVectorStore(settings.qdrant)
    return RAGPipeline(backend, vector_store, settings.qdrant.collection)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the query pipeline unless one was injected, and releases the
    pipeline's clients on shutdown when the app owns it.
    """
    settings: Settings = app.state.settings
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting know server",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
        },
    )

    if app.state.pipeline is None:
        app.state.pipeline = await build_pipeline(settings)

    pipeline: RAGPipeline = app.state.pipeline
    logger.info(
        f"Serving collection '{pipeline.collection}' with {pipeline.backend.name}",
        extra={"backend": pipeline.backend.name, "model": pipeline.backend.model_name},
    )

    yield

    logger.info("Shutting down know server")
    if app.state.owns_pipeline:
        await pipeline.backend.close()
        if isinstance(pipeline.vector_store, QdrantVectorStore):
            await pipeline.vector_store.close()


def create_app(
    settings: Settings | None = None,
    pipeline: RAGPipeline | None = None,
    owns_pipeline: bool = False,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings (defaults to environment).
        pipeline: Pre-built query pipeline. When omitted the pipeline is
            built at startup.
        owns_pipeline: Close an injected pipeline's clients on shutdown.
            A pipeline built at startup is always closed.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="know",
        description="Retrieval-augmented answers over a local knowledge base",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.owns_pipeline = owns_pipeline or pipeline is None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)

    # Register exception handlers
    app.add_exception_handler(KnowError, rag_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Register routes
    app.include_router(router)
    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Health"])

    return app


async def rag_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle KnowError exceptions.

    Converts exceptions to structured JSON responses.
    """
    if not isinstance(exc, KnowError):
        return await unhandled_exception_handler(request, exc)

    status_code = _get_status_code(exc.code)
    log = logger.warning if status_code < 500 else logger.error
    log(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=exc.to_dict(),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Report unexpected failures as a server_error envelope, never a traceback."""
    logger.exception(
        f"Unhandled error: {exc}",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return JSONResponse(
        status_code=500,
        content=KnowError(str(exc)).to_dict(),
    )


async def request_validation_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Report malformed request bodies in the same envelope as other errors."""
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    logger.warning(
        "Invalid request body",
        extra={"path": request.url.path, "errors": len(errors)},
    )
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "message": "Invalid request body",
                "type": "invalid_request_error",
                "code": ErrorCode.VALIDATION_ERROR.value,
                "details": {"errors": [_describe(e) for e in errors]},
            }
        },
    )


def _describe(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid')}"


_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.DOCUMENT_NOT_FOUND: 404,
    ErrorCode.COLLECTION_NOT_FOUND: 404,
    ErrorCode.COLLECTION_EXISTS: 409,
    ErrorCode.LLM_RATE_LIMIT: 429,
    ErrorCode.NO_BACKEND_AVAILABLE: 503,
    ErrorCode.SERVICE_NOT_CONFIGURED: 503,
    ErrorCode.VECTOR_STORE_UNAVAILABLE: 503,
    ErrorCode.LLM_TIMEOUT: 504,
}


def _get_status_code(error_code: ErrorCode) -> int:
    """Map error code to HTTP status code."""
    return _STATUS_CODES.get(error_code, 500)


async def health_check(request: Request) -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with backend, collection, version and timestamp.
    """
    pipeline: RAGPipeline | None = request.app.state.pipeline
    return {
        "status": "ok",
        "backend": pipeline.backend.name if pipeline else None,
        "collection": pipeline.collection if pipeline else None,
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> JSONResponse:
    """Readiness probe.

    Ready once the pipeline is built and the vector store answers.
    """
    checks: dict[str, str] = {}
    try:
        pipeline = get_pipeline(request)
    except KnowError:
        checks["pipeline"] = "not_configured"
    else:
        checks["pipeline"] = "ok"
        available = await pipeline.vector_store.is_available()
        checks["vector_store"] = "ok" if available else "unavailable"

    all_ok = all(v == "ok" for v in checks.values())

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )


async def liveness_check() -> dict[str, str]:
    """Liveness probe.

    Simple check that the service is running.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Create the application instance
app = create_app()
