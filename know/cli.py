"""Command line interface.

Usage:
    know ingest ./docs --extensions md,txt,pdf
    know ask "What is the refund policy?"
    know serve --port 8080
    know clean
    know status
"""

import argparse
import asyncio
import sys
from collections.abc import Sequence

import uvicorn

from know import __version__
from know.api.app import create_app
from know.config import (
    BackendKind,
    LogFormat,
    Settings,
    get_settings,
    parse_extensions,
)
from know.documents.extractor import DocumentExtractor
from know.exceptions import ConfigurationError, ErrorCode, KnowError
from know.ingestion.pipeline import IngestionPipeline
from know.llm.selector import probe_all, select_backend
from know.logging_config import get_logger, setup_logging
from know.rag.models import EMPTY_KNOWLEDGE_BASE_MESSAGE, QueryStatus, RAGQuery
from know.rag.pipeline import RAGPipeline
from know.vectorstore.service import QdrantVectorStore

logger = get_logger(__name__)

DEFAULT_EXTENSIONS = "md,txt,pdf,docx,html"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="know",
        description="Ingest documents and ask questions about them",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"know {__version__}")
    parser.add_argument(
        "-b",
        "--backend",
        choices=[kind.value for kind in BackendKind],
        default=None,
        help="Backend provider (auto-detected when omitted)",
    )
    parser.add_argument("--base-url", default=None, help="Base URL for the LLM backend")
    parser.add_argument("--model", default=None, help="Model for text generation")
    parser.add_argument("--embed-model", default=None, help="Model for embeddings")
    parser.add_argument("--qdrant-url", default=None, help="Qdrant URL")
    parser.add_argument("--docling-url", default=None, help="Docling URL")
    parser.add_argument("--collection", default=None, help="Qdrant collection name")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show informational log output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest a file or directory")
    ingest.add_argument("path", help="File or directory to ingest")
    ingest.add_argument(
        "--extensions",
        default=DEFAULT_EXTENSIONS,
        help="Comma-separated file extensions to look for",
    )

    ask = subparsers.add_parser("ask", help="Ask a question about your documents")
    ask.add_argument("question", nargs="+", help="The question to ask")
    ask.add_argument("--top-k", type=int, default=5, help="Chunks to retrieve")

    serve = subparsers.add_parser("serve", help="Serve an OpenAI-compatible API")
    serve.add_argument("-p", "--port", type=int, default=None, help="Port to serve on")
    serve.add_argument("--host", default=None, help="Interface to bind")

    clean = subparsers.add_parser("clean", help="Delete a collection")
    clean.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Collection to delete (defaults to --collection)",
    )

    subparsers.add_parser("status", help="Show service and backend status")

    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return a copy of the settings with command line flags applied."""
    backend_updates = {
        key: value
        for key, value in {
            "backend": BackendKind(args.backend) if args.backend else None,
            "base_url": args.base_url,
            "model": args.model,
            "embed_model": args.embed_model,
        }.items()
        if value is not None
    }
    qdrant_updates = {
        key: value
        for key, value in {"url": args.qdrant_url, "collection": args.collection}.items()
        if value is not None
    }
    extractor_updates = {"url": args.docling_url} if args.docling_url else {}

    return settings.model_copy(
        update={
            "backend": settings.backend.model_copy(update=backend_updates),
            "qdrant": settings.qdrant.model_copy(update=qdrant_updates),
            "extractor": settings.extractor.model_copy(update=extractor_updates),
        }
    )


async def _require_store(store: QdrantVectorStore) -> None:
    if not await store.is_available():
        raise KnowError(
            f"Qdrant is not available at {store.url}. "
            "Start it (for example with 'docker compose up -d qdrant') or pass --qdrant-url.",
            code=ErrorCode.VECTOR_STORE_UNAVAILABLE,
            details={"url": store.url},
        )


async def run_ingest(settings: Settings, path: str, extensions: str) -> int:
    """Ingest a path and print a summary."""
    store = QdrantVectorStore(settings.qdrant)
    extractor = DocumentExtractor(settings.extractor)
    try:
        await _require_store(store)
        backend = await select_backend(settings.backend)
        print(f"Using backend: {backend.name}")
        try:
            pipeline = IngestionPipeline(
                backend,
                store,
                extractor=extractor,
                collection=settings.qdrant.collection,
                settings=settings,
            )
            report = await pipeline.run(path, parse_extensions(extensions))
        finally:
            await backend.close()
    finally:
        await extractor.close()
        await store.close()

    if report.files_found == 0:
        print(f"No files found matching extensions: {extensions}")
        return 0

    print(f"Found {report.files_found} files to process")
    for failure in report.failures:
        print(f"Warning: {failure.path}: {failure.reason}", file=sys.stderr)
    print(
        f"\nIngested {report.chunks_stored} chunks into collection "
        f"'{report.collection}'"
    )
    return 0


async def run_ask(settings: Settings, question: str, top_k: int) -> int:
    """Answer a question from the knowledge base and print the sources."""
    store = QdrantVectorStore(settings.qdrant)
    try:
        await _require_store(store)

        # An empty collection needs no backend.
        info = await store.collection_info(settings.qdrant.collection)
        if info is None or info.is_empty:
            print(EMPTY_KNOWLEDGE_BASE_MESSAGE)
            return 0

        backend = await select_backend(settings.backend)
        try:
            pipeline = RAGPipeline(backend, store, settings.qdrant.collection)
            print("Thinking...\n")
            response = await pipeline.query(RAGQuery(question=question, top_k=top_k))
        finally:
            await backend.close()
    finally:
        await store.close()

    print(f"{response.answer}\n")
    if response.status == QueryStatus.ANSWERED and response.sources:
        print("Sources:")
        for source in response.sources:
            print(f"  - {source}")
    return 0


async def run_clean(settings: Settings, collection: str) -> int:
    """Delete a collection."""
    store = QdrantVectorStore(settings.qdrant)
    try:
        await _require_store(store)
        if not await store.collection_exists(collection):
            print(f"Collection '{collection}' does not exist.")
            return 0
        await store.delete_collection(collection)
    finally:
        await store.close()

    print(f"Collection '{collection}' deleted.")
    return 0


async def run_status(settings: Settings) -> int:
    """Print the state of the store, the parser and every backend."""
    store = QdrantVectorStore(settings.qdrant)
    extractor = DocumentExtractor(settings.extractor)
    try:
        print("Health Checks:")
        qdrant_ok = await store.is_available()
        print(f"  Qdrant ({store.url}): {'ready' if qdrant_ok else 'not available'}")
        docling_ok = await extractor.is_available()
        print(
            f"  Docling ({extractor.url}): "
            f"{'ready' if docling_ok else 'not available (text fallback)'}"
        )

        if qdrant_ok:
            info = await store.collection_info(settings.qdrant.collection)
            if info is None:
                print(f"  Collection '{settings.qdrant.collection}': not created")
            else:
                print(
                    f"  Collection '{info.name}': {info.points_count} chunks, "
                    f"{info.dimensions} dimensions"
                )
    finally:
        await extractor.close()
        await store.close()

    print("\nBackends:")
    for result in await probe_all(settings.backend):
        descriptor = result.descriptor
        state = "available" if result.available else f"unavailable ({result.reason})"
        print(
            f"  {descriptor.name} [{descriptor.generation_model} / "
            f"{descriptor.embedding_model}]: {state}"
        )
    return 0


def run_serve(settings: Settings, host: str | None, port: int | None) -> int:
    """Select a backend, then serve the API until interrupted."""

    async def prepare() -> RAGPipeline:
        store = QdrantVectorStore(settings.qdrant)
        await _require_store(store)
        await store.close()
        backend = await select_backend(settings.backend)
        # Clients are recreated lazily inside the server's event loop.
        await backend.close()
        return RAGPipeline(backend, store, settings.qdrant.collection)

    pipeline = asyncio.run(prepare())
    host = host or settings.api_host
    port = port or settings.api_port

    print(f"Using backend: {pipeline.backend.name}")
    print(f"Starting know server on http://{host}:{port}")
    print(f"\nOpenAI-compatible endpoint: http://localhost:{port}/v1/chat/completions")
    print(f"Health check: http://localhost:{port}/health")

    app = create_app(settings=settings, pipeline=pipeline, owns_pipeline=True)
    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = apply_overrides(get_settings(), args)
    setup_logging(
        level="INFO" if args.verbose else "WARNING",
        log_format=LogFormat.CONSOLE,
    )

    try:
        if args.command == "ingest":
            code = asyncio.run(run_ingest(settings, args.path, args.extensions))
        elif args.command == "ask":
            code = asyncio.run(run_ask(settings, " ".join(args.question), args.top_k))
        elif args.command == "serve":
            code = run_serve(settings, args.host, args.port)
        elif args.command == "clean":
            collection = args.target or settings.qdrant.collection
            code = asyncio.run(run_clean(settings, collection))
        else:
            code = asyncio.run(run_status(settings))
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        code = 1
    except KnowError as e:
        logger.debug("Command failed", extra={"code": e.code.value, "details": e.details})
        print(f"Error: {e.message}", file=sys.stderr)
        code = 1
    except KeyboardInterrupt:
        code = 130

    sys.exit(code)


if __name__ == "__main__":
    main()
