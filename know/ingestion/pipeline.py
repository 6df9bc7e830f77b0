"""Ingestion pipeline: files to chunks to vectors to the store."""

from collections.abc import Iterable
from pathlib import Path

from know.config import Settings, get_settings
from know.documents.chunker import ChunkerConfig, TextChunker
from know.documents.extractor import DocumentExtractor
from know.documents.models import DocumentChunk
from know.exceptions import KnowError, ValidationError
from know.ingestion.models import FileFailure, IngestionReport
from know.llm.base import LLMBackend
from know.logging_config import get_logger
from know.observability.metrics import track_ingested_file
from know.vectorstore.service import VectorStore

logger = get_logger(__name__)

# Embedded once per run to learn the active model's vector size.
DIMENSION_PROBE_TEXT = "test"


def discover_files(path: str | Path, extensions: Iterable[str]) -> list[Path]:
    """Find the files to ingest.

    A file path is returned as-is regardless of extension. A directory is
    walked recursively and filtered by the extension allow-list.

    Raises:
        ValidationError: If the path does not exist.
    """
    root = Path(path)
    if root.is_file():
        return [root]
    if not root.is_dir():
        raise ValidationError(
            f"Path not found: {root}",
            details={"path": str(root)},
        )

    allowed = {ext.strip().lstrip(".").lower() for ext in extensions}
    return sorted(
        candidate
        for candidate in root.rglob("*")
        if candidate.is_file() and candidate.suffix.lstrip(".").lower() in allowed
    )


class IngestionPipeline:
    """Turns a file tree into searchable vectors.

    Files are processed one at a time. A failing file is logged and reported
    but never stops the run.
    """

    def __init__(
        self,
        backend: LLMBackend,
        vector_store: VectorStore,
        extractor: DocumentExtractor | None = None,
        chunker: TextChunker | None = None,
        collection: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the ingestion pipeline.

        Args:
            backend: Selected backend, used for embeddings.
            vector_store: Destination store.
            extractor: Document text extractor.
            chunker: Text chunker.
            collection: Target collection name.
            settings: Defaults for the omitted collaborators.
        """
        settings = settings or get_settings()
        self._backend = backend
        self._vector_store = vector_store
        self._extractor = extractor or DocumentExtractor(settings.extractor)
        self._chunker = chunker or TextChunker(
            ChunkerConfig(chunk_size=settings.ingest.chunk_size)
        )
        self._collection = collection or settings.qdrant.collection
        self._extensions = settings.ingest.extension_list

    @property
    def collection(self) -> str:
        """Target collection name."""
        return self._collection

    async def run(
        self,
        path: str | Path,
        extensions: Iterable[str] | None = None,
    ) -> IngestionReport:
        """Ingest every matching file under a path.

        Args:
            path: File or directory to ingest.
            extensions: Extension allow-list (defaults to settings).

        Returns:
            Report of what was stored and what failed.

        Raises:
            ValidationError: If the path does not exist.
            EmbeddingError: If the dimension-resolving embedding fails.
            VectorStoreError: If the collection cannot be ensured.
        """
        files = discover_files(path, extensions or self._extensions)
        report = IngestionReport(collection=self._collection, files_found=len(files))

        if not files:
            logger.info(f"No files found under {path}")
            return report

        logger.info(f"Found {len(files)} files to process")

        probe = await self._backend.embed(DIMENSION_PROBE_TEXT)
        report.dimensions = probe.dimensions
        report.collection_created = await self._vector_store.ensure_collection(
            self._collection, probe.dimensions
        )

        for file_path in files:
            await self._ingest_file(file_path, report)

        logger.info(
            f"Ingested {report.chunks_stored} chunks into collection '{self._collection}'",
            extra={
                "files_found": report.files_found,
                "files_processed": report.files_processed,
                "chunks_failed": report.chunks_failed,
            },
        )
        return report

    async def _ingest_file(self, file_path: Path, report: IngestionReport) -> None:
        """Extract, chunk, embed and upsert one file, recording the outcome."""
        logger.info(f"Processing {file_path}")

        try:
            document = await self._extractor.extract(file_path)
        except KnowError as e:
            self._record_failure(report, file_path, f"extraction failed: {e.message}")
            return

        chunks = self._chunker.chunk(document)
        if not chunks:
            logger.debug(f"No content in {file_path}")
            report.files_processed += 1
            track_ingested_file(success=True, chunks_stored=0)
            return

        embedded: list[DocumentChunk] = []
        vectors: list[list[float]] = []
        failed = 0
        for chunk in chunks:
            try:
                result = await self._backend.embed(chunk.content)
            except KnowError as e:
                failed += 1
                logger.warning(
                    f"Failed to embed chunk of {file_path}: {e.message}",
                    extra={"chunk_id": chunk.id, "code": e.code.value},
                )
                continue
            embedded.append(chunk)
            vectors.append(result.embedding)

        stored = 0
        if embedded:
            try:
                stored = await self._vector_store.upsert_batch(
                    self._collection, embedded, vectors
                )
            except KnowError as e:
                report.chunks_failed += len(chunks)
                self._record_failure(report, file_path, f"upsert failed: {e.message}")
                return

        report.files_processed += 1
        report.chunks_stored += stored
        report.chunks_failed += failed
        track_ingested_file(success=True, chunks_stored=stored, chunks_failed=failed)

        if failed:
            report.failures.append(
                FileFailure(
                    path=str(file_path),
                    reason=f"{failed} of {len(chunks)} chunks failed to embed",
                )
            )

    def _record_failure(
        self,
        report: IngestionReport,
        file_path: Path,
        reason: str,
    ) -> None:
        logger.warning(f"Skipping {file_path}: {reason}")
        report.failures.append(FileFailure(path=str(file_path), reason=reason))
        track_ingested_file(success=False, chunks_stored=0)
