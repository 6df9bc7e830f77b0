"""Document text extraction via the Docling service, with direct-read fallback."""

from pathlib import Path

import httpx

from know.config import ExtractorSettings, get_settings
from know.documents.loader import TextFileLoader
from know.documents.models import Document, get_file_type
from know.exceptions import DocumentError, ErrorCode
from know.logging_config import get_logger

logger = get_logger(__name__)


class DocumentExtractor:
    """Produces normalized text for a file.

    Layout-heavy formats are converted to markdown by Docling. When Docling
    is down or a conversion fails the file is read as raw text instead, so a
    parser outage only lowers extraction quality. Plain-text formats never
    touch the service.
    """

    LAYOUT_FORMATS = frozenset({".pdf", ".docx", ".pptx", ".xlsx", ".html"})

    def __init__(
        self,
        settings: ExtractorSettings | None = None,
        client: httpx.AsyncClient | None = None,
        loader: TextFileLoader | None = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            settings: Docling configuration.
            client: HTTP client (for testing).
            loader: Direct file loader.
        """
        self._settings = settings or get_settings().extractor
        self._client = client
        self._owns_client = client is None
        self._loader = loader or TextFileLoader()
        self._available: bool | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def url(self) -> str:
        """Docling service URL."""
        return self._settings.url.rstrip("/")

    def needs_parser(self, path: Path) -> bool:
        """Whether this file type benefits from layout-aware parsing."""
        return path.suffix.lower() in self.LAYOUT_FORMATS

    async def is_available(self, refresh: bool = False) -> bool:
        """Check Docling's health endpoint. Never raises.

        The result is cached for the lifetime of the extractor.
        """
        if self._available is not None and not refresh:
            return self._available

        client = await self._get_client()
        try:
            response = await client.get(
                f"{self.url}/health",
                timeout=self._settings.health_timeout,
            )
            self._available = response.is_success
        except httpx.HTTPError as e:
            logger.debug(f"Docling health check failed: {e}")
            self._available = False

        return self._available

    async def extract(self, path: Path) -> Document:
        """Extract normalized text from a file.

        Args:
            path: File to extract.

        Returns:
            Document with the extracted text.

        Raises:
            DocumentError: If the file cannot be read at all, or a plain-text
                file is not valid text.
        """
        if not self.needs_parser(path):
            return self._loader.load(path)

        if not await self.is_available():
            logger.warning(
                f"Docling not available at {self.url}; reading {path} directly",
                extra={"path": str(path)},
            )
            return self._loader.load_raw(path)

        try:
            content = await self.convert(path)
        except DocumentError as e:
            logger.warning(
                f"Failed to parse {path} with Docling: {e.message}; reading directly",
                extra={"path": str(path), "details": e.details},
            )
            return self._loader.load_raw(path)

        return Document.from_text(
            content=content,
            source=str(path),
            file_type=get_file_type(path),
            file_name=path.name,
            file_size=path.stat().st_size,
            extractor="docling",
        )

    async def convert(self, path: Path) -> str:
        """Convert a file to markdown with Docling.

        Raises:
            DocumentError: On transport errors, error statuses or a response
                without `document.md_content`.
        """
        client = await self._get_client()
        url = f"{self.url}/v1/convert/file"

        try:
            data = path.read_bytes()
        except OSError as e:
            raise DocumentError(
                f"Failed to read file: {path}",
                code=ErrorCode.DOCUMENT_PARSE_ERROR,
                details={"path": str(path), "error": str(e)},
            ) from e

        files = {"files": (path.name, data, "application/octet-stream")}

        try:
            response = await client.post(url, files=files)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DocumentError(
                f"Docling returned {e.response.status_code}",
                code=ErrorCode.EXTRACTION_SERVICE_ERROR,
                details={
                    "service": "docling",
                    "path": str(path),
                    "status_code": e.response.status_code,
                },
            ) from e
        except httpx.RequestError as e:
            raise DocumentError(
                f"Failed to connect to Docling: {e}",
                code=ErrorCode.EXTRACTION_SERVICE_ERROR,
                details={"service": "docling", "url": url},
            ) from e

        try:
            content = response.json()["document"]["md_content"]
        except (KeyError, TypeError, ValueError) as e:
            raise DocumentError(
                f"Invalid response from Docling: {e}",
                code=ErrorCode.EXTRACTION_SERVICE_ERROR,
                details={"service": "docling", "path": str(path)},
            ) from e

        if not isinstance(content, str):
            raise DocumentError(
                "Invalid response from Docling: md_content is not text",
                code=ErrorCode.EXTRACTION_SERVICE_ERROR,
                details={"service": "docling", "path": str(path)},
            )
        return content
