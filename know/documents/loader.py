"""Direct file reading, used for plain text and as the parser fallback."""

from pathlib import Path

from know.documents.models import Document, get_file_type
from know.exceptions import DocumentError, ErrorCode


class TextFileLoader:
    """Loader that reads files straight from disk.

    `load` decodes strictly; `load_raw` never fails on bad bytes and is used
    when layout-aware parsing is unavailable.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        """Initialize the text file loader.

        Args:
            encoding: Text encoding to use when reading files.
        """
        self.encoding = encoding

    def load(self, source: str | Path) -> Document:
        """Load a text file as a document.

        Args:
            source: Path to the text file.

        Returns:
            Document with file content.

        Raises:
            DocumentError: If file cannot be read or decoded.
        """
        path = self._check_path(source)

        try:
            content = path.read_text(encoding=self.encoding)
        except UnicodeDecodeError as e:
            raise DocumentError(
                f"Failed to decode file: {path}",
                code=ErrorCode.DOCUMENT_PARSE_ERROR,
                details={"path": str(path), "encoding": self.encoding, "error": str(e)},
            ) from e
        except OSError as e:
            raise DocumentError(
                f"Failed to read file: {path}",
                code=ErrorCode.DOCUMENT_PARSE_ERROR,
                details={"path": str(path), "error": str(e)},
            ) from e

        return self._document(path, content, extractor="direct")

    def load_raw(self, source: str | Path) -> Document:
        """Read a file's bytes as text, replacing undecodable sequences.

        Raises:
            DocumentError: If the file cannot be read at all.
        """
        path = self._check_path(source)

        try:
            content = path.read_bytes().decode(self.encoding, errors="replace")
        except OSError as e:
            raise DocumentError(
                f"Failed to read file: {path}",
                code=ErrorCode.DOCUMENT_PARSE_ERROR,
                details={"path": str(path), "error": str(e)},
            ) from e

        return self._document(path, content, extractor="raw")

    def _check_path(self, source: str | Path) -> Path:
        path = Path(source) if isinstance(source, str) else source

        if not path.exists():
            raise DocumentError(
                f"File not found: {path}",
                code=ErrorCode.DOCUMENT_NOT_FOUND,
                details={"path": str(path)},
            )

        if not path.is_file():
            raise DocumentError(
                f"Not a file: {path}",
                code=ErrorCode.DOCUMENT_PARSE_ERROR,
                details={"path": str(path)},
            )
        return path

    def _document(self, path: Path, content: str, extractor: str) -> Document:
        return Document.from_text(
            content=content,
            source=str(path),
            file_type=get_file_type(path),
            file_name=path.name,
            file_size=path.stat().st_size,
            extractor=extractor,
        )
