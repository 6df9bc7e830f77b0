"""Error types raised by know.

Every error carries a stable `KNOW-XXXX` code and a coarse `error_type`.
The CLI prints the message; the API wraps both in an OpenAI-style error
envelope.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes, grouped by subsystem."""

    # General (1xxx)
    INTERNAL_ERROR = "KNOW-1000"
    CONFIGURATION_ERROR = "KNOW-1001"
    VALIDATION_ERROR = "KNOW-1002"
    NO_BACKEND_AVAILABLE = "KNOW-1003"
    SERVICE_NOT_CONFIGURED = "KNOW-1004"

    # Documents and extraction (2xxx)
    DOCUMENT_NOT_FOUND = "KNOW-2000"
    DOCUMENT_PARSE_ERROR = "KNOW-2001"
    EXTRACTION_SERVICE_ERROR = "KNOW-2002"

    # Embeddings (3xxx)
    EMBEDDING_SERVICE_ERROR = "KNOW-3000"
    EMBEDDING_MALFORMED_RESPONSE = "KNOW-3001"

    # Vector store (4xxx)
    VECTOR_STORE_ERROR = "KNOW-4000"
    COLLECTION_NOT_FOUND = "KNOW-4001"
    COLLECTION_EXISTS = "KNOW-4002"
    VECTOR_STORE_UNAVAILABLE = "KNOW-4003"

    # Generation (5xxx)
    LLM_SERVICE_ERROR = "KNOW-5000"
    LLM_TIMEOUT = "KNOW-5001"
    LLM_RATE_LIMIT = "KNOW-5002"
    LLM_MALFORMED_RESPONSE = "KNOW-5003"

    # Retrieval (6xxx)
    RETRIEVAL_ERROR = "KNOW-6000"


class KnowError(Exception):
    """Base class for every error know raises on purpose.

    Subclasses pick their default code and envelope type through class
    attributes; callers may still pass a more specific code.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    default_code = ErrorCode.INTERNAL_ERROR
    error_type = "server_error"

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Render the OpenAI-style error envelope."""
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code.value,
                "details": self.details,
            }
        }


class ConfigurationError(KnowError):
    """The environment cannot support the requested operation.

    Raised when no backend is usable or a pinned backend lacks credentials.
    The message is written for the operator and may span several lines.
    """

    default_code = ErrorCode.CONFIGURATION_ERROR


class ValidationError(KnowError):
    """Bad input from a user or API client."""

    default_code = ErrorCode.VALIDATION_ERROR
    error_type = "invalid_request_error"


class DocumentError(KnowError):
    """A file could not be read or extracted."""

    default_code = ErrorCode.DOCUMENT_NOT_FOUND


class EmbeddingError(KnowError):
    """A backend failed to embed text."""

    default_code = ErrorCode.EMBEDDING_SERVICE_ERROR


class VectorStoreError(KnowError):
    """A Qdrant operation failed."""

    default_code = ErrorCode.VECTOR_STORE_ERROR


class LLMError(KnowError):
    """A backend failed to generate an answer."""

    default_code = ErrorCode.LLM_SERVICE_ERROR


class RetrievalError(KnowError):
    """Search failed for a reason not covered by a more specific error."""

    default_code = ErrorCode.RETRIEVAL_ERROR
