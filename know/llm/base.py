"""Backend interface shared by every language-model provider."""

import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from know.config import BackendKind, BackendSettings, get_settings
from know.exceptions import EmbeddingError, ErrorCode, KnowError, LLMError
from know.llm.models import (
    BackendDescriptor,
    EmbeddingResult,
    GenerationResult,
    ProbeResult,
)
from know.llm.prompts import RAGPromptTemplate
from know.logging_config import get_logger
from know.observability.metrics import track_backend_request, track_generation_tokens

logger = get_logger(__name__)

EMBED = "embed"
GENERATE = "generate"

PROBE_TEXT = "test"
PROBE_PROMPT = "Hi"


class LLMBackend(ABC):
    """Abstract base class for language-model backends.

    A backend embeds text and generates grounded answers. Callers never
    branch on which provider is active.
    """

    kind: BackendKind
    display_name: str

    DEFAULT_BASE_URL: str
    DEFAULT_GENERATION_MODEL: str
    DEFAULT_EMBEDDING_MODEL: str

    def __init__(
        self,
        settings: BackendSettings | None = None,
        client: httpx.AsyncClient | None = None,
        prompt_template: RAGPromptTemplate | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            settings: Backend configuration. Unset fields use provider defaults.
            client: HTTP client (for testing or sharing).
            prompt_template: Template used to ground answers in context.
        """
        self._settings = settings or get_settings().backend
        self._client = client
        self._owns_client = client is None
        self._prompt_template = prompt_template or RAGPromptTemplate()

        self._base_url = (self._settings.base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._generation_model = self._settings.model or self.DEFAULT_GENERATION_MODEL
        self._embedding_model = self._settings.embed_model or self.DEFAULT_EMBEDDING_MODEL

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
    def name(self) -> str:
        """Provider name surfaced to operators."""
        return self.display_name

    @property
    def model_name(self) -> str:
        """Generation model id."""
        return self._generation_model

    @property
    def embedding_model_name(self) -> str:
        """Embedding model id."""
        return self._embedding_model

    @property
    def base_url(self) -> str:
        """Provider endpoint."""
        return self._base_url

    def describe(self, available: bool = False) -> BackendDescriptor:
        """Build a descriptor for this backend."""
        return BackendDescriptor(
            name=self.name,
            kind=self.kind,
            generation_model=self._generation_model,
            embedding_model=self._embedding_model,
            base_url=self._base_url,
            available=available,
        )

    async def embed(self, text: str) -> EmbeddingResult:
        """Embed a single text.

        Args:
            text: Text to embed.

        Returns:
            EmbeddingResult with a non-empty vector.

        Raises:
            EmbeddingError: If the request fails or the response is malformed.
        """
        start = time.perf_counter()
        try:
            vector = await self._embed(text, timeout=self._settings.timeout)
        except KnowError:
            track_backend_request(self.name, EMBED, time.perf_counter() - start, success=False)
            raise
        track_backend_request(self.name, EMBED, time.perf_counter() - start)

        return EmbeddingResult(
            text=text,
            embedding=vector,
            model=self._embedding_model,
            dimensions=len(vector),
        )

    async def generate(self, prompt: str, context: str) -> GenerationResult:
        """Answer a question using only the supplied context.

        Args:
            prompt: The user's question.
            context: Retrieved context the answer must be grounded in.

        Returns:
            GenerationResult with the answer text.

        Raises:
            LLMError: If the request fails or the response is malformed.
        """
        start = time.perf_counter()
        try:
            result = await self._generate(prompt, context, timeout=self._settings.timeout)
        except KnowError:
            track_backend_request(
                self.name, GENERATE, time.perf_counter() - start, success=False
            )
            raise
        track_backend_request(self.name, GENERATE, time.perf_counter() - start)
        track_generation_tokens(self.name, result.prompt_tokens, result.completion_tokens)
        return result

    async def probe(self) -> ProbeResult:
        """Check that the provider and its configured models actually work.

        Never raises: every failure is reported as an unavailable result.
        """
        try:
            await self._check_available()
        except Exception as e:
            logger.debug(
                f"{self.name} probe failed: {e}",
                extra={"backend": self.name, "base_url": self._base_url},
            )
            return ProbeResult(descriptor=self.describe(available=False), reason=str(e))

        return ProbeResult(descriptor=self.describe(available=True))

    @abstractmethod
    async def _embed(self, text: str, timeout: float) -> list[float]:
        """Provider-specific embedding request."""
        ...

    @abstractmethod
    async def _generate(
        self,
        prompt: str,
        context: str,
        timeout: float,
    ) -> GenerationResult:
        """Provider-specific generation request."""
        ...

    @abstractmethod
    async def _check_available(self) -> None:
        """Issue synthetic requests, raising if the backend is not usable."""
        ...

    @abstractmethod
    def remediation(self) -> list[str]:
        """Steps an operator takes to make this backend available."""
        ...

    def _error(
        self,
        operation: str,
        message: str,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> KnowError:
        """Build the operation's error with backend context attached."""
        context = {"backend": self.name, "operation": operation, **(details or {})}
        if operation == EMBED:
            return EmbeddingError(
                message,
                code=code or ErrorCode.EMBEDDING_SERVICE_ERROR,
                details=context,
            )
        return LLMError(
            message,
            code=code or ErrorCode.LLM_SERVICE_ERROR,
            details=context,
        )

    def _malformed(self, operation: str, reason: str) -> KnowError:
        """Error for a response body that does not match the expected shape."""
        code = (
            ErrorCode.EMBEDDING_MALFORMED_RESPONSE
            if operation == EMBED
            else ErrorCode.LLM_MALFORMED_RESPONSE
        )
        return self._error(
            operation,
            f"Invalid {operation} response from {self.name}: {reason}",
            code=code,
            details={"reason": reason},
        )

    async def _request_json(
        self,
        method: str,
        url: str,
        operation: str,
        timeout: float,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send a request and return its JSON object body.

        Raises:
            EmbeddingError | LLMError: On transport errors, error statuses,
                non-JSON bodies, or bodies carrying an `error` field.
        """
        client = await self._get_client()

        try:
            if method == "GET":
                response = await client.get(url, headers=headers or {}, timeout=timeout)
            else:
                response = await client.post(
                    url, json=payload, headers=headers or {}, timeout=timeout
                )
            response.raise_for_status()

        except httpx.TimeoutException as e:
            logger.error(f"{self.name} {operation} request timed out: {e}")
            code = ErrorCode.LLM_TIMEOUT if operation == GENERATE else None
            raise self._error(
                operation,
                f"{self.name} {operation} request timed out",
                code=code,
                details={"url": url, "timeout": timeout},
            ) from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"{self.name} {operation} request failed: {status}")
            code = None
            if status == 429 and operation == GENERATE:
                code = ErrorCode.LLM_RATE_LIMIT
            raise self._error(
                operation,
                f"{self.name} returned {status}",
                code=code,
                details={"url": url, "status_code": status},
            ) from e

        except httpx.RequestError as e:
            logger.error(f"{self.name} connection error: {e}")
            raise self._error(
                operation,
                f"Failed to connect to {self.name}: {e}",
                details={"url": url},
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise self._malformed(operation, "body is not JSON") from e

        if not isinstance(data, dict):
            raise self._malformed(operation, "body is not a JSON object")
        if data.get("error"):
            raise self._malformed(operation, f"error field: {data['error']}")

        return data

    def _require_vector(self, vector: Any) -> list[float]:
        """Validate an embedding payload is a non-empty list of numbers."""
        if not isinstance(vector, list) or not vector:
            raise self._malformed(EMBED, "empty or missing embedding")
        if not all(isinstance(value, int | float) for value in vector):
            raise self._malformed(EMBED, "embedding contains non-numeric values")
        return [float(value) for value in vector]

    def _require_text(self, text: Any) -> str:
        """Validate a generation payload is a string."""
        if not isinstance(text, str):
            raise self._malformed(GENERATE, "missing response text")
        return text

    def _response_model(self, value: Any) -> str:
        """Model id echoed by the provider, or the configured one."""
        return value if isinstance(value, str) and value else self._generation_model

    @staticmethod
    def _token_count(value: Any) -> int:
        """Token count from a usage field; absent, null or invalid counts are 0."""
        if isinstance(value, bool) or not isinstance(value, int):
            return 0
        return max(value, 0)
