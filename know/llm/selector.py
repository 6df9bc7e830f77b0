"""Backend construction and auto-detection."""

import httpx

from know.config import BackendKind, BackendSettings, get_settings
from know.exceptions import ConfigurationError, ErrorCode
from know.llm.base import LLMBackend
from know.llm.models import ProbeResult
from know.llm.ollama import OllamaBackend
from know.llm.openai_compat import DockerModelRunnerBackend, OpenAIBackend
from know.llm.prompts import RAGPromptTemplate
from know.logging_config import get_logger
from know.observability.metrics import track_backend_probe

logger = get_logger(__name__)

BACKEND_CLASSES: dict[BackendKind, type[LLMBackend]] = {
    BackendKind.DOCKER: DockerModelRunnerBackend,
    BackendKind.OLLAMA: OllamaBackend,
    BackendKind.OPENAI: OpenAIBackend,
}

# Fastest and most local first, cloud last.
BACKEND_PRIORITY: tuple[BackendKind, ...] = (
    BackendKind.DOCKER,
    BackendKind.OLLAMA,
    BackendKind.OPENAI,
)


def create_backend(
    kind: BackendKind,
    settings: BackendSettings | None = None,
    client: httpx.AsyncClient | None = None,
    prompt_template: RAGPromptTemplate | None = None,
) -> LLMBackend:
    """Instantiate a backend without probing it."""
    backend_cls = BACKEND_CLASSES[kind]
    return backend_cls(
        settings=settings or get_settings().backend,
        client=client,
        prompt_template=prompt_template,
    )


async def probe_all(
    settings: BackendSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[ProbeResult]:
    """Probe every backend in priority order (used for status reports)."""
    results: list[ProbeResult] = []
    for kind in BACKEND_PRIORITY:
        backend = create_backend(kind, settings, client)
        try:
            result = await backend.probe()
        finally:
            await backend.close()
        track_backend_probe(backend.name, result.available)
        results.append(result)
    return results


async def select_backend(
    settings: BackendSettings | None = None,
    client: httpx.AsyncClient | None = None,
    prompt_template: RAGPromptTemplate | None = None,
) -> LLMBackend:
    """Select the backend to use for this process.

    A pinned provider is returned without probing. Otherwise each provider is
    probed in priority order and the first one that works wins.

    Args:
        settings: Backend configuration.
        client: Shared HTTP client (for testing).
        prompt_template: Template passed to the selected backend.

    Returns:
        The selected backend, ready for use.

    Raises:
        ConfigurationError: If no provider passes its probe.
    """
    settings = settings or get_settings().backend

    if settings.backend is not None:
        backend = create_backend(settings.backend, settings, client, prompt_template)
        logger.info(
            f"Using pinned backend: {backend.name}",
            extra={"backend": backend.name, "model": backend.model_name},
        )
        return backend

    rejected: list[tuple[LLMBackend, ProbeResult]] = []
    for kind in BACKEND_PRIORITY:
        backend = create_backend(kind, settings, client, prompt_template)
        result = await backend.probe()
        track_backend_probe(backend.name, result.available)

        if result.available:
            logger.info(
                f"Using {backend.name} backend",
                extra={
                    "backend": backend.name,
                    "model": backend.model_name,
                    "embedding_model": backend.embedding_model_name,
                },
            )
            return backend

        logger.info(f"{backend.name} unavailable: {result.reason}")
        await backend.close()
        rejected.append((backend, result))

    raise ConfigurationError(
        no_backend_message([backend for backend, _ in rejected]),
        code=ErrorCode.NO_BACKEND_AVAILABLE,
        details={
            "backends": {
                result.descriptor.name: {
                    "embedding_model": result.descriptor.embedding_model,
                    "generation_model": result.descriptor.generation_model,
                    "reason": result.reason,
                }
                for _, result in rejected
            }
        },
    )


def no_backend_message(backends: list[LLMBackend]) -> str:
    """Operator-facing explanation listing required models and fixes."""
    lines = ["No LLM backend available with the required models.", "", "Required models:"]
    for backend in backends:
        lines.append(
            f"  - {backend.name}: embedding '{backend.embedding_model_name}', "
            f"generation '{backend.model_name}'"
        )

    lines += ["", "Please either:"]
    for number, backend in enumerate(backends, start=1):
        first, *rest = backend.remediation()
        lines.append(f"  {number}. {first}")
        lines.extend(f"     {step}" for step in rest)

    lines += ["", "Or choose different models with --model and --embed-model."]
    return "\n".join(lines)
