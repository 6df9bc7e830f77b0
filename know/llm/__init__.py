"""Language-model backend layer."""

from know.llm.base import LLMBackend
from know.llm.models import (
    BackendDescriptor,
    EmbeddingResult,
    GenerationResult,
    Message,
    ProbeResult,
    Role,
)
from know.llm.ollama import OllamaBackend
from know.llm.openai_compat import (
    DockerModelRunnerBackend,
    OpenAIBackend,
    OpenAICompatibleBackend,
)
from know.llm.prompts import RAGPromptTemplate
from know.llm.selector import (
    BACKEND_PRIORITY,
    create_backend,
    no_backend_message,
    probe_all,
    select_backend,
)

__all__ = [
    "BACKEND_PRIORITY",
    "BackendDescriptor",
    "DockerModelRunnerBackend",
    "EmbeddingResult",
    "GenerationResult",
    "LLMBackend",
    "Message",
    "OllamaBackend",
    "OpenAIBackend",
    "OpenAICompatibleBackend",
    "ProbeResult",
    "RAGPromptTemplate",
    "Role",
    "create_backend",
    "no_backend_message",
    "probe_all",
    "select_backend",
]
