"""Backend data models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from know.config import BackendKind


class Role(str, Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A message in a conversation.

    Attributes:
        role: The role of the message sender.
        content: The message content.
    """

    role: Role = Field(description="Message role")
    content: str = Field(description="Message content")


class EmbeddingResult(BaseModel):
    """Result of an embedding operation.

    Attributes:
        text: The original text that was embedded.
        embedding: The embedding vector.
        model: The model used to generate the embedding.
        dimensions: Number of dimensions in the embedding.
    """

    text: str = Field(description="Original text")
    embedding: list[float] = Field(description="Embedding vector")
    model: str = Field(description="Model used for embedding")
    dimensions: int = Field(description="Vector dimensions")

    def model_post_init(self, __context: object) -> None:
        """Validate dimensions match embedding length."""
        if self.dimensions != len(self.embedding):
            raise ValueError(
                f"dimensions ({self.dimensions}) does not match "
                f"embedding length ({len(self.embedding)})"
            )


class GenerationResult(BaseModel):
    """Result from LLM generation.

    Token counts are reported when the provider returns them.
    """

    content: str = Field(description="Generated text")
    model: str = Field(description="Model used")
    prompt_tokens: int = Field(default=0, description="Prompt token count")
    completion_tokens: int = Field(default=0, description="Completion token count")
    total_tokens: int = Field(default=0, description="Total token count")


class BackendDescriptor(BaseModel):
    """Identity and probed availability of a backend.

    Recomputed per process; never persisted.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Human-readable provider name")
    kind: BackendKind = Field(description="Provider kind")
    generation_model: str = Field(description="Generation model id")
    embedding_model: str = Field(description="Embedding model id")
    base_url: str = Field(description="Provider endpoint")
    available: bool = Field(default=False, description="Probe outcome")


class ProbeResult(BaseModel):
    """Outcome of an availability probe.

    A probe never raises; an unavailable backend carries the reason instead.
    """

    model_config = ConfigDict(frozen=True)

    descriptor: BackendDescriptor
    reason: str | None = Field(default=None, description="Why the probe failed")

    @property
    def available(self) -> bool:
        """Whether the backend passed its probe."""
        return self.descriptor.available
