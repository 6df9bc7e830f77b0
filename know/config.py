"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables (or a local `.env`).
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogFormat(str, Enum):
    """Log line format."""

    JSON = "json"
    DEV = "dev"
    CONSOLE = "console"


class BackendKind(str, Enum):
    """Language-model providers, in auto-detect priority order."""

    DOCKER = "docker"
    OLLAMA = "ollama"
    OPENAI = "openai"


class BackendSettings(BaseSettings):
    """Language-model backend configuration.

    Unset model ids and base URL fall back to each provider's defaults.
    """

    model_config = SettingsConfigDict(env_prefix="KNOW_", populate_by_name=True)

    backend: BackendKind | None = Field(
        default=None,
        description="Pin a provider and skip auto-detection",
    )
    base_url: str | None = Field(
        default=None,
        description="Override the provider's base URL",
    )
    model: str | None = Field(
        default=None,
        description="Generation model id",
    )
    embed_model: str | None = Field(
        default=None,
        description="Embedding model id",
    )
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
        description="Bearer token for the hosted API",
    )
    probe_timeout: float = Field(
        default=10.0,
        description="Timeout for availability probes in seconds",
    )
    generation_probe_timeout: float = Field(
        default=30.0,
        description="Timeout for the probe generation request, which may load the model",
    )
    timeout: float = Field(
        default=120.0,
        description="Timeout for embedding and generation requests in seconds",
    )
    temperature: float = Field(
        default=0.1,
        description="Sampling temperature (lower = more deterministic)",
    )
    max_tokens: int = Field(
        default=2048,
        description="Maximum tokens in a generated answer",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="KNOW_QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    collection: str = Field(
        default="know",
        description="Collection holding the knowledge base",
    )
    timeout: int = Field(
        default=30,
        description="Request timeout in seconds",
    )


class ExtractorSettings(BaseSettings):
    """Docling document parsing service configuration."""

    model_config = SettingsConfigDict(env_prefix="KNOW_DOCLING_")

    url: str = Field(
        default="http://localhost:5001",
        description="Docling service URL",
    )
    timeout: float = Field(
        default=120.0,
        description="Conversion request timeout in seconds",
    )
    health_timeout: float = Field(
        default=5.0,
        description="Health check timeout in seconds",
    )


class IngestSettings(BaseSettings):
    """Document ingestion configuration."""

    model_config = SettingsConfigDict(env_prefix="KNOW_INGEST_")

    extensions: str = Field(
        default="md,txt,pdf,docx,html",
        description="Comma-separated file extensions to ingest",
    )
    chunk_size: int = Field(
        default=512,
        description="Target chunk size in characters",
    )

    @property
    def extension_list(self) -> list[str]:
        """Normalized extensions without leading dots."""
        return parse_extensions(self.extensions)


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: LogFormat | None = Field(
        default=None,
        description="Log format (JSON outside development when unset)",
    )
    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8080,
        description="API server port",
    )

    # Nested settings
    backend: BackendSettings = Field(default_factory=BackendSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    extractor: ExtractorSettings = Field(default_factory=ExtractorSettings)
    ingest: IngestSettings = Field(default_factory=IngestSettings)


def parse_extensions(value: str) -> list[str]:
    """Split a comma-separated extension list ("md, .txt") into ["md", "txt"]."""
    return [
        part.strip().lstrip(".").lower()
        for part in value.split(",")
        if part.strip().lstrip(".")
    ]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
