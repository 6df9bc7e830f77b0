"""Tests for application configuration."""

import os
from unittest.mock import patch

from know.config import (
    BackendKind,
    BackendSettings,
    Environment,
    ExtractorSettings,
    IngestSettings,
    QdrantSettings,
    Settings,
    get_settings,
    parse_extensions,
)


class TestBackendSettings:
    """Tests for backend configuration."""

    def test_default_values(self) -> None:
        """Unpinned, with provider defaults left to each backend."""
        with patch.dict(os.environ, {}, clear=True):
            settings = BackendSettings()
        assert settings.backend is None
        assert settings.base_url is None
        assert settings.model is None
        assert settings.embed_model is None
        assert settings.openai_api_key is None
        assert settings.timeout == 120.0
        assert settings.max_tokens == 2048
        assert settings.temperature == 0.1

    def test_env_override(self) -> None:
        """KNOW_ environment variables override defaults."""
        env = {"KNOW_BACKEND": "ollama", "KNOW_MODEL": "mistral"}
        with patch.dict(os.environ, env, clear=True):
            settings = BackendSettings()
        assert settings.backend == BackendKind.OLLAMA
        assert settings.model == "mistral"

    def test_openai_key_read_without_prefix(self) -> None:
        """The API key comes from the conventional OPENAI_API_KEY variable."""
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}, clear=True):
            settings = BackendSettings()
        assert settings.openai_api_key is not None
        assert "sk-test" not in str(settings.openai_api_key)
        assert settings.openai_api_key.get_secret_value() == "sk-test"


class TestQdrantSettings:
    """Tests for Qdrant configuration."""

    def test_default_values(self) -> None:
        """Default values for Qdrant."""
        with patch.dict(os.environ, {}, clear=True):
            settings = QdrantSettings()
        assert settings.url == "http://localhost:6333"
        assert settings.api_key is None
        assert settings.collection == "know"

    def test_env_override(self) -> None:
        """Collection can be chosen by environment."""
        with patch.dict(os.environ, {"KNOW_QDRANT_COLLECTION": "docs"}, clear=True):
            settings = QdrantSettings()
        assert settings.collection == "docs"


class TestExtractorSettings:
    """Tests for Docling configuration."""

    def test_default_values(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = ExtractorSettings()
        assert settings.url == "http://localhost:5001"
        assert settings.health_timeout == 5.0


class TestIngestSettings:
    """Tests for ingestion configuration."""

    def test_default_extensions(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = IngestSettings()
        assert settings.extension_list == ["md", "txt", "pdf", "docx", "html"]
        assert settings.chunk_size == 512

    def test_parse_extensions_normalizes(self) -> None:
        """Whitespace, dots and case are normalized; blanks dropped."""
        assert parse_extensions(" .MD, txt,,pdf ") == ["md", "txt", "pdf"]


class TestSettings:
    """Tests for main application settings."""

    def test_default_environment(self) -> None:
        """Default environment is development."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings()
        assert settings.environment == Environment.DEVELOPMENT

    def test_default_api_settings(self) -> None:
        """Default API host and port."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings()
        assert settings.api_host == "0.0.0.0"
        assert settings.api_port == 8080

    def test_nested_settings_loaded(self) -> None:
        """Nested settings are initialized."""
        settings = Settings()
        assert isinstance(settings.backend, BackendSettings)
        assert isinstance(settings.qdrant, QdrantSettings)
        assert isinstance(settings.extractor, ExtractorSettings)
        assert isinstance(settings.ingest, IngestSettings)

    def test_environment_enum(self) -> None:
        """Environment can be set via string."""
        with patch.dict(os.environ, {"ENVIRONMENT": "production"}):
            settings = Settings()
            assert settings.environment == Environment.PRODUCTION


class TestGetSettings:
    """Tests for settings singleton."""

    def test_returns_settings_instance(self) -> None:
        """get_settings returns a Settings instance."""
        get_settings.cache_clear()
        settings = get_settings()
        assert isinstance(settings, Settings)

    def test_caching(self) -> None:
        """Settings are cached."""
        get_settings.cache_clear()
        settings1 = get_settings()
        settings2 = get_settings()
        assert settings1 is settings2
