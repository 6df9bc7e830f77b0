"""Backends speaking the OpenAI embeddings and chat-completions shape.

Works with:
- Docker Model Runner (localhost:12434/engines/llama.cpp/v1)
- OpenAI API and any bearer-authenticated compatible endpoint
"""

from typing import Any

from know.config import BackendKind
from know.exceptions import ConfigurationError, ErrorCode
from know.llm.base import EMBED, GENERATE, PROBE_TEXT, LLMBackend
from know.llm.models import GenerationResult, Message, Role


class OpenAICompatibleBackend(LLMBackend):
    """Shared request/response handling for OpenAI-shaped providers."""

    # Path prefix between the base URL and the endpoint names.
    API_PREFIX = ""

    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}{self.API_PREFIX}/{endpoint}"

    def _headers(self) -> dict[str, str]:
        """Extra request headers (authentication)."""
        return {}

    async def _embed(self, text: str, timeout: float) -> list[float]:
        data = await self._request_json(
            "POST",
            self._url("embeddings"),
            EMBED,
            timeout=timeout,
            payload={"model": self._embedding_model, "input": text},
            headers=self._headers(),
        )

        try:
            vector = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            raise self._malformed(EMBED, f"missing data[0].embedding ({e})") from e

        return self._require_vector(vector)

    async def _generate(
        self,
        prompt: str,
        context: str,
        timeout: float,
    ) -> GenerationResult:
        messages = [
            Message(
                role=Role.SYSTEM,
                content=self._prompt_template.build_system_prompt(context),
            ),
            Message(role=Role.USER, content=prompt),
        ]
        payload: dict[str, Any] = {
            "model": self._generation_model,
            "messages": [
                {"role": msg.role.value, "content": msg.content} for msg in messages
            ],
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            "stream": False,
        }

        data = await self._request_json(
            "POST",
            self._url("chat/completions"),
            GENERATE,
            timeout=timeout,
            payload=payload,
            headers=self._headers(),
        )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise self._malformed(
                GENERATE, f"missing choices[0].message.content ({e})"
            ) from e

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        prompt_tokens = self._token_count(usage.get("prompt_tokens"))
        completion_tokens = self._token_count(usage.get("completion_tokens"))
        return GenerationResult(
            content=self._require_text(content),
            model=self._response_model(data.get("model")),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=self._token_count(usage.get("total_tokens"))
            or prompt_tokens + completion_tokens,
        )


class DockerModelRunnerBackend(OpenAICompatibleBackend):
    """Docker Model Runner, the local low-latency runtime.

    Requires the runner's TCP endpoint to be enabled.
    """

    kind = BackendKind.DOCKER
    display_name = "Docker Model Runner"

    DEFAULT_BASE_URL = "http://localhost:12434/engines/llama.cpp"
    DEFAULT_GENERATION_MODEL = "ai/llama3.2:3B-Q8_0"
    DEFAULT_EMBEDDING_MODEL = "ai/mxbai-embed-large:335M-F16"

    API_PREFIX = "/v1"

    async def _check_available(self) -> None:
        # The models listing proves the runner is up; the embedding call
        # proves the configured model is pulled.
        await self._request_json(
            "GET",
            self._url("models"),
            EMBED,
            timeout=self._settings.probe_timeout,
        )
        await self._embed(PROBE_TEXT, timeout=self._settings.probe_timeout)

    def remediation(self) -> list[str]:
        return [
            "Enable Docker Model Runner TCP and pull the models:",
            f"  docker model pull {self._embedding_model}",
            f"  docker model pull {self._generation_model}",
        ]


class OpenAIBackend(OpenAICompatibleBackend):
    """Hosted OpenAI API (or a compatible bearer-authenticated endpoint)."""

    kind = BackendKind.OPENAI
    display_name = "OpenAI"

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_GENERATION_MODEL = "gpt-4o"
    DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

    @property
    def api_key(self) -> str:
        """Configured API key, empty when unset."""
        if self._settings.openai_api_key is None:
            return ""
        return self._settings.openai_api_key.get_secret_value()

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _check_available(self) -> None:
        if not self.api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is not set",
                code=ErrorCode.CONFIGURATION_ERROR,
                details={"backend": self.name},
            )
        await self._embed(PROBE_TEXT, timeout=self._settings.probe_timeout)

    def remediation(self) -> list[str]:
        return [
            "Set the OPENAI_API_KEY environment variable",
            f"  (models: {self._embedding_model}, {self._generation_model})",
        ]
