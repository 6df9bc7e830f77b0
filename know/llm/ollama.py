"""Ollama backend, the general-purpose local model server."""

from know.config import BackendKind
from know.llm.base import EMBED, GENERATE, PROBE_PROMPT, PROBE_TEXT, LLMBackend
from know.llm.models import GenerationResult


class OllamaBackend(LLMBackend):
    """Backend for Ollama's native `/api/embeddings` and `/api/generate`.

    Ollama answers its health endpoint even when a model is missing, so the
    probe exercises both models with real requests.
    """

    kind = BackendKind.OLLAMA
    display_name = "Ollama"

    DEFAULT_BASE_URL = "http://localhost:11434"
    DEFAULT_GENERATION_MODEL = "llama3.2"
    DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"

    async def _embed(self, text: str, timeout: float) -> list[float]:
        data = await self._request_json(
            "POST",
            f"{self._base_url}/api/embeddings",
            EMBED,
            timeout=timeout,
            payload={"model": self._embedding_model, "prompt": text},
        )
        return self._require_vector(data.get("embedding"))

    async def _complete(self, prompt: str, timeout: float) -> GenerationResult:
        data = await self._request_json(
            "POST",
            f"{self._base_url}/api/generate",
            GENERATE,
            timeout=timeout,
            payload={
                "model": self._generation_model,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "temperature": self._settings.temperature,
                    "num_predict": self._settings.max_tokens,
                },
            },
        )

        prompt_tokens = self._token_count(data.get("prompt_eval_count"))
        completion_tokens = self._token_count(data.get("eval_count"))
        return GenerationResult(
            content=self._require_text(data.get("response")),
            model=self._response_model(data.get("model")),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )

    async def _generate(
        self,
        prompt: str,
        context: str,
        timeout: float,
    ) -> GenerationResult:
        full_prompt = self._prompt_template.build_completion_prompt(prompt, context)
        return await self._complete(full_prompt, timeout=timeout)

    async def _check_available(self) -> None:
        await self._embed(PROBE_TEXT, timeout=self._settings.probe_timeout)

        # The first generation loads the model, which is slower than embedding.
        result = await self._complete(
            PROBE_PROMPT, timeout=self._settings.generation_probe_timeout
        )
        if not result.content.strip():
            raise self._malformed(GENERATE, "empty response text")

    def remediation(self) -> list[str]:
        return [
            "Start Ollama and pull the models:",
            f"  ollama pull {self._embedding_model}",
            f"  ollama pull {self._generation_model}",
        ]
