"""OpenAI-compatible chat-completions client over httpx."""

import logging
from typing import Any

import httpx

from autodidact.providers.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(LLMProvider):
    """
    Chat completions against any OpenAI-compatible endpoint
    (OpenAI, OpenRouter, a local vLLM or Ollama server).
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.timeout = timeout
        self.base_url = (api_base or self.DEFAULT_BASE_URL).rstrip("/")
        self._transport = transport

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.3,
    ) -> LLMResponse:
        payload = {
            "model": model or self.default_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
                return self._parse_response(response.json())
            except httpx.HTTPStatusError as e:
                logger.warning("LLM API returned %s", e.response.status_code)
                return LLMResponse(
                    content=f"API error ({e.response.status_code}): {e.response.text[:500]}",
                    finish_reason="error",
                )
            except (httpx.HTTPError, ValueError, KeyError, IndexError) as e:
                logger.warning("LLM request failed: %s", e)
                return LLMResponse(content=f"Request failed: {e}", finish_reason="error")

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        choice = data["choices"][0]
        usage = {}
        if "usage" in data:
            usage = {
                "prompt_tokens": data["usage"].get("prompt_tokens", 0),
                "completion_tokens": data["usage"].get("completion_tokens", 0),
                "total_tokens": data["usage"].get("total_tokens", 0),
            }
        return LLMResponse(
            content=choice["message"].get("content"),
            finish_reason=choice.get("finish_reason") or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        return self.default_model
