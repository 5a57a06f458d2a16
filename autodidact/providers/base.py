"""Base LLM provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LLMResponse:
    """Response from an LLM provider.

    Transport and API failures are reported with ``finish_reason="error"``
    and the error text in ``content`` rather than raised.
    """

    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.finish_reason == "error"


class LLMProvider(ABC):
    """Abstract base class for chat-completion providers."""

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.3,
    ) -> LLMResponse:
        pass

    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int = 2048,
        system: str | None = None,
    ) -> LLMResponse:
        """Single-turn convenience wrapper around ``chat``."""
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        return await self.chat(messages=messages, model=model, max_tokens=max_tokens)

    @abstractmethod
    def get_default_model(self) -> str:
        pass
