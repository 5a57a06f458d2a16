"""LLM provider implementations."""

from autodidact.providers.base import LLMProvider, LLMResponse
from autodidact.providers.openai_compat import OpenAICompatibleProvider

__all__ = ["LLMProvider", "LLMResponse", "OpenAICompatibleProvider"]
