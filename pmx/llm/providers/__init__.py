"""LLM provider implementations."""

from pmx.llm.providers.base import ErrorClass, LLMProvider, ProviderError
from pmx.llm.providers.ollama import OllamaProvider
from pmx.llm.providers.openai_provider import OpenAIProvider

__all__ = [
    "ErrorClass",
    "LLMProvider",
    "ProviderError",
    "OllamaProvider",
    "OpenAIProvider",
]
