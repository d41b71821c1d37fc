"""Provider factory for creating LLM provider instances."""

from typing import List

from pmx.config import PMXConfig
from pmx.llm.providers.base import LLMProvider
from pmx.llm.providers.ollama import OllamaProvider
from pmx.llm.providers.openai_provider import OpenAIProvider


PROVIDERS = ("openai", "ollama")


def detect_provider_from_model(model_str: str) -> str:
    """Auto-detect provider from model name.

    Args:
        model_str: Model name string

    Returns:
        Provider name (openai or ollama)
    """
    model_str = model_str.lower().strip()

    # Some Ollama models are GPT-prefixed (e.g. `gpt-oss`) but are still served
    # by Ollama.
    if model_str.startswith("gpt-oss"):
        return "ollama"
    if model_str.startswith(("gpt-", "o1", "o3", "o4")):
        return "openai"
    return "ollama"


def get_provider(provider_name: str, config: PMXConfig) -> LLMProvider:
    """Create a provider instance by name.

    Raises:
        ValueError: If the provider name is not recognized.
    """
    provider_name = provider_name.lower().strip()
    if provider_name == "openai":
        return OpenAIProvider(api_key=config.openai_api_key, temperature=config.temperature)
    if provider_name == "ollama":
        return OllamaProvider(base_url=config.ollama_base_url, temperature=config.temperature)
    raise ValueError(f"Unknown LLM provider '{provider_name}' (choose from: {', '.join(PROVIDERS)})")


def get_provider_for_config(config: PMXConfig) -> LLMProvider:
    """The configured provider, or the one implied by the model name."""
    return get_provider(config.provider or detect_provider_from_model(config.model), config)


def list_available_providers() -> List[str]:
    return list(PROVIDERS)
