"""Provider construction from configuration."""
from typing import Optional

import httpx

from themis.core.errors import ConfigurationError
from themis.models.llm import LLMConfig, ProviderKind
from themis.services.llm.providers.anthropic import AnthropicProvider
from themis.services.llm.providers.base import LLMProvider
from themis.services.llm.providers.local import LocalProvider
from themis.services.llm.providers.ollama import OllamaProvider
from themis.services.llm.providers.openai import OpenAIProvider


def create_provider(
    config: LLMConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> LLMProvider:
    """
    Instantiate the adapter for config.provider.

    Raises:
        ConfigurationError: Unknown provider or missing API key
    """
    if config.provider == ProviderKind.OPENAI:
        return OpenAIProvider(config, transport=transport)
    elif config.provider == ProviderKind.ANTHROPIC:
        return AnthropicProvider(config, transport=transport)
    elif config.provider == ProviderKind.OLLAMA:
        return OllamaProvider(config, transport=transport)
    elif config.provider == ProviderKind.LOCAL:
        return LocalProvider(config, transport=transport)
    raise ConfigurationError(f"Unsupported LLM provider: {config.provider}")
