"""
Provider adapters: one per vendor, all behind the LLMProvider protocol.
"""
from .anthropic import AnthropicProvider
from .base import LLMProvider
from .factory import create_provider
from .local import LocalProvider
from .ollama import OllamaProvider
from .openai import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "LLMProvider",
    "LocalProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "create_provider",
]
