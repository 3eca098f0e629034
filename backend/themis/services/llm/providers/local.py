"""
Adapter for self-hosted OpenAI-compatible servers (vLLM, llama.cpp, LM Studio).

Same wire format as OpenAI; the API key is optional.
"""
from typing import Optional

from themis.models.llm import LLMConfig
from themis.services.llm.providers.openai import OpenAIProvider

LOCAL_API_BASE = "http://localhost:8000/v1"


class LocalProvider(OpenAIProvider):
    provider_name = "local"

    def default_base_url(self) -> str:
        return LOCAL_API_BASE

    def _resolve_api_key(self, config: LLMConfig) -> Optional[str]:
        return config.api_key
