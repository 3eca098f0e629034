"""
Anthropic adapter.

Wire format: POST {base}/messages with x-api-key and anthropic-version
headers. System messages are hoisted into the top-level "system" field.
Anthropic exposes no embeddings endpoint.
"""
from typing import Any, Dict, List, Optional

import httpx

from themis.core.errors import UnsupportedCapabilityError
from themis.core.logging import get_logger
from themis.models.llm import (
    Embedding,
    EmbeddingRequest,
    FinishReason,
    LLMConfig,
    LLMRequest,
    LLMResponse,
    TokenUsage,
)
from themis.services.llm.providers.base import (
    HTTPProviderMixin,
    apply_defaults,
    require_api_key,
    to_provider_error,
    validate_request,
)

logger = get_logger(__name__)

ANTHROPIC_API_BASE = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"

_STOP_REASONS = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
    "refusal": FinishReason.CONTENT_FILTER,
}


def map_stop_reason(reason: Optional[str]) -> FinishReason:
    return _STOP_REASONS.get(reason or "", FinishReason.ERROR)


class AnthropicProvider(HTTPProviderMixin):
    provider_name = "anthropic"

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.api_key = require_api_key(config, "Anthropic")
        self.base_url = (config.base_url or ANTHROPIC_API_BASE).rstrip("/")
        self._transport = transport

    @property
    def name(self) -> str:
        return self.provider_name

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def _build_payload(self, request: LLMRequest) -> Dict[str, Any]:
        params = apply_defaults(request, self.config)

        system_parts: List[str] = []
        messages: List[Dict[str, str]] = []
        for message in params.messages:
            if message.role == "system":
                system_parts.append(message.content)
            else:
                messages.append({"role": message.role, "content": message.content})

        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": params.max_tokens,
            "temperature": params.temperature,
            "top_p": params.top_p,
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        if params.stop:
            payload["stop_sequences"] = params.stop
        return payload

    async def complete(self, request: LLMRequest) -> LLMResponse:
        validate_request(request)
        payload = self._build_payload(request)

        try:
            data = await self._post("/messages", payload)
        except Exception as exc:
            error = to_provider_error(self.name, exc)
            logger.warning(
                "provider_completion_failed",
                provider=self.name,
                model=self.config.model,
                error=str(error),
                retryable=error.retryable,
            )
            raise error from exc

        text = "".join(
            block.get("text", "")
            for block in data.get("content") or []
            if block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        input_tokens = int(usage.get("input_tokens") or 0)
        output_tokens = int(usage.get("output_tokens") or 0)

        return LLMResponse(
            content=text,
            finish_reason=map_stop_reason(data.get("stop_reason")),
            usage=TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
            model=data.get("model") or self.config.model,
            provider=self.name,
        )

    async def embed(self, request: EmbeddingRequest) -> Embedding:
        raise UnsupportedCapabilityError(self.name, "embeddings")

    async def health_check(self) -> bool:
        """Send a 1-token message; Anthropic has no cheaper liveness endpoint."""
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": "ping"}],
            "max_tokens": 1,
        }
        try:
            await self._post("/messages", payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "provider_health_check_failed",
                provider=self.name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False
        return True
