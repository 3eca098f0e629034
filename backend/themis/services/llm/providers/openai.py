"""
OpenAI adapter.

Wire format: POST {base}/chat/completions and POST {base}/embeddings with a
bearer token. Health check lists models.
"""
from typing import Any, Dict, Optional

import httpx

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

OPENAI_API_BASE = "https://api.openai.com/v1"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "content_filter": FinishReason.CONTENT_FILTER,
}


def map_finish_reason(reason: Optional[str]) -> FinishReason:
    return _FINISH_REASONS.get(reason or "", FinishReason.ERROR)


class OpenAIProvider(HTTPProviderMixin):
    """Chat completions and embeddings against the OpenAI REST API."""

    provider_name = "openai"

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.api_key = self._resolve_api_key(config)
        self.base_url = (config.base_url or self.default_base_url()).rstrip("/")
        self._transport = transport

    @property
    def name(self) -> str:
        return self.provider_name

    def default_base_url(self) -> str:
        return OPENAI_API_BASE

    def _resolve_api_key(self, config: LLMConfig) -> Optional[str]:
        return require_api_key(config, "OpenAI")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _build_payload(self, request: LLMRequest) -> Dict[str, Any]:
        params = apply_defaults(request, self.config)
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [{"role": m.role, "content": m.content} for m in params.messages],
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "top_p": params.top_p,
            "frequency_penalty": params.frequency_penalty,
            "presence_penalty": params.presence_penalty,
        }
        if params.stop:
            payload["stop"] = params.stop
        return payload

    async def complete(self, request: LLMRequest) -> LLMResponse:
        validate_request(request)
        payload = self._build_payload(request)

        try:
            data = await self._post("/chat/completions", payload)
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

        choices = data.get("choices") or []
        if not choices:
            raise to_provider_error(self.name, ValueError("Response contained no choices"))
        choice = choices[0]
        usage = data.get("usage") or {}

        return LLMResponse(
            content=(choice.get("message") or {}).get("content") or "",
            finish_reason=map_finish_reason(choice.get("finish_reason")),
            usage=TokenUsage(
                prompt_tokens=int(usage.get("prompt_tokens") or 0),
                completion_tokens=int(usage.get("completion_tokens") or 0),
                total_tokens=int(usage.get("total_tokens") or 0),
            ),
            model=data.get("model") or self.config.model,
            provider=self.name,
        )

    async def embed(self, request: EmbeddingRequest) -> Embedding:
        model = request.model or DEFAULT_EMBEDDING_MODEL
        try:
            data = await self._post("/embeddings", {"model": model, "input": request.text})
        except Exception as exc:
            raise to_provider_error(self.name, exc) from exc

        items = data.get("data") or []
        if not items:
            raise to_provider_error(self.name, ValueError("Embedding response contained no data"))
        vector = [float(v) for v in items[0].get("embedding") or []]
        return Embedding(vector=vector, model=data.get("model") or model, dimensions=len(vector))

    async def health_check(self) -> bool:
        return await self._probe("/models")
