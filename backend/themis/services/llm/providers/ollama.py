"""
Ollama adapter (local inference server).

Wire format: POST {base}/api/chat with stream disabled, sampling parameters
under "options"; POST {base}/api/embeddings. Health check lists tags.
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
    to_provider_error,
    validate_request,
)

logger = get_logger(__name__)

OLLAMA_API_BASE = "http://localhost:11434"


def map_done_reason(data: Dict[str, Any]) -> FinishReason:
    if data.get("done_reason") == "length":
        return FinishReason.LENGTH
    if data.get("done"):
        return FinishReason.STOP
    return FinishReason.ERROR


class OllamaProvider(HTTPProviderMixin):
    provider_name = "ollama"

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.base_url = (config.base_url or OLLAMA_API_BASE).rstrip("/")
        self._transport = transport

    @property
    def name(self) -> str:
        return self.provider_name

    def _build_payload(self, request: LLMRequest) -> Dict[str, Any]:
        params = apply_defaults(request, self.config)
        options: Dict[str, Any] = {
            "temperature": params.temperature,
            "num_predict": params.max_tokens,
            "top_p": params.top_p,
        }
        if params.stop:
            options["stop"] = params.stop
        return {
            "model": self.config.model,
            "messages": [{"role": m.role, "content": m.content} for m in params.messages],
            "stream": False,
            "options": options,
        }

    async def complete(self, request: LLMRequest) -> LLMResponse:
        validate_request(request)
        payload = self._build_payload(request)

        try:
            data = await self._post("/api/chat", payload)
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

        prompt_tokens = int(data.get("prompt_eval_count") or 0)
        completion_tokens = int(data.get("eval_count") or 0)

        return LLMResponse(
            content=(data.get("message") or {}).get("content") or "",
            finish_reason=map_done_reason(data),
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            model=data.get("model") or self.config.model,
            provider=self.name,
        )

    async def embed(self, request: EmbeddingRequest) -> Embedding:
        model = request.model or self.config.model
        try:
            data = await self._post("/api/embeddings", {"model": model, "prompt": request.text})
        except Exception as exc:
            raise to_provider_error(self.name, exc) from exc

        vector = [float(v) for v in data.get("embedding") or []]
        return Embedding(vector=vector, model=model, dimensions=len(vector))

    async def health_check(self) -> bool:
        return await self._probe("/api/tags")
