"""
Provider capability contract and helpers shared by every adapter.

Adapters talk to vendor REST APIs over httpx (no vendor SDKs) and:
- validate the request (non-empty messages, temperature in [0, 2], positive max_tokens)
- apply LLMConfig defaults
- translate to the vendor wire format and map finish reasons to FinishReason
- convert transport/HTTP failures into ProviderError with a retryable flag

Adapters never retry; LLMService owns the single retry policy.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from themis.core.errors import ConfigurationError, ProviderError, RequestValidationError
from themis.core.logging import get_logger
from themis.models.llm import (
    Embedding,
    EmbeddingRequest,
    LLMConfig,
    LLMMessage,
    LLMRequest,
    LLMResponse,
)

logger = get_logger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1500


@runtime_checkable
class LLMProvider(Protocol):
    """Capability set every provider variant implements."""

    config: LLMConfig

    @property
    def name(self) -> str:
        ...

    async def complete(self, request: LLMRequest) -> LLMResponse:
        ...

    async def embed(self, request: EmbeddingRequest) -> Embedding:
        ...

    async def health_check(self) -> bool:
        ...


@dataclass(frozen=True)
class ResolvedParams:
    """Request parameters after config defaults have been applied."""
    messages: List[LLMMessage]
    temperature: float
    max_tokens: int
    top_p: float
    frequency_penalty: float
    presence_penalty: float
    stop: Optional[List[str]]


def validate_request(request: LLMRequest) -> None:
    """
    Reject malformed requests before anything is sent.

    Raises:
        RequestValidationError
    """
    if not request.messages:
        raise RequestValidationError("Request must contain at least one message")

    if request.temperature is not None and not 0.0 <= request.temperature <= 2.0:
        raise RequestValidationError("Temperature must be between 0 and 2")

    if request.max_tokens is not None and request.max_tokens <= 0:
        raise RequestValidationError("Max tokens must be positive")


def apply_defaults(request: LLMRequest, config: LLMConfig) -> ResolvedParams:
    temperature = request.temperature
    if temperature is None:
        temperature = config.temperature if config.temperature is not None else DEFAULT_TEMPERATURE

    max_tokens = request.max_tokens
    if max_tokens is None:
        max_tokens = config.max_tokens or DEFAULT_MAX_TOKENS

    return ResolvedParams(
        messages=list(request.messages),
        temperature=temperature,
        max_tokens=max_tokens,
        top_p=request.top_p if request.top_p is not None else 1.0,
        frequency_penalty=request.frequency_penalty or 0.0,
        presence_penalty=request.presence_penalty or 0.0,
        stop=request.stop,
    )


def to_provider_error(provider: str, exc: Exception) -> ProviderError:
    """
    Convert any adapter failure into a ProviderError.

    HTTP status errors keep their status code; the retryable flag is derived
    from the message signature (429, 5xx, timeout, network, rate limit).
    """
    if isinstance(exc, ProviderError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        detail = _error_detail(exc.response)
        message = f"HTTP {status}: {detail}" if detail else f"HTTP {status}"
        return ProviderError(provider, message, status_code=status)

    if isinstance(exc, httpx.TimeoutException):
        return ProviderError(provider, f"Request timeout: {exc}", retryable=True)

    if isinstance(exc, httpx.TransportError):
        return ProviderError(provider, f"Network error: {exc}", retryable=True)

    return ProviderError(provider, str(exc) or type(exc).__name__)


def _error_detail(response: httpx.Response) -> str:
    """Best-effort extraction of a vendor error message."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        return str(error)
    return ""


class HTTPProviderMixin:
    """
    Low-level HTTP helpers for adapters.

    A transport can be injected (httpx.MockTransport in tests); otherwise
    httpx's default transport is used.
    """

    config: LLMConfig
    base_url: str
    _transport: Optional[httpx.AsyncBaseTransport] = None

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )

    async def _post(self, path: str, json_payload: Dict[str, Any]) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post(path, headers=self._headers(), json=json_payload)
        response.raise_for_status()
        return response.json()

    async def _get(self, path: str) -> httpx.Response:
        async with self._client() as client:
            return await client.get(path, headers=self._headers())

    async def _probe(self, path: str) -> bool:
        """GET path and report whether it answered 2xx; any failure counts as unhealthy."""
        try:
            response = await self._get(path)
        except httpx.HTTPError as exc:
            logger.warning(
                "provider_health_check_failed",
                base_url=self.base_url,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False
        return response.is_success


def require_api_key(config: LLMConfig, provider: str) -> str:
    if not config.api_key:
        raise ConfigurationError(f"{provider} API key is required")
    return config.api_key


__all__ = [
    "LLMProvider",
    "ResolvedParams",
    "HTTPProviderMixin",
    "apply_defaults",
    "require_api_key",
    "to_provider_error",
    "validate_request",
]
