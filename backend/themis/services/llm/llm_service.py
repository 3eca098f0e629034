"""
LLMService: the single entry point generation services use to talk to a provider.

Per call:
- estimate tokens for the request (prompt + completion ceiling)
- reserve the estimate against the workspace budget (if a BudgetGuard is set)
- wait for rate limiter capacity (if a RateLimiter is set)
- run the provider call under the retry policy (retryable ProviderErrors only)
- emit a UsageMetrics record, settle the reservation, record metrics and logs

Environment configuration: see themis.core.config.
"""
import inspect
import time
from typing import Awaitable, Callable, Optional, Union

from themis.core.budget import BudgetGuard
from themis.core.config import (
    load_budget_config,
    load_llm_config,
    load_logging_settings,
    load_rate_limit_config,
    load_retry_policy,
)
from themis.core.logging import configure_logging, get_logger, log_context
from themis.core.metrics import (
    record_embedding_request,
    record_llm_error,
    record_llm_request,
    record_llm_tokens,
)
from themis.core.rate_limit import RateLimiter
from themis.core.retry import RetryPolicy, with_retry
from themis.core.tokens import TokenCounter
from themis.models.llm import (
    Embedding,
    EmbeddingRequest,
    LLMConfig,
    LLMRequest,
    LLMResponse,
    UsageMetrics,
)
from themis.services.llm.providers.base import LLMProvider
from themis.services.llm.providers.factory import create_provider

logger = get_logger(__name__)

UsageCallback = Callable[[UsageMetrics], Union[None, Awaitable[None]]]


class LLMService:
    """Provider-agnostic completion and embedding service."""

    def __init__(
        self,
        config: LLMConfig,
        usage_callback: Optional[UsageCallback] = None,
        retry_policy: Optional[RetryPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
        budget_guard: Optional[BudgetGuard] = None,
        provider: Optional[LLMProvider] = None,
    ):
        self.config = config
        self.provider = provider or create_provider(config)
        self.usage_callback = usage_callback
        self.retry_policy = retry_policy or RetryPolicy()
        self.rate_limiter = rate_limiter
        self.budget_guard = budget_guard

    @property
    def provider_name(self) -> str:
        return self.provider.name

    def estimate_tokens(self, request: LLMRequest) -> int:
        completion = request.max_tokens or self.config.max_tokens
        return TokenCounter.estimate_messages(request.messages) + completion

    async def complete(self, request: LLMRequest, workspace_id: Optional[str] = None) -> LLMResponse:
        """
        Run a completion with budget, rate limiting, retry and usage tracking.

        Raises:
            BudgetExceededError: Reservation refused before any call was made
            RequestValidationError: Malformed request
            ProviderError: Last provider failure after retries (retryable flag intact)
        """
        estimated_tokens = self.estimate_tokens(request)

        reservation_id: Optional[str] = None
        if self.budget_guard is not None and workspace_id:
            reservation_id = self.budget_guard.reserve(workspace_id, estimated_tokens)

        start = time.perf_counter()
        try:
            with log_context(workspace_id=workspace_id):
                if self.rate_limiter is not None:
                    await self.rate_limiter.wait_for_capacity(estimated_tokens)

                response = await with_retry(
                    lambda: self.provider.complete(request),
                    self.retry_policy,
                    operation="llm_complete",
                )
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000.0
            if reservation_id is not None:
                self.budget_guard.release(reservation_id)

            record_llm_request(self.provider_name, self.config.model, False, duration_ms)
            record_llm_error(self.provider_name, type(exc).__name__)
            logger.warning(
                "llm_request_failed",
                provider=self.provider_name,
                model=self.config.model,
                workspace_id=workspace_id,
                duration_ms=round(duration_ms, 2),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await self._emit_usage(
                UsageMetrics(
                    provider=self.provider_name,
                    model=self.config.model,
                    duration_ms=duration_ms,
                    success=False,
                    error=str(exc),
                )
            )
            raise
        except BaseException:
            # Cancelled mid-wait or mid-call (e.g. asyncio.wait_for timeout)
            if reservation_id is not None:
                self.budget_guard.release(reservation_id)
            logger.info(
                "llm_request_cancelled",
                provider=self.provider_name,
                model=self.config.model,
                workspace_id=workspace_id,
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000.0
        usage = response.usage
        if reservation_id is not None:
            self.budget_guard.settle(reservation_id, usage.total_tokens)

        record_llm_request(self.provider_name, response.model, True, duration_ms)
        record_llm_tokens(
            self.provider_name,
            response.model,
            usage.prompt_tokens,
            usage.completion_tokens,
        )
        logger.info(
            "llm_request_completed",
            provider=self.provider_name,
            model=response.model,
            workspace_id=workspace_id,
            duration_ms=round(duration_ms, 2),
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            finish_reason=response.finish_reason.value,
        )
        await self._emit_usage(
            UsageMetrics(
                provider=self.provider_name,
                model=response.model,
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
                duration_ms=duration_ms,
                success=True,
            )
        )
        return response

    async def embed(self, request: EmbeddingRequest) -> Embedding:
        try:
            embedding = await with_retry(
                lambda: self.provider.embed(request),
                self.retry_policy,
                operation="llm_embed",
            )
        except Exception as exc:
            record_embedding_request(self.provider_name, False)
            logger.warning(
                "llm_embedding_failed",
                provider=self.provider_name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise
        record_embedding_request(self.provider_name, True)
        return embedding

    async def health_check(self) -> bool:
        return await self.provider.health_check()

    async def _emit_usage(self, metrics: UsageMetrics) -> None:
        if self.usage_callback is None:
            return
        result = self.usage_callback(metrics)
        if inspect.isawaitable(result):
            await result


_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """
    Get global LLMService instance.

    Built from environment configuration on first use (logging, provider,
    retry policy, rate limiter and budget guard).
    """
    global _llm_service
    if _llm_service is None:
        configure_logging(**load_logging_settings())
        config = load_llm_config()
        _llm_service = LLMService(
            config=config,
            retry_policy=load_retry_policy(),
            rate_limiter=RateLimiter(load_rate_limit_config()),
            budget_guard=BudgetGuard(load_budget_config()),
        )
        logger.info(
            "llm_service_initialized",
            provider=config.provider.value,
            model=config.model,
        )
    return _llm_service


def reset_llm_service() -> None:
    """Drop the global instance (tests and config reloads)."""
    global _llm_service
    _llm_service = None
