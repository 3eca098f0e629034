"""
Retry utility with exponential backoff for transient failures.

delay before attempt n+1 = delay_seconds * backoff_multiplier ** (n - 1)

There is no overall deadline beyond max_attempts; callers needing one wrap
the call in asyncio.wait_for.
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from themis.core.errors import ProviderError
from themis.core.logging import get_logger
from themis.core.metrics import record_llm_retry

logger = get_logger(__name__)

T = TypeVar("T")


def is_retryable_error(error: BaseException) -> bool:
    """Default predicate: only provider errors flagged as retryable are retried."""
    return isinstance(error, ProviderError) and error.retryable


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    delay_seconds: float = 1.0
    backoff_multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return self.delay_seconds * (self.backoff_multiplier ** (attempt - 1))


async def with_retry(
    func: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    operation: str = "llm",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Call func until it succeeds, the predicate rejects the error, or attempts run out.

    Args:
        func: Zero-argument coroutine factory, called once per attempt
        policy: Attempt count and backoff parameters
        should_retry: Predicate for "is this error worth another attempt"
                      (defaults to is_retryable_error)
        operation: Label used for logs and metrics
        sleep: Suspension function between attempts (injectable for tests)

    Raises:
        The last error raised by func, unchanged.
    """
    predicate = should_retry or is_retryable_error
    attempt = 1

    while True:
        try:
            return await func()
        except Exception as exc:
            if attempt >= policy.max_attempts or not predicate(exc):
                raise

            delay = policy.delay_for(attempt)
            record_llm_retry(operation)
            logger.warning(
                "retry_attempt_failed",
                operation=operation,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                retry_delay=round(delay, 3),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await sleep(delay)
            attempt += 1
