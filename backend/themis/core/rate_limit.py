"""
Token-bucket rate limiter for outbound LLM calls.

Two independent buckets:
- requests per minute
- tokens per minute

Both refill continuously in proportion to elapsed time and are capped at their
configured capacity. A request is admitted only if both buckets can cover it;
the check-and-decrement happens under one lock so concurrent callers cannot
overdraw the buckets.
"""
import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from themis.core.logging import get_logger
from themis.core.metrics import record_rate_limit_wait

logger = get_logger(__name__)

POLL_INTERVAL_SECONDS = 0.1
SECONDS_PER_MINUTE = 60.0


@dataclass(frozen=True)
class RateLimiterConfig:
    requests_per_minute: float = 60.0
    tokens_per_minute: float = 90_000.0


class RateLimiter:
    """Dual token bucket shared by every call made through one LLMService."""

    def __init__(
        self,
        config: RateLimiterConfig,
        clock: Callable[[], float] = time.monotonic,
        poll_interval_seconds: float = POLL_INTERVAL_SECONDS,
    ):
        self.config = config
        self._clock = clock
        self.poll_interval_seconds = poll_interval_seconds
        self._lock = threading.Lock()
        self._request_tokens = float(config.requests_per_minute)
        self._token_bucket = float(config.tokens_per_minute)
        self._last_refill = clock()

    def _refill(self) -> None:
        """
        Refill both buckets based on elapsed time.

        Must be called while holding the lock.
        """
        now = self._clock()
        elapsed_minutes = max(0.0, now - self._last_refill) / SECONDS_PER_MINUTE
        self._request_tokens = min(
            self.config.requests_per_minute,
            self._request_tokens + elapsed_minutes * self.config.requests_per_minute,
        )
        self._token_bucket = min(
            self.config.tokens_per_minute,
            self._token_bucket + elapsed_minutes * self.config.tokens_per_minute,
        )
        self._last_refill = now

    def check_request(self, estimated_tokens: int) -> bool:
        """
        Admit one request of estimated_tokens if both buckets have capacity.

        Returns:
            True if admitted (both buckets decremented), False otherwise (state untouched).
        """
        with self._lock:
            self._refill()
            if self._request_tokens >= 1 and self._token_bucket >= estimated_tokens:
                self._request_tokens -= 1
                self._token_bucket -= estimated_tokens
                return True
            return False

    async def wait_for_capacity(self, estimated_tokens: int) -> None:
        """
        Suspend until the request is admitted.

        Polls on a fixed interval and never times out; wrap in asyncio.wait_for
        when a deadline is needed. A request larger than tokens_per_minute can
        never be admitted and will wait forever.
        """
        if self.check_request(estimated_tokens):
            return

        record_rate_limit_wait()
        logger.info(
            "rate_limit_waiting",
            estimated_tokens=estimated_tokens,
            capacity=self.get_capacity(),
        )
        while not self.check_request(estimated_tokens):
            await asyncio.sleep(self.poll_interval_seconds)

    def get_capacity(self) -> Dict[str, int]:
        """Current (floored) capacity of both buckets."""
        with self._lock:
            self._refill()
            return {
                "requests": int(self._request_tokens),
                "tokens": int(self._token_bucket),
            }
