"""
Budget guard: token usage ceilings per workspace and globally.

Usage is kept as append-only records (tokens, timestamp) in a global ledger and
one ledger per workspace. Records older than 30 days are pruned on every
access. Windows:
- daily: last 24 hours (global ceiling and per-workspace ceiling)
- monthly: last 30 days (optional per-workspace ceiling)

check_budget() is a read-only probe. reserve() is the atomic check-and-reserve
used by LLMService: the estimate is booked under the same lock that checked it,
then settle() swaps in the actual usage once the call completes.
"""
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from themis.core.errors import BudgetExceededError
from themis.core.logging import get_logger
from themis.core.metrics import record_budget_rejection, update_budget_usage
from themis.models.llm import UsageMetrics

logger = get_logger(__name__)

DAY = timedelta(days=1)
RETENTION = timedelta(days=30)


@dataclass(frozen=True)
class BudgetConfig:
    daily_token_budget: int = 1_000_000
    workspace_token_budget: int = 100_000
    workspace_monthly_token_budget: Optional[int] = None


@dataclass
class UsageRecord:
    tokens: int
    timestamp: datetime
    workspace_id: str
    reservation_id: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BudgetGuard:
    """Tracks token usage and enforces daily/monthly ceilings."""

    def __init__(self, config: BudgetConfig, now: Callable[[], datetime] = _utcnow):
        self.config = config
        self._now = now
        self._lock = threading.Lock()
        self._global_usage: List[UsageRecord] = []
        self._workspace_usage: Dict[str, List[UsageRecord]] = {}
        self._reservations: Dict[str, UsageRecord] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def check_budget(self, workspace_id: str, estimated_tokens: int) -> bool:
        """Return True if estimated_tokens fits under every ceiling. Reserves nothing."""
        with self._lock:
            self._clean_old_records()
            return self._exceeded_scope(workspace_id, estimated_tokens) is None

    def reserve(self, workspace_id: str, estimated_tokens: int) -> str:
        """
        Atomically check the budget and book estimated_tokens against it.

        Returns:
            Reservation id to pass to settle() or release().

        Raises:
            BudgetExceededError if any ceiling would be exceeded.
        """
        with self._lock:
            self._clean_old_records()
            scope = self._exceeded_scope(workspace_id, estimated_tokens)
            if scope is not None:
                remaining = self._remaining(workspace_id)
                record_budget_rejection(scope)
                logger.warning(
                    "budget_exceeded",
                    workspace_id=workspace_id,
                    scope=scope,
                    estimated_tokens=estimated_tokens,
                    remaining=remaining,
                )
                raise BudgetExceededError(
                    workspace_id,
                    estimated_tokens,
                    min(remaining["global"], remaining["workspace"]),
                )

            reservation_id = str(uuid.uuid4())
            record = UsageRecord(
                tokens=estimated_tokens,
                timestamp=self._now(),
                workspace_id=workspace_id,
                reservation_id=reservation_id,
            )
            self._append(record)
            self._reservations[reservation_id] = record
            return reservation_id

    def settle(self, reservation_id: str, actual_tokens: int) -> None:
        """Replace a reservation's estimate with the tokens actually consumed."""
        with self._lock:
            record = self._reservations.pop(reservation_id, None)
            if record is None:
                logger.warning("budget_reservation_unknown", reservation_id=reservation_id)
                return
            record.tokens = actual_tokens
            record.reservation_id = None
            self._publish_usage(record.workspace_id)

    def release(self, reservation_id: str) -> None:
        """Drop a reservation entirely (the call never consumed tokens)."""
        self.settle(reservation_id, 0)

    def record_usage(self, workspace_id: str, usage: UsageMetrics) -> None:
        """Append the actual consumption of a completed call."""
        record = UsageRecord(
            tokens=usage.total_tokens,
            timestamp=usage.timestamp,
            workspace_id=workspace_id,
        )
        with self._lock:
            self._append(record)
            self._publish_usage(workspace_id)

    def get_usage(self, workspace_id: str, period: str = "daily") -> int:
        """Tokens used by a workspace in the 'daily' or 'monthly' window."""
        if period not in ("daily", "monthly"):
            raise ValueError(f"Unknown budget period: {period}")
        with self._lock:
            self._clean_old_records()
            return self._workspace_window(workspace_id, period)

    def get_remaining_budget(self, workspace_id: str) -> Dict[str, int]:
        """Remaining daily tokens, globally and for the workspace (never negative)."""
        with self._lock:
            self._clean_old_records()
            return self._remaining(workspace_id)

    # ------------------------------------------------------------------
    # Internals (callers hold the lock)
    # ------------------------------------------------------------------

    def _append(self, record: UsageRecord) -> None:
        self._global_usage.append(record)
        self._workspace_usage.setdefault(record.workspace_id, []).append(record)

    def _exceeded_scope(self, workspace_id: str, estimated_tokens: int) -> Optional[str]:
        if self._daily_global() + estimated_tokens > self.config.daily_token_budget:
            return "global"
        if self._workspace_window(workspace_id, "daily") + estimated_tokens > self.config.workspace_token_budget:
            return "workspace"
        monthly = self.config.workspace_monthly_token_budget
        if monthly is not None and self._workspace_window(workspace_id, "monthly") + estimated_tokens > monthly:
            return "monthly"
        return None

    def _remaining(self, workspace_id: str) -> Dict[str, int]:
        return {
            "global": max(0, self.config.daily_token_budget - self._daily_global()),
            "workspace": max(
                0,
                self.config.workspace_token_budget - self._workspace_window(workspace_id, "daily"),
            ),
        }

    def _daily_global(self) -> int:
        cutoff = self._now() - DAY
        return sum(r.tokens for r in self._global_usage if r.timestamp >= cutoff)

    def _workspace_window(self, workspace_id: str, period: str) -> int:
        cutoff = self._now() - (DAY if period == "daily" else RETENTION)
        records = self._workspace_usage.get(workspace_id, [])
        return sum(r.tokens for r in records if r.timestamp >= cutoff)

    def _publish_usage(self, workspace_id: str) -> None:
        update_budget_usage("global", self._daily_global())
        update_budget_usage("workspace", self._workspace_window(workspace_id, "daily"))

    def _clean_old_records(self) -> None:
        """Remove records older than 30 days; open reservations are kept."""
        cutoff = self._now() - RETENTION

        self._global_usage = [
            r for r in self._global_usage if r.timestamp >= cutoff or r.reservation_id
        ]
        for workspace_id in list(self._workspace_usage):
            kept = [
                r for r in self._workspace_usage[workspace_id]
                if r.timestamp >= cutoff or r.reservation_id
            ]
            if kept:
                self._workspace_usage[workspace_id] = kept
            else:
                del self._workspace_usage[workspace_id]
