"""
In-process TTL cache.

Used to avoid redundant LLM calls for identical inputs (e.g. embeddings of
unchanged initiative text). Expired entries are dropped when read and swept
on every write; an optional max_entries cap evicts the oldest insertions.
"""
import hashlib
import threading
import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar, Union

from themis.core.logging import get_logger

logger = get_logger(__name__)

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 60 * 60  # 1h
DEFAULT_MAX_ENTRIES = 10_000


def hash_text(text: str) -> str:
    """Generate a stable hash for text (for cache keys)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class TTLCache(Generic[V]):
    """Dictionary with per-entry expiry."""

    def __init__(
        self,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = DEFAULT_MAX_ENTRIES,
    ):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.default_ttl_seconds = default_ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._store: Dict[str, Tuple[V, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: V, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._store.pop(key, None)
            if self.max_entries is not None:
                while len(self._store) >= self.max_entries:
                    oldest = next(iter(self._store))
                    del self._store[oldest]
                    logger.debug("cache_entry_evicted", key=oldest)
            self._store[key] = (value, now + ttl)

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._store.items() if now > expires_at]
        for key in expired:
            del self._store[key]

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    @staticmethod
    def generate_key(*parts: Optional[Union[str, int, float, bool]]) -> str:
        """Join the non-None parts with ':' (e.g. generate_key("embed", model, digest))."""
        return ":".join(str(p) for p in parts if p is not None)
