# query_cache.py
"""Time-to-live cache of final query responses."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from findings_assistant.core import settings

logger = logging.getLogger(__name__)


def normalize_query(text: str) -> str:
    """Cache key: trimmed, lowercased query text"""
    return text.strip().lower()


@dataclass
class CachedResult:
    key: str
    result: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class QueryCache:
    """Exact-match response cache with lazy expiry and sweep-on-write.

    Owned by whoever builds the router; one instance per application.
    """

    def __init__(
        self,
        default_ttl: float = settings.CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CachedResult] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, query_text: str) -> Optional[Any]:
        key = normalize_query(query_text)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(now):
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return entry.result

    def put(self, query_text: str, result: Any, ttl: Optional[float] = None) -> None:
        key = normalize_query(query_text)
        now = self._clock()
        with self._lock:
            self._sweep_locked(now)
            self._entries[key] = CachedResult(
                key=key,
                result=result,
                stored_at=now,
                ttl=self.default_ttl if ttl is None else ttl,
            )

    def sweep(self) -> int:
        """Drop expired entries; returns how many were removed"""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / lookups if lookups else 0.0,
                "default_ttl": self.default_ttl,
            }
