"""
Cache module for AgentRadar.

The pipeline caches high-scoring alerts for a short time so dashboards can
read them without hitting Supabase. Caching is best-effort: the pipeline
runs the same with no cache at all.
"""

import time
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Cache(ABC):
    """Key/value store with per-entry TTL."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        pass


class MemoryCache(Cache):
    """
    In-process TTL cache.

    Expired entries are dropped lazily on read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._entries[key] = (self._clock() + ttl_seconds, value)

    def __len__(self) -> int:
        return len(self._entries)


def alert_cache_key(alert_id: str) -> str:
    return f"estate_alert:{alert_id}"
