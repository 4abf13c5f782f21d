import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from branch_graph.config import MEMORY_CACHE_CAPACITY

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    value: Any
    created_at: int
    ttl: int

    def expired(self, now: int) -> bool:
        return now - self.created_at > self.ttl


class MemoryCache:
    """Short-lived key -> value cache with per-entry TTL (milliseconds)."""

    def __init__(self, capacity: int = MEMORY_CACHE_CAPACITY, clock: Callable[[], int] = now_ms):
        self.capacity = capacity
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self.clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: int) -> None:
        if key in self._entries:
            # Replacing keeps capacity unchanged; re-insert so it counts as newest
            del self._entries[key]
        elif len(self._entries) >= self.capacity and self._entries:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            logger.debug(f"Memory cache full, evicted oldest entry: {oldest_key}")

        self._entries[key] = CacheEntry(value=value, created_at=self.clock(), ttl=ttl)

    def invalidate(self, pattern: Optional[str] = None) -> None:
        if not pattern:
            self._entries.clear()
            return
        for key in [k for k in self._entries if pattern in k]:
            del self._entries[key]
