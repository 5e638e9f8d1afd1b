"""
MemeStudio Backend - Freshness Cache
=====================================

What:  Process-local, time-bounded cache of template listing snapshots.
How:   One entry per filter signature `(search, category, sort)`. An entry is
       served while `clock() - refreshed_at < ttl`; after that it is a miss
       and is dropped. Nothing evicts an entry on write: creating, approving
       or counting on a template leaves cached snapshots as they are, so a
       listing can be up to `ttl` seconds stale.

Concurrency:
    No lock. `refresh()` replaces an entry with a single dict assignment, so
    readers observe either the previous or the new snapshot, never a mix.
    Each uvicorn worker holds its own cache.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, NamedTuple, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FilterSignature(NamedTuple):
    """Normalized cache key for a listing request."""
    search: Optional[str]
    category: Optional[str]
    sort: str


def filter_signature(
    search: Optional[str],
    category: Optional[str],
    sort: str,
) -> FilterSignature:
    """Blank filters collapse to None; category is case-insensitive."""
    search = (search or "").strip() or None
    category = (category or "").strip().lower() or None
    return FilterSignature(search=search, category=category, sort=sort)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: Tuple[T, ...]
    refreshed_at: float


class FreshnessCache(Generic[T]):
    """
    TTL cache keyed by filter signature.

    Args:
        ttl:   Freshness window in seconds. 0 disables caching.
        clock: Monotonic time source; tests inject a controllable one.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry[T]] = {}

    def read(self, key: Hashable) -> Optional[Tuple[T, ...]]:
        """Return the snapshot for `key` if it is still fresh, else None."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        age = self._clock() - entry.refreshed_at
        if age < self.ttl:
            return entry.data

        # Stale: drop so abandoned filter keys do not accumulate
        self._entries.pop(key, None)
        logger.debug("Cache entry expired after %.1fs: %s", age, key)
        return None

    def refresh(self, key: Hashable, data: Sequence[T]) -> None:
        """Replace the entry for `key` unconditionally."""
        self._entries[key] = CacheEntry(data=tuple(data), refreshed_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
