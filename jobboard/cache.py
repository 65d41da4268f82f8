"""
In-process TTL cache for job records.

Bounded key/value store with per-entry time-to-live. Expiry is lazy: an
expired entry stays in place until it is read through ``get``, overwritten,
or evicted, so a stale copy remains available as a fallback when the remote
store is down. Eviction follows insertion order; reads do not refresh an
entry's position.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .logger import StructuredLogger, get_logger

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_MAX_SIZE = 50


class _Missing:
    """Sentinel for "no entry", distinct from a cached ``None``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "MISSING"


MISSING: Any = _Missing()


@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float


class TTLCache:
    """
    Bounded cache with lazy TTL expiry and insertion-order eviction.

    Args:
        ttl: Seconds an entry stays fresh
        max_size: Maximum number of entries held
        stale_after: Optional age in seconds after which a fresh entry is
            considered due for a background refresh
        clock: Monotonic clock returning seconds
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
        stale_after: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[StructuredLogger] = None,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl = ttl
        self.max_size = max_size
        self.stale_after = stale_after
        self.clock = clock
        self.logger = logger or get_logger()
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at < self.ttl

    def get(self, key: str) -> Any:
        """Return the value if present and fresh, else MISSING.

        An expired entry is removed as a side effect.
        """
        entry = self._entries.get(key)
        if entry is None:
            return MISSING
        if self._is_fresh(entry, self.clock()):
            return entry.value
        del self._entries[key]
        return MISSING

    def is_fresh(self, key: str) -> bool:
        """Pure freshness check; never removes anything."""
        entry = self._entries.get(key)
        return entry is not None and self._is_fresh(entry, self.clock())

    def get_stale(self, key: str) -> Any:
        """Return the value regardless of age, without touching the entry."""
        entry = self._entries.get(key)
        return MISSING if entry is None else entry.value

    def put(self, key: str, value: Any) -> None:
        if key in self._entries:
            # Overwrite counts as a fresh insert: newest position, new timestamp
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            self.logger.debug("Cache full, evicted oldest entry", key=evicted)
        self._entries[key] = CacheEntry(key=key, value=value, stored_at=self.clock())

    def age(self, key: str) -> Optional[float]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self.clock() - entry.stored_at

    def is_stale(self, key: str) -> bool:
        """True when the entry is absent or older than ``stale_after``."""
        age = self.age(key)
        if age is None:
            return True
        threshold = self.stale_after if self.stale_after is not None else self.ttl
        return age > threshold

    def clear(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        self.logger.info(f"Cleared {removed} cached items")
        return removed

    def health(self) -> Dict[str, Any]:
        """Counts of total/fresh/expired entries plus configuration."""
        now = self.clock()
        fresh = sum(1 for entry in self._entries.values() if self._is_fresh(entry, now))
        total = len(self._entries)
        return {
            "total": total,
            "fresh": fresh,
            "expired": total - fresh,
            "max_size": self.max_size,
            "ttl_seconds": self.ttl,
        }
