"""Cache entry domain entities."""

from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    """A value held by the local cache tier.

    Expiry is the earlier of the absolute deadline and ``last_accessed``
    plus the sliding window. Times are monotonic-clock seconds.

    Attributes:
        key: Cache key (fingerprint)
        value: JSON-compatible payload
        absolute_expiration: Monotonic time after which the entry is dead
        sliding_expiration: Idle window in seconds, or None
        last_accessed: Monotonic time of the last read or write
    """

    key: str
    value: Any
    absolute_expiration: float | None
    sliding_expiration: float | None
    last_accessed: float

    def expires_at(self) -> float | None:
        deadlines = []
        if self.absolute_expiration is not None:
            deadlines.append(self.absolute_expiration)
        if self.sliding_expiration is not None:
            deadlines.append(self.last_accessed + self.sliding_expiration)
        return min(deadlines) if deadlines else None

    def is_expired(self, now: float) -> bool:
        expires_at = self.expires_at()
        return expires_at is not None and now >= expires_at


@dataclass
class CacheStatistics:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    current_entries: int = 0
    distributed_errors: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total
