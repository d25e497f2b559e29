"""Distributed cache tier protocol.

Defines the interface for the shared, out-of-process tier consulted by
``CacheService`` after its local tier misses.

Implementations can include:
- Redis (default)
- Memcached
- Any key/value store with per-key expiry and key scanning
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DistributedCacheTier(Protocol):
    """Protocol for the shared cache tier.

    Values are JSON-compatible payloads. Implementations may raise on
    transport failures; ``CacheService`` treats any failure as a miss and
    keeps serving from its local tier.
    """

    async def get(self, key: str) -> Any | None:
        """Fetch a value, refreshing its sliding window.

        Args:
            key: The cache key

        Returns:
            The stored payload, or None if absent or expired
        """
        ...

    async def set(
        self,
        key: str,
        value: Any,
        absolute_ttl: float | None,
        sliding_ttl: float | None,
    ) -> None:
        """Store a value.

        Args:
            key: The cache key
            value: JSON-compatible payload
            absolute_ttl: Seconds until hard expiry, or None
            sliding_ttl: Idle seconds until expiry, or None
        """
        ...

    async def delete(self, key: str) -> bool:
        """Delete one key.

        Returns:
            True if the key existed
        """
        ...

    async def keys(self, pattern: str) -> list[str]:
        """List stored keys matching a glob pattern."""
        ...

    async def health_check(self) -> bool:
        """Check if the tier is reachable."""
        ...
