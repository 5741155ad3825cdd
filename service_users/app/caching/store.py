"""
Cache store contract consumed by the cache-aside coordinator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


USERS_NAMESPACE = "users"
ALL_USERS_NAMESPACE = "all-users"
ALL_USERS_KEY = "all"


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache read.

    ``found`` distinguishes a stored ``None`` (a negative-result tombstone)
    from a key that is not cached at all.
    """

    found: bool
    value: Any = None


CACHE_MISS = CacheLookup(found=False)


class CacheStore(ABC):
    """Namespaced key-value store with per-key TTL.

    Implementations raise ``CacheUnavailableError`` when the store cannot be
    reached or an operation exceeds its I/O timeout; they never report an
    outage as a miss. Values must be JSON-serializable.
    """

    def __init__(self, key_prefix: str = "users-api"):
        self.key_prefix = key_prefix

    def make_key(self, namespace: str, key: str) -> str:
        return f"{self.key_prefix}:{namespace}:{key}"

    def namespace_pattern(self, namespace: str) -> str:
        return f"{self.key_prefix}:{namespace}:*"

    @abstractmethod
    async def get(self, namespace: str, key: str) -> CacheLookup:
        """Return the cached value for ``key`` or ``CACHE_MISS``."""

    @abstractmethod
    async def put(self, namespace: str, key: str, value: Any, ttl: int) -> None:
        """Store ``value`` for ``ttl`` seconds, overwriting any existing entry."""

    @abstractmethod
    async def evict(self, namespace: str, key: str) -> None:
        """Remove one entry; evicting an absent key is not an error."""

    @abstractmethod
    async def evict_namespace(self, namespace: str) -> int:
        """Remove every entry in ``namespace`` and return how many were removed."""

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the store is reachable."""

    async def close(self) -> None:
        """Release connections held by the store."""
