"""
User caching package.

Cache stores (Redis, in-process), the per-namespace TTL policy, and the
cache-aside coordinator that keeps them consistent with the backing store.
Writes only ever evict; entries are created by read misses alone.
"""

from .coordinator import CacheAsideCoordinator, EvictionReport
from .memory_store import InMemoryCacheStore
from .policy import CachePolicy
from .redis_store import RedisCacheStore
from .store import ALL_USERS_KEY, ALL_USERS_NAMESPACE, USERS_NAMESPACE, CacheLookup, CacheStore

__all__ = [
    "ALL_USERS_KEY",
    "ALL_USERS_NAMESPACE",
    "USERS_NAMESPACE",
    "CacheAsideCoordinator",
    "CacheLookup",
    "CachePolicy",
    "CacheStore",
    "EvictionReport",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
