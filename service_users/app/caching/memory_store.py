"""
In-process cache store for local development and single-replica deployments.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, Tuple

from shared.logging import get_logger

from .store import CACHE_MISS, CacheLookup, CacheStore


class InMemoryCacheStore(CacheStore):
    """TTL cache held in a dict owned by the current event loop.

    Values are kept as JSON text so callers never share mutable state with
    the cache, matching what a remote store would hand back.
    """

    def __init__(self, *, key_prefix: str = "users-api", clock: Callable[[], float] = time.monotonic):
        super().__init__(key_prefix)
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self.logger = get_logger("users.cache.memory")

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._entries)

    def __contains__(self, cache_key: str) -> bool:
        return self._live(cache_key) is not None

    def _live(self, cache_key: str):
        entry = self._entries.get(cache_key)
        if entry is None:
            return None
        payload, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[cache_key]
            return None
        return payload

    def _purge_expired(self) -> None:
        now = self._clock()
        for cache_key in [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]:
            del self._entries[cache_key]

    async def get(self, namespace: str, key: str) -> CacheLookup:
        payload = self._live(self.make_key(namespace, key))
        if payload is None:
            return CACHE_MISS
        return CacheLookup(found=True, value=json.loads(payload))

    async def put(self, namespace: str, key: str, value: Any, ttl: int) -> None:
        self._entries[self.make_key(namespace, key)] = (json.dumps(value), self._clock() + ttl)

    async def evict(self, namespace: str, key: str) -> None:
        self._entries.pop(self.make_key(namespace, key), None)

    async def evict_namespace(self, namespace: str) -> int:
        prefix = self.namespace_pattern(namespace)[:-1]
        doomed = [cache_key for cache_key in self._entries if cache_key.startswith(prefix)]
        for cache_key in doomed:
            del self._entries[cache_key]
        return len(doomed)

    async def ping(self) -> bool:
        return True
