"""
Redis-backed cache store.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, List, Optional, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import CacheUnavailableError
from shared.logging import get_logger

from .store import CACHE_MISS, CacheLookup, CacheStore


T = TypeVar("T")

_SCAN_BATCH = 500


class RedisCacheStore(CacheStore):
    """Cache store over a shared Redis instance.

    Every command is bounded by ``io_timeout`` both at the socket level and
    with ``asyncio.wait_for`` so a stalled server cannot hold a request.
    """

    def __init__(
        self,
        redis_url: str,
        *,
        key_prefix: str = "users-api",
        io_timeout: float = 1.0,
        client: Optional[redis.Redis] = None,
    ) -> None:
        super().__init__(key_prefix)
        self.redis_url = redis_url
        self.io_timeout = io_timeout
        self.logger = get_logger("users.cache.redis")
        self._redis = client or redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=io_timeout,
            socket_timeout=io_timeout,
            health_check_interval=30,
        )

    async def close(self) -> None:
        await self._redis.aclose()

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.io_timeout)
        except (RedisError, asyncio.TimeoutError, OSError) as exc:
            raise CacheUnavailableError(operation, str(exc) or type(exc).__name__) from exc

    async def get(self, namespace: str, key: str) -> CacheLookup:
        cache_key = self.make_key(namespace, key)
        raw = await self._bounded("get", self._redis.get(cache_key))
        if raw is None:
            return CACHE_MISS

        try:
            return CacheLookup(found=True, value=json.loads(raw))
        except json.JSONDecodeError:
            self.logger.warning("Discarding malformed cache payload", key=cache_key)
            await self._bounded("evict", self._redis.delete(cache_key))
            return CACHE_MISS

    async def put(self, namespace: str, key: str, value: Any, ttl: int) -> None:
        cache_key = self.make_key(namespace, key)
        payload = json.dumps(value)
        await self._bounded("put", self._redis.set(cache_key, payload, ex=ttl))
        self.logger.debug("Cached value", key=cache_key, ttl=ttl)

    async def evict(self, namespace: str, key: str) -> None:
        await self._bounded("evict", self._redis.delete(self.make_key(namespace, key)))

    async def evict_namespace(self, namespace: str) -> int:
        return await self._bounded("evict_namespace", self._delete_matching(self.namespace_pattern(namespace)))

    async def _delete_matching(self, pattern: str) -> int:
        # SCAN instead of KEYS so a large namespace does not block the server
        removed = 0
        batch: List[str] = []
        async for cache_key in self._redis.scan_iter(match=pattern, count=_SCAN_BATCH):
            batch.append(cache_key)
            if len(batch) >= _SCAN_BATCH:
                removed += await self._redis.delete(*batch)
                batch = []
        if batch:
            removed += await self._redis.delete(*batch)
        return removed

    async def ping(self) -> bool:
        try:
            return bool(await self._bounded("ping", self._redis.ping()))
        except CacheUnavailableError as exc:
            self.logger.error("Redis health check failed", error=str(exc))
            return False
