"""
Cache-aside coordination between the user cache and the backing store.

Reads consult the cache first and fill it from the store on a miss. Writes
never populate the cache; they only evict. Cache failures are absorbed here
and treated as misses, while backing store failures propagate to the caller:
cached data is never served past its TTL to cover for the store.

Known window: a read that loaded a record just before a concurrent delete
can write it back after the delete's eviction. The stale entry lives at most
one entity TTL.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from shared.errors import CacheUnavailableError
from shared.logging import get_logger

from ..adapters.user_store import UserStore
from ..models import User
from .policy import CachePolicy
from .store import ALL_USERS_KEY, ALL_USERS_NAMESPACE, CACHE_MISS, USERS_NAMESPACE, CacheLookup, CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


T = TypeVar("T")


@dataclass
class EvictionReport:
    """Outcome of a multi-namespace eviction."""

    evicted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    removed: int = 0

    @property
    def complete(self) -> bool:
        return not self.failed


class CacheAsideCoordinator:
    """Lookup-or-populate and invalidation for the ``users`` and ``all-users`` namespaces."""

    def __init__(
        self,
        cache: CacheStore,
        store: UserStore,
        policy: Optional[CachePolicy] = None,
        *,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.cache = cache
        self.store = store
        self.policy = policy or CachePolicy()
        self.metrics = metrics
        self.logger = get_logger("users.cache_aside")
        self._in_flight: Dict[str, "asyncio.Future[Any]"] = {}

    # Single entity path

    async def get_by_key(self, username: str) -> Optional[User]:
        """Return the user for ``username`` or ``None`` when the store has no such record."""
        lookup = await self._cache_get(USERS_NAMESPACE, username)
        if lookup.found:
            if lookup.value is None:
                self._count("cache_hits_total", namespace=USERS_NAMESPACE)
                self.logger.debug("Negative cache hit", username=username)
                return None

            user = self._decode_user(lookup.value)
            if user is not None:
                self._count("cache_hits_total", namespace=USERS_NAMESPACE)
                return user
            await self._discard(USERS_NAMESPACE, username)

        self._count("cache_misses_total", namespace=USERS_NAMESPACE)
        return await self._load_once(USERS_NAMESPACE, username, lambda: self._load_entity(username))

    async def _load_entity(self, username: str) -> Optional[User]:
        self.logger.info("User not cached, querying backing store", username=username)
        self._count("backing_store_reads_total", operation="find")
        user = await self.store.find(username)

        if user is not None:
            ttl = self.policy.ttl_for(USERS_NAMESPACE)
            await self._cache_put(USERS_NAMESPACE, username, user.to_dict(), ttl)
            self.logger.info("User loaded from backing store and cached", username=username)
        elif self.policy.cache_negative_results:
            await self._cache_put(USERS_NAMESPACE, username, None, self.policy.negative_ttl_seconds)
            self.logger.info("User not found in backing store, negative result cached", username=username)
        else:
            self.logger.warning("User not found in backing store", username=username)
        return user

    # Collection path

    async def get_all(self) -> List[User]:
        """Return every user in the order last computed from the backing store."""
        lookup = await self._cache_get(ALL_USERS_NAMESPACE, ALL_USERS_KEY)
        if lookup.found:
            users = self._decode_users(lookup.value)
            if users is not None:
                self._count("cache_hits_total", namespace=ALL_USERS_NAMESPACE)
                return users
            await self._discard(ALL_USERS_NAMESPACE, ALL_USERS_KEY)

        self._count("cache_misses_total", namespace=ALL_USERS_NAMESPACE)
        users = await self._load_once(ALL_USERS_NAMESPACE, ALL_USERS_KEY, self._load_collection)
        return list(users)

    async def _load_collection(self) -> List[User]:
        self.logger.info("User list not cached, enumerating backing store")
        self._count("backing_store_reads_total", operation="find_all")
        users = list(await self.store.find_all())

        # An empty list is only cached on request: it would hide users inserted before the TTL ends
        if users or self.policy.cache_empty_collections:
            await self._cache_put(
                ALL_USERS_NAMESPACE,
                ALL_USERS_KEY,
                [user.to_dict() for user in users],
                self.policy.ttl_for(ALL_USERS_NAMESPACE),
            )
        self.logger.info("User list loaded from backing store", count=len(users))
        return users

    # Invalidation

    async def evict_entity(self, username: str) -> bool:
        """Evict one user entry. Returns False when the cache could not be reached."""
        self._detach_loads(USERS_NAMESPACE, username)
        try:
            await self.cache.evict(USERS_NAMESPACE, username)
        except CacheUnavailableError as exc:
            self._cache_failure(exc, username=username)
            return False

        self._count("cache_evictions_total", namespace=USERS_NAMESPACE)
        self.logger.info("Evicted user from cache", username=username)
        return True

    async def evict_collection(self) -> bool:
        """Evict the cached user list."""
        report = await self._evict_namespaces([ALL_USERS_NAMESPACE])
        return report.complete

    async def evict_all(self) -> EvictionReport:
        """Evict both namespaces.

        Both evictions are always attempted. A namespace that was evicted
        stays evicted when the other one fails; over-evicting is safe.
        """
        report = await self._evict_namespaces([USERS_NAMESPACE, ALL_USERS_NAMESPACE])
        if report.complete:
            self.logger.info("Evicted all user cache namespaces", removed=report.removed)
        else:
            self.logger.error(
                "Partial cache eviction",
                evicted=report.evicted,
                failed=report.failed,
            )
        return report

    async def _evict_namespaces(self, namespaces: List[str]) -> EvictionReport:
        report = EvictionReport()
        for namespace in namespaces:
            self._detach_loads(namespace)
            try:
                report.removed += await self.cache.evict_namespace(namespace)
            except CacheUnavailableError as exc:
                self._cache_failure(exc, namespace=namespace)
                report.failed.append(namespace)
                continue
            self._count("cache_evictions_total", namespace=namespace)
            report.evicted.append(namespace)
        return report

    async def delete_by_key(self, username: str) -> bool:
        """Delete ``username`` from the backing store, then invalidate.

        The collection embeds every user, so it is evicted together with the
        entity entry even when the store had no such record. Returns whether
        the store removed a record.
        """
        deleted = await self.store.delete(username)

        entity_evicted = await self.evict_entity(username)
        collection_evicted = await self.evict_collection()
        if not (entity_evicted and collection_evicted):
            self.logger.error(
                "Cache invalidation after delete incomplete; stale entries expire with their TTL",
                username=username,
                entity_evicted=entity_evicted,
                collection_evicted=collection_evicted,
            )

        self.logger.info("User deleted", username=username, existed=deleted)
        return deleted

    # Internals

    async def _load_once(self, namespace: str, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Run ``loader``, sharing one in-flight load per key when single-flight is on."""
        if not self.policy.single_flight:
            return await loader()

        flight_key = f"{namespace}:{key}"
        pending = self._in_flight.get(flight_key)
        if pending is not None:
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
                # The leading request went away; load independently
                return await loader()

        future: "asyncio.Future[T]" = asyncio.get_running_loop().create_future()
        self._in_flight[flight_key] = future
        try:
            result = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unawaited failure is not reported by the loop
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            # An eviction may already have detached this load and a newer one taken its slot
            if self._in_flight.get(flight_key) is future:
                del self._in_flight[flight_key]

    def _detach_loads(self, namespace: str, key: Optional[str] = None) -> None:
        """Stop later reads from joining loads that started before an invalidation.

        Requests already waiting on a detached load still receive its result.
        """
        if key is not None:
            self._in_flight.pop(f"{namespace}:{key}", None)
            return
        prefix = f"{namespace}:"
        for flight_key in [k for k in self._in_flight if k.startswith(prefix)]:
            del self._in_flight[flight_key]

    async def _cache_get(self, namespace: str, key: str) -> CacheLookup:
        try:
            return await self.cache.get(namespace, key)
        except CacheUnavailableError as exc:
            self._cache_failure(exc, namespace=namespace, key=key)
            return CACHE_MISS

    async def _cache_put(self, namespace: str, key: str, value: Any, ttl: int) -> None:
        try:
            await self.cache.put(namespace, key, value, ttl)
        except CacheUnavailableError as exc:
            self._cache_failure(exc, namespace=namespace, key=key)

    async def _discard(self, namespace: str, key: str) -> None:
        self.logger.warning("Discarding malformed cache entry", namespace=namespace, key=key)
        try:
            await self.cache.evict(namespace, key)
        except CacheUnavailableError as exc:
            self._cache_failure(exc, namespace=namespace, key=key)

    def _cache_failure(self, exc: CacheUnavailableError, **context: Any) -> None:
        self._count("cache_errors_total", operation=exc.operation)
        self.logger.warning("Cache store unavailable, degrading to backing store", error=exc.message, **context)

    def _decode_user(self, payload: Any) -> Optional[User]:
        try:
            return User.from_dict(payload)
        except (KeyError, TypeError, AttributeError):
            return None

    def _decode_users(self, payload: Any) -> Optional[List[User]]:
        if not isinstance(payload, list):
            return None
        users: List[User] = []
        for item in payload:
            user = self._decode_user(item)
            if user is None:
                return None
            users.append(user)
        return users

    def _count(self, metric_name: str, **labels: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)
