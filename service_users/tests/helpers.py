"""
Test doubles shared by the Users service test suites.
"""

import asyncio
from collections import Counter
from typing import Iterable, List, Optional, Set

from shared.errors import BackingStoreUnavailableError, CacheUnavailableError
from service_users.app.adapters import UserStore
from service_users.app.auth import TokenAuthenticator
from service_users.app.caching import InMemoryCacheStore
from service_users.app.models import User


TEST_JWT_SECRET = "test-secret"

ALICE = User(username="alice", firstname="Alice", lastname="Liddell", role="admin")
BOB = User(username="bob", firstname="Bob", lastname="Builder", role="user")


class ManualClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingUserStore(UserStore):
    """Dict-backed user store that counts calls and can simulate an outage."""

    def __init__(self, users: Iterable[User] = (), *, find_delay: float = 0.0):
        self.users = {user.username: user for user in users}
        self.calls: Counter = Counter()
        self.available = True
        self.find_delay = find_delay

    def _check(self, operation: str) -> None:
        self.calls[operation] += 1
        if not self.available:
            raise BackingStoreUnavailableError(details={"operation": operation})

    async def find(self, username: str) -> Optional[User]:
        self._check("find")
        if self.find_delay:
            await asyncio.sleep(self.find_delay)
        return self.users.get(username)

    async def find_all(self) -> List[User]:
        self._check("find_all")
        return [self.users[name] for name in sorted(self.users)]

    async def delete(self, username: str) -> bool:
        self._check("delete")
        return self.users.pop(username, None) is not None

    async def ping(self) -> bool:
        return self.available


class RecordingCacheStore(InMemoryCacheStore):
    """In-process cache store that counts operations and can fail selected ones."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls: Counter = Counter()
        self.failing: Set[str] = set()

    def _guard(self, operation: str) -> None:
        self.calls[operation] += 1
        if operation in self.failing:
            raise CacheUnavailableError(operation, "simulated outage")

    async def get(self, namespace, key):
        self._guard("get")
        return await super().get(namespace, key)

    async def put(self, namespace, key, value, ttl):
        self._guard("put")
        await super().put(namespace, key, value, ttl)

    async def evict(self, namespace, key):
        self._guard("evict")
        await super().evict(namespace, key)

    async def evict_namespace(self, namespace):
        self._guard(f"evict_namespace:{namespace}")
        return await super().evict_namespace(namespace)


def make_token(username: str, secret: str = TEST_JWT_SECRET) -> str:
    return TokenAuthenticator(secret).issue(username)


def auth_headers(username: str) -> dict:
    return {"Authorization": f"Bearer {make_token(username)}"}
