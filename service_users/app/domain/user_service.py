"""
User operations exposed to request handlers.
"""

from __future__ import annotations

from typing import List

from shared.errors import AuthorizationError, UserNotFoundError
from shared.logging import get_logger

from ..auth import AuthorizationGate, CallerIdentity
from ..caching import CacheAsideCoordinator, EvictionReport
from ..models import User


CACHE_STATUS_MESSAGE = (
    "Cache-Aside pattern is active. "
    "Use /users/cache/evict/{username} or /users/cache/evict-all to manage cache"
)


class UserService:
    """Binds the authorization gate to the cache-aside coordinator.

    Authorization runs before any cache or store access on every
    single-user call, so a cache-resident record is never served to a caller
    the gate would refuse.
    """

    def __init__(self, coordinator: CacheAsideCoordinator, gate: AuthorizationGate):
        self.coordinator = coordinator
        self.gate = gate
        self.logger = get_logger("users.service")

    def _authorize(self, caller: CallerIdentity, username: str) -> None:
        if not self.gate.is_authorized(caller, username):
            self.logger.warning("Access denied", caller=caller.username, requested=username)
            raise AuthorizationError(details={"username": username})

    async def list_users(self, caller: CallerIdentity) -> List[User]:
        self.logger.info("Listing users", caller=caller.username)
        return await self.coordinator.get_all()

    async def get_user(self, caller: CallerIdentity, username: str) -> User:
        self._authorize(caller, username)
        user = await self.coordinator.get_by_key(username)
        if user is None:
            raise UserNotFoundError(username)
        return user

    async def delete_user(self, caller: CallerIdentity, username: str) -> None:
        self._authorize(caller, username)
        if not await self.coordinator.delete_by_key(username):
            raise UserNotFoundError(username)

    async def evict_user_cache(self, username: str) -> None:
        await self.coordinator.evict_entity(username)

    async def evict_all_cache(self) -> EvictionReport:
        return await self.coordinator.evict_all()

    def cache_status(self) -> str:
        return CACHE_STATUS_MESSAGE
