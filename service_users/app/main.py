"""
Users API service.
"""

from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from shared.base_service import BaseService
from shared.logging import set_caller

from service_users.app.adapters import PostgresUserStore, UserStore
from service_users.app.auth import CallerIdentity, TokenAuthenticator, UsernameMatchGate
from service_users.app.caching import (
    CacheAsideCoordinator,
    CachePolicy,
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
)
from service_users.app.domain import UserService


class UsersService(BaseService):
    """Users API service implementation."""

    def __init__(
        self,
        *,
        user_store: Optional[UserStore] = None,
        cache_store: Optional[CacheStore] = None,
        **config_overrides: Any,
    ):
        super().__init__("users", 8083, **config_overrides)

        self.cache_store = cache_store or self._build_cache_store()
        self.user_store = user_store or PostgresUserStore(
            self.config.store.postgres_dsn,
            timeout=self.config.store.timeout_seconds,
            failure_threshold=self.config.store.failure_threshold,
            recovery_timeout=self.config.store.recovery_timeout_seconds,
        )
        self.coordinator = CacheAsideCoordinator(
            self.cache_store,
            self.user_store,
            CachePolicy.from_settings(self.config.cache),
            metrics=self.metrics,
        )
        self.authenticator = TokenAuthenticator(
            self.config.auth.jwt_secret,
            algorithm=self.config.auth.jwt_algorithm,
        )
        self.user_service = UserService(self.coordinator, UsernameMatchGate())

        self._setup_user_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.users_service = self

    def _build_cache_store(self) -> CacheStore:
        settings = self.config.cache
        if settings.backend == "memory":
            self.logger.info("Using in-process cache store")
            return InMemoryCacheStore(key_prefix=settings.key_prefix)
        return RedisCacheStore(
            settings.redis_url,
            key_prefix=settings.key_prefix,
            io_timeout=settings.io_timeout_seconds,
        )

    async def startup(self) -> None:
        await self.user_store.start()

    async def shutdown(self) -> None:
        await self.user_store.stop()
        await self.cache_store.close()

    async def _check_dependencies(self) -> Dict[str, str]:
        return {
            "cache": "ok" if await self.cache_store.ping() else "error",
            "store": "ok" if await self.user_store.ping() else "error",
        }

    async def _authenticate(self, request: Request) -> CallerIdentity:
        """FastAPI dependency resolving the calling user."""
        caller = await self.authenticator.authenticate(request)
        set_caller(caller.username)
        return caller

    def _setup_user_routes(self):
        """Set up user and cache management routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "users",
                "message": "Users API - cache-aside user directory",
                "version": "1.0.0"
            }

        @self.app.get("/users/cache/status", response_class=PlainTextResponse)
        async def cache_status():
            """Describe the cache strategy in use."""
            return self.user_service.cache_status()

        @self.app.get("/users/")
        async def list_users(caller: CallerIdentity = Depends(self._authenticate)) -> List[Dict[str, Any]]:
            """List all users."""
            users = await self.user_service.list_users(caller)
            return [user.to_dict() for user in users]

        @self.app.get("/users/{username}")
        async def get_user(username: str, caller: CallerIdentity = Depends(self._authenticate)):
            """Get a single user; callers may only read their own record."""
            user = await self.user_service.get_user(caller, username)
            return user.to_dict()

        @self.app.delete("/users/{username}")
        async def delete_user(username: str, caller: CallerIdentity = Depends(self._authenticate)):
            """Delete a user and invalidate its cache entries."""
            await self.user_service.delete_user(caller, username)
            return {"status": "deleted", "username": username}

        @self.app.post("/users/cache/evict/{username}")
        async def evict_user_cache(username: str, caller: CallerIdentity = Depends(self._authenticate)):
            """Invalidate the cache entry for one user."""
            await self.user_service.evict_user_cache(username)
            return {"status": "ok", "message": f"Cache invalidated for user: {username}"}

        @self.app.post("/users/cache/evict-all")
        async def evict_all_cache(caller: CallerIdentity = Depends(self._authenticate)):
            """Invalidate every user cache namespace."""
            report = await self.user_service.evict_all_cache()
            return {
                "status": "ok" if report.complete else "partial",
                "message": "All user cache invalidated" if report.complete else "User cache partially invalidated",
                "evicted": report.evicted,
                "failed": report.failed,
            }


def create_app(**kwargs: Any) -> FastAPI:
    """Create FastAPI application."""
    service = UsersService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = UsersService()
    service.run()
