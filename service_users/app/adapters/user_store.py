"""
Backing store clients for user records.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import asyncpg

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.errors import BackingStoreUnavailableError
from shared.logging import get_logger

from ..models import User


T = TypeVar("T")


class UserStore(ABC):
    """System of record for users.

    Implementations raise ``BackingStoreUnavailableError`` for any failure to
    answer; a missing user is reported as ``None``/``False``, never raised.
    """

    @abstractmethod
    async def find(self, username: str) -> Optional[User]:
        """Return the user or ``None`` when absent."""

    @abstractmethod
    async def find_all(self) -> List[User]:
        """Return every user ordered by username."""

    @abstractmethod
    async def delete(self, username: str) -> bool:
        """Delete the user and return whether a record was removed."""

    async def ping(self) -> bool:
        return True

    async def start(self) -> None:
        """Open connections."""

    async def stop(self) -> None:
        """Close connections."""


class PostgresUserStore(UserStore):
    """PostgreSQL ``users`` table accessed through an asyncpg pool."""

    def __init__(
        self,
        dsn: str,
        *,
        timeout: float = 5.0,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
    ) -> None:
        self.dsn = dsn
        self.timeout = timeout
        self.logger = get_logger("users.store.postgres")
        self.pool: Optional[asyncpg.Pool] = None
        self.circuit_breaker = CircuitBreaker(
            "users_store",
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
        )

    async def start(self) -> None:
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=1,
                max_size=10,
                command_timeout=self.timeout,
            )
            await self._create_tables()
            self.logger.info("PostgreSQL user store started")
        except (asyncpg.PostgresError, OSError, asyncio.TimeoutError) as e:
            # The service still boots; requests that reach the store fail with 503
            self.logger.error("Failed to start PostgreSQL user store", error=str(e))
            self.pool = None

    async def stop(self) -> None:
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL user store stopped")

    async def _create_tables(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    username VARCHAR(255) PRIMARY KEY,
                    firstname VARCHAR(255) NOT NULL DEFAULT '',
                    lastname VARCHAR(255) NOT NULL DEFAULT '',
                    role VARCHAR(64) NOT NULL DEFAULT 'user'
                );
            """)

    async def _call(self, operation: str, func: Callable[[asyncpg.Connection], Awaitable[T]]) -> T:
        if self.pool is None:
            raise BackingStoreUnavailableError("User store is not connected", details={"operation": operation})

        async def _run() -> T:
            async with self.pool.acquire() as conn:
                return await func(conn)

        try:
            return await self.circuit_breaker.call(
                lambda: asyncio.wait_for(_run(), timeout=self.timeout)
            )
        except CircuitBreakerOpenException as e:
            raise BackingStoreUnavailableError(str(e), details={"operation": operation}) from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            self.logger.error("User store query failed", operation=operation, error=str(e) or type(e).__name__)
            raise BackingStoreUnavailableError(details={"operation": operation}) from e

    async def find(self, username: str) -> Optional[User]:
        row = await self._call(
            "find",
            lambda conn: conn.fetchrow(
                "SELECT username, firstname, lastname, role FROM users WHERE username = $1",
                username,
            ),
        )
        return self._row_to_user(row) if row else None

    async def find_all(self) -> List[User]:
        rows = await self._call(
            "find_all",
            lambda conn: conn.fetch(
                "SELECT username, firstname, lastname, role FROM users ORDER BY username"
            ),
        )
        return [self._row_to_user(row) for row in rows]

    async def delete(self, username: str) -> bool:
        status = await self._call(
            "delete",
            lambda conn: conn.execute("DELETE FROM users WHERE username = $1", username),
        )
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return status.rsplit(" ", 1)[-1] != "0"

    async def ping(self) -> bool:
        try:
            await self._call("ping", lambda conn: conn.fetchval("SELECT 1"))
            return True
        except BackingStoreUnavailableError:
            return False

    @staticmethod
    def _row_to_user(row: Any) -> User:
        return User.from_dict(dict(row))
