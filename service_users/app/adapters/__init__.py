"""
Adapters package for the Users service.

Clients for the system of record. Adapters own connection handling,
timeouts and circuit breaking, and map driver errors onto shared errors.
"""

from .user_store import PostgresUserStore, UserStore

__all__ = [
    "PostgresUserStore",
    "UserStore",
]
