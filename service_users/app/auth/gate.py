"""
Authorization gate for single-user access.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .token import CallerIdentity


class AuthorizationGate(ABC):
    """Decides whether a caller may access the record stored under a key."""

    @abstractmethod
    def is_authorized(self, caller: CallerIdentity, requested_key: str) -> bool:
        ...


class UsernameMatchGate(AuthorizationGate):
    """Callers may only access their own record (case-insensitive)."""

    def is_authorized(self, caller: CallerIdentity, requested_key: str) -> bool:
        return caller.username.casefold() == requested_key.casefold()
