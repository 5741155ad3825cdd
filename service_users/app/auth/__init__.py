"""
Authentication helpers for the Users service.
"""

from .gate import AuthorizationGate, UsernameMatchGate
from .token import CallerIdentity, TokenAuthenticator

__all__ = [
    "AuthorizationGate",
    "CallerIdentity",
    "TokenAuthenticator",
    "UsernameMatchGate",
]
