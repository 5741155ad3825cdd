"""
Bearer token authentication for the Users service.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Set

from fastapi import Request
from jose import JWTError, jwt

from shared.errors import AuthenticationError
from shared.logging import get_logger


@dataclass(frozen=True)
class CallerIdentity:
    """Authenticated caller derived from a verified JWT."""

    username: str
    scopes: Set[str]
    claims: Dict[str, Any]


class TokenAuthenticator:
    """Validates shared-secret JWTs issued by the auth service."""

    def __init__(self, secret: str, *, algorithm: str = "HS256") -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.logger = get_logger("users.auth.token")

    async def authenticate(self, request: Request) -> CallerIdentity:
        """Authenticate the incoming request using the Authorization bearer token."""
        authorization = request.headers.get("Authorization")
        if not authorization or not authorization.startswith("Bearer "):
            raise AuthenticationError("Missing or invalid Authorization header")

        token = authorization[7:].strip()
        if not token:
            raise AuthenticationError("Authorization header contained empty bearer token")

        identity = self.verify(token)
        request.state.caller = identity
        return identity

    def verify(self, token: str) -> CallerIdentity:
        """Validate ``token`` and return the caller it identifies."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            self.logger.warning("JWT validation failed", error=str(exc))
            raise AuthenticationError("JWT validation failed", details={"error": str(exc)}) from exc

        username = claims.get("username")
        if not isinstance(username, str) or not username.strip():
            raise AuthenticationError("Did not receive required data from JWT token")

        scope = claims.get("scope")
        scopes = set(scope.split()) if isinstance(scope, str) else set()
        return CallerIdentity(username=username.strip(), scopes=scopes, claims=claims)

    def issue(self, username: str, scope: str = "read") -> str:
        """Sign a token for ``username`` with the shared secret."""
        return jwt.encode({"username": username, "scope": scope}, self.secret, algorithm=self.algorithm)
