"""
User record exposed by the Users API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class User:
    """Immutable user profile keyed by ``username``."""

    username: str
    firstname: str = ""
    lastname: str = ""
    role: str = "user"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the user to a JSON-friendly dictionary."""
        return {
            "username": self.username,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "User":
        """Rehydrate a user from cached JSON state or a database row."""
        return cls(
            username=payload["username"],
            firstname=payload.get("firstname") or "",
            lastname=payload.get("lastname") or "",
            role=payload.get("role") or "user",
        )
