"""
Domain services for the Users service.
"""

from .user_service import UserService

__all__ = [
    "UserService",
]
