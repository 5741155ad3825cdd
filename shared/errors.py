"""
Shared error handling for the Users API.
"""

from typing import Dict, Any, Optional

from opentelemetry import trace
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class UsersApiException(Exception):
    """Base exception for Users API services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(UsersApiException):
    """Caller identity is missing or could not be verified."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class AuthorizationError(UsersApiException):
    """Caller is identified but not permitted to access the record."""

    status_code = 403

    def __init__(self, message: str = "No access for requested entity", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHORIZATION_ERROR", message, details)


class UserNotFoundError(UsersApiException):
    """The requested user does not exist in the backing store."""

    status_code = 404

    def __init__(self, username: str, details: Optional[Dict[str, Any]] = None):
        self.username = username
        super().__init__("USER_NOT_FOUND", f"User '{username}' not found", details)


class BackingStoreUnavailableError(UsersApiException):
    """The system of record could not serve the request."""

    status_code = 503

    def __init__(self, message: str = "Backing store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("BACKING_STORE_UNAVAILABLE", message, details)


class CacheUnavailableError(UsersApiException):
    """Cache store failure.

    Raised by cache stores only; the cache-aside coordinator recovers from it
    locally so it never reaches an HTTP caller.
    """

    status_code = 503

    def __init__(self, operation: str, message: str = "Cache store unavailable", details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__("CACHE_UNAVAILABLE", f"{operation}: {message}", details)
