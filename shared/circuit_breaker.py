"""
Circuit breaker protecting calls to the backing store.
"""

import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict

from shared.logging import get_logger


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, calls rejected
    HALF_OPEN = "half_open"  # Probing whether the dependency recovered


class CircuitBreakerOpenException(Exception):
    """Raised when a call is rejected because the circuit is open."""


class CircuitBreaker:
    """Consecutive-failure circuit breaker for async calls."""

    def __init__(self,
                 name: str,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 30.0,
                 half_open_max_calls: int = 3):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self.logger = get_logger(f"users.circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._half_open_calls = 0
        self._opened_at = 0.0

    @property
    def state(self) -> CircuitBreakerState:
        return self._state

    def _allow_call(self) -> bool:
        if self._state == CircuitBreakerState.CLOSED:
            return True

        if self._state == CircuitBreakerState.OPEN:
            if time.monotonic() - self._opened_at < self.recovery_timeout:
                return False
            self._transition(CircuitBreakerState.HALF_OPEN)
            self._half_open_calls = 0

        if self._half_open_calls >= self.half_open_max_calls:
            return False
        self._half_open_calls += 1
        return True

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Execute ``func`` under circuit breaker protection."""
        if not self._allow_call():
            raise CircuitBreakerOpenException(f"Circuit breaker '{self.name}' is open")

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def _record_success(self) -> None:
        self._failure_count = 0
        if self._state == CircuitBreakerState.HALF_OPEN:
            self._transition(CircuitBreakerState.CLOSED)

    def _record_failure(self) -> None:
        self._failure_count += 1
        if self._state == CircuitBreakerState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._opened_at = time.monotonic()
            self._transition(CircuitBreakerState.OPEN)

    def _transition(self, state: CircuitBreakerState) -> None:
        if state == self._state:
            return
        self.logger.warning(
            "Circuit breaker state changed",
            from_state=self._state.value,
            to_state=state.value,
            failure_count=self._failure_count,
        )
        self._state = state

    def get_state(self) -> Dict[str, Any]:
        """Get current circuit breaker state."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
        }
