"""
Unit tests for the shared circuit breaker.
"""

import pytest

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException, CircuitBreakerState


async def succeed():
    return "ok"


async def fail():
    raise RuntimeError("boom")


class TestCircuitBreaker:
    """Test cases for CircuitBreaker."""

    @pytest.fixture
    def breaker(self):
        return CircuitBreaker("test", failure_threshold=3, recovery_timeout=10.0, half_open_max_calls=1)

    async def _trip(self, breaker):
        for _ in range(breaker.failure_threshold):
            with pytest.raises(RuntimeError):
                await breaker.call(fail)

    @pytest.mark.asyncio
    async def test_passes_results_through(self, breaker):
        assert await breaker.call(succeed) == "ok"
        assert breaker.state == CircuitBreakerState.CLOSED

    @pytest.mark.asyncio
    async def test_opens_after_consecutive_failures(self, breaker):
        await self._trip(breaker)

        assert breaker.state == CircuitBreakerState.OPEN
        with pytest.raises(CircuitBreakerOpenException):
            await breaker.call(succeed)

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker):
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(fail)
        await breaker.call(succeed)
        with pytest.raises(RuntimeError):
            await breaker.call(fail)

        assert breaker.state == CircuitBreakerState.CLOSED
        assert breaker.get_state()["failure_count"] == 1

    @pytest.mark.asyncio
    async def test_half_open_probe_closes_on_success(self, breaker):
        await self._trip(breaker)
        breaker._opened_at -= breaker.recovery_timeout + 1

        assert await breaker.call(succeed) == "ok"
        assert breaker.state == CircuitBreakerState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_probe_failure_reopens(self, breaker):
        await self._trip(breaker)
        breaker._opened_at -= breaker.recovery_timeout + 1

        with pytest.raises(RuntimeError):
            await breaker.call(fail)
        assert breaker.state == CircuitBreakerState.OPEN
        with pytest.raises(CircuitBreakerOpenException):
            await breaker.call(succeed)

    def test_get_state(self, breaker):
        state = breaker.get_state()

        assert state["name"] == "test"
        assert state["state"] == "closed"
        assert state["failure_threshold"] == 3
