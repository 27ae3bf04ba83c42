"""
Circuit breaker for the payment gateway.

A card reader that stops answering must not leave every guest waiting out
the full charge timeout. After `failure_threshold` consecutive transport
failures the breaker opens and charges fail fast until `timeout_seconds`
have passed; then a limited number of trial calls decide whether it closes
again.

States:
    CLOSED    - calls pass through
    OPEN      - calls rejected with CircuitBreakerError
    HALF_OPEN - trial calls allowed, one failure reopens

Usage:
    breaker = CircuitBreaker(CircuitBreakerConfig(name="payments"))

    async with breaker.call():
        response = await client.post(...)
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum

from shared.config.logging import get_logger
from shared.utils.exceptions import KioskError

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    name: str
    failure_threshold: int = 5
    success_threshold: int = 1  # Trial successes before closing
    timeout_seconds: float = 30.0  # Open period before trial calls
    half_open_max_calls: int = 1


@dataclass
class CircuitBreakerStats:
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0


class CircuitBreakerError(KioskError):
    """The circuit is open; the call was not attempted."""

    retryable = True

    def __init__(self, breaker_name: str, retry_after: float):
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__(
            f"Payments are temporarily unavailable. Please try again in {retry_after:.0f} seconds.",
            log_level="warning",
            breaker=breaker_name,
            retry_after=round(retry_after, 1),
        )


class CircuitBreaker:
    """Async circuit breaker guarding one external service."""

    def __init__(self, config: CircuitBreakerConfig, clock=time.monotonic):
        self.config = config
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0
        self._opened_at: float | None = None
        self._lock = asyncio.Lock()
        self._stats = CircuitBreakerStats()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def stats(self) -> CircuitBreakerStats:
        return self._stats

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._stats.state_changes += 1

        logger.info(
            f"Circuit breaker '{self.config.name}' state change",
            old_state=old_state.value,
            new_state=new_state.value,
            failure_count=self._failure_count,
        )

        if new_state == CircuitState.CLOSED:
            self._failure_count = 0
            self._success_count = 0
            self._opened_at = None
        elif new_state == CircuitState.OPEN:
            self._opened_at = self._clock()
        elif new_state == CircuitState.HALF_OPEN:
            self._success_count = 0
            self._half_open_calls = 0

    def _retry_after(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(0.0, self.config.timeout_seconds - (self._clock() - self._opened_at))

    async def _can_attempt(self) -> tuple[bool, float]:
        async with self._lock:
            if self._state == CircuitState.OPEN:
                retry_after = self._retry_after()
                if retry_after > 0:
                    return False, retry_after
                self._transition_to(CircuitState.HALF_OPEN)

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.config.half_open_max_calls:
                    return False, 1.0
                self._half_open_calls += 1

            return True, 0.0

    async def record_success(self) -> None:
        async with self._lock:
            self._stats.total_calls += 1
            self._stats.successful_calls += 1

            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                self._half_open_calls = max(0, self._half_open_calls - 1)
                if self._success_count >= self.config.success_threshold:
                    self._transition_to(CircuitState.CLOSED)
            else:
                self._failure_count = 0

    async def record_failure(self, error: Exception | None = None) -> None:
        async with self._lock:
            self._stats.total_calls += 1
            self._stats.failed_calls += 1
            self._failure_count += 1

            if error is not None:
                logger.warning(
                    f"Circuit breaker '{self.config.name}' recorded failure",
                    error=type(error).__name__,
                    failure_count=self._failure_count,
                    threshold=self.config.failure_threshold,
                )

            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
            elif self._state == CircuitState.CLOSED and self._failure_count >= self.config.failure_threshold:
                self._transition_to(CircuitState.OPEN)

    @asynccontextmanager
    async def call(self) -> AsyncGenerator[None, None]:
        """
        Guard one call.

        Any exception escaping the block counts as a failure and is
        re-raised.

        Raises:
            CircuitBreakerError: circuit open, block not entered.
        """
        can_attempt, retry_after = await self._can_attempt()
        if not can_attempt:
            self._stats.rejected_calls += 1
            raise CircuitBreakerError(self.config.name, retry_after)

        try:
            yield
        except Exception as e:
            await self.record_failure(e)
            raise
        await self.record_success()

    async def reset(self) -> None:
        async with self._lock:
            self._transition_to(CircuitState.CLOSED)
            self._half_open_calls = 0

    def snapshot(self) -> dict:
        """State and counters, for the health command."""
        return {
            "state": self._state.value,
            "total_calls": self._stats.total_calls,
            "successful_calls": self._stats.successful_calls,
            "failed_calls": self._stats.failed_calls,
            "rejected_calls": self._stats.rejected_calls,
            "state_changes": self._stats.state_changes,
        }
