"""Circuit breaker guarding a single wrapped client."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

import structlog

from ....core.exceptions import CircuitOpenError

logger = structlog.get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, rejecting requests
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    The failure count is only cleared by a success or ``reset()``, so a failed
    half-open probe re-trips immediately and restarts the cooldown. While the
    circuit is half-open exactly one probe call is admitted.
    """

    def __init__(self, name: str, failure_threshold: int = 5, recovery_timeout_ms: int = 60000):
        """Initialize circuit breaker.

        Args:
            name: Name used in errors and logs
            failure_threshold: Consecutive terminal failures before opening
            recovery_timeout_ms: Cooldown before a probe is allowed
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")

        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout_ms = recovery_timeout_ms

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._trips = 0
        self._last_failure_time = 0.0
        self._next_attempt_time = 0.0
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def trips(self) -> int:
        return self._trips

    @property
    def next_attempt_time(self) -> float:
        """Epoch seconds at which an open circuit admits a probe."""
        return self._next_attempt_time

    def before_call(self) -> None:
        """Admit or reject a call.

        Raises:
            CircuitOpenError: If the circuit is open and cooling down, or a
                half-open probe is already in flight
        """
        if self._state == CircuitState.OPEN:
            now = time.time()
            if now < self._next_attempt_time:
                raise CircuitOpenError(self.name, self._failure_count, self._next_attempt_time - now)
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit breaker half-open, admitting probe", circuit=self.name)

        if self._state == CircuitState.HALF_OPEN:
            if self._probe_in_flight:
                raise CircuitOpenError(self.name, self._failure_count, 0.0)
            self._probe_in_flight = True

    def record_success(self) -> None:
        """Close the circuit and clear the failure count."""
        if self._state != CircuitState.CLOSED:
            logger.info("Circuit breaker closed", circuit=self.name, previous_state=self._state.value)
        self._failure_count = 0
        self._state = CircuitState.CLOSED
        self._probe_in_flight = False

    def record_failure(self) -> bool:
        """Count a terminal failure.

        Returns:
            True if this failure opened the circuit
        """
        self._failure_count += 1
        self._last_failure_time = time.time()
        self._probe_in_flight = False

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._next_attempt_time = self._last_failure_time + self.recovery_timeout_ms / 1000.0
            self._trips += 1
            logger.warning(
                "Circuit breaker opened",
                circuit=self.name,
                failure_count=self._failure_count,
                retry_after_ms=self.recovery_timeout_ms,
            )
            return True
        return False

    def release_probe(self) -> None:
        """Free the half-open slot when a probe ends without an outcome (e.g. cancellation)."""
        self._probe_in_flight = False

    def reset(self) -> None:
        """Reset circuit breaker to closed state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._trips = 0
        self._last_failure_time = 0.0
        self._next_attempt_time = 0.0
        self._probe_in_flight = False

    def get_status(self) -> dict[str, Any]:
        """Get circuit breaker status information."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "trips": self._trips,
            "last_failure_time": self._last_failure_time,
            "next_attempt_time": self._next_attempt_time if self._state == CircuitState.OPEN else None,
            "recovery_timeout_ms": self.recovery_timeout_ms,
        }
