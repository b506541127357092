"""Retry, backoff and circuit breaking around any chat client."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import asdict, dataclass
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, Field

from ....core.config import Settings
from ....core.exceptions import CircuitOpenError
from ...monitoring.metrics_collector import MetricsCollector
from ..clients.base_client import ChatClient
from ..clients.delegating import DelegatingClient
from .circuit_breaker import CircuitBreaker, CircuitState
from .retry import RetryConfig, get_error_status, is_retryable_error

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class ResilienceConfig(BaseModel):
    """Retry and circuit breaker settings. Durations are in milliseconds."""

    max_retries: int = Field(default=3, ge=0)
    base_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=30000, ge=0)
    jitter_factor: float = Field(default=0.3, ge=0.0, le=1.0)
    circuit_breaker_threshold: int = Field(default=5, ge=1)
    circuit_breaker_timeout_ms: int = Field(default=60000, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> ResilienceConfig:
        return cls(**settings.resilience_config)


@dataclass
class ResilienceMetrics:
    """Per-instance call counters."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    retried_requests: int = 0
    circuit_breaker_trips: int = 0
    rejected_requests: int = 0

    @property
    def success_rate(self) -> float:
        """Successful share of admitted calls, in percent; 100 before any call."""
        if self.total_requests == 0:
            return 100.0
        return self.successful_requests / self.total_requests * 100


class ResilientClient(DelegatingClient):
    """Wrap a client with retries, exponential backoff and a circuit breaker.

    Every I/O operation of the contract goes through ``with_retry``; pure
    helpers are forwarded untouched. Each instance owns its breaker and
    counters.
    """

    def __init__(
        self,
        client: ChatClient,
        config: ResilienceConfig | Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
        collector: MetricsCollector | None = None,
    ):
        """Initialize the resilient wrapper.

        Args:
            client: Client to protect
            config: Resilience settings; defaults apply for missing values
            name: Circuit breaker name, defaults to the wrapped provider name
            collector: Optional Prometheus collector fed with call outcomes
        """
        super().__init__(client)
        if config is None:
            config = ResilienceConfig()
        elif not isinstance(config, ResilienceConfig):
            config = ResilienceConfig.model_validate(dict(config))

        self.config = config
        self.name = name or getattr(client, "provider_name", "client")
        self.retry_config = RetryConfig(
            max_retries=config.max_retries,
            base_delay_ms=config.base_delay_ms,
            max_delay_ms=config.max_delay_ms,
            jitter_factor=config.jitter_factor,
        )
        self.circuit_breaker = CircuitBreaker(
            name=self.name,
            failure_threshold=config.circuit_breaker_threshold,
            recovery_timeout_ms=config.circuit_breaker_timeout_ms,
        )
        self.collector = collector
        self._metrics = ResilienceMetrics()

    async def sleep(self, delay_ms: int) -> None:
        """Wait between attempts. Tests replace this to skip real delays."""
        await asyncio.sleep(delay_ms / 1000)

    def calculate_delay(self, attempt: int) -> int:
        return self.retry_config.calculate_delay(attempt)

    async def _invoke(self, operation: str, call: Callable[[], Awaitable[T]], payload: Mapping[str, Any] | None = None) -> T:
        return await self.with_retry(call, operation)

    async def with_retry(self, call: Callable[[], Awaitable[T]], operation: str = "call") -> T:
        """Run ``call`` under the circuit breaker, retrying transient failures.

        Args:
            call: Zero-argument factory returning a fresh awaitable per attempt
            operation: Operation name for logs and metrics

        Returns:
            Result of the first successful attempt

        Raises:
            CircuitOpenError: If the circuit rejects the call; nothing is attempted
            Exception: The last error once retries are exhausted, or the first
                non-retryable error
        """
        previous_state = self.circuit_breaker.state
        try:
            self.circuit_breaker.before_call()
        except CircuitOpenError as e:
            self._metrics.rejected_requests += 1
            logger.warning(
                "Circuit breaker rejected call",
                circuit=self.name,
                operation=operation,
                retry_after_seconds=round(e.retry_after_seconds, 3),
            )
            raise
        is_probe = self.circuit_breaker.state == CircuitState.HALF_OPEN
        if self.circuit_breaker.state != previous_state:
            self._report_state()

        self._metrics.total_requests += 1
        start_time = time.perf_counter()
        attempt = 0

        try:
            while True:
                attempt += 1
                try:
                    result = await call()
                except Exception as error:
                    if attempt > self.retry_config.max_retries or not is_retryable_error(error):
                        self._on_failure(operation, error, attempt, start_time)
                        raise

                    self._metrics.retried_requests += 1
                    delay_ms = self.calculate_delay(attempt)
                    logger.warning(
                        "Retrying after transient failure",
                        circuit=self.name,
                        operation=operation,
                        attempt=attempt,
                        max_attempts=self.retry_config.max_attempts,
                        delay_ms=delay_ms,
                        error_type=type(error).__name__,
                        status=get_error_status(error),
                        error=str(error),
                    )
                    if self.collector:
                        self.collector.record_retry(self.name, operation)
                    await self.sleep(delay_ms)
                else:
                    self._on_success(operation, attempt, start_time)
                    return result
        finally:
            # Cancellation leaves no outcome; free the half-open slot
            if is_probe:
                self.circuit_breaker.release_probe()

    def _on_success(self, operation: str, attempts: int, start_time: float) -> None:
        recovered = self.circuit_breaker.state != CircuitState.CLOSED
        self.circuit_breaker.record_success()
        self._metrics.successful_requests += 1

        if recovered:
            logger.info("Circuit breaker recovered", circuit=self.name, operation=operation)
            self._report_state()
        if attempts > 1:
            logger.info("Call succeeded after retries", circuit=self.name, operation=operation, attempts=attempts)
        if self.collector:
            self.collector.record_llm_request(self.name, operation, "success", time.perf_counter() - start_time)

    def _on_failure(self, operation: str, error: Exception, attempts: int, start_time: float) -> None:
        self._metrics.failed_requests += 1
        tripped = self.circuit_breaker.record_failure()

        logger.error(
            "Call failed",
            circuit=self.name,
            operation=operation,
            attempts=attempts,
            error_type=type(error).__name__,
            status=get_error_status(error),
            retryable=is_retryable_error(error),
            error=str(error),
        )
        if tripped:
            self._metrics.circuit_breaker_trips += 1
            if self.collector:
                self.collector.record_circuit_trip(self.name)
            self._report_state()
        if self.collector:
            self.collector.record_llm_request(self.name, operation, "error", time.perf_counter() - start_time)

    def _report_state(self) -> None:
        if self.collector:
            self.collector.set_circuit_breaker_state(self.name, self.circuit_breaker.state.value)

    def get_metrics(self) -> dict[str, Any]:
        """Snapshot of counters plus circuit state and success rate."""
        return {
            **asdict(self._metrics),
            "success_rate": self._metrics.success_rate,
            "circuit_state": self.circuit_breaker.state.value,
            "failure_count": self.circuit_breaker.failure_count,
        }

    def get_circuit_breaker_status(self) -> dict[str, Any]:
        return self.circuit_breaker.get_status()

    def reset(self) -> None:
        """Zero all counters and force the circuit closed."""
        self._metrics = ResilienceMetrics()
        self.circuit_breaker.reset()
        self._report_state()
        logger.info("Resilient client reset", circuit=self.name)
