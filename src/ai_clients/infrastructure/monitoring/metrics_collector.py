"""Prometheus metrics for chat client calls."""

import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

logger = structlog.get_logger(__name__)

# Gauge encoding of circuit breaker states
CIRCUIT_STATE_VALUES = {"closed": 0, "open": 1, "half_open": 2}


@dataclass
class MetricsConfig:
    """Configuration for metrics collection."""

    registry: CollectorRegistry | None = None
    metric_prefix: str = "ai_clients"
    track_llm_usage: bool = True


class MetricsCollector:
    """Prometheus-based metrics collector, one registry per instance."""

    def __init__(self, config: MetricsConfig | None = None) -> None:
        self.config = config or MetricsConfig()
        self.registry = self.config.registry or CollectorRegistry()
        self._init_prometheus_metrics()
        self._start_time = time.time()

    def _init_prometheus_metrics(self) -> None:
        prefix = self.config.metric_prefix

        self.llm_requests_total = Counter(
            f"{prefix}_llm_requests_total",
            "Total LLM requests by provider, operation and outcome",
            labelnames=["provider", "operation", "status"],
            registry=self.registry,
        )

        self.llm_request_duration = Histogram(
            f"{prefix}_llm_request_duration_seconds",
            "LLM request processing time, retries included",
            labelnames=["provider", "operation"],
            registry=self.registry,
        )

        self.llm_retries_total = Counter(
            f"{prefix}_llm_retries_total",
            "Total retry attempts by provider and operation",
            labelnames=["provider", "operation"],
            registry=self.registry,
        )

        self.llm_tokens_used = Counter(
            f"{prefix}_llm_tokens_used_total",
            "Total tokens used by LLM provider",
            labelnames=["provider", "model", "type"],
            registry=self.registry,
        )

        self.circuit_breaker_trips = Counter(
            f"{prefix}_circuit_breaker_trips_total",
            "Number of times the circuit breaker opened",
            labelnames=["provider"],
            registry=self.registry,
        )

        self.circuit_breaker_state = Gauge(
            f"{prefix}_circuit_breaker_state",
            "Circuit breaker state (0=closed, 1=open, 2=half-open)",
            labelnames=["provider"],
            registry=self.registry,
        )

        logger.debug("Prometheus metrics initialized", prefix=prefix)

    def record_llm_request(self, provider: str, operation: str, status: str, duration_seconds: float) -> None:
        """Record the outcome of one admitted call."""
        if not self.config.track_llm_usage:
            return

        self.llm_requests_total.labels(provider=provider, operation=operation, status=status).inc()
        self.llm_request_duration.labels(provider=provider, operation=operation).observe(duration_seconds)

    def record_retry(self, provider: str, operation: str) -> None:
        self.llm_retries_total.labels(provider=provider, operation=operation).inc()

    def record_token_usage(self, provider: str, model: str, input_tokens: int, output_tokens: int) -> None:
        if not self.config.track_llm_usage:
            return

        self.llm_tokens_used.labels(provider=provider, model=model, type="input").inc(input_tokens)
        self.llm_tokens_used.labels(provider=provider, model=model, type="output").inc(output_tokens)

    def record_circuit_trip(self, provider: str) -> None:
        self.circuit_breaker_trips.labels(provider=provider).inc()
        logger.debug("Circuit breaker trip recorded", provider=provider)

    def set_circuit_breaker_state(self, provider: str, state: str) -> None:
        """Set circuit breaker state from its name (``closed``, ``open``, ``half_open``)."""
        self.circuit_breaker_state.labels(provider=provider).set(CIRCUIT_STATE_VALUES[state])

    def get_prometheus_metrics(self) -> str:
        """Get Prometheus metrics in text format."""
        return generate_latest(self.registry).decode("utf-8")

    def get_system_stats(self) -> dict[str, Any]:
        uptime_seconds = time.time() - self._start_time
        return {
            "uptime_seconds": uptime_seconds,
            "uptime_human": str(timedelta(seconds=int(uptime_seconds))),
            "metric_prefix": self.config.metric_prefix,
        }

    def reset_metrics(self) -> None:
        """Reset all metrics (for testing purposes)."""
        self.registry = CollectorRegistry()
        self._init_prometheus_metrics()
        logger.warning("All metrics have been reset")
