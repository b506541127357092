"""Resilience patterns for chat clients."""

from .circuit_breaker import CircuitBreaker, CircuitState
from .resilient_client import ResilienceConfig, ResilienceMetrics, ResilientClient
from .retry import RetryConfig, get_error_status, is_retryable_error

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "ResilienceConfig",
    "ResilienceMetrics",
    "ResilientClient",
    "RetryConfig",
    "get_error_status",
    "is_retryable_error",
]
