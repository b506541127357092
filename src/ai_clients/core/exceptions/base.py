"""Base exception classes for the ai-clients package."""

import math
from typing import Any


class AIClientError(Exception):
    """Base exception for all package errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the exception."""
        if self.details:
            return f"{self.message}. Details: {self.details}"
        return self.message


class ConfigurationError(AIClientError):
    """Missing or invalid configuration. Raised at construction, never retried."""

    pass


class UnsupportedProviderError(ConfigurationError):
    """Raised when a provider name is not in the supported set."""

    def __init__(self, provider: str, supported: list[str]) -> None:
        quoted = ", ".join(f"'{name}'" for name in supported)
        super().__init__(
            f"Unsupported provider: {provider}. Use one of {quoted}",
            details={"provider": provider, "supported": list(supported)},
        )
        self.provider = provider
        self.supported = list(supported)

    def __str__(self) -> str:
        return self.message


class UnsupportedOperationError(AIClientError):
    """Raised when an adapter does not offer a capability."""

    def __init__(self, provider: str, operation: str, message: str | None = None) -> None:
        super().__init__(message or f"{provider} does not support {operation}")
        self.provider = provider
        self.operation = operation


class CircuitOpenError(AIClientError):
    """Raised when the circuit breaker rejects a call during its cooldown."""

    def __init__(self, name: str, failure_count: int, retry_after_seconds: float) -> None:
        wait = max(0, math.ceil(retry_after_seconds))
        super().__init__(f"Circuit breaker '{name}' is OPEN. Retry after {wait}s")
        self.name = name
        self.failure_count = failure_count
        self.retry_after_seconds = retry_after_seconds
