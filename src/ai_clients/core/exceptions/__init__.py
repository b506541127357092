"""Exception hierarchy for the ai-clients package.

Configuration problems fail fast at construction, vendor rejections surface
immediately, and transient faults are left to the resilient client to retry.
"""

from .base import (
    AIClientError,
    CircuitOpenError,
    ConfigurationError,
    UnsupportedOperationError,
    UnsupportedProviderError,
)
from .provider import (
    LLMClientError,
    LLMRateLimitError,
    LLMTimeoutError,
    ProviderError,
    TransientError,
    error_for_status,
)

__all__ = [
    # Base exceptions
    "AIClientError",
    "ConfigurationError",
    "UnsupportedProviderError",
    "UnsupportedOperationError",
    "CircuitOpenError",
    # Provider exceptions
    "LLMClientError",
    "ProviderError",
    "TransientError",
    "LLMRateLimitError",
    "LLMTimeoutError",
    "error_for_status",
]
