"""Provider call exception classes."""

from .base import AIClientError


class LLMClientError(AIClientError):
    """Base exception for failed calls to a vendor API."""

    def __init__(
        self,
        message: str,
        provider: str,
        status: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize LLM client error.

        Args:
            message: Error description
            provider: LLM provider name
            status: HTTP status code reported by the vendor, if any
            original_error: Original exception that caused this error
        """
        super().__init__(message)
        self.provider = provider
        self.status = status
        self.original_error = original_error


class ProviderError(LLMClientError):
    """Vendor rejected the request (4xx other than 429)."""

    pass


class TransientError(LLMClientError):
    """Rate limiting, 5xx or network fault. Retried by the resilient client."""

    pass


class LLMRateLimitError(TransientError):
    """Raised when the vendor rate limit is exceeded."""

    pass


class LLMTimeoutError(TransientError):
    """Raised when a vendor request times out."""

    pass


def error_for_status(
    provider: str,
    status: int | None,
    message: str,
    original_error: Exception | None = None,
) -> LLMClientError:
    """Map a vendor HTTP status to the matching error class.

    429 becomes ``LLMRateLimitError``, 5xx (or no status at all) becomes
    ``TransientError``, anything else is a ``ProviderError``.
    """
    if status == 429:
        return LLMRateLimitError(f"{provider} rate limit exceeded: {message}", provider, status, original_error)
    if status is None or 500 <= status < 600:
        return TransientError(f"{provider} server error: {message}", provider, status, original_error)
    return ProviderError(f"{provider} API error: {message}", provider, status, original_error)
