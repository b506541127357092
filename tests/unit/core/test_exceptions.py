"""Tests for the exception hierarchy."""

import pytest

from ai_clients.core.exceptions import (
    AIClientError,
    CircuitOpenError,
    ConfigurationError,
    LLMClientError,
    LLMRateLimitError,
    LLMTimeoutError,
    ProviderError,
    TransientError,
    UnsupportedOperationError,
    UnsupportedProviderError,
    error_for_status,
)


class TestExceptionHierarchy:
    """Test exception classes and messages."""

    def test_base_error(self) -> None:
        error = AIClientError("Something broke", details={"key": "value"})

        assert error.error_code == "AICLIENTERROR"
        assert str(error) == "Something broke. Details: {'key': 'value'}"

    def test_unsupported_provider_message(self) -> None:
        error = UnsupportedProviderError("gemini", ["openai", "claude"])

        assert str(error) == "Unsupported provider: gemini. Use one of 'openai', 'claude'"
        assert isinstance(error, ConfigurationError)
        assert error.supported == ["openai", "claude"]

    def test_unsupported_operation(self) -> None:
        error = UnsupportedOperationError("claude", "get_embeddings")

        assert str(error) == "claude does not support get_embeddings"
        assert error.provider == "claude"
        assert error.operation == "get_embeddings"

    @pytest.mark.parametrize(("seconds", "shown"), [(29.2, "30s"), (0.0, "0s"), (-3.0, "0s")])
    def test_circuit_open_message(self, seconds: float, shown: str) -> None:
        error = CircuitOpenError("azure-openai", 5, seconds)

        assert str(error) == f"Circuit breaker 'azure-openai' is OPEN. Retry after {shown}"
        assert error.failure_count == 5

    def test_transient_subclasses(self) -> None:
        assert issubclass(LLMRateLimitError, TransientError)
        assert issubclass(LLMTimeoutError, TransientError)
        assert issubclass(TransientError, LLMClientError)
        assert not issubclass(ProviderError, TransientError)

    def test_provider_error_keeps_context(self) -> None:
        cause = RuntimeError("raw")
        error = ProviderError("bad", provider="openai", status=400, original_error=cause)

        assert error.provider == "openai"
        assert error.status == 400
        assert error.original_error is cause


class TestErrorForStatus:
    """Test mapping of vendor statuses to error classes."""

    def test_rate_limit(self) -> None:
        error = error_for_status("claude", 429, "slow down")

        assert isinstance(error, LLMRateLimitError)
        assert error.status == 429

    @pytest.mark.parametrize("status", [500, 502, 529, None])
    def test_server_errors_are_transient(self, status: int | None) -> None:
        assert type(error_for_status("openai", status, "oops")) is TransientError

    @pytest.mark.parametrize("status", [400, 401, 404, 422, 600])
    def test_client_errors(self, status: int) -> None:
        error = error_for_status("openai", status, "invalid")

        assert type(error) is ProviderError
        assert "openai API error: invalid" == str(error)
