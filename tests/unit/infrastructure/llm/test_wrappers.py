"""Tests for the logging and cost tracking wrappers."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ai_clients.core.exceptions import TransientError
from ai_clients.infrastructure.llm.clients import logging_client
from ai_clients.infrastructure.llm.clients.base_client import implements_chat_client
from ai_clients.infrastructure.llm.clients.cost_tracking_client import CostTrackingClient, TrackedRequest
from ai_clients.infrastructure.llm.clients.delegating import DelegatingClient
from ai_clients.infrastructure.llm.clients.logging_client import LoggingClient
from ai_clients.infrastructure.llm.clients.mock_client import MockClient, MockConfig
from ai_clients.infrastructure.llm.normalization import normalize_messages
from ai_clients.infrastructure.llm.resilience import ResilientClient


@pytest.fixture
def log(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Bound logger used by LoggingClient, replaced by a mock."""
    logger = MagicMock()
    monkeypatch.setattr(logging_client, "logger", logger)
    return logger.bind.return_value


class TestDelegatingClient:
    """Test plain forwarding."""

    def test_forwards_identity(self, mock_client: MockClient) -> None:
        client = DelegatingClient(mock_client)

        assert client.provider_name == "mock"
        assert client.model == "mock-model"
        assert implements_chat_client(client)

    @pytest.mark.asyncio
    async def test_forwards_calls(self, mock_client: MockClient) -> None:
        client = DelegatingClient(mock_client)

        response = await client.chat("Hi")

        assert client.get_text_content(response) == "Mock response"
        assert client.calculate_cost(response).model_id == "mock-model"


class TestLoggingClient:
    """Test request, response and error logging."""

    @pytest.mark.asyncio
    async def test_logs_request_and_response(self, mock_client: MockClient, log: MagicMock) -> None:
        client = LoggingClient(mock_client)

        await client.chat("Hi", {"api_key": "sk-secret-value", "temperature": 0.1})

        started, completed = log.info.call_args_list
        assert started.args == ("LLM request started",)
        assert started.kwargs["message_count"] == 1
        assert started.kwargs["last_message"] == "Hi"
        assert started.kwargs["options"] == {"api_key": "sk***ue", "temperature": 0.1}
        assert completed.args == ("LLM request completed",)
        assert completed.kwargs["content"] == "Mock response"
        assert completed.kwargs["usage"]["total_tokens"] == 3
        assert client.request_count == 1

    @pytest.mark.asyncio
    async def test_binds_request_context(self, mock_client: MockClient, monkeypatch: pytest.MonkeyPatch) -> None:
        logger = MagicMock()
        monkeypatch.setattr(logging_client, "logger", logger)
        client = LoggingClient(mock_client)

        await client.get_embeddings("text")

        context = logger.bind.call_args.kwargs
        assert context["operation"] == "get_embeddings"
        assert context["provider"] == "mock"
        assert context["request_id"].startswith("req_")

    @pytest.mark.asyncio
    async def test_logs_and_reraises_errors(self, log: MagicMock) -> None:
        inner = MockClient(errors=[TransientError("flaky", provider="mock", status=503)])
        client = LoggingClient(inner)

        with pytest.raises(TransientError):
            await client.chat("Hi")

        assert log.error.call_args.args == ("LLM request failed",)
        assert log.error.call_args.kwargs["error_type"] == "TransientError"

    @pytest.mark.asyncio
    async def test_truncates_long_content(self, log: MagicMock) -> None:
        client = LoggingClient(MockClient(MockConfig(default_response="Hello world")), max_content_length=5)

        await client.chat("Hi")

        assert log.info.call_args.kwargs["content"] == "Hello... [truncated 6 chars]"

    @pytest.mark.asyncio
    async def test_generator_messages_reach_wrapped_client(self, mock_client: MockClient, log: MagicMock) -> None:
        client = LoggingClient(mock_client)

        await client.chat(message for message in [{"role": "user", "content": "hi"}])

        assert log.info.call_args_list[0].kwargs["message_count"] == 1
        sent = normalize_messages(mock_client.call_history[0]["messages"])
        assert [message.text for message in sent] == ["hi"]

    @pytest.mark.asyncio
    async def test_switches(self, mock_client: MockClient, log: MagicMock) -> None:
        client = LoggingClient(mock_client, log_requests=False, log_responses=False)

        await client.chat("Hi")

        log.info.assert_not_called()

    @pytest.mark.asyncio
    async def test_tool_count_logged(self, mock_client: MockClient, log: MagicMock) -> None:
        client = LoggingClient(mock_client)

        await client.chat_with_tools("Hi", iter([{"name": "a"}, {"name": "b"}]))

        assert log.info.call_args_list[0].kwargs["tool_count"] == 2
        assert log.info.call_args_list[1].kwargs["tool_calls"] == ["a"]


class TestCostTrackingClient:
    """Test cost accumulation."""

    @pytest.mark.asyncio
    async def test_tracks_chat_responses(self, mock_client: MockClient) -> None:
        client = CostTrackingClient(mock_client)

        await client.chat("one two three")
        await client.chat("one two three")

        stats = client.get_stats()
        assert stats["total_requests"] == 2
        assert stats["total_cost"] == pytest.approx(1e-6)
        assert stats["formatted_total_cost"] == "$0.000001"
        assert stats["average_cost"] == pytest.approx(5e-7)
        assert stats["total_input_tokens"] == 6
        assert stats["total_output_tokens"] == 4
        assert stats["by_model"]["mock-model"]["count"] == 2
        assert stats["by_provider"]["mock"]["count"] == 2

    @pytest.mark.asyncio
    async def test_non_response_results_not_tracked(self, mock_client: MockClient) -> None:
        client = CostTrackingClient(mock_client)

        await client.chat_stream("Hi")
        await client.get_embeddings("text")

        assert client.requests == []
        assert client.get_stats()["average_cost"] == 0.0

    @pytest.mark.asyncio
    async def test_callback(self, mock_client: MockClient) -> None:
        callback = MagicMock()
        client = CostTrackingClient(mock_client, on_request_tracked=callback)

        await client.chat_with_tools("Hi", [{"name": "lookup"}])

        request, stats = callback.call_args.args
        assert isinstance(request, TrackedRequest)
        assert request.operation == "chat_with_tools"
        assert stats["total_requests"] == 1

    @pytest.mark.asyncio
    async def test_get_requests_and_reset(self, mock_client: MockClient) -> None:
        client = CostTrackingClient(mock_client)
        await client.chat("Hi")

        assert client.get_requests()[0]["provider"] == "mock"

        client.reset()
        assert client.total_cost == 0


class TestComposition:
    """Test wrappers stacked over one another."""

    @pytest.mark.asyncio
    async def test_stacked_wrappers(self, log: MagicMock) -> None:
        inner = MockClient(errors=[TransientError("flaky", provider="mock", status=503)])
        tracked = CostTrackingClient(LoggingClient(inner))
        client = ResilientClient(tracked, {"max_retries": 1, "jitter_factor": 0})
        client.sleep = AsyncMock()

        response = await client.chat("Hi")

        assert implements_chat_client(client)
        assert response.content == "Mock response"
        assert len(tracked.requests) == 1
        assert log.error.call_count == 1
        assert client.get_metrics()["retried_requests"] == 1

    @pytest.mark.asyncio
    async def test_generator_messages_replayed_on_retry(self, log: MagicMock) -> None:
        inner = MockClient(errors=[TransientError("flaky", provider="mock", status=503)])
        client = ResilientClient(LoggingClient(inner), {"max_retries": 1, "jitter_factor": 0})
        client.sleep = AsyncMock()

        await client.chat(message for message in [{"role": "user", "content": "hi"}])

        attempts = [normalize_messages(call["messages"]) for call in inner.call_history]
        assert [[message.text for message in sent] for sent in attempts] == [["hi"], ["hi"]]
