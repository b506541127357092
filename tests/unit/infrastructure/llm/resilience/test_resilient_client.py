"""Tests for the resilient client wrapper."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from prometheus_client import CollectorRegistry

from ai_clients.core.config import Settings
from ai_clients.core.exceptions import CircuitOpenError, ProviderError, TransientError, UnsupportedOperationError
from ai_clients.domain import ChatResponse
from ai_clients.infrastructure.llm.clients.base_client import implements_chat_client
from ai_clients.infrastructure.llm.clients.mock_client import MockClient, MockConfig
from ai_clients.infrastructure.llm.resilience.circuit_breaker import CircuitState
from ai_clients.infrastructure.llm.resilience.resilient_client import ResilienceConfig, ResilientClient
from ai_clients.infrastructure.monitoring import MetricsCollector, MetricsConfig


def transient(status: int = 503) -> TransientError:
    return TransientError("upstream unavailable", provider="mock", status=status)


def make_client(inner: MockClient, **config) -> ResilientClient:
    """Resilient client with real delays replaced by an AsyncMock."""
    defaults = {"max_retries": 2, "base_delay_ms": 100, "max_delay_ms": 1000, "jitter_factor": 0}
    client = ResilientClient(inner, {**defaults, **config})
    client.sleep = AsyncMock()
    return client


class TestResilienceConfig:
    """Test ResilienceConfig."""

    def test_defaults(self) -> None:
        config = ResilienceConfig()

        assert config.max_retries == 3
        assert config.base_delay_ms == 1000
        assert config.max_delay_ms == 30000
        assert config.jitter_factor == 0.3
        assert config.circuit_breaker_threshold == 5
        assert config.circuit_breaker_timeout_ms == 60000

    def test_from_settings(self, settings_factory) -> None:
        settings: Settings = settings_factory(RESILIENCE_MAX_RETRIES=5, RESILIENCE_CIRCUIT_BREAKER_THRESHOLD=2)

        config = ResilienceConfig.from_settings(settings)

        assert config.max_retries == 5
        assert config.circuit_breaker_threshold == 2

    def test_partial_mapping_keeps_defaults(self, mock_client: MockClient) -> None:
        client = ResilientClient(mock_client, {"max_retries": 1})

        assert client.config.max_retries == 1
        assert client.config.circuit_breaker_threshold == 5


class TestResilientClient:
    """Test retry, backoff and circuit breaking around a client."""

    def test_satisfies_contract(self, mock_client: MockClient) -> None:
        client = ResilientClient(mock_client)

        assert implements_chat_client(client)
        assert client.provider_name == "mock"
        assert client.model == "mock-model"
        assert client.name == "mock"

    @pytest.mark.asyncio
    async def test_success_passes_through(self, mock_client: MockClient) -> None:
        client = make_client(mock_client)

        response = await client.chat("Hello")

        assert response.content == "Mock response"
        client.sleep.assert_not_awaited()
        metrics = client.get_metrics()
        assert metrics["total_requests"] == 1
        assert metrics["successful_requests"] == 1
        assert metrics["retried_requests"] == 0

    @pytest.mark.asyncio
    async def test_retries_then_fails(self, mock_client: MockClient) -> None:
        """Test two retries with 100ms and 200ms waits before giving up."""
        mock_client.queue_errors(transient(), transient(), transient())
        client = make_client(mock_client)

        with pytest.raises(TransientError):
            await client.chat("Hello")

        assert [call.args[0] for call in client.sleep.await_args_list] == [100, 200]
        assert len(mock_client.call_history) == 3
        metrics = client.get_metrics()
        assert metrics["total_requests"] == 1
        assert metrics["successful_requests"] == 0
        assert metrics["failed_requests"] == 1
        assert metrics["retried_requests"] == 2
        assert metrics["failure_count"] == 1

    @pytest.mark.asyncio
    async def test_recovers_after_retry(self, mock_client: MockClient) -> None:
        mock_client.queue_errors(transient(429))
        client = make_client(mock_client)

        response = await client.chat("Hello")

        assert response.content == "Mock response"
        metrics = client.get_metrics()
        assert metrics["successful_requests"] == 1
        assert metrics["retried_requests"] == 1
        assert metrics["failed_requests"] == 0

    @pytest.mark.asyncio
    async def test_non_retryable_error_is_not_retried(self, mock_client: MockClient) -> None:
        """Test a 4xx fails on the first attempt."""
        mock_client.queue_errors(ProviderError("bad request", provider="mock", status=400))
        client = make_client(mock_client)

        with pytest.raises(ProviderError):
            await client.chat("Hello")

        assert len(mock_client.call_history) == 1
        client.sleep.assert_not_awaited()
        assert client.get_metrics()["retried_requests"] == 0
        assert client.get_metrics()["failed_requests"] == 1

    @pytest.mark.asyncio
    async def test_unsupported_operation_is_not_retried(self, mock_client: MockClient) -> None:
        mock_client.queue_errors(UnsupportedOperationError("mock", "get_embeddings"))
        client = make_client(mock_client)

        with pytest.raises(UnsupportedOperationError):
            await client.get_embeddings("text")

        assert len(mock_client.call_history) == 1

    @pytest.mark.asyncio
    async def test_zero_retries(self, mock_client: MockClient) -> None:
        mock_client.queue_errors(transient())
        client = make_client(mock_client, max_retries=0)

        with pytest.raises(TransientError):
            await client.chat("Hello")

        assert len(mock_client.call_history) == 1
        assert client.get_metrics()["retried_requests"] == 0

    @pytest.mark.asyncio
    async def test_circuit_opens_and_rejects(self, mock_client: MockClient, frozen_time) -> None:
        """Test the breaker opens after the threshold and rejects without calling the client."""
        mock_client.queue_errors(*[transient()] * 2)
        client = make_client(mock_client, max_retries=0, circuit_breaker_threshold=2, circuit_breaker_timeout_ms=5000)

        for _ in range(2):
            with pytest.raises(TransientError):
                await client.chat("Hello")

        assert client.get_metrics()["circuit_state"] == "open"
        assert client.get_metrics()["circuit_breaker_trips"] == 1

        with pytest.raises(CircuitOpenError):
            await client.chat("Hello")

        assert len(mock_client.call_history) == 2
        metrics = client.get_metrics()
        assert metrics["total_requests"] == 2
        assert metrics["rejected_requests"] == 1

    @pytest.mark.asyncio
    async def test_half_open_probe_success_closes(self, mock_client: MockClient, frozen_time) -> None:
        mock_client.queue_errors(transient())
        client = make_client(mock_client, max_retries=0, circuit_breaker_threshold=1, circuit_breaker_timeout_ms=5000)

        with pytest.raises(TransientError):
            await client.chat("Hello")
        frozen_time.tick(timedelta(seconds=5))

        response = await client.chat("Hello again")

        assert response.content == "Mock response"
        assert client.circuit_breaker.state == CircuitState.CLOSED
        assert client.get_metrics()["failure_count"] == 0

    @pytest.mark.asyncio
    async def test_half_open_probe_failure_reopens(self, mock_client: MockClient, frozen_time) -> None:
        mock_client.queue_errors(transient(), transient())
        client = make_client(mock_client, max_retries=0, circuit_breaker_threshold=1, circuit_breaker_timeout_ms=5000)

        with pytest.raises(TransientError):
            await client.chat("Hello")
        frozen_time.tick(timedelta(seconds=6))

        with pytest.raises(TransientError):
            await client.chat("Probe")

        assert client.circuit_breaker.state == CircuitState.OPEN
        assert client.get_metrics()["circuit_breaker_trips"] == 2
        with pytest.raises(CircuitOpenError):
            await client.chat("Too soon")

    @pytest.mark.asyncio
    async def test_concurrent_half_open_callers_rejected(self, frozen_time) -> None:
        """Test only one caller probes a half-open circuit."""
        release = asyncio.Event()

        async def slow_chat(messages, options):
            await release.wait()
            return ChatResponse(provider="mock", content="probe ok")

        inner = MockClient(MockConfig(), chat_handler=slow_chat, errors=[transient()])
        client = make_client(inner, max_retries=0, circuit_breaker_threshold=1, circuit_breaker_timeout_ms=1000)

        with pytest.raises(TransientError):
            await client.chat("Hello")
        frozen_time.tick(timedelta(seconds=2))

        probe = asyncio.ensure_future(client.chat("Probe"))
        await asyncio.sleep(0)
        with pytest.raises(CircuitOpenError):
            await client.chat("Second caller")

        release.set()
        response = await probe

        assert response.content == "probe ok"
        assert client.circuit_breaker.state == CircuitState.CLOSED
        assert client.get_metrics()["rejected_requests"] == 1

    @pytest.mark.asyncio
    async def test_cancelled_probe_releases_slot(self, frozen_time) -> None:
        async def hang(messages, options):
            await asyncio.Event().wait()

        inner = MockClient(MockConfig(), chat_handler=hang, errors=[transient()])
        client = make_client(inner, max_retries=0, circuit_breaker_threshold=1, circuit_breaker_timeout_ms=1000)

        with pytest.raises(TransientError):
            await client.chat("Hello")
        frozen_time.tick(timedelta(seconds=2))

        probe = asyncio.ensure_future(client.chat("Probe"))
        await asyncio.sleep(0)
        probe.cancel()
        with pytest.raises(asyncio.CancelledError):
            await probe

        inner.chat_handler = None
        response = await client.chat("After cancel")
        assert response.content == "Mock response"

    @pytest.mark.asyncio
    async def test_metrics_stay_consistent(self, mock_client: MockClient) -> None:
        """Test admitted calls are always either successful or failed."""
        mock_client.queue_errors(
            None,
            transient(),
            ProviderError("bad", provider="mock", status=400),
            transient(),
            transient(),
            transient(),
            None,
        )
        client = make_client(mock_client, circuit_breaker_threshold=10)

        for _ in range(4):
            try:
                await client.chat("Hello")
            except (TransientError, ProviderError):
                pass

        metrics = client.get_metrics()
        assert metrics["total_requests"] == 4
        assert metrics["successful_requests"] + metrics["failed_requests"] == metrics["total_requests"]
        assert metrics["success_rate"] == pytest.approx(metrics["successful_requests"] / 4 * 100)

    @pytest.mark.asyncio
    async def test_stream_is_retried_from_start(self) -> None:
        """Test a failed stream is replayed in full on the next attempt."""
        chunks: list[str] = []
        inner = MockClient(MockConfig(default_response="one two"), errors=[transient()])
        client = make_client(inner)

        text = await client.chat_stream("Hello", chunks.append)

        assert text == "one two"
        assert chunks == ["one ", "two"]

    @pytest.mark.asyncio
    async def test_every_io_operation_is_protected(self, mock_client: MockClient) -> None:
        client = make_client(mock_client)
        tools = [{"name": "lookup", "parameters": {"type": "object", "properties": {}}}]

        mock_client.queue_errors(transient())
        await client.chat_with_tools("Hello", iter(tools))
        mock_client.queue_errors(transient())
        await client.get_embeddings(["a", "b"])
        mock_client.queue_errors(transient())
        thread = await client.create_thread()

        assert thread["id"].startswith("thread_mock_")
        assert client.get_metrics()["retried_requests"] == 3

    def test_pure_helpers_bypass_resilience(self, mock_client: MockClient) -> None:
        client = make_client(mock_client)
        response = ChatResponse(provider="mock", content="hi")

        assert client.get_text_content(response) == "hi"
        assert client.has_tool_use(response) is False
        assert client.get_metrics()["total_requests"] == 0

    def test_initial_metrics(self, mock_client: MockClient) -> None:
        metrics = ResilientClient(mock_client).get_metrics()

        assert metrics == {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "retried_requests": 0,
            "circuit_breaker_trips": 0,
            "rejected_requests": 0,
            "success_rate": 100.0,
            "circuit_state": "closed",
            "failure_count": 0,
        }

    @pytest.mark.asyncio
    async def test_reset(self, mock_client: MockClient) -> None:
        mock_client.queue_errors(transient())
        client = make_client(mock_client, max_retries=0, circuit_breaker_threshold=1)
        with pytest.raises(TransientError):
            await client.chat("Hello")

        client.reset()

        assert client.get_metrics()["total_requests"] == 0
        assert client.get_circuit_breaker_status()["state"] == "closed"

    def test_instances_are_independent(self, mock_client: MockClient) -> None:
        first = ResilientClient(mock_client)
        second = ResilientClient(mock_client)

        first.circuit_breaker.record_failure()

        assert first.circuit_breaker is not second.circuit_breaker
        assert second.get_metrics()["failure_count"] == 0

    @pytest.mark.asyncio
    async def test_reports_to_collector(self, mock_client: MockClient) -> None:
        collector = MetricsCollector(MetricsConfig(registry=CollectorRegistry()))
        mock_client.queue_errors(transient(), transient())
        client = ResilientClient(
            mock_client,
            {"max_retries": 1, "base_delay_ms": 0, "jitter_factor": 0, "circuit_breaker_threshold": 1},
            collector=collector,
        )
        client.sleep = AsyncMock()

        with pytest.raises(TransientError):
            await client.chat("Hello")

        registry = collector.registry
        labels = {"provider": "mock", "operation": "chat"}
        assert registry.get_sample_value("ai_clients_llm_retries_total", labels) == 1
        assert registry.get_sample_value("ai_clients_llm_requests_total", {**labels, "status": "error"}) == 1
        assert registry.get_sample_value("ai_clients_circuit_breaker_trips_total", {"provider": "mock"}) == 1
        assert registry.get_sample_value("ai_clients_circuit_breaker_state", {"provider": "mock"}) == 1
