"""
Pytest configuration and shared fixtures for ai-clients tests.

Provides isolated settings, a mock chat client, and small fakes of the
OpenAI and Anthropic async SDK clients so adapters run without network.
"""

from collections.abc import Generator
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from freezegun import freeze_time

from ai_clients.core.config import Settings, get_settings
from ai_clients.infrastructure.llm.clients.mock_client import MockClient, MockConfig

ENV_VARS = [
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_DEFAULT_PROVIDER",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_DEPLOYMENT",
    "ANTHROPIC_API_KEY",
    "CLAUDE_MODEL",
    "RESILIENCE_MAX_RETRIES",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


pytest_plugins = ["pytest_asyncio"]


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: unit test")
    config.addinivalue_line("markers", "slow: slow running test")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep provider credentials from the host environment out of tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_settings(**overrides: Any) -> Settings:
    """Settings built only from explicit values."""
    return Settings(_env_file=None, **overrides)


@pytest.fixture
def empty_settings() -> Settings:
    """Settings with no credentials at all."""
    return make_settings()


@pytest.fixture
def full_settings() -> Settings:
    """Settings with credentials for every provider."""
    return make_settings(
        OPENAI_API_KEY="sk-test-openai",
        AZURE_OPENAI_API_KEY="azure-test-key",
        AZURE_OPENAI_ENDPOINT="https://example.openai.azure.com/",
        AZURE_OPENAI_DEPLOYMENT="gpt-4o-deployment",
        ANTHROPIC_API_KEY="sk-ant-test",
    )


@pytest.fixture
def mock_client() -> MockClient:
    """Mock chat client with the default canned responses."""
    return MockClient(MockConfig())


@pytest.fixture
def frozen_time() -> Generator[Any, None, None]:
    """Freeze time for deterministic circuit breaker timing."""
    with freeze_time("2025-08-26 10:00:00") as frozen:
        yield frozen


# ---------------------------------------------------------------------------
# SDK fakes
# ---------------------------------------------------------------------------


def openai_completion(
    content: str | None = "Hello there",
    tool_calls: list[dict[str, Any]] | None = None,
    model: str = "gpt-4o",
    finish_reason: str = "stop",
) -> dict[str, Any]:
    """Raw chat-completions payload."""
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "model": model,
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
    }


def anthropic_message(
    content: list[dict[str, Any]] | None = None,
    model: str = "claude-sonnet-4-5-20250929",
    stop_reason: str = "end_turn",
) -> dict[str, Any]:
    """Raw Claude messages payload."""
    return {
        "id": "msg_123",
        "type": "message",
        "role": "assistant",
        "model": model,
        "content": content if content is not None else [{"type": "text", "text": "Hello from Claude"}],
        "stop_reason": stop_reason,
        "usage": {"input_tokens": 20, "output_tokens": 8},
    }


class AsyncChunks:
    """Async iterator over a fixed list of items."""

    def __init__(self, items: list[Any]):
        self._items = list(items)

    def __aiter__(self) -> "AsyncChunks":
        return self

    async def __anext__(self) -> Any:
        if not self._items:
            raise StopAsyncIteration
        return self._items.pop(0)


class FakeAnthropicStream:
    """Async context manager standing in for ``messages.stream``."""

    def __init__(self, texts: list[str]):
        self.text_stream = AsyncChunks(texts)

    async def __aenter__(self) -> "FakeAnthropicStream":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


def make_openai_sdk(completion: Any = None) -> MagicMock:
    """``AsyncOpenAI`` look-alike with AsyncMock endpoints."""
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(return_value=completion if completion is not None else openai_completion())
    sdk.embeddings.create = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2]), SimpleNamespace(embedding=[0.3, 0.4])])
    )
    sdk.beta.assistants.create = AsyncMock(return_value={"id": "asst_1", "object": "assistant"})
    sdk.beta.threads.create = AsyncMock(return_value={"id": "thread_1", "object": "thread"})
    sdk.beta.threads.messages.create = AsyncMock(return_value={"id": "msg_1", "role": "user"})
    sdk.beta.threads.messages.list = AsyncMock(return_value=SimpleNamespace(data=[{"id": "msg_1"}, {"id": "msg_2"}]))
    sdk.beta.threads.runs.create = AsyncMock(return_value={"id": "run_1", "status": "queued"})
    sdk.beta.threads.runs.retrieve = AsyncMock(return_value={"id": "run_1", "status": "completed"})
    return sdk


def make_anthropic_sdk(message: Any = None, stream_texts: list[str] | None = None) -> MagicMock:
    """``AsyncAnthropic`` look-alike."""
    sdk = MagicMock()
    sdk.messages.create = AsyncMock(return_value=message if message is not None else anthropic_message())
    sdk.messages.stream = MagicMock(side_effect=lambda **params: FakeAnthropicStream(stream_texts or []))
    return sdk


@pytest.fixture
def settings_factory():
    """Build settings from explicit values only."""
    return make_settings


@pytest.fixture
def completion_factory():
    """Build raw chat-completions payloads."""
    return openai_completion


@pytest.fixture
def claude_message_factory():
    """Build raw Claude message payloads."""
    return anthropic_message


@pytest.fixture
def openai_sdk() -> MagicMock:
    """Fake ``AsyncOpenAI`` client."""
    return make_openai_sdk()


@pytest.fixture
def anthropic_sdk() -> MagicMock:
    """Fake ``AsyncAnthropic`` client streaming two fragments."""
    return make_anthropic_sdk(stream_texts=["Hello", " world"])


@pytest.fixture
def async_chunks():
    """Wrap a list as an async iterator, like an SDK stream."""
    return AsyncChunks
