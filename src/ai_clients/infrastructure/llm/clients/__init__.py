"""Chat client implementations."""

from .base_client import ChatClient, ResponseHelpersMixin, emit_chunk, implements_chat_client
from .claude_client import ClaudeClient, ClaudeConfig
from .cost_tracking_client import CostTrackingClient, TrackedRequest
from .delegating import DelegatingClient
from .logging_client import LoggingClient
from .mock_client import MockClient, MockConfig
from .openai_client import AzureOpenAIClient, AzureOpenAIConfig, OpenAICompatibleClient, OpenAIConfig, StandardOpenAIClient

__all__ = [
    "ChatClient",
    "ResponseHelpersMixin",
    "emit_chunk",
    "implements_chat_client",
    "ClaudeClient",
    "ClaudeConfig",
    "CostTrackingClient",
    "TrackedRequest",
    "DelegatingClient",
    "LoggingClient",
    "MockClient",
    "MockConfig",
    "AzureOpenAIClient",
    "AzureOpenAIConfig",
    "OpenAICompatibleClient",
    "OpenAIConfig",
    "StandardOpenAIClient",
]
