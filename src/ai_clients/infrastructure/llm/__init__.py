"""LLM chat client infrastructure."""

from .clients import (
    AzureOpenAIClient,
    ChatClient,
    ClaudeClient,
    CostTrackingClient,
    LoggingClient,
    MockClient,
    StandardOpenAIClient,
    implements_chat_client,
)
from .factory import (
    ChatClientFactory,
    create_client,
    create_client_with_fallback,
    create_resilient_client,
    get_available_providers,
    get_supported_providers,
    is_provider_available,
)
from .resilience import CircuitState, ResilienceConfig, ResilientClient

__all__ = [
    "AzureOpenAIClient",
    "ChatClient",
    "ClaudeClient",
    "CostTrackingClient",
    "LoggingClient",
    "MockClient",
    "StandardOpenAIClient",
    "implements_chat_client",
    "ChatClientFactory",
    "create_client",
    "create_client_with_fallback",
    "create_resilient_client",
    "get_available_providers",
    "get_supported_providers",
    "is_provider_available",
    "CircuitState",
    "ResilienceConfig",
    "ResilientClient",
]
