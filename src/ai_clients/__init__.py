"""ai-clients: one chat interface over OpenAI, Azure OpenAI and Claude.

Example:
    >>> from ai_clients import create_resilient_client
    >>> client = create_resilient_client("claude")
    >>> response = await client.chat([{"role": "user", "content": "Hello"}])
    >>> client.get_text_content(response)
"""

from .core.config import LLMProvider, Settings, get_settings, get_use_case_options
from .core.exceptions import (
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
)
from .domain import ChatMessage, ChatOptions, ChatResponse, Role, TokenUsage, ToolCall, ToolDefinition
from .infrastructure.llm import (
    AzureOpenAIClient,
    ChatClient,
    ChatClientFactory,
    CircuitState,
    ClaudeClient,
    CostTrackingClient,
    LoggingClient,
    MockClient,
    ResilienceConfig,
    ResilientClient,
    StandardOpenAIClient,
    create_client,
    create_client_with_fallback,
    create_resilient_client,
    get_available_providers,
    get_supported_providers,
    implements_chat_client,
    is_provider_available,
)
from .pricing import CostBreakdown, calculate_cost

__version__ = "1.0.0"

__all__ = [
    "LLMProvider",
    "Settings",
    "get_settings",
    "get_use_case_options",
    "AIClientError",
    "CircuitOpenError",
    "ConfigurationError",
    "LLMClientError",
    "LLMRateLimitError",
    "LLMTimeoutError",
    "ProviderError",
    "TransientError",
    "UnsupportedOperationError",
    "UnsupportedProviderError",
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "Role",
    "TokenUsage",
    "ToolCall",
    "ToolDefinition",
    "AzureOpenAIClient",
    "ChatClient",
    "ChatClientFactory",
    "CircuitState",
    "ClaudeClient",
    "CostTrackingClient",
    "LoggingClient",
    "MockClient",
    "ResilienceConfig",
    "ResilientClient",
    "StandardOpenAIClient",
    "create_client",
    "create_client_with_fallback",
    "create_resilient_client",
    "get_available_providers",
    "get_supported_providers",
    "implements_chat_client",
    "is_provider_available",
    "CostBreakdown",
    "calculate_cost",
]
