"""Provider-neutral chat domain models."""

from .messages import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ContentBlock,
    ImageBlock,
    Role,
    TextBlock,
    TokenUsage,
    ToolCall,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
)

__all__ = [
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "ContentBlock",
    "ImageBlock",
    "Role",
    "TextBlock",
    "TokenUsage",
    "ToolCall",
    "ToolDefinition",
    "ToolResultBlock",
    "ToolUseBlock",
]
