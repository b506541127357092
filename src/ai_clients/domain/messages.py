"""Provider-neutral chat records.

These are the canonical shapes that flow through every client. Vendor
request and response formats are produced from, and converted into, these
models by the normalization layer only.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Role(str, Enum):
    """Closed set of message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class TextBlock(BaseModel):
    """Plain text content block."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImageBlock(BaseModel):
    """Image content block, either inline base64 data or a URL."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image"] = "image"
    data: str | None = None
    url: str | None = None
    media_type: str = "image/png"

    @model_validator(mode="after")
    def check_source(self) -> ImageBlock:
        """Exactly one image source must be given."""
        if (self.data is None) == (self.url is None):
            raise ValueError("image block needs exactly one of 'data' or 'url'")
        return self


class ToolUseBlock(BaseModel):
    """Model-initiated tool invocation, as carried inside content."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """Result of a tool invocation, correlated by ``tool_use_id``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str = ""
    is_error: bool = False


ContentBlock = Annotated[
    TextBlock | ImageBlock | ToolUseBlock | ToolResultBlock,
    Field(discriminator="type"),
]


class ToolCall(BaseModel):
    """Vendor-agnostic tool call: ``{id, name, arguments}``.

    ``raw_arguments`` keeps the JSON string exactly as the vendor sent it, so
    nothing is lost when the arguments could not be parsed.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    raw_arguments: str | None = None

    @model_validator(mode="before")
    @classmethod
    def unwrap_function_call(cls, data: Any) -> Any:
        """Accept OpenAI ``{"id", "type": "function", "function": {...}}`` entries."""
        if isinstance(data, dict) and isinstance(data.get("function"), dict):
            function = data["function"]
            raw = function.get("arguments")
            if isinstance(raw, str):
                try:
                    arguments = json.loads(raw) if raw else {}
                except json.JSONDecodeError:
                    arguments = {}
                if not isinstance(arguments, dict):
                    arguments = {}
                return {"id": data.get("id", ""), "name": function.get("name", ""), "arguments": arguments, "raw_arguments": raw}
            return {"id": data.get("id", ""), "name": function.get("name", ""), "arguments": raw or {}}
        return data

    def to_block(self) -> ToolUseBlock:
        """Return this call as a ``tool_use`` content block."""
        return ToolUseBlock(id=self.id, name=self.name, input=self.arguments)


class ChatMessage(BaseModel):
    """A single conversation turn."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    role: Role
    content: str | list[ContentBlock] | None = None
    name: str | None = None
    tool_call_id: str | None = Field(default=None, validation_alias=AliasChoices("tool_call_id", "toolCallId"))
    tool_calls: list[ToolCall] | None = Field(default=None, validation_alias=AliasChoices("tool_calls", "toolCalls"))

    @model_validator(mode="after")
    def check_role_invariants(self) -> ChatMessage:
        """Enforce tool correlation rules."""
        if self.role is Role.TOOL and not self.tool_call_id:
            raise ValueError("tool messages must carry a tool_call_id")
        if self.tool_calls and self.role is not Role.ASSISTANT:
            raise ValueError("only assistant messages may carry tool_calls")
        if self.content is None and not (self.role is Role.ASSISTANT and self.tool_calls):
            raise ValueError(f"{self.role.value} message requires content")
        return self

    @property
    def text(self) -> str:
        """Text of the message, joining text blocks when content is a list."""
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(block.text for block in self.content if isinstance(block, TextBlock))

    def blocks(self) -> list[TextBlock | ImageBlock | ToolUseBlock | ToolResultBlock]:
        """Content as a list of blocks. Empty string content yields no blocks."""
        if not self.content:
            return []
        if isinstance(self.content, str):
            return [TextBlock(text=self.content)]
        return list(self.content)

    @classmethod
    def system(cls, text: str) -> ChatMessage:
        return cls(role=Role.SYSTEM, content=text)

    @classmethod
    def user(cls, content: str | list[Any]) -> ChatMessage:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, text: str | None = None, tool_calls: list[ToolCall] | None = None) -> ChatMessage:
        return cls(role=Role.ASSISTANT, content=text, tool_calls=tool_calls or None)

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> ChatMessage:
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)


class ChatOptions(BaseModel):
    """Recognized request options. Unknown keys are kept and forwarded as-is."""

    model_config = ConfigDict(extra="allow")

    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    frequency_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)
    presence_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)
    stop: str | list[str] | None = None
    json_mode: bool = False
    response_format: dict[str, Any] | None = None
    stream: bool = False
    system: str | None = None

    @classmethod
    def coerce(cls, options: ChatOptions | dict[str, Any] | None) -> ChatOptions:
        """Build options from a model, a plain dict or ``None``."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls.model_validate(options)


class ToolDefinition(BaseModel):
    """Tool schema accepted as ``parameters`` or ``input_schema``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        validation_alias=AliasChoices("parameters", "input_schema"),
    )

    @model_validator(mode="before")
    @classmethod
    def unwrap_function(cls, data: Any) -> Any:
        """Accept the ``{"type": "function", "function": {...}}`` wrapper."""
        if isinstance(data, dict) and isinstance(data.get("function"), dict):
            return data["function"]
        return data

    @field_validator("description", mode="before")
    @classmethod
    def none_description(cls, v: Any) -> Any:
        return v or ""

    @property
    def input_schema(self) -> dict[str, Any]:
        """Claude-style name for ``parameters``."""
        return self.parameters

    def to_dict(self) -> dict[str, Any]:
        """Return the definition exposing both schema field names."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
            "input_schema": self.parameters,
        }


class TokenUsage(BaseModel):
    """Token counts reported by the vendor."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @model_validator(mode="before")
    @classmethod
    def accept_vendor_names(cls, data: Any) -> Any:
        """Map Claude ``input_tokens``/``output_tokens`` and fill in the total."""
        if not isinstance(data, dict):
            return data
        prompt = data.get("prompt_tokens", data.get("input_tokens")) or 0
        completion = data.get("completion_tokens", data.get("output_tokens")) or 0
        total = data.get("total_tokens") or prompt + completion
        return {"prompt_tokens": prompt, "completion_tokens": completion, "total_tokens": total}


class ChatResponse(BaseModel):
    """Normalized response envelope returned by every client."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    model: str | None = None
    provider: str
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    usage: TokenUsage | None = None
    finish_reason: str | None = None
    raw: Any = Field(default=None, repr=False, exclude=True)

    @property
    def has_tool_use(self) -> bool:
        return bool(self.tool_calls)

    def to_message(self) -> ChatMessage:
        """Assistant message for appending this response to a history."""
        return ChatMessage.assistant(self.content if self.content or not self.tool_calls else None, self.tool_calls)
