"""Conversion between the neutral chat records and vendor wire formats.

Every adapter goes through these functions exactly once per request and once
per response, so both OpenAI-compatible and Claude clients see identical
inputs and produce identical envelopes.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog

from ...domain.messages import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ImageBlock,
    Role,
    TextBlock,
    TokenUsage,
    ToolCall,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
)

logger = structlog.get_logger(__name__)

DEFAULT_CLAUDE_MAX_TOKENS = 4096

# Keys of ChatOptions that never go to the vendor verbatim
_LOCAL_OPTION_KEYS = {"model", "json_mode", "stream", "system"}

# OpenAI-only sampling keys Claude rejects
_OPENAI_ONLY_KEYS = {"frequency_penalty", "presence_penalty", "response_format", "logit_bias", "seed", "n"}


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping or an SDK object."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


def normalize_messages(messages: str | ChatMessage | Mapping[str, Any] | Iterable[ChatMessage | Mapping[str, Any]]) -> list[ChatMessage]:
    """Coerce caller input into a list of ``ChatMessage``.

    A bare string is treated as a single user message.
    """
    if isinstance(messages, str):
        return [ChatMessage.user(messages)]
    if isinstance(messages, (ChatMessage, Mapping)):
        messages = [messages]
    return [m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m) for m in messages]


def normalize_tool(tool: ToolDefinition | Mapping[str, Any]) -> ToolDefinition:
    if isinstance(tool, ToolDefinition):
        return tool
    if isinstance(tool, Mapping):
        return ToolDefinition.model_validate(dict(tool))
    raise TypeError(f"Unsupported tool definition type: {type(tool).__name__}")


def normalize_tools(tools: Iterable[ToolDefinition | Mapping[str, Any]] | None) -> list[ToolDefinition]:
    """Accept tools in either schema dialect and return canonical definitions."""
    return [normalize_tool(tool) for tool in tools or []]


def to_openai_tool(tool: ToolDefinition) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {"name": tool.name, "description": tool.description, "parameters": tool.parameters},
    }


def to_anthropic_tool(tool: ToolDefinition) -> dict[str, Any]:
    return {"name": tool.name, "description": tool.description, "input_schema": tool.parameters}


def _result_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return "\n".join(block.text for block in content if isinstance(block, TextBlock))


def _openai_tool_call(call: ToolCall) -> dict[str, Any]:
    arguments = call.raw_arguments if call.raw_arguments is not None else json.dumps(call.arguments)
    return {"id": call.id, "type": "function", "function": {"name": call.name, "arguments": arguments}}


def _openai_part(block: TextBlock | ImageBlock) -> dict[str, Any]:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    url = block.url or f"data:{block.media_type};base64,{block.data}"
    return {"type": "image_url", "image_url": {"url": url}}


def to_openai_messages(messages: Sequence[ChatMessage], system: str | None = None) -> list[dict[str, Any]]:
    """Render messages in the OpenAI chat-completions format.

    ``tool_result`` blocks become separate ``tool`` messages and ``tool_use``
    blocks are folded into the assistant's ``tool_calls``.
    """
    result: list[dict[str, Any]] = []
    if system:
        result.append({"role": "system", "content": system})

    for message in messages:
        if message.role is Role.TOOL:
            result.append({"role": "tool", "tool_call_id": message.tool_call_id, "content": _result_text(message.content)})
            continue

        calls = list(message.tool_calls or [])
        if isinstance(message.content, list):
            parts = []
            for block in message.content:
                if isinstance(block, ToolResultBlock):
                    result.append({"role": "tool", "tool_call_id": block.tool_use_id, "content": block.content})
                elif isinstance(block, ToolUseBlock):
                    calls.append(ToolCall(id=block.id, name=block.name, arguments=block.input))
                else:
                    parts.append(block)

            if not parts and not calls:
                continue
            if message.role is Role.USER and any(isinstance(part, ImageBlock) for part in parts):
                content: Any = [_openai_part(part) for part in parts]
            else:
                content = "\n".join(part.text for part in parts if isinstance(part, TextBlock)) or None
        else:
            content = message.content

        entry: dict[str, Any] = {"role": message.role.value, "content": content}
        if message.name:
            entry["name"] = message.name
        if calls:
            entry["tool_calls"] = [_openai_tool_call(call) for call in calls]
        result.append(entry)

    return result


def _anthropic_block(block: Any) -> dict[str, Any]:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ImageBlock):
        if block.url:
            return {"type": "image", "source": {"type": "url", "url": block.url}}
        return {"type": "image", "source": {"type": "base64", "media_type": block.media_type, "data": block.data}}
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    data = {"type": "tool_result", "tool_use_id": block.tool_use_id, "content": block.content}
    if block.is_error:
        data["is_error"] = True
    return data


def _append_turn(result: list[dict[str, Any]], role: str, content: str | list[dict[str, Any]]) -> None:
    """Append a turn, merging into the previous one when the role repeats."""
    if result and result[-1]["role"] == role:
        previous = result[-1]["content"]
        if isinstance(previous, str):
            previous = [{"type": "text", "text": previous}]
        if isinstance(content, str):
            content = [{"type": "text", "text": content}]
        result[-1]["content"] = previous + content
    else:
        result.append({"role": role, "content": content})


def to_anthropic_messages(messages: Sequence[ChatMessage]) -> tuple[str | None, list[dict[str, Any]]]:
    """Render messages in the Claude messages format.

    Returns:
        Tuple of (system prompt or None, message list). System messages are
        lifted out; consecutive tool results share one user turn.
    """
    system_parts: list[str] = []
    result: list[dict[str, Any]] = []

    for message in messages:
        if message.role is Role.SYSTEM:
            system_parts.append(message.text)
            continue

        if message.role is Role.TOOL:
            block = {"type": "tool_result", "tool_use_id": message.tool_call_id, "content": _result_text(message.content)}
            _append_turn(result, Role.USER.value, [block])
            continue

        if isinstance(message.content, str) and not message.tool_calls:
            if message.content:
                _append_turn(result, message.role.value, message.content)
            continue

        blocks = [_anthropic_block(block) for block in message.blocks()]
        blocks.extend(_anthropic_block(call.to_block()) for call in message.tool_calls or [])
        if blocks:
            _append_turn(result, message.role.value, blocks)

    system = "\n\n".join(part for part in system_parts if part)
    return system or None, result


def openai_request_options(options: ChatOptions) -> dict[str, Any]:
    """Vendor keyword arguments for an OpenAI chat-completions call."""
    data = options.model_dump(exclude_none=True, exclude=_LOCAL_OPTION_KEYS)
    if options.json_mode and "response_format" not in data:
        data["response_format"] = {"type": "json_object"}
    return data


def to_anthropic_tool_choice(choice: Any) -> Any:
    """Translate an OpenAI ``tool_choice`` into Claude's object form.

    ``"auto"`` and ``"none"`` keep their meaning, ``"required"`` becomes
    ``"any"`` and a named function becomes ``{"type": "tool", "name": ...}``.
    Values already in Claude form pass through.
    """
    if isinstance(choice, str):
        return {"type": "any" if choice == "required" else choice}
    if isinstance(choice, Mapping) and choice.get("type") == "function":
        return {"type": "tool", "name": choice.get("function", {}).get("name") or choice.get("name")}
    return choice


def anthropic_request_options(options: ChatOptions, default_max_tokens: int = DEFAULT_CLAUDE_MAX_TOKENS) -> dict[str, Any]:
    """Vendor keyword arguments for a Claude messages call.

    ``stop`` is renamed to ``stop_sequences`` and ``max_tokens`` is always set,
    since Claude requires it. OpenAI-only keys are dropped and
    ``tool_choice`` is translated.
    """
    data = options.model_dump(exclude_none=True, exclude=_LOCAL_OPTION_KEYS)
    dropped = sorted(key for key in data if key in _OPENAI_ONLY_KEYS)
    for key in dropped:
        data.pop(key)
    if dropped:
        logger.debug("Dropped options unsupported by Claude", options=dropped)

    stop = data.pop("stop", None)
    if stop is not None:
        data["stop_sequences"] = [stop] if isinstance(stop, str) else list(stop)
    if "tool_choice" in data:
        data["tool_choice"] = to_anthropic_tool_choice(data["tool_choice"])
    data.setdefault("max_tokens", default_max_tokens)
    return data


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


def _usage(raw: Any) -> TokenUsage | None:
    if raw is None:
        return None
    return TokenUsage.model_validate(
        {
            "prompt_tokens": _field(raw, "prompt_tokens", _field(raw, "input_tokens")),
            "completion_tokens": _field(raw, "completion_tokens", _field(raw, "output_tokens")),
            "total_tokens": _field(raw, "total_tokens"),
        }
    )


def parse_tool_arguments(raw: Any) -> dict[str, Any]:
    """Parse a JSON argument string, yielding ``{}`` when it is not a JSON object."""
    if isinstance(raw, Mapping):
        return dict(raw)
    if not raw:
        return {}
    try:
        arguments = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        logger.warning("Unparsable tool call arguments", raw_arguments=str(raw)[:200])
        return {}
    return arguments if isinstance(arguments, dict) else {}


def from_openai_completion(completion: Any, provider: str) -> ChatResponse:
    """Normalize an OpenAI chat completion (SDK object or dict)."""
    choices = _field(completion, "choices") or []
    choice = choices[0] if choices else None
    message = _field(choice, "message")

    tool_calls = []
    for call in _field(message, "tool_calls") or []:
        function = _field(call, "function")
        raw = _field(function, "arguments")
        tool_calls.append(
            ToolCall(
                id=_field(call, "id") or "",
                name=_field(function, "name") or "",
                arguments=parse_tool_arguments(raw),
                raw_arguments=raw if isinstance(raw, str) else None,
            )
        )

    return ChatResponse(
        id=_field(completion, "id"),
        model=_field(completion, "model"),
        provider=provider,
        content=_field(message, "content") or "",
        tool_calls=tool_calls,
        usage=_usage(_field(completion, "usage")),
        finish_reason=_field(choice, "finish_reason"),
        raw=completion,
    )


def from_anthropic_message(message: Any, provider: str = "claude") -> ChatResponse:
    """Normalize a Claude message (SDK object or dict).

    Text is the newline-joined concatenation of every text block.
    """
    texts: list[str] = []
    tool_calls: list[ToolCall] = []

    for block in _field(message, "content") or []:
        block_type = _field(block, "type")
        if block_type == "text":
            texts.append(_field(block, "text") or "")
        elif block_type == "tool_use":
            tool_calls.append(
                ToolCall(
                    id=_field(block, "id") or "",
                    name=_field(block, "name") or "",
                    arguments=dict(_field(block, "input") or {}),
                )
            )

    return ChatResponse(
        id=_field(message, "id"),
        model=_field(message, "model"),
        provider=provider,
        content="\n".join(text for text in texts if text),
        tool_calls=tool_calls,
        usage=_usage(_field(message, "usage")),
        finish_reason=_field(message, "stop_reason"),
        raw=message,
    )


def openai_stream_text(chunk: Any) -> str:
    """Text delta of one streamed chat-completions chunk, or ``""``."""
    choices = _field(chunk, "choices") or []
    if not choices:
        return ""
    return _field(_field(choices[0], "delta"), "content") or ""
