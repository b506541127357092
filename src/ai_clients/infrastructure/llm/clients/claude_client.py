"""Anthropic Claude chat client."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import anthropic
import structlog
from pydantic import BaseModel, SecretStr

from ....core.exceptions import ConfigurationError, LLMTimeoutError, TransientError, UnsupportedOperationError, error_for_status
from ....domain.messages import ChatMessage, ChatOptions, ChatResponse, ImageBlock, TextBlock
from ..normalization import (
    DEFAULT_CLAUDE_MAX_TOKENS,
    anthropic_request_options,
    from_anthropic_message,
    normalize_messages,
    normalize_tools,
    to_anthropic_messages,
    to_anthropic_tool,
)
from .base_client import ChunkCallback, MessagesInput, OptionsInput, ResponseHelpersMixin, ToolsInput, emit_chunk

logger = structlog.get_logger(__name__)


class ClaudeConfig(BaseModel):
    """Configuration for the Claude client."""

    api_key: SecretStr
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = DEFAULT_CLAUDE_MAX_TOKENS
    base_url: str | None = None
    timeout: float = 60.0
    # SDK-level retries stay off; ResilientClient owns retrying
    max_retries: int = 0


@contextmanager
def translate_anthropic_errors(provider: str) -> Iterator[None]:
    """Re-raise Anthropic SDK exceptions as package exceptions."""
    try:
        yield
    except anthropic.APIStatusError as e:
        raise error_for_status(provider, e.status_code, e.message, e) from e
    except anthropic.APITimeoutError as e:
        raise LLMTimeoutError(f"{provider} request timed out", provider=provider, original_error=e) from e
    except anthropic.APIConnectionError as e:
        raise TransientError(f"{provider} network error: {e}", provider=provider, original_error=e) from e


class ClaudeClient(ResponseHelpersMixin):
    """Claude adapter. Embeddings and the Assistants API are not offered by Anthropic."""

    provider_name = "claude"
    pricing_family = "claude"

    def __init__(self, config: ClaudeConfig, sdk_client: Any | None = None):
        """Initialize the Claude client.

        Args:
            config: Claude configuration
            sdk_client: Pre-built ``AsyncAnthropic``-compatible client, mainly for tests

        Raises:
            ConfigurationError: If the API key is empty
        """
        if not config.api_key.get_secret_value():
            raise ConfigurationError("ANTHROPIC_API_KEY is required for claude")

        self.config = config
        self.model = config.model
        if sdk_client is None:
            sdk_client = anthropic.AsyncAnthropic(
                api_key=config.api_key.get_secret_value(),
                base_url=config.base_url,
                timeout=config.timeout,
                max_retries=config.max_retries,
            )
        self._client = sdk_client
        logger.debug("Claude client initialized", model=self.model)

    def _params(self, messages: list[ChatMessage], options: ChatOptions) -> dict[str, Any]:
        system, wire_messages = to_anthropic_messages(messages)
        if options.system:
            system = f"{options.system}\n\n{system}" if system else options.system

        params = {
            "model": options.model or self.model,
            "messages": wire_messages,
            **anthropic_request_options(options, self.config.max_tokens),
        }
        if system:
            params["system"] = system
        return params

    async def _create(self, messages: list[ChatMessage], options: ChatOptions, **extra: Any) -> ChatResponse:
        params = {**self._params(messages, options), **extra}
        with translate_anthropic_errors(self.provider_name):
            message = await self._client.messages.create(**params)
        return from_anthropic_message(message, self.provider_name)

    async def chat(self, messages: MessagesInput, options: OptionsInput = None) -> ChatResponse:
        return await self._create(normalize_messages(messages), ChatOptions.coerce(options))

    async def chat_stream(
        self,
        messages: MessagesInput,
        on_chunk: ChunkCallback | None = None,
        options: OptionsInput = None,
    ) -> str:
        params = self._params(normalize_messages(messages), ChatOptions.coerce(options))

        fragments: list[str] = []
        with translate_anthropic_errors(self.provider_name):
            async with self._client.messages.stream(**params) as stream:
                async for text in stream.text_stream:
                    if text:
                        fragments.append(text)
                        await emit_chunk(on_chunk, text)
        return "".join(fragments)

    async def chat_with_tools(self, messages: MessagesInput, tools: ToolsInput, options: OptionsInput = None) -> ChatResponse:
        definitions = normalize_tools(tools)
        extra: dict[str, Any] = {}
        if definitions:
            extra["tools"] = [to_anthropic_tool(tool) for tool in definitions]
        return await self._create(normalize_messages(messages), ChatOptions.coerce(options), **extra)

    async def chat_with_functions(
        self, messages: MessagesInput, functions: ToolsInput, options: OptionsInput = None
    ) -> ChatResponse:
        """Legacy name for ``chat_with_tools``."""
        return await self.chat_with_tools(messages, functions, options)

    async def get_embeddings(self, input: str | list[str], model: str | None = None) -> list[list[float]]:
        raise UnsupportedOperationError(
            self.provider_name,
            "get_embeddings",
            "Claude does not provide an embeddings API. Use openai-standard or azure-openai instead.",
        )

    async def analyze_image(self, image_base64: str, prompt: str, options: OptionsInput = None) -> str:
        """Describe a base64 image. ``media_type`` may be passed through options."""
        opts = ChatOptions.coerce(options).model_dump(exclude_none=True)
        media_type = opts.pop("media_type", "image/png")

        message = ChatMessage.user([ImageBlock(data=image_base64, media_type=media_type), TextBlock(text=prompt)])
        response = await self._create([message], ChatOptions.model_validate(opts))
        return response.content

    def _unsupported(self, operation: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(
            self.provider_name,
            operation,
            "Assistants API is not supported by Claude. Use openai-standard instead.",
        )

    async def create_assistant(self, instructions: str, tools: ToolsInput | None = None, options: OptionsInput = None) -> dict[str, Any]:
        raise self._unsupported("create_assistant")

    async def create_thread(self) -> dict[str, Any]:
        raise self._unsupported("create_thread")

    async def add_message(self, thread_id: str, content: str, role: str = "user") -> dict[str, Any]:
        raise self._unsupported("add_message")

    async def get_messages(self, thread_id: str, options: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        raise self._unsupported("get_messages")

    async def run_assistant(self, thread_id: str, assistant_id: str, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        raise self._unsupported("run_assistant")

    async def retrieve_run(self, thread_id: str, run_id: str) -> dict[str, Any]:
        raise self._unsupported("retrieve_run")
