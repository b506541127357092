"""OpenAI-compatible chat clients: standard OpenAI and Azure OpenAI."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import openai
import structlog
from pydantic import BaseModel, SecretStr

from ....core.exceptions import ConfigurationError, LLMTimeoutError, TransientError, UnsupportedOperationError, error_for_status
from ....domain.messages import ChatMessage, ChatOptions, ChatResponse, ImageBlock, TextBlock
from ..normalization import (
    from_openai_completion,
    normalize_messages,
    normalize_tools,
    openai_request_options,
    openai_stream_text,
    to_openai_messages,
    to_openai_tool,
)
from .base_client import ChunkCallback, MessagesInput, OptionsInput, ResponseHelpersMixin, ToolsInput, emit_chunk

logger = structlog.get_logger(__name__)

DEFAULT_VISION_MAX_TOKENS = 300


class OpenAIConfig(BaseModel):
    """Configuration for the standard OpenAI client."""

    api_key: SecretStr
    model: str = "gpt-4-turbo-preview"
    vision_model: str = "gpt-4o"
    embedding_model: str = "text-embedding-3-small"
    base_url: str | None = None
    timeout: float = 60.0
    # SDK-level retries stay off; ResilientClient owns retrying
    max_retries: int = 0


class AzureOpenAIConfig(BaseModel):
    """Configuration for the Azure OpenAI client. Deployment names stand in for model names."""

    api_key: SecretStr
    endpoint: str
    api_version: str = "2024-02-15-preview"
    deployment: str = "gpt-4-turbo-preview"
    embedding_deployment: str = "text-embedding-ada-002"
    vision_deployment: str | None = None
    timeout: float = 60.0
    max_retries: int = 0


@contextmanager
def translate_openai_errors(provider: str) -> Iterator[None]:
    """Re-raise OpenAI SDK exceptions as package exceptions."""
    try:
        yield
    except openai.APIStatusError as e:
        raise error_for_status(provider, e.status_code, e.message, e) from e
    except openai.APITimeoutError as e:
        raise LLMTimeoutError(f"{provider} request timed out", provider=provider, original_error=e) from e
    except openai.APIConnectionError as e:
        raise TransientError(f"{provider} network error: {e}", provider=provider, original_error=e) from e


def _to_dict(obj: Any) -> dict[str, Any]:
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return dict(obj)


class OpenAICompatibleClient(ResponseHelpersMixin):
    """Chat operations shared by every OpenAI-compatible endpoint."""

    provider_name = "openai"
    pricing_family = "openai"

    def __init__(self, sdk_client: Any, model: str, vision_model: str, embedding_model: str):
        self._client = sdk_client
        self.model = model
        self.vision_model = vision_model
        self.embedding_model = embedding_model

    async def _create(self, messages: list[ChatMessage], options: ChatOptions, **extra: Any) -> ChatResponse:
        params = {
            "model": options.model or self.model,
            "messages": to_openai_messages(messages, system=options.system),
            **openai_request_options(options),
            **extra,
        }
        with translate_openai_errors(self.provider_name):
            completion = await self._client.chat.completions.create(**params)
        return from_openai_completion(completion, self.provider_name)

    async def chat(self, messages: MessagesInput, options: OptionsInput = None) -> ChatResponse:
        return await self._create(normalize_messages(messages), ChatOptions.coerce(options))

    async def chat_stream(
        self,
        messages: MessagesInput,
        on_chunk: ChunkCallback | None = None,
        options: OptionsInput = None,
    ) -> str:
        opts = ChatOptions.coerce(options)
        params = {
            "model": opts.model or self.model,
            "messages": to_openai_messages(normalize_messages(messages), system=opts.system),
            **openai_request_options(opts),
            "stream": True,
        }

        fragments: list[str] = []
        with translate_openai_errors(self.provider_name):
            stream = await self._client.chat.completions.create(**params)
            async for chunk in stream:
                text = openai_stream_text(chunk)
                if text:
                    fragments.append(text)
                    await emit_chunk(on_chunk, text)
        return "".join(fragments)

    async def chat_with_tools(self, messages: MessagesInput, tools: ToolsInput, options: OptionsInput = None) -> ChatResponse:
        opts = ChatOptions.coerce(options)
        definitions = normalize_tools(tools)
        extra: dict[str, Any] = {}
        if definitions:
            extra["tools"] = [to_openai_tool(tool) for tool in definitions]
            # A caller-supplied tool_choice is forwarded with the other options
            if "tool_choice" not in (opts.model_extra or {}):
                extra["tool_choice"] = "auto"
        return await self._create(normalize_messages(messages), opts, **extra)

    async def chat_with_functions(
        self, messages: MessagesInput, functions: ToolsInput, options: OptionsInput = None
    ) -> ChatResponse:
        """Legacy name for ``chat_with_tools``."""
        return await self.chat_with_tools(messages, functions, options)

    async def get_embeddings(self, input: str | list[str], model: str | None = None) -> list[list[float]]:
        texts = [input] if isinstance(input, str) else list(input)
        with translate_openai_errors(self.provider_name):
            response = await self._client.embeddings.create(model=model or self.embedding_model, input=texts)
        return [list(item.embedding) for item in response.data]

    async def analyze_image(self, image_base64: str, prompt: str, options: OptionsInput = None) -> str:
        """Describe an image. ``media_type`` may be passed through options."""
        opts = ChatOptions.coerce(options).model_dump(exclude_none=True)
        media_type = opts.pop("media_type", "image/png")
        opts.setdefault("model", self.vision_model)
        opts.setdefault("max_tokens", DEFAULT_VISION_MAX_TOKENS)

        message = ChatMessage.user([TextBlock(text=prompt), ImageBlock(data=image_base64, media_type=media_type)])
        response = await self._create([message], ChatOptions.model_validate(opts))
        return response.content

    def _unsupported(self, operation: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(
            self.provider_name,
            operation,
            f"Assistants API is not supported by {self.provider_name}. Use openai-standard instead.",
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


class StandardOpenAIClient(OpenAICompatibleClient):
    """Client for api.openai.com, including the Assistants API."""

    provider_name = "openai-standard"

    def __init__(self, config: OpenAIConfig, sdk_client: Any | None = None):
        """Initialize the standard OpenAI client.

        Args:
            config: OpenAI configuration
            sdk_client: Pre-built ``AsyncOpenAI``-compatible client, mainly for tests

        Raises:
            ConfigurationError: If the API key is empty
        """
        if not config.api_key.get_secret_value():
            raise ConfigurationError("OPENAI_API_KEY is required for openai-standard")

        self.config = config
        if sdk_client is None:
            sdk_client = openai.AsyncOpenAI(
                api_key=config.api_key.get_secret_value(),
                base_url=config.base_url,
                timeout=config.timeout,
                max_retries=config.max_retries,
            )
        super().__init__(sdk_client, config.model, config.vision_model, config.embedding_model)
        logger.debug("OpenAI client initialized", provider=self.provider_name, model=self.model)

    async def create_assistant(self, instructions: str, tools: ToolsInput | None = None, options: OptionsInput = None) -> dict[str, Any]:
        opts = ChatOptions.coerce(options)
        params: dict[str, Any] = {
            "model": opts.model or self.model,
            "instructions": instructions,
            "tools": [to_openai_tool(tool) for tool in normalize_tools(tools)],
        }
        if opts.model_extra and "name" in opts.model_extra:
            params["name"] = opts.model_extra["name"]
        with translate_openai_errors(self.provider_name):
            assistant = await self._client.beta.assistants.create(**params)
        return _to_dict(assistant)

    async def create_thread(self) -> dict[str, Any]:
        with translate_openai_errors(self.provider_name):
            thread = await self._client.beta.threads.create()
        return _to_dict(thread)

    async def add_message(self, thread_id: str, content: str, role: str = "user") -> dict[str, Any]:
        with translate_openai_errors(self.provider_name):
            message = await self._client.beta.threads.messages.create(thread_id, role=role, content=content)
        return _to_dict(message)

    async def get_messages(self, thread_id: str, options: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        with translate_openai_errors(self.provider_name):
            page = await self._client.beta.threads.messages.list(thread_id, **dict(options or {}))
        return [_to_dict(message) for message in page.data]

    async def run_assistant(self, thread_id: str, assistant_id: str, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        with translate_openai_errors(self.provider_name):
            run = await self._client.beta.threads.runs.create(thread_id, assistant_id=assistant_id, **dict(options or {}))
        return _to_dict(run)

    async def retrieve_run(self, thread_id: str, run_id: str) -> dict[str, Any]:
        with translate_openai_errors(self.provider_name):
            run = await self._client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
        return _to_dict(run)


class AzureOpenAIClient(OpenAICompatibleClient):
    """Client for an Azure OpenAI resource. The Assistants API is not offered."""

    provider_name = "azure-openai"

    def __init__(self, config: AzureOpenAIConfig, sdk_client: Any | None = None):
        if not config.api_key.get_secret_value():
            raise ConfigurationError("AZURE_OPENAI_API_KEY is required for azure-openai")
        if not config.endpoint:
            raise ConfigurationError("AZURE_OPENAI_ENDPOINT is required for azure-openai")

        self.config = config
        if sdk_client is None:
            sdk_client = openai.AsyncAzureOpenAI(
                api_key=config.api_key.get_secret_value(),
                azure_endpoint=config.endpoint,
                api_version=config.api_version,
                timeout=config.timeout,
                max_retries=config.max_retries,
            )
        super().__init__(
            sdk_client,
            config.deployment,
            config.vision_deployment or config.deployment,
            config.embedding_deployment,
        )
        logger.debug("Azure OpenAI client initialized", endpoint=config.endpoint, deployment=config.deployment)
