"""Base for clients that wrap another client."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from ....domain.messages import ChatResponse, ToolCall
from ....pricing import CostBreakdown
from ..normalization import normalize_messages
from .base_client import ChatClient, ChunkCallback, MessagesInput, OptionsInput, ToolsInput

T = TypeVar("T")


class DelegatingClient:
    """Forward every contract method to ``client``.

    I/O methods go through ``_invoke`` so subclasses can add behaviour around
    each call. Messages and tools are materialized into lists first, so a
    generator survives logging and repeated attempts. ``call`` builds a
    fresh coroutine every time it is invoked, so it may be awaited more
    than once. Pure helpers are forwarded directly.
    """

    def __init__(self, client: ChatClient):
        self.client = client

    @property
    def provider_name(self) -> str:
        return self.client.provider_name

    @property
    def model(self) -> str:
        return self.client.model

    async def _invoke(self, operation: str, call: Callable[[], Awaitable[T]], payload: Mapping[str, Any] | None = None) -> T:
        return await call()

    async def chat(self, messages: MessagesInput, options: OptionsInput = None) -> ChatResponse:
        messages = normalize_messages(messages)
        return await self._invoke("chat", lambda: self.client.chat(messages, options), {"messages": messages, "options": options})

    async def chat_stream(
        self,
        messages: MessagesInput,
        on_chunk: ChunkCallback | None = None,
        options: OptionsInput = None,
    ) -> str:
        messages = normalize_messages(messages)
        return await self._invoke(
            "chat_stream",
            lambda: self.client.chat_stream(messages, on_chunk, options),
            {"messages": messages, "options": options},
        )

    async def chat_with_tools(self, messages: MessagesInput, tools: ToolsInput, options: OptionsInput = None) -> ChatResponse:
        messages = normalize_messages(messages)
        tools = list(tools)
        return await self._invoke(
            "chat_with_tools",
            lambda: self.client.chat_with_tools(messages, tools, options),
            {"messages": messages, "tools": tools, "options": options},
        )

    async def chat_with_functions(
        self, messages: MessagesInput, functions: ToolsInput, options: OptionsInput = None
    ) -> ChatResponse:
        messages = normalize_messages(messages)
        functions = list(functions)
        return await self._invoke(
            "chat_with_functions",
            lambda: self.client.chat_with_functions(messages, functions, options),
            {"messages": messages, "tools": functions, "options": options},
        )

    async def get_embeddings(self, input: str | list[str], model: str | None = None) -> list[list[float]]:
        return await self._invoke("get_embeddings", lambda: self.client.get_embeddings(input, model), {"input": input})

    async def analyze_image(self, image_base64: str, prompt: str, options: OptionsInput = None) -> str:
        return await self._invoke(
            "analyze_image",
            lambda: self.client.analyze_image(image_base64, prompt, options),
            {"prompt": prompt, "options": options},
        )

    async def create_assistant(self, instructions: str, tools: ToolsInput | None = None, options: OptionsInput = None) -> dict[str, Any]:
        tools = list(tools or [])
        return await self._invoke("create_assistant", lambda: self.client.create_assistant(instructions, tools, options))

    async def create_thread(self) -> dict[str, Any]:
        return await self._invoke("create_thread", lambda: self.client.create_thread())

    async def add_message(self, thread_id: str, content: str, role: str = "user") -> dict[str, Any]:
        return await self._invoke("add_message", lambda: self.client.add_message(thread_id, content, role))

    async def get_messages(self, thread_id: str, options: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        return await self._invoke("get_messages", lambda: self.client.get_messages(thread_id, options))

    async def run_assistant(self, thread_id: str, assistant_id: str, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return await self._invoke("run_assistant", lambda: self.client.run_assistant(thread_id, assistant_id, options))

    async def retrieve_run(self, thread_id: str, run_id: str) -> dict[str, Any]:
        return await self._invoke("retrieve_run", lambda: self.client.retrieve_run(thread_id, run_id))

    def get_text_content(self, response: ChatResponse) -> str:
        return self.client.get_text_content(response)

    def has_tool_use(self, response: ChatResponse) -> bool:
        return self.client.has_tool_use(response)

    def get_tool_use_blocks(self, response: ChatResponse) -> list[ToolCall]:
        return self.client.get_tool_use_blocks(response)

    def calculate_cost(self, response: ChatResponse, model: str | None = None) -> CostBreakdown:
        return self.client.calculate_cost(response, model)
