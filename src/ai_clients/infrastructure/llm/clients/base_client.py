"""Chat client contract and shared pure helpers."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from ....domain.messages import ChatMessage, ChatOptions, ChatResponse, ToolCall, ToolDefinition
from ....pricing import CostBreakdown, calculate_cost

MessagesInput = str | ChatMessage | Mapping[str, Any] | Iterable[ChatMessage | Mapping[str, Any]]
OptionsInput = ChatOptions | Mapping[str, Any] | None
ToolsInput = Iterable[ToolDefinition | Mapping[str, Any]]
ChunkCallback = Callable[[str], Awaitable[None] | None]


@runtime_checkable
class ChatClient(Protocol):
    """Capability contract every provider adapter and wrapper satisfies."""

    provider_name: str
    model: str

    async def chat(self, messages: MessagesInput, options: OptionsInput = None) -> ChatResponse:
        """Send a conversation and return the normalized response.

        Raises:
            ProviderError: If the vendor rejects the request
            TransientError: On rate limiting, server or network faults
        """
        ...

    async def chat_stream(
        self,
        messages: MessagesInput,
        on_chunk: ChunkCallback | None = None,
        options: OptionsInput = None,
    ) -> str:
        """Stream a response, calling ``on_chunk`` per text fragment; return the full text."""
        ...

    async def chat_with_tools(self, messages: MessagesInput, tools: ToolsInput, options: OptionsInput = None) -> ChatResponse:
        ...

    async def chat_with_functions(
        self, messages: MessagesInput, functions: ToolsInput, options: OptionsInput = None
    ) -> ChatResponse:
        ...

    async def get_embeddings(self, input: str | list[str], model: str | None = None) -> list[list[float]]:
        ...

    async def analyze_image(self, image_base64: str, prompt: str, options: OptionsInput = None) -> str:
        ...

    async def create_assistant(self, instructions: str, tools: ToolsInput | None = None, options: OptionsInput = None) -> dict[str, Any]:
        ...

    async def create_thread(self) -> dict[str, Any]:
        ...

    async def add_message(self, thread_id: str, content: str, role: str = "user") -> dict[str, Any]:
        ...

    async def get_messages(self, thread_id: str, options: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        ...

    async def run_assistant(self, thread_id: str, assistant_id: str, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        ...

    async def retrieve_run(self, thread_id: str, run_id: str) -> dict[str, Any]:
        ...

    def get_text_content(self, response: ChatResponse) -> str:
        ...

    def has_tool_use(self, response: ChatResponse) -> bool:
        ...

    def get_tool_use_blocks(self, response: ChatResponse) -> list[ToolCall]:
        ...

    def calculate_cost(self, response: ChatResponse, model: str | None = None) -> CostBreakdown:
        ...


def implements_chat_client(obj: Any) -> bool:
    """Check that ``obj`` structurally satisfies ``ChatClient``."""
    return isinstance(obj, ChatClient)


async def emit_chunk(on_chunk: ChunkCallback | None, fragment: str) -> None:
    """Deliver a non-empty fragment to the callback, awaiting it if needed."""
    if on_chunk is None or not fragment:
        return
    result = on_chunk(fragment)
    if inspect.isawaitable(result):
        await result


class ResponseHelpersMixin:
    """Pure response helpers shared by the adapters.

    Subclasses set ``pricing_family``, ``model`` and optionally
    ``default_pricing_model``. The mixin holds no state of its own.
    """

    pricing_family: str = "openai"
    default_pricing_model: str | None = None
    model: str

    def get_text_content(self, response: ChatResponse) -> str:
        return response.content

    def has_tool_use(self, response: ChatResponse) -> bool:
        return response.has_tool_use

    def get_tool_use_blocks(self, response: ChatResponse) -> list[ToolCall]:
        return list(response.tool_calls)

    def calculate_cost(self, response: ChatResponse, model: str | None = None) -> CostBreakdown:
        """Cost of a response, priced by ``model``, then the response model, then this client's model."""
        return calculate_cost(
            response.usage,
            model or response.model or self.model,
            self.pricing_family,
            self.default_pricing_model or self.model,
        )
