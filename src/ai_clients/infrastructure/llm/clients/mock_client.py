"""Mock chat client for testing and development."""

from __future__ import annotations

import asyncio
import inspect
import itertools
import math
import random
import time
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field

from ....core.exceptions import TransientError
from ....domain.messages import ChatResponse, ToolDefinition
from ..normalization import from_anthropic_message, from_openai_completion, normalize_messages, normalize_tools
from .base_client import ChunkCallback, MessagesInput, OptionsInput, ResponseHelpersMixin, ToolsInput, emit_chunk


class MockConfig(BaseModel):
    """Configuration for Mock client."""

    model: str = "mock-model"
    default_response: str = "Mock response"
    response_format: Literal["openai", "claude"] = "openai"
    simulate_delay: bool = False
    min_delay_ms: int = 0
    max_delay_ms: int = 10
    failure_rate: float = Field(default=0.0, ge=0.0, le=1.0)  # 0.0 = no failures, 1.0 = always fail
    embedding_dimensions: int = Field(default=1536, gt=0)


Handler = Callable[..., Any]


class MockClient(ResponseHelpersMixin):
    """Offline implementation of the full chat client contract.

    Responses are built in the raw OpenAI or Claude shape and normalized the
    same way the real adapters do it. Every call is appended to
    ``call_history``.
    """

    provider_name = "mock"

    def __init__(
        self,
        config: MockConfig | None = None,
        *,
        chat_handler: Handler | None = None,
        chat_stream_handler: Handler | None = None,
        chat_with_tools_handler: Handler | None = None,
        embeddings_handler: Handler | None = None,
        errors: Iterable[Exception | None] | None = None,
    ):
        """Initialize Mock client.

        Args:
            config: Mock configuration
            chat_handler: Replaces the canned ``chat`` response
            chat_stream_handler: Replaces the canned stream
            chat_with_tools_handler: Replaces the canned tool response
            embeddings_handler: Replaces the generated embeddings
            errors: Errors raised by successive calls; ``None`` entries succeed
        """
        self.config = config or MockConfig()
        self.model = self.config.model
        self.chat_handler = chat_handler
        self.chat_stream_handler = chat_stream_handler
        self.chat_with_tools_handler = chat_with_tools_handler
        self.embeddings_handler = embeddings_handler
        self.call_history: list[dict[str, Any]] = []

        self._errors: deque[Exception | None] = deque(errors or [])
        self._ids = itertools.count(1)
        self._assistants: dict[str, dict[str, Any]] = {}
        self._threads: dict[str, list[dict[str, Any]]] = {}
        self._runs: dict[str, dict[str, Any]] = {}

    @property
    def pricing_family(self) -> str:  # type: ignore[override]
        return "claude" if self.config.response_format == "claude" else "openai"

    def queue_errors(self, *errors: Exception | None) -> None:
        """Raise these errors, in order, from the next calls."""
        self._errors.extend(errors)

    def clear_history(self) -> None:
        self.call_history.clear()

    async def _before_call(self, method: str, **details: Any) -> None:
        self.call_history.append({"method": method, **details, "timestamp": time.time()})
        await self._simulate_delay()

        if self._errors:
            error = self._errors.popleft()
            if error is not None:
                raise error

        if self.config.failure_rate > 0 and random.random() < self.config.failure_rate:
            raise TransientError("Mock client simulated failure", provider="mock", status=503)

    async def _simulate_delay(self) -> None:
        if self.config.simulate_delay:
            delay_ms = random.randint(self.config.min_delay_ms, self.config.max_delay_ms)
            await asyncio.sleep(delay_ms / 1000.0)

    async def _call_handler(self, handler: Handler, *args: Any) -> Any:
        result = handler(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _normalize(self, raw: Any) -> ChatResponse:
        if isinstance(raw, ChatResponse):
            return raw
        if self.config.response_format == "claude":
            return from_anthropic_message(raw, self.provider_name)
        return from_openai_completion(raw, self.provider_name)

    def _usage(self, prompt_tokens: int, completion_tokens: int) -> dict[str, int]:
        if self.config.response_format == "claude":
            return {"input_tokens": prompt_tokens, "output_tokens": completion_tokens}
        return {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        }

    def _raw_text_response(self, text: str, prompt_tokens: int) -> dict[str, Any]:
        usage = self._usage(prompt_tokens, len(text.split()))
        if self.config.response_format == "claude":
            return {
                "id": f"msg_mock_{next(self._ids)}",
                "type": "message",
                "role": "assistant",
                "model": self.model,
                "content": [{"type": "text", "text": text}],
                "stop_reason": "end_turn",
                "usage": usage,
            }
        return {
            "id": f"chatcmpl-mock-{next(self._ids)}",
            "object": "chat.completion",
            "created": int(time.time()),
            "model": self.model,
            "choices": [{"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": "stop"}],
            "usage": usage,
        }

    def _raw_tool_response(self, tool: ToolDefinition, prompt_tokens: int) -> dict[str, Any]:
        call_id = f"call_mock_{next(self._ids)}"
        usage = self._usage(prompt_tokens, 10)
        if self.config.response_format == "claude":
            return {
                "id": f"msg_mock_{next(self._ids)}",
                "type": "message",
                "role": "assistant",
                "model": self.model,
                "content": [{"type": "tool_use", "id": call_id, "name": tool.name, "input": {}}],
                "stop_reason": "tool_use",
                "usage": usage,
            }
        return {
            "id": f"chatcmpl-mock-{next(self._ids)}",
            "object": "chat.completion",
            "created": int(time.time()),
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "message": {
                        "role": "assistant",
                        "content": None,
                        "tool_calls": [{"id": call_id, "type": "function", "function": {"name": tool.name, "arguments": "{}"}}],
                    },
                    "finish_reason": "tool_calls",
                }
            ],
            "usage": usage,
        }

    @staticmethod
    def _prompt_tokens(messages: MessagesInput) -> int:
        return sum(len(message.text.split()) for message in normalize_messages(messages))

    async def chat(self, messages: MessagesInput, options: OptionsInput = None) -> ChatResponse:
        await self._before_call("chat", messages=messages, options=options)
        if self.chat_handler:
            return self._normalize(await self._call_handler(self.chat_handler, messages, options))
        return self._normalize(self._raw_text_response(self.config.default_response, self._prompt_tokens(messages)))

    async def chat_stream(
        self,
        messages: MessagesInput,
        on_chunk: ChunkCallback | None = None,
        options: OptionsInput = None,
    ) -> str:
        await self._before_call("chat_stream", messages=messages, options=options)
        if self.chat_stream_handler:
            return await self._call_handler(self.chat_stream_handler, messages, on_chunk, options)

        words = self.config.default_response.split(" ")
        for index, word in enumerate(words):
            await emit_chunk(on_chunk, word if index == len(words) - 1 else f"{word} ")
        return self.config.default_response

    async def chat_with_tools(self, messages: MessagesInput, tools: ToolsInput, options: OptionsInput = None) -> ChatResponse:
        definitions = normalize_tools(tools)
        await self._before_call("chat_with_tools", messages=messages, tools=definitions, options=options)
        if self.chat_with_tools_handler:
            return self._normalize(await self._call_handler(self.chat_with_tools_handler, messages, definitions, options))

        prompt_tokens = self._prompt_tokens(messages)
        if definitions:
            return self._normalize(self._raw_tool_response(definitions[0], prompt_tokens))
        return self._normalize(self._raw_text_response(self.config.default_response, prompt_tokens))

    async def chat_with_functions(
        self, messages: MessagesInput, functions: ToolsInput, options: OptionsInput = None
    ) -> ChatResponse:
        return await self.chat_with_tools(messages, functions, options)

    async def get_embeddings(self, input: str | list[str], model: str | None = None) -> list[list[float]]:
        """Unit-length vectors seeded by the input text, so equal texts embed equally."""
        await self._before_call("get_embeddings", input=input, model=model)
        if self.embeddings_handler:
            return await self._call_handler(self.embeddings_handler, input, model)

        texts = [input] if isinstance(input, str) else list(input)
        vectors = []
        for text in texts:
            rng = random.Random(text)
            vector = [rng.uniform(-1.0, 1.0) for _ in range(self.config.embedding_dimensions)]
            magnitude = math.sqrt(sum(value * value for value in vector)) or 1.0
            vectors.append([value / magnitude for value in vector])
        return vectors

    async def analyze_image(self, image_base64: str, prompt: str, options: OptionsInput = None) -> str:
        await self._before_call("analyze_image", prompt=prompt, options=options)
        return f"Mock image analysis: {self.config.default_response}"

    async def create_assistant(self, instructions: str, tools: ToolsInput | None = None, options: OptionsInput = None) -> dict[str, Any]:
        await self._before_call("create_assistant", instructions=instructions)
        assistant = {
            "id": f"asst_mock_{next(self._ids)}",
            "object": "assistant",
            "model": self.model,
            "instructions": instructions,
            "tools": [tool.to_dict() for tool in normalize_tools(tools)],
        }
        self._assistants[assistant["id"]] = assistant
        return assistant

    async def create_thread(self) -> dict[str, Any]:
        await self._before_call("create_thread")
        thread_id = f"thread_mock_{next(self._ids)}"
        self._threads[thread_id] = []
        return {"id": thread_id, "object": "thread"}

    async def add_message(self, thread_id: str, content: str, role: str = "user") -> dict[str, Any]:
        await self._before_call("add_message", thread_id=thread_id, content=content, role=role)
        message = {"id": f"msg_mock_{next(self._ids)}", "thread_id": thread_id, "role": role, "content": content}
        self._threads.setdefault(thread_id, []).append(message)
        return message

    async def get_messages(self, thread_id: str, options: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        await self._before_call("get_messages", thread_id=thread_id)
        return list(self._threads.get(thread_id, []))

    async def run_assistant(self, thread_id: str, assistant_id: str, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        await self._before_call("run_assistant", thread_id=thread_id, assistant_id=assistant_id)
        run = {"id": f"run_mock_{next(self._ids)}", "thread_id": thread_id, "assistant_id": assistant_id, "status": "completed"}
        self._runs[run["id"]] = run
        self._threads.setdefault(thread_id, []).append(
            {"id": f"msg_mock_{next(self._ids)}", "thread_id": thread_id, "role": "assistant", "content": self.config.default_response}
        )
        return run

    async def retrieve_run(self, thread_id: str, run_id: str) -> dict[str, Any]:
        await self._before_call("retrieve_run", thread_id=thread_id, run_id=run_id)
        return dict(self._runs.get(run_id, {"id": run_id, "thread_id": thread_id, "status": "not_found"}))
