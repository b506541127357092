"""Client wrapper that logs every request, response and error."""

from __future__ import annotations

import itertools
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

import structlog

from ....domain.messages import ChatOptions, ChatResponse
from ...logging.structured_logger import DEFAULT_SENSITIVE_FIELDS, mask_value
from ..normalization import normalize_messages
from .base_client import ChatClient
from .delegating import DelegatingClient

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class LoggingClient(DelegatingClient):
    """Log calls made through the wrapped client.

    Long content is truncated to ``max_content_length`` characters and
    sensitive option keys are masked before anything is logged.
    """

    def __init__(
        self,
        client: ChatClient,
        *,
        log_requests: bool = True,
        log_responses: bool = True,
        log_errors: bool = True,
        max_content_length: int = 500,
        redact_keys: list[str] | None = None,
    ):
        super().__init__(client)
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.log_errors = log_errors
        self.max_content_length = max_content_length
        self.redact_keys = [key.lower() for key in redact_keys or DEFAULT_SENSITIVE_FIELDS]
        self.request_count = 0
        self._ids = itertools.count(1)

    def _truncate(self, text: str) -> str:
        if len(text) <= self.max_content_length:
            return text
        return f"{text[: self.max_content_length]}... [truncated {len(text) - self.max_content_length} chars]"

    def _summarize_request(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        summary: dict[str, Any] = {}
        if "messages" in payload:
            messages = normalize_messages(payload["messages"])
            summary["message_count"] = len(messages)
            if messages:
                summary["last_message"] = self._truncate(messages[-1].text)
        if payload.get("tools"):
            summary["tool_count"] = len(payload["tools"])
        if payload.get("prompt"):
            summary["prompt"] = self._truncate(payload["prompt"])
        options = payload.get("options")
        if options:
            data = options.model_dump(exclude_none=True) if isinstance(options, ChatOptions) else dict(options)
            summary["options"] = mask_value("options", data, self.redact_keys)
        return summary

    def _summarize_result(self, result: Any) -> dict[str, Any]:
        if isinstance(result, ChatResponse):
            summary: dict[str, Any] = {
                "response_id": result.id,
                "content": self._truncate(result.content),
                "tool_calls": [call.name for call in result.tool_calls],
                "finish_reason": result.finish_reason,
            }
            if result.usage:
                summary["usage"] = result.usage.model_dump()
            return summary
        if isinstance(result, str):
            return {"content": self._truncate(result)}
        if isinstance(result, list):
            return {"items": len(result)}
        return {}

    async def _invoke(self, operation: str, call: Callable[[], Awaitable[T]], payload: Mapping[str, Any] | None = None) -> T:
        self.request_count += 1
        log = logger.bind(
            request_id=f"req_{int(time.time() * 1000)}_{next(self._ids)}",
            operation=operation,
            provider=self.provider_name,
            model=self.model,
        )

        if self.log_requests:
            log.info("LLM request started", **self._summarize_request(payload or {}))

        start_time = time.perf_counter()
        try:
            result = await call()
        except Exception as e:
            if self.log_errors:
                log.error(
                    "LLM request failed",
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                    error_type=type(e).__name__,
                    error=str(e),
                )
            raise

        if self.log_responses:
            log.info(
                "LLM request completed",
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                **self._summarize_result(result),
            )
        return result
