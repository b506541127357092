"""Client wrapper that accumulates token usage and cost."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any, TypeVar

import structlog

from ....domain.messages import ChatResponse
from ....pricing import format_cost
from .base_client import ChatClient
from .delegating import DelegatingClient

T = TypeVar("T")

logger = structlog.get_logger(__name__)


@dataclass
class TrackedRequest:
    """Cost record of one response."""

    operation: str
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    input_cost: float
    output_cost: float
    total_cost: float
    timestamp: float = field(default_factory=time.time)


class CostTrackingClient(DelegatingClient):
    """Record the cost of every ``ChatResponse`` returned by the wrapped client."""

    def __init__(
        self,
        client: ChatClient,
        *,
        on_request_tracked: Callable[[TrackedRequest, dict[str, Any]], None] | None = None,
    ):
        super().__init__(client)
        self.on_request_tracked = on_request_tracked
        self.requests: list[TrackedRequest] = []

    async def _invoke(self, operation: str, call: Callable[[], Awaitable[T]], payload: Mapping[str, Any] | None = None) -> T:
        result = await call()
        if isinstance(result, ChatResponse):
            self.track(operation, result)
        return result

    def track(self, operation: str, response: ChatResponse) -> TrackedRequest:
        """Price a response and add it to the history."""
        cost = self.client.calculate_cost(response)
        request = TrackedRequest(
            operation=operation,
            provider=self.provider_name,
            model=response.model or self.model,
            input_tokens=cost.input_tokens,
            output_tokens=cost.output_tokens,
            total_tokens=cost.total_tokens,
            input_cost=cost.input_cost,
            output_cost=cost.output_cost,
            total_cost=cost.total_cost,
        )
        self.requests.append(request)
        logger.debug("Request cost tracked", model=request.model, total_cost=request.total_cost)

        if self.on_request_tracked:
            self.on_request_tracked(request, self.get_stats())
        return request

    @property
    def total_cost(self) -> float:
        return sum(request.total_cost for request in self.requests)

    def get_stats(self) -> dict[str, Any]:
        """Totals plus per-model and per-provider breakdowns."""
        by_model: dict[str, dict[str, Any]] = {}
        by_provider: dict[str, dict[str, Any]] = {}
        for request in self.requests:
            model_stats = by_model.setdefault(request.model, {"count": 0, "cost": 0.0, "tokens": 0})
            model_stats["count"] += 1
            model_stats["cost"] += request.total_cost
            model_stats["tokens"] += request.total_tokens

            provider_stats = by_provider.setdefault(request.provider, {"count": 0, "cost": 0.0})
            provider_stats["count"] += 1
            provider_stats["cost"] += request.total_cost

        total_requests = len(self.requests)
        total_cost = self.total_cost
        return {
            "total_requests": total_requests,
            "total_cost": total_cost,
            "formatted_total_cost": format_cost(total_cost),
            "average_cost": total_cost / total_requests if total_requests else 0.0,
            "total_input_tokens": sum(request.input_tokens for request in self.requests),
            "total_output_tokens": sum(request.output_tokens for request in self.requests),
            "by_model": by_model,
            "by_provider": by_provider,
        }

    def get_requests(self) -> list[dict[str, Any]]:
        return [asdict(request) for request in self.requests]

    def reset(self) -> None:
        self.requests.clear()
