"""Token pricing and cost calculation.

Prices are USD per one million tokens. Model names reported by the vendor
are resolved against the table by exact match first, then by the longest
table entry the name starts with (dated snapshots such as
``gpt-4o-2024-05-13``), then the configured default model, then the family
default.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog

from .domain.messages import TokenUsage

logger = structlog.get_logger(__name__)

TOKENS_PER_UNIT = 1_000_000


@dataclass(frozen=True)
class ModelPricing:
    """Price of one model, per million tokens."""

    model_id: str
    input_per_mtok: float
    output_per_mtok: float = 0.0


@dataclass
class CostBreakdown:
    """Cost of a single request."""

    model_id: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    input_cost: float = 0.0
    output_cost: float = 0.0
    total_cost: float = 0.0
    currency: str = "USD"

    def to_dict(self) -> dict[str, Any]:
        """Convert to plain dict for serialization."""
        return asdict(self)


def _table(rows: list[tuple[str, float, float]]) -> dict[str, ModelPricing]:
    return {model_id: ModelPricing(model_id, input_price, output_price) for model_id, input_price, output_price in rows}


PRICING: dict[str, dict[str, ModelPricing]] = {
    "openai": _table(
        [
            ("gpt-4o", 2.5, 10.0),
            ("gpt-4o-2024-11-20", 2.5, 10.0),
            ("gpt-4o-2024-08-06", 2.5, 10.0),
            ("gpt-4o-mini", 0.15, 0.6),
            ("gpt-4o-mini-2024-07-18", 0.15, 0.6),
            ("gpt-4-turbo", 10.0, 30.0),
            ("gpt-4-turbo-preview", 10.0, 30.0),
            ("gpt-4-turbo-2024-04-09", 10.0, 30.0),
            ("gpt-4", 30.0, 60.0),
            ("gpt-4-32k", 60.0, 120.0),
            ("gpt-3.5-turbo", 0.5, 1.5),
            ("gpt-3.5-turbo-0125", 0.5, 1.5),
            ("o1", 15.0, 60.0),
            ("o1-preview", 15.0, 60.0),
            ("o1-mini", 3.0, 12.0),
            ("mock-model", 0.1, 0.1),
        ]
    ),
    "claude": _table(
        [
            ("claude-sonnet-4-5-20250929", 3.0, 15.0),
            ("claude-3-5-sonnet-20241022", 3.0, 15.0),
            ("claude-3-5-sonnet-20240620", 3.0, 15.0),
            ("claude-3-5-haiku-20241022", 0.8, 4.0),
            ("claude-3-opus-20240229", 15.0, 75.0),
            ("claude-3-opus", 15.0, 75.0),
            ("claude-3-sonnet-20240229", 3.0, 15.0),
            ("claude-3-haiku-20240307", 0.25, 1.25),
            ("mock-model", 0.1, 0.1),
        ]
    ),
    "embeddings": _table(
        [
            ("text-embedding-3-small", 0.02, 0.0),
            ("text-embedding-3-large", 0.13, 0.0),
            ("text-embedding-ada-002", 0.1, 0.0),
        ]
    ),
}

FAMILY_DEFAULTS: dict[str, str] = {
    "openai": "gpt-4-turbo-preview",
    "claude": "claude-sonnet-4-5-20250929",
    "embeddings": "text-embedding-3-small",
}


def resolve_model_pricing(family: str, model: str | None, default_model: str | None = None) -> ModelPricing:
    """Resolve a model name to its pricing entry.

    Args:
        family: Pricing family (``openai``, ``claude`` or ``embeddings``)
        model: Model name as reported by the vendor
        default_model: Configured default model used when ``model`` is unknown

    Returns:
        Pricing entry; never None for a known family

    Raises:
        ValueError: If the family is unknown
    """
    table = PRICING.get(family)
    if table is None:
        raise ValueError(f"Unknown pricing family: {family}. Use one of {', '.join(PRICING)}")

    if model:
        if model in table:
            return table[model]
        for model_id in sorted(table, key=len, reverse=True):
            if model.startswith(model_id):
                return table[model_id]

    fallback = default_model if default_model in table else FAMILY_DEFAULTS[family]
    if model:
        logger.warning("No pricing for model, using fallback", model=model, family=family, fallback=fallback)
    return table[fallback]


def calculate_cost(
    usage: TokenUsage | None,
    model: str | None,
    family: str,
    default_model: str | None = None,
) -> CostBreakdown:
    """Calculate the cost of one request from its token usage."""
    pricing = resolve_model_pricing(family, model, default_model)
    if usage is None:
        return CostBreakdown(model_id=pricing.model_id)

    input_cost = usage.prompt_tokens * pricing.input_per_mtok / TOKENS_PER_UNIT
    output_cost = usage.completion_tokens * pricing.output_per_mtok / TOKENS_PER_UNIT

    return CostBreakdown(
        model_id=pricing.model_id,
        input_tokens=usage.prompt_tokens,
        output_tokens=usage.completion_tokens,
        total_tokens=usage.total_tokens,
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
    )


def format_cost(cost: float) -> str:
    """Format a USD amount, keeping precision for sub-cent values."""
    if cost < 0.01:
        return f"${cost:.6f}"
    return f"${cost:.4f}"
