"""Provider names and request option presets."""

from enum import Enum
from typing import Any


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    OPENAI = "openai"  # Routed to Azure or standard OpenAI by configuration
    OPENAI_STANDARD = "openai-standard"
    AZURE_OPENAI = "azure-openai"
    CLAUDE = "claude"

    @classmethod
    def values(cls) -> list[str]:
        """Return provider names in declaration order."""
        return [member.value for member in cls]


# Option presets per use case, applied before caller overrides
USE_CASE_OPTIONS: dict[str, dict[str, Any]] = {
    "default": {"temperature": 0.7, "max_tokens": 4096},
    "creative": {"temperature": 0.9, "max_tokens": 2048},
    "precise": {"temperature": 0.3, "max_tokens": 4096},
    "structured": {"temperature": 0.3, "max_tokens": 4096, "json_mode": True},
    "streaming": {"temperature": 0.7, "max_tokens": 4096, "stream": True},
    "vision": {"temperature": 0.7, "max_tokens": 1024},
}


def get_use_case_options(use_case: str = "default", provider: str | None = None, **overrides: Any) -> dict[str, Any]:
    """Build request options for a named use case.

    Unknown use cases fall back to ``default``. Claude has no JSON response
    mode, so the structured preset drops ``json_mode`` for it.

    Args:
        use_case: Preset name
        provider: Target provider name, if known
        **overrides: Options that take precedence over the preset

    Returns:
        Options dictionary suitable for ``ChatOptions``
    """
    options = dict(USE_CASE_OPTIONS.get(use_case, USE_CASE_OPTIONS["default"]))
    if provider == LLMProvider.CLAUDE.value:
        options.pop("json_mode", None)
    options.update(overrides)
    return options
