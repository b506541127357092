"""Structured logging setup for ai-clients.

Library modules only call ``structlog.get_logger(__name__)``. Applications
(and the bundled CLI) call ``setup_logging`` once to choose JSON or rich
console output.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

import structlog
from rich.console import Console
from rich.logging import RichHandler
from structlog.types import EventDict

from ...core.config import LogFormat, LogLevel, Settings

# Context variable for request tracking
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Token counts are logged, so only credential-style token keys are masked
DEFAULT_SENSITIVE_FIELDS = ["api_key", "apikey", "authorization", "access_token", "auth_token", "secret", "password"]


@dataclass
class LoggerConfig:
    """Configuration for structured logging."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    include_correlation_id: bool = True
    mask_sensitive_data: bool = True
    sensitive_fields: list[str] = field(default_factory=lambda: list(DEFAULT_SENSITIVE_FIELDS))

    @classmethod
    def from_settings(cls, settings: Settings) -> LoggerConfig:
        return cls(**settings.logging_config)


def mask_value(key: Any, value: Any, sensitive_fields: list[str]) -> Any:
    """Mask ``value`` when ``key`` names a sensitive field, recursing into containers."""
    if isinstance(key, str):
        key_lower = key.lower()
        if any(sensitive_field in key_lower for sensitive_field in sensitive_fields):
            if isinstance(value, str) and len(value) > 4:
                return f"{value[:2]}***{value[-2:]}"
            return "***"

    if isinstance(value, dict):
        return {k: mask_value(k, v, sensitive_fields) for k, v in value.items()}
    if isinstance(value, list):
        return [mask_value("", item, sensitive_fields) for item in value]
    return value


def add_correlation_id(logger: Any, name: str, event_dict: EventDict) -> EventDict:
    """Add correlation ID to log events."""
    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def make_masking_processor(sensitive_fields: list[str]) -> Any:
    def mask_sensitive_data(logger: Any, name: str, event_dict: EventDict) -> EventDict:
        for key, value in event_dict.items():
            event_dict[key] = mask_value(key, value, sensitive_fields)
        return event_dict

    return mask_sensitive_data


def setup_logging(config: LoggerConfig | None = None) -> None:
    """Configure stdlib logging and structlog.

    Args:
        config: Logging configuration
    """
    config = config or LoggerConfig()
    level = getattr(logging, config.level.value.upper())

    if config.format == LogFormat.CONSOLE:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        renderer: Any = structlog.dev.ConsoleRenderer(colors=False)
    else:
        handler = logging.StreamHandler(sys.stdout)
        renderer = structlog.processors.JSONRenderer()

    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    if config.include_correlation_id:
        processors.append(add_correlation_id)
    if config.mask_sensitive_data:
        processors.append(make_masking_processor(config.sensitive_fields))
    processors.extend(
        [
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ]
    )

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID for current context, generating a UUID if None."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_ctx.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str | None:
    return correlation_id_ctx.get()


def clear_correlation_id() -> None:
    correlation_id_ctx.set(None)
