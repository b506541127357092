"""Structured logging infrastructure."""

from .structured_logger import (
    LoggerConfig,
    clear_correlation_id,
    get_correlation_id,
    mask_value,
    set_correlation_id,
    setup_logging,
)

__all__ = [
    "LoggerConfig",
    "setup_logging",
    "mask_value",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
]
