"""Configuration for ai-clients."""

from .config import Settings, get_settings
from .llm_settings import USE_CASE_OPTIONS, LLMProvider, get_use_case_options
from .logging import LogFormat, LogLevel

__all__ = [
    "Settings",
    "get_settings",
    "LLMProvider",
    "USE_CASE_OPTIONS",
    "get_use_case_options",
    "LogFormat",
    "LogLevel",
]
