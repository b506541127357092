"""Configuration management for ai-clients.

Environment variables are read here and nowhere else. Adapters and the
resilient client receive fully-resolved configuration objects.
"""

from functools import lru_cache
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .llm_settings import LLMProvider
from .logging import LogFormat, LogLevel

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Standard OpenAI
    OPENAI_API_KEY: SecretStr | None = Field(default=None)
    OPENAI_MODEL: str = Field(default="gpt-4-turbo-preview")
    OPENAI_VISION_MODEL: str = Field(default="gpt-4o")
    OPENAI_EMBEDDING_MODEL: str = Field(default="text-embedding-3-small")
    OPENAI_DEFAULT_PROVIDER: LLMProvider | None = Field(default=None)

    # Azure OpenAI
    AZURE_OPENAI_API_KEY: SecretStr | None = Field(default=None)
    AZURE_OPENAI_ENDPOINT: str | None = Field(default=None)
    AZURE_OPENAI_API_VERSION: str = Field(default="2024-02-15-preview")
    AZURE_OPENAI_DEPLOYMENT: str | None = Field(default=None)
    AZURE_OPENAI_EMBEDDING_DEPLOYMENT: str = Field(default="text-embedding-ada-002")

    # Anthropic Claude
    ANTHROPIC_API_KEY: SecretStr | None = Field(default=None)
    CLAUDE_MODEL: str = Field(default="claude-sonnet-4-5-20250929")

    # Transport
    REQUEST_TIMEOUT: float = Field(default=60.0, gt=0, le=600)

    # Resilience defaults
    RESILIENCE_MAX_RETRIES: int = Field(default=3, ge=0, le=10)
    RESILIENCE_BASE_DELAY_MS: int = Field(default=1000, ge=0)
    RESILIENCE_MAX_DELAY_MS: int = Field(default=30000, ge=0)
    RESILIENCE_JITTER_FACTOR: float = Field(default=0.3, ge=0.0, le=1.0)
    RESILIENCE_CIRCUIT_BREAKER_THRESHOLD: int = Field(default=5, ge=1)
    RESILIENCE_CIRCUIT_BREAKER_TIMEOUT_MS: int = Field(default=60000, ge=0)

    # Logging
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_FORMAT: LogFormat = Field(default=LogFormat.JSON)

    @field_validator("OPENAI_DEFAULT_PROVIDER")
    @classmethod
    def validate_default_provider(cls: Any, v: LLMProvider | None) -> LLMProvider | None:
        """Only concrete OpenAI flavours may back the ``openai`` alias."""
        if v is not None and v not in (LLMProvider.AZURE_OPENAI, LLMProvider.OPENAI_STANDARD):
            raise ValueError("OPENAI_DEFAULT_PROVIDER must be 'azure-openai' or 'openai-standard'")
        return v

    @field_validator("AZURE_OPENAI_ENDPOINT")
    @classmethod
    def strip_endpoint(cls: Any, v: str | None) -> str | None:
        """Remove trailing slash from the Azure endpoint."""
        return v.rstrip("/") if v else v

    @property
    def openai_default_provider(self) -> LLMProvider:
        """Concrete provider the ``openai`` alias resolves to."""
        if self.OPENAI_DEFAULT_PROVIDER is not None:
            return self.OPENAI_DEFAULT_PROVIDER
        return LLMProvider.AZURE_OPENAI if self.AZURE_OPENAI_API_KEY else LLMProvider.OPENAI_STANDARD

    @property
    def azure_deployment(self) -> str:
        """Azure chat deployment name, defaulting to the OpenAI model name."""
        return self.AZURE_OPENAI_DEPLOYMENT or self.OPENAI_MODEL

    @property
    def resilience_config(self) -> dict[str, Any]:
        """Resilience defaults as keyword arguments for ``ResilienceConfig``."""
        return {
            "max_retries": self.RESILIENCE_MAX_RETRIES,
            "base_delay_ms": self.RESILIENCE_BASE_DELAY_MS,
            "max_delay_ms": self.RESILIENCE_MAX_DELAY_MS,
            "jitter_factor": self.RESILIENCE_JITTER_FACTOR,
            "circuit_breaker_threshold": self.RESILIENCE_CIRCUIT_BREAKER_THRESHOLD,
            "circuit_breaker_timeout_ms": self.RESILIENCE_CIRCUIT_BREAKER_TIMEOUT_MS,
        }

    @property
    def logging_config(self) -> dict[str, Any]:
        return {"level": self.LOG_LEVEL, "format": self.LOG_FORMAT}

    def model_dump_safe(self) -> dict[str, Any]:
        """Dump settings without exposing secrets."""
        data = self.model_dump()

        for key in ("OPENAI_API_KEY", "AZURE_OPENAI_API_KEY", "ANTHROPIC_API_KEY"):
            if data.get(key):
                data[key] = "***masked***"

        return data


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
