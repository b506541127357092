"""Factory for creating chat clients from settings."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from pydantic import ValidationError

from ...core.config import LLMProvider, Settings, get_settings
from ...core.exceptions import ConfigurationError, UnsupportedProviderError
from ..monitoring.metrics_collector import MetricsCollector
from .clients.base_client import ChatClient
from .clients.claude_client import ClaudeClient, ClaudeConfig
from .clients.openai_client import AzureOpenAIClient, AzureOpenAIConfig, OpenAIConfig, StandardOpenAIClient
from .resilience.resilient_client import ResilienceConfig, ResilientClient

logger = structlog.get_logger(__name__)


class ChatClientFactory:
    """Factory for creating chat clients."""

    @staticmethod
    def resolve_provider(provider: str | LLMProvider, settings: Settings | None = None) -> LLMProvider:
        """Map a provider name to a concrete provider.

        Names are matched case-insensitively. ``openai`` resolves through
        ``OPENAI_DEFAULT_PROVIDER``, then to Azure when an Azure key is set.

        Raises:
            UnsupportedProviderError: If the name is not supported
        """
        name = provider.value if isinstance(provider, LLMProvider) else str(provider).strip().lower()
        try:
            resolved = LLMProvider(name)
        except ValueError:
            raise UnsupportedProviderError(str(provider), LLMProvider.values()) from None

        if resolved is LLMProvider.OPENAI:
            resolved = (settings or get_settings()).openai_default_provider
        return resolved

    @staticmethod
    def create_client(provider: str | LLMProvider, model: str | None = None, settings: Settings | None = None) -> ChatClient:
        """Create a chat client for a provider.

        Args:
            provider: Provider name (openai, openai-standard, azure-openai, claude)
            model: Model (or Azure deployment) overriding the configured default
            settings: Settings to read credentials from, defaults to the environment

        Returns:
            Configured client

        Raises:
            UnsupportedProviderError: If provider is not supported
            ConfigurationError: If required credentials are missing or invalid
        """
        settings = settings or get_settings()
        resolved = ChatClientFactory.resolve_provider(provider, settings)

        try:
            if resolved is LLMProvider.OPENAI_STANDARD:
                client: ChatClient = ChatClientFactory._create_standard_openai_client(settings, model)
            elif resolved is LLMProvider.AZURE_OPENAI:
                client = ChatClientFactory._create_azure_openai_client(settings, model)
            else:
                client = ChatClientFactory._create_claude_client(settings, model)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration for {resolved.value}: {e}") from e

        logger.info("Chat client created", provider=resolved.value, model=client.model)
        return client

    @staticmethod
    def _create_standard_openai_client(settings: Settings, model: str | None) -> StandardOpenAIClient:
        if not settings.OPENAI_API_KEY:
            raise ConfigurationError("OPENAI_API_KEY is required for openai-standard")

        config = OpenAIConfig(
            api_key=settings.OPENAI_API_KEY,
            model=model or settings.OPENAI_MODEL,
            vision_model=settings.OPENAI_VISION_MODEL,
            embedding_model=settings.OPENAI_EMBEDDING_MODEL,
            timeout=settings.REQUEST_TIMEOUT,
        )
        return StandardOpenAIClient(config)

    @staticmethod
    def _create_azure_openai_client(settings: Settings, model: str | None) -> AzureOpenAIClient:
        api_key = settings.AZURE_OPENAI_API_KEY or settings.OPENAI_API_KEY
        if not api_key:
            raise ConfigurationError("AZURE_OPENAI_API_KEY is required for azure-openai")
        if not settings.AZURE_OPENAI_ENDPOINT:
            raise ConfigurationError("AZURE_OPENAI_ENDPOINT is required for azure-openai")

        config = AzureOpenAIConfig(
            api_key=api_key,
            endpoint=settings.AZURE_OPENAI_ENDPOINT,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            deployment=model or settings.azure_deployment,
            embedding_deployment=settings.AZURE_OPENAI_EMBEDDING_DEPLOYMENT,
            timeout=settings.REQUEST_TIMEOUT,
        )
        return AzureOpenAIClient(config)

    @staticmethod
    def _create_claude_client(settings: Settings, model: str | None) -> ClaudeClient:
        if not settings.ANTHROPIC_API_KEY:
            raise ConfigurationError("ANTHROPIC_API_KEY is required for claude")

        config = ClaudeConfig(
            api_key=settings.ANTHROPIC_API_KEY,
            model=model or settings.CLAUDE_MODEL,
            timeout=settings.REQUEST_TIMEOUT,
        )
        return ClaudeClient(config)

    @staticmethod
    def create_client_with_fallback(
        provider: str | LLMProvider,
        fallbacks: Sequence[str | LLMProvider],
        model: str | None = None,
        settings: Settings | None = None,
    ) -> ChatClient:
        """Create a client, trying ``fallbacks`` in order when the primary is not configured.

        An unknown primary name is raised immediately. Every skipped provider
        is logged.

        Raises:
            UnsupportedProviderError: If the primary name is not supported
            ConfigurationError: The primary's error, when no candidate can be built
        """
        settings = settings or get_settings()
        ChatClientFactory.resolve_provider(provider, settings)

        try:
            return ChatClientFactory.create_client(provider, model, settings)
        except ConfigurationError as primary_error:
            logger.warning("Primary provider unavailable", provider=str(provider), error=str(primary_error))

            for fallback in fallbacks:
                try:
                    client = ChatClientFactory.create_client(fallback, None, settings)
                except ConfigurationError as e:
                    logger.warning("Fallback provider unavailable", provider=str(fallback), error=str(e))
                    continue
                logger.warning("Using fallback provider", requested=str(provider), provider=client.provider_name)
                return client

            raise primary_error

    @staticmethod
    def create_resilient_client(
        provider: str | LLMProvider,
        model: str | None = None,
        settings: Settings | None = None,
        config: ResilienceConfig | dict[str, Any] | None = None,
        collector: MetricsCollector | None = None,
    ) -> ResilientClient:
        """Create a provider client wrapped in a ``ResilientClient``.

        ``config`` overrides the settings' ``RESILIENCE_*`` defaults.
        """
        settings = settings or get_settings()
        client = ChatClientFactory.create_client(provider, model, settings)

        resilience = ResilienceConfig.from_settings(settings)
        if isinstance(config, ResilienceConfig):
            resilience = config
        elif config:
            resilience = ResilienceConfig.model_validate({**resilience.model_dump(), **config})

        return ResilientClient(client, resilience, name=client.provider_name, collector=collector)

    @staticmethod
    def get_supported_providers() -> list[str]:
        """Get list of supported provider names."""
        return LLMProvider.values()

    @staticmethod
    def is_provider_available(provider: str | LLMProvider, settings: Settings | None = None) -> bool:
        """Whether credentials for ``provider`` are configured."""
        settings = settings or get_settings()
        try:
            resolved = ChatClientFactory.resolve_provider(provider, settings)
        except UnsupportedProviderError:
            return False

        if resolved is LLMProvider.OPENAI_STANDARD:
            return bool(settings.OPENAI_API_KEY)
        if resolved is LLMProvider.AZURE_OPENAI:
            return bool((settings.AZURE_OPENAI_API_KEY or settings.OPENAI_API_KEY) and settings.AZURE_OPENAI_ENDPOINT)
        return bool(settings.ANTHROPIC_API_KEY)

    @staticmethod
    def get_available_providers(settings: Settings | None = None) -> list[str]:
        """Provider names whose credentials are configured."""
        settings = settings or get_settings()
        return [name for name in LLMProvider.values() if ChatClientFactory.is_provider_available(name, settings)]


create_client = ChatClientFactory.create_client
create_client_with_fallback = ChatClientFactory.create_client_with_fallback
create_resilient_client = ChatClientFactory.create_resilient_client
get_supported_providers = ChatClientFactory.get_supported_providers
is_provider_available = ChatClientFactory.is_provider_available
get_available_providers = ChatClientFactory.get_available_providers
