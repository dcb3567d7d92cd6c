"""Conversation provider adapters."""

import os

from toolrelay.config.models import ProviderConfig
from toolrelay.errors import ConfigurationError
from toolrelay.providers.base import ConversationProvider
from toolrelay.providers.mock import MockConversationProvider
from toolrelay.providers.models import (
    AssistantMessage,
    Run,
    RunStatus,
    ToolCall,
    ToolOutput,
)
from toolrelay.providers.openai_assistants import OpenAIAssistantsProvider


def resolve_api_key(config: ProviderConfig) -> str | None:
    """Configured API key, falling back to OPENAI_API_KEY."""
    if config.api_key is not None and config.api_key.get_secret_value():
        return config.api_key.get_secret_value()
    return os.environ.get("OPENAI_API_KEY") or None


def create_provider(config: ProviderConfig) -> ConversationProvider:
    """Build the configured provider.

    Raises:
        ConfigurationError: If the OpenAI provider has no API key
    """
    if config.kind == "mock":
        return MockConversationProvider()

    api_key = resolve_api_key(config)
    if not api_key:
        raise ConfigurationError(
            "OpenAI API key not configured",
            context={"provider": config.kind},
        )
    return OpenAIAssistantsProvider(
        api_key=api_key,
        base_url=config.base_url,
        timeout=config.timeout_seconds,
    )


__all__ = [
    "AssistantMessage",
    "ConversationProvider",
    "MockConversationProvider",
    "OpenAIAssistantsProvider",
    "Run",
    "RunStatus",
    "ToolCall",
    "ToolOutput",
    "create_provider",
    "resolve_api_key",
]
