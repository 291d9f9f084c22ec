"""LLM provider implementations.

Pluggable provider system used by the analyzer, todo generator, recap
generator and chat assistant. Supported providers:
- OpenAI (gpt-4o, gpt-4o-mini, ...)
- Anthropic (claude-sonnet-4-5, claude-3-5-haiku, ...)

Usage:
    from github_agent.llm import get_default_provider

    provider = get_default_provider()
    response = provider.generate(
        "recap",
        system_prompt="You are a technical project manager...",
        user_prompt="Summarize this activity...",
    )
"""

import logging
from typing import Literal

from github_agent.config import settings
from github_agent.exceptions import LLMNotConfiguredError
from github_agent.llm.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)

ProviderType = Literal["openai", "anthropic"]


def create_provider(
    provider_type: ProviderType,
    api_key: str,
    model: str | None = None,
) -> LLMProvider:
    """Build a provider by name.

    Raises:
        ValueError: Unknown provider or empty API key
    """
    if not api_key:
        raise ValueError(f"API key is required for {provider_type} provider")

    if provider_type == "openai":
        from github_agent.llm.openai_provider import (
            DEFAULT_OPENAI_MODEL,
            OpenAIProvider,
        )

        return OpenAIProvider(api_key=api_key, model=model or DEFAULT_OPENAI_MODEL)
    if provider_type == "anthropic":
        from github_agent.llm.anthropic_provider import (
            DEFAULT_ANTHROPIC_MODEL,
            AnthropicProvider,
        )

        return AnthropicProvider(
            api_key=api_key, model=model or DEFAULT_ANTHROPIC_MODEL
        )
    raise ValueError(
        f"Unknown provider type: {provider_type}. "
        "Supported providers: openai, anthropic"
    )


def is_llm_configured() -> bool:
    if settings.llm_provider == "anthropic":
        return bool(settings.anthropic_api_key)
    return bool(settings.openai_api_key)


def configured_model() -> str:
    if settings.llm_provider == "anthropic":
        return settings.anthropic_model
    return settings.openai_model


def get_default_provider(model: str | None = None) -> LLMProvider:
    """Build the provider selected by LLM_PROVIDER.

    Args:
        model: Model override (default: the configured model)

    Raises:
        LLMNotConfiguredError: If the selected provider has no API key
    """
    if not is_llm_configured():
        raise LLMNotConfiguredError(
            f"No API key configured for LLM provider '{settings.llm_provider}'"
        )

    model = model or configured_model()
    if settings.llm_provider == "anthropic":
        return create_provider("anthropic", settings.anthropic_api_key, model)
    return create_provider("openai", settings.openai_api_key, model)


__all__ = [
    "LLMProvider",
    "LLMResponse",
    "ProviderType",
    "configured_model",
    "create_provider",
    "get_default_provider",
    "is_llm_configured",
]
