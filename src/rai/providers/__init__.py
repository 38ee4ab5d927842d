"""AI provider implementations.

Currently supported providers:
- OpenAI (chat completions, image generation, transcription)
- Anthropic (chat completions, used as the text fallback)

Usage:
    from rai.providers import create_provider

    provider = create_provider(
        provider_type="openai",
        api_key="sk-xxx",
        model="gpt-4",
    )

    response = provider.complete(
        system_prompt="You are RAI...",
        messages=[ChatMessage(role="user", content="Hello")],
    )
"""

import logging
from typing import Literal, Optional

from rai.providers.base import (
    ChatMessage,
    ImageProvider,
    ImageResult,
    LLMProvider,
    LLMResponse,
    TranscriptionProvider,
)

logger = logging.getLogger(__name__)

# Type alias for provider names
ProviderType = Literal["openai", "anthropic"]


def create_provider(
    provider_type: ProviderType,
    api_key: str,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
    **options,
) -> LLMProvider:
    """Factory function to create LLM providers.

    Args:
        provider_type: The provider to use ("openai" or "anthropic")
        api_key: API key for the provider
        model: Optional model override (uses provider default if not specified)
        timeout: Request timeout in seconds
        **options: Provider-specific options (image_model, image_size, ...)

    Returns:
        Configured LLMProvider instance

    Raises:
        ValueError: If provider_type is unknown or api_key is missing
    """
    if not api_key:
        raise ValueError(f"API key is required for {provider_type} provider")

    if provider_type == "openai":
        from rai.providers.openai_provider import OpenAIProvider

        return OpenAIProvider(
            api_key=api_key,
            model=model or "gpt-4",
            timeout=timeout,
            **options,
        )

    elif provider_type == "anthropic":
        from rai.providers.anthropic_provider import AnthropicProvider

        return AnthropicProvider(
            api_key=api_key,
            model=model or "claude-3-5-haiku-20241022",
            timeout=timeout,
        )

    else:
        raise ValueError(
            f"Unknown provider type: {provider_type}. "
            f"Supported providers: openai, anthropic"
        )


__all__ = [
    "ChatMessage",
    "ImageProvider",
    "ImageResult",
    "LLMProvider",
    "LLMResponse",
    "ProviderType",
    "TranscriptionProvider",
    "create_provider",
]
