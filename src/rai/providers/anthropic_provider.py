"""Anthropic LLM provider implementation."""

import logging
import time
from typing import Any, Optional

from anthropic import Anthropic

from rai.providers.base import ChatMessage, LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Anthropic LLM provider using the Anthropic Python SDK.

    Used as the fallback for text generation when the primary provider
    fails.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-haiku-20241022",
        timeout: Optional[float] = None,
    ):
        """Initialize the Anthropic provider.

        Args:
            api_key: Anthropic API key
            model: Model to use (default: claude-3-5-haiku-20241022)
            timeout: Request timeout in seconds (SDK default when None)
        """
        if not api_key:
            raise ValueError("Anthropic API key is required")

        client_kwargs: dict[str, Any] = {"api_key": api_key}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self.client = Anthropic(**client_kwargs)
        self._model = model
        logger.info(f"Initialized Anthropic provider with model: {model}")

    @property
    def provider_name(self) -> str:
        """Return 'anthropic' as the provider identifier."""
        return "anthropic"

    @property
    def model_name(self) -> str:
        """Return the model identifier."""
        return self._model

    def complete(
        self,
        system_prompt: str,
        messages: list[ChatMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a completion using Anthropic's messages API.

        Args:
            system_prompt: System message setting the context
            messages: Role-tagged conversation, oldest first
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature (0.0-1.0)

        Returns:
            LLMResponse with completion and metadata

        Raises:
            Exception: Anthropic API errors
        """
        start_time = time.time()

        request_params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": self._to_alternating_turns(messages),
        }

        response = self.client.messages.create(**request_params)
        duration_ms = (time.time() - start_time) * 1000

        return self._build_response(response, duration_ms)

    @staticmethod
    def _to_alternating_turns(messages: list[ChatMessage]) -> list[dict[str, str]]:
        """Shape history for the messages API.

        The API expects the first turn to come from the user and roles to
        alternate, so leading assistant turns are dropped and consecutive
        turns from the same role are joined.
        """
        turns: list[dict[str, str]] = []
        for message in messages:
            if not turns and message.role != "user":
                continue
            if turns and turns[-1]["role"] == message.role:
                turns[-1]["content"] += "\n\n" + message.content
            else:
                turns.append({"role": message.role, "content": message.content})
        return turns

    def _build_response(self, response: Any, duration_ms: float) -> LLMResponse:
        """Build LLMResponse from Anthropic API response.

        Args:
            response: Anthropic API response
            duration_ms: Request duration in milliseconds

        Returns:
            Standardized LLMResponse
        """
        content = ""
        for block in response.content:
            if hasattr(block, "text"):
                content += block.text

        usage = response.usage
        prompt_tokens = usage.input_tokens if usage else 0
        completion_tokens = usage.output_tokens if usage else 0
        total_tokens = prompt_tokens + completion_tokens

        return LLMResponse(
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
            finish_reason=response.stop_reason or "unknown",
            model=response.model,
            duration_ms=duration_ms,
            raw_response=response,
        )
