"""OpenAI provider implementation (chat, images, transcription)."""

import logging
import time
from typing import Any, Optional

from openai import OpenAI

from rai.providers.base import (
    ChatMessage,
    ImageProvider,
    ImageResult,
    LLMProvider,
    LLMResponse,
    TranscriptionProvider,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider, ImageProvider, TranscriptionProvider):
    """OpenAI provider using the OpenAI Python SDK.

    One instance serves chat completions for a single model plus image
    generation and transcription, which use their own model settings.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4",
        image_model: str = "dall-e-3",
        image_size: str = "1024x1024",
        transcription_model: str = "whisper-1",
        timeout: Optional[float] = None,
    ):
        """Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Chat model to use (default: gpt-4)
            image_model: Image synthesis model
            image_size: Default image size
            transcription_model: Speech-to-text model
            timeout: Request timeout in seconds (SDK default when None)
        """
        if not api_key:
            raise ValueError("OpenAI API key is required")

        client_kwargs: dict[str, Any] = {"api_key": api_key}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self.client = OpenAI(**client_kwargs)
        self._model = model
        self._image_model = image_model
        self._image_size = image_size
        self._transcription_model = transcription_model
        logger.info(f"Initialized OpenAI provider with model: {model}")

    @property
    def provider_name(self) -> str:
        """Return 'openai' as the provider identifier."""
        return "openai"

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
        """Generate a completion using OpenAI's chat API.

        Args:
            system_prompt: System message setting the context
            messages: Role-tagged conversation, oldest first
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature (0.0-1.0)

        Returns:
            LLMResponse with completion and metadata

        Raises:
            Exception: OpenAI API errors
        """
        start_time = time.time()

        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "system", "content": system_prompt}]
            + [{"role": m.role, "content": m.content} for m in messages],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        response = self.client.chat.completions.create(**request_params)
        duration_ms = (time.time() - start_time) * 1000

        content = response.choices[0].message.content or ""

        usage = response.usage
        prompt_tokens = usage.prompt_tokens if usage else 0
        completion_tokens = usage.completion_tokens if usage else 0
        total_tokens = usage.total_tokens if usage else 0

        return LLMResponse(
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
            finish_reason=response.choices[0].finish_reason or "unknown",
            model=response.model,
            duration_ms=duration_ms,
            raw_response=response,
        )

    def generate_image(self, prompt: str, size: Optional[str] = None) -> ImageResult:
        """Generate a single image with the images API.

        Raises:
            Exception: OpenAI API errors
        """
        start_time = time.time()
        size = size or self._image_size
        response = self.client.images.generate(
            model=self._image_model,
            prompt=prompt,
            n=1,
            size=size,
        )
        duration_ms = (time.time() - start_time) * 1000

        image = response.data[0]
        return ImageResult(
            url=image.url,
            model=self._image_model,
            prompt=prompt,
            size=size,
            duration_ms=duration_ms,
            revised_prompt=getattr(image, "revised_prompt", None),
        )

    def transcribe(self, audio: bytes, filename: str = "audio.webm") -> str:
        """Transcribe audio with the transcription API.

        Raises:
            Exception: OpenAI API errors
        """
        transcription = self.client.audio.transcriptions.create(
            model=self._transcription_model,
            file=(filename, audio),
        )
        return transcription.text
