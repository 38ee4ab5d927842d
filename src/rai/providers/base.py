"""Base protocol and types for AI providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ChatMessage:
    """One role-tagged entry of a completion request.

    Attributes:
        role: "user" or "assistant"
        content: Message text
    """

    role: str
    content: str


@dataclass
class LLMResponse:
    """Standardized response from LLM providers.

    Attributes:
        content: The generated text content
        prompt_tokens: Number of tokens in the prompt
        completion_tokens: Number of tokens in the completion
        total_tokens: Total tokens used
        finish_reason: Why generation stopped (stop, length, error, etc.)
        model: The actual model used (may differ from requested)
        duration_ms: Time taken for the API call in milliseconds
        raw_response: Provider-specific raw response for debugging
    """

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    finish_reason: str
    model: str
    duration_ms: float
    raw_response: Any = None


@dataclass
class ImageResult:
    """Result of an image synthesis call."""

    url: str
    model: str
    prompt: str
    size: str
    duration_ms: float
    revised_prompt: Optional[str] = None


class LLMProvider(ABC):
    """Abstract base class for text completion providers.

    Implementations must handle:
    - API client initialization
    - Mapping role-tagged messages onto the provider's request shape
    - Token accounting
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identifier (e.g., 'openai', 'anthropic')."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier being used."""
        ...

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        messages: list[ChatMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a completion from the LLM.

        Args:
            system_prompt: System message setting the context
            messages: Conversation so far, oldest first, ending with the
                user request
            max_tokens: Maximum tokens in the response
            temperature: Sampling temperature (0.0-1.0)

        Returns:
            LLMResponse with the completion and metadata

        Raises:
            Exception: Provider SDK errors are propagated unchanged
        """
        ...


class ImageProvider(ABC):
    """Abstract base class for image synthesis providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @abstractmethod
    def generate_image(self, prompt: str, size: Optional[str] = None) -> ImageResult:
        """Generate one image for the prompt and return its URL."""
        ...


class TranscriptionProvider(ABC):
    """Abstract base class for speech-to-text providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @abstractmethod
    def transcribe(self, audio: bytes, filename: str = "audio.webm") -> str:
        """Transcribe raw audio bytes to text."""
        ...
