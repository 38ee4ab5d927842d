"""
AI provider gateway.

Adapts a classified request to the matching provider capability and
normalizes the result into a GatewayResponse. The gateway keeps no
per-conversation state; history is passed in on every call.
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from rai.config import Settings
from rai.exceptions import ProviderError, ValidationError
from rai.gateway import prompts
from rai.gateway.language import detect_language
from rai.intent import IntentCategory
from rai.models.db import MessageType, Sender
from rai.providers import (
    ChatMessage,
    ImageProvider,
    LLMProvider,
    LLMResponse,
    TranscriptionProvider,
    create_provider,
)

logger = logging.getLogger(__name__)


@dataclass
class GatewayResponse:
    """Normalized provider result.

    Attributes:
        content: Text (or image URL) to store as the AI message
        response_type: Message type the content is stored as
        metadata: Message metadata (model, provider, tokens, ...)
    """

    content: str
    response_type: MessageType = MessageType.TEXT
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return bool(self.metadata.get("error"))


def apology_response() -> GatewayResponse:
    """Degraded reply used when no provider could answer."""
    return GatewayResponse(
        content=prompts.APOLOGY_MESSAGE,
        response_type=MessageType.TEXT,
        metadata={"error": True, "model": "fallback", "provider": "rai"},
    )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def decode_audio(audio_data: str | bytes) -> bytes:
    """
    Decode audio sent by a client.

    Accepts raw bytes, a base64 string, or a data URL
    ("data:audio/webm;base64,...").

    Raises:
        ValidationError: If the payload is empty or not valid base64
    """
    if isinstance(audio_data, bytes):
        if not audio_data:
            raise ValidationError("Audio data must not be empty")
        return audio_data
    if not audio_data:
        raise ValidationError("Audio data must not be empty")
    encoded = audio_data.split(",", 1)[1] if audio_data.startswith("data:") else audio_data
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Audio data is not valid base64: {e}") from e


class AIGateway:
    """
    Façade over the configured AI providers.

    Text paths try each provider in order (primary first) and return the
    apology response when all of them fail. Image generation has a single
    provider and raises ProviderError on failure.
    """

    def __init__(
        self,
        text_providers: Sequence[LLMProvider] = (),
        code_providers: Optional[Sequence[LLMProvider]] = None,
        image_provider: Optional[ImageProvider] = None,
        transcriber: Optional[TranscriptionProvider] = None,
        text_max_tokens: int = 1000,
        text_temperature: float = 0.7,
        code_max_tokens: int = 2000,
        code_temperature: float = 0.3,
    ):
        self.text_providers = list(text_providers)
        self.code_providers = (
            list(code_providers) if code_providers is not None else self.text_providers
        )
        self.image_provider = image_provider
        self.transcriber = transcriber
        self.text_max_tokens = text_max_tokens
        self.text_temperature = text_temperature
        self.code_max_tokens = code_max_tokens
        self.code_temperature = code_temperature

    @property
    def is_configured(self) -> bool:
        """True when at least one text provider is available."""
        return bool(self.text_providers)

    def describe(self) -> dict[str, Any]:
        """Provider wiring, for health output and startup logs."""
        return {
            "text": [f"{p.provider_name}:{p.model_name}" for p in self.text_providers],
            "code": [f"{p.provider_name}:{p.model_name}" for p in self.code_providers],
            "image": self.image_provider.provider_name if self.image_provider else None,
            "transcription": (
                self.transcriber.provider_name if self.transcriber else None
            ),
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(
        self,
        category: IntentCategory,
        payload: str,
        history: Sequence[Any] = (),
        user: Any = None,
    ) -> GatewayResponse:
        """
        Route a classified request to its provider path.

        Args:
            category: Classified intent
            payload: Message text
            history: Prior messages (objects with sender and content), oldest first
            user: Requesting user; its AI personality shapes text responses

        Returns:
            GatewayResponse for the request

        Raises:
            ProviderError: If image generation fails
        """
        category = IntentCategory(category)
        logger.debug(f"Dispatching {category.value} request ({len(payload)} chars)")

        if category == IntentCategory.IMAGE_GENERATION:
            return self.generate_image(payload)
        if category == IntentCategory.CODE_GENERATION:
            return self.generate_code(payload)
        if category == IntentCategory.WEB_SEARCH:
            return self.web_search(payload)
        if category == IntentCategory.VOICE_COMMAND:
            return self.process_voice_command(payload)
        if category == IntentCategory.DOCUMENT_ANALYSIS:
            return self.analyze_document(payload)

        personality = getattr(user, "ai_personality", None)
        return self.generate_text(payload, history, personality)

    # ------------------------------------------------------------------
    # Provider paths
    # ------------------------------------------------------------------

    def generate_text(
        self,
        message: str,
        history: Sequence[Any] = (),
        personality: Optional[str] = None,
    ) -> GatewayResponse:
        """Chat completion with history mapped to user/assistant roles."""
        messages = self._history_to_messages(history)
        messages.append(ChatMessage(role="user", content=message))
        return self._complete_text(
            prompts.build_system_prompt(personality),
            messages,
        )

    def generate_code(self, request: str) -> GatewayResponse:
        """Code-focused completion tagged with the detected language."""
        response, provider = self._complete_with_fallback(
            self.code_providers,
            prompts.CODE_SYSTEM_PROMPT,
            [ChatMessage(role="user", content=prompts.CODE_PROMPT.format(request=request))],
            max_tokens=self.code_max_tokens,
            temperature=self.code_temperature,
        )
        if response is None:
            return apology_response()
        metadata = self._generation_metadata(response, provider)
        metadata["language"] = detect_language(response.content)
        return GatewayResponse(response.content, MessageType.CODE, metadata)

    def generate_image(self, prompt: str, size: Optional[str] = None) -> GatewayResponse:
        """
        Image synthesis; the image URL becomes the message content.

        Raises:
            ProviderError: If no image provider is configured or the call fails
        """
        if self.image_provider is None:
            raise ProviderError("gateway", "Image generation is not configured")
        try:
            result = self.image_provider.generate_image(prompt, size)
        except Exception as e:
            logger.error(f"Image generation failed: {e}")
            raise ProviderError(self.image_provider.provider_name, str(e), e) from e

        metadata = {
            "model": result.model,
            "provider": self.image_provider.provider_name,
            "response_time_ms": round(result.duration_ms, 2),
            "image_url": result.url,
            "image_prompt": prompt,
            "image_size": result.size,
        }
        if result.revised_prompt:
            metadata["revised_prompt"] = result.revised_prompt
        return GatewayResponse(result.url, MessageType.IMAGE, metadata)

    def web_search(self, query: str) -> GatewayResponse:
        """Search-augmented completion."""
        response = self._complete_text(
            prompts.build_system_prompt(),
            [ChatMessage(role="user", content=prompts.WEB_SEARCH_PROMPT.format(query=query))],
        )
        return self._with_kind(
            response,
            "search_result",
            query=query,
            source="web_search",
            timestamp=_now_iso(),
        )

    def process_voice_command(self, command: str) -> GatewayResponse:
        """Completion over a spoken command."""
        response = self._complete_text(
            prompts.build_system_prompt(),
            [
                ChatMessage(
                    role="user",
                    content=prompts.VOICE_COMMAND_PROMPT.format(command=command),
                )
            ],
        )
        return self._with_kind(
            response, "voice_command", original_command=command, processed=True
        )

    def analyze_document(self, document: str) -> GatewayResponse:
        """Document summary with key insights."""
        response = self._complete_text(
            prompts.build_system_prompt(),
            [
                ChatMessage(
                    role="user",
                    content=prompts.DOCUMENT_ANALYSIS_PROMPT.format(document=document),
                )
            ],
        )
        return self._with_kind(
            response,
            "document_analysis",
            document_length=len(document),
            analysis_type="comprehensive",
            timestamp=_now_iso(),
        )

    def translate(self, text: str, target_language: str) -> GatewayResponse:
        """Translate text into target_language."""
        if not text or not text.strip():
            raise ValidationError("Text to translate must not be empty")
        if not target_language or not target_language.strip():
            raise ValidationError("Target language is required")
        response = self._complete_text(
            prompts.build_system_prompt(),
            [
                ChatMessage(
                    role="user",
                    content=prompts.TRANSLATE_PROMPT.format(
                        target_language=target_language, text=text
                    ),
                )
            ],
        )
        return self._with_kind(
            response,
            "translation",
            original_text=text,
            target_language=target_language,
            source_language="auto-detected",
        )

    def summarize(self, text: str) -> GatewayResponse:
        """Concise summary of text."""
        if not text or not text.strip():
            raise ValidationError("Text to summarize must not be empty")
        response = self._complete_text(
            prompts.build_system_prompt(),
            [ChatMessage(role="user", content=prompts.SUMMARIZE_PROMPT.format(text=text))],
        )
        return self._with_kind(
            response, "summary", original_length=len(text), summary_type="concise"
        )

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    def speech_to_text(self, audio_data: str | bytes) -> str:
        """
        Transcribe client audio.

        Without a transcription provider the fixed not-available marker
        is returned as the transcript.

        Raises:
            ValidationError: If the audio payload cannot be decoded
            ProviderError: If the transcription call fails
        """
        if not audio_data:
            raise ValidationError("Audio data must not be empty")
        if self.transcriber is None:
            logger.warning("Speech-to-text requested but no transcriber is configured")
            return prompts.SPEECH_TO_TEXT_UNAVAILABLE
        audio = decode_audio(audio_data)
        try:
            return self.transcriber.transcribe(audio)
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            raise ProviderError(self.transcriber.provider_name, str(e), e) from e

    def text_to_speech(self, text: str) -> dict[str, Any]:
        """Text-to-speech is not provided; returns the not_implemented marker."""
        return {
            "audio_url": None,
            "text": text,
            "metadata": {"service": "text-to-speech", "status": "not_implemented"},
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _history_to_messages(history: Sequence[Any]) -> list[ChatMessage]:
        return [
            ChatMessage(
                role="user" if Sender(entry.sender) == Sender.USER else "assistant",
                content=entry.content,
            )
            for entry in history
        ]

    def _complete_text(
        self, system_prompt: str, messages: list[ChatMessage]
    ) -> GatewayResponse:
        response, provider = self._complete_with_fallback(
            self.text_providers,
            system_prompt,
            messages,
            max_tokens=self.text_max_tokens,
            temperature=self.text_temperature,
        )
        if response is None:
            return apology_response()
        return GatewayResponse(
            response.content,
            MessageType.TEXT,
            self._generation_metadata(response, provider),
        )

    @staticmethod
    def _complete_with_fallback(
        providers: Sequence[LLMProvider],
        system_prompt: str,
        messages: list[ChatMessage],
        max_tokens: int,
        temperature: float,
    ) -> tuple[Optional[LLMResponse], Optional[LLMProvider]]:
        """Try providers in order; (None, None) when every one fails."""
        if not providers:
            logger.warning("No text provider configured; returning apology")
            return None, None
        for provider in providers:
            try:
                response = provider.complete(
                    system_prompt,
                    messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
                return response, provider
            except Exception as e:
                logger.warning(
                    f"{provider.provider_name} completion failed "
                    f"({type(e).__name__}: {e}); trying next provider"
                )
        logger.error("All text providers failed; returning apology")
        return None, None

    @staticmethod
    def _generation_metadata(
        response: LLMResponse, provider: LLMProvider
    ) -> dict[str, Any]:
        return {
            "model": response.model or provider.model_name,
            "provider": provider.provider_name,
            "tokens": response.total_tokens,
            "response_time_ms": round(response.duration_ms, 2),
        }

    @staticmethod
    def _with_kind(
        response: GatewayResponse, kind: str, **extra: Any
    ) -> GatewayResponse:
        if response.is_error:
            return response
        response.metadata.update(response_kind=kind, **extra)
        return response


def build_gateway(settings: Settings) -> AIGateway:
    """
    Construct the gateway from settings.

    OpenAI is the primary provider for every capability; Anthropic, when
    configured, is the text and code fallback. Missing keys leave the
    corresponding capability unconfigured.
    """
    text_providers: list[LLMProvider] = []
    code_providers: list[LLMProvider] = []
    image_provider: Optional[ImageProvider] = None
    transcriber: Optional[TranscriptionProvider] = None
    timeout = settings.provider_timeout_seconds

    if settings.openai_api_key:
        openai_options = {
            "image_model": settings.openai_image_model,
            "image_size": settings.openai_image_size,
            "transcription_model": settings.openai_transcription_model,
        }
        primary = create_provider(
            "openai",
            settings.openai_api_key,
            model=settings.openai_model,
            timeout=timeout,
            **openai_options,
        )
        text_providers.append(primary)
        if settings.openai_code_model == settings.openai_model:
            code_providers.append(primary)
        else:
            code_providers.append(
                create_provider(
                    "openai",
                    settings.openai_api_key,
                    model=settings.openai_code_model,
                    timeout=timeout,
                    **openai_options,
                )
            )
        image_provider = primary
        transcriber = primary
    else:
        logger.warning("OPENAI_API_KEY not set; primary provider disabled")

    if settings.anthropic_api_key:
        fallback = create_provider(
            "anthropic",
            settings.anthropic_api_key,
            model=settings.anthropic_model,
            timeout=timeout,
        )
        text_providers.append(fallback)
        code_providers.append(fallback)
    else:
        logger.warning("ANTHROPIC_API_KEY not set; fallback provider disabled")

    return AIGateway(
        text_providers=text_providers,
        code_providers=code_providers,
        image_provider=image_provider,
        transcriber=transcriber,
        text_max_tokens=settings.text_max_tokens,
        text_temperature=settings.text_temperature,
        code_max_tokens=settings.code_max_tokens,
        code_temperature=settings.code_temperature,
    )
