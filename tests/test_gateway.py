"""Tests for the AI provider gateway."""

import base64
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from conftest import FakeImageProvider, FakeProvider, FakeTranscriber
from rai.config import Settings
from rai.exceptions import ProviderError, ValidationError
from rai.gateway import AIGateway, apology_response, build_gateway, decode_audio
from rai.gateway.prompts import (
    APOLOGY_MESSAGE,
    ASSISTANT_IDENTITY,
    PERSONALITY_STYLES,
    SPEECH_TO_TEXT_UNAVAILABLE,
    build_system_prompt,
)
from rai.intent import IntentCategory
from rai.models.db import AIPersonality, MessageType, Sender


def _entry(sender: Sender, content: str) -> SimpleNamespace:
    return SimpleNamespace(sender=sender, content=content)


class TestApologyResponse:
    def test_shape(self):
        response = apology_response()

        assert response.content == APOLOGY_MESSAGE
        assert response.response_type == MessageType.TEXT
        assert response.metadata == {
            "error": True,
            "model": "fallback",
            "provider": "rai",
        }
        assert response.is_error is True


class TestSystemPrompt:
    def test_personality_style_is_appended(self):
        prompt = build_system_prompt("technical")
        assert prompt.startswith(ASSISTANT_IDENTITY)
        assert prompt.endswith(PERSONALITY_STYLES[AIPersonality.TECHNICAL])

    @pytest.mark.parametrize("personality", [None, "grumpy"])
    def test_unknown_personality_falls_back_to_friendly(self, personality):
        assert build_system_prompt(personality).endswith(
            PERSONALITY_STYLES[AIPersonality.FRIENDLY]
        )


class TestGenerateText:
    def test_history_roles_and_metadata(
        self, gateway: AIGateway, fake_provider: FakeProvider
    ):
        history = [
            _entry(Sender.USER, "Hi"),
            _entry(Sender.AI, "Hello! How can I help?"),
        ]

        response = gateway.generate_text("Tell me a joke", history)

        messages = fake_provider.calls[0]["messages"]
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Hi"),
            ("assistant", "Hello! How can I help?"),
            ("user", "Tell me a joke"),
        ]
        assert response.content == "Hello from the fake provider"
        assert response.response_type == MessageType.TEXT
        assert response.metadata["model"] == "fake-model"
        assert response.metadata["provider"] == "fake"
        assert response.metadata["tokens"] == 42
        assert response.metadata["response_time_ms"] == 125.0

    def test_uses_text_generation_limits(self, fake_provider: FakeProvider):
        gateway = AIGateway(
            text_providers=[fake_provider], text_max_tokens=321, text_temperature=0.1
        )
        gateway.generate_text("hi")

        assert fake_provider.calls[0]["max_tokens"] == 321
        assert fake_provider.calls[0]["temperature"] == 0.1

    def test_falls_back_to_next_provider(self):
        primary = FakeProvider(name="primary", error=RuntimeError("timeout"))
        fallback = FakeProvider(name="fallback", reply="fallback answer")
        gateway = AIGateway(text_providers=[primary, fallback])

        response = gateway.generate_text("hi")

        assert response.content == "fallback answer"
        assert response.metadata["provider"] == "fallback"
        assert len(primary.calls) == 1

    def test_all_providers_failing_returns_apology(self):
        gateway = AIGateway(
            text_providers=[
                FakeProvider(error=RuntimeError("down")),
                FakeProvider(error=RuntimeError("also down")),
            ]
        )

        response = gateway.generate_text("hi")

        assert response.is_error
        assert response.content == APOLOGY_MESSAGE

    def test_unconfigured_gateway_returns_apology(self):
        gateway = AIGateway()

        assert gateway.is_configured is False
        assert gateway.generate_text("hi").is_error


class TestGenerateCode:
    def test_code_response_carries_language(self):
        coder = FakeProvider(reply="def greet():\n    return 'hi'")
        gateway = AIGateway(text_providers=[FakeProvider()], code_providers=[coder])

        response = gateway.generate_code("a python greeting function")

        assert response.response_type == MessageType.CODE
        assert response.metadata["language"] == "python"
        assert len(coder.calls) == 1
        assert coder.calls[0]["max_tokens"] == 2000
        assert coder.calls[0]["temperature"] == 0.3
        assert "a python greeting function" in coder.calls[0]["messages"][0].content

    def test_code_providers_default_to_text_providers(self, fake_provider):
        gateway = AIGateway(text_providers=[fake_provider])
        gateway.generate_code("anything")
        assert len(fake_provider.calls) == 1

    def test_failed_code_generation_is_apology(self):
        gateway = AIGateway(text_providers=[FakeProvider(error=RuntimeError("x"))])
        response = gateway.generate_code("anything")

        assert response.is_error
        assert response.response_type == MessageType.TEXT


class TestGenerateImage:
    def test_url_becomes_content(
        self, gateway: AIGateway, image_provider: FakeImageProvider
    ):
        response = gateway.generate_image("a red fox", size="512x512")

        assert response.content == "https://images.example.com/generated.png"
        assert response.response_type == MessageType.IMAGE
        assert response.metadata["image_url"] == response.content
        assert response.metadata["image_prompt"] == "a red fox"
        assert response.metadata["image_size"] == "512x512"
        assert image_provider.prompts == ["a red fox"]

    def test_failure_raises_provider_error(self):
        gateway = AIGateway(image_provider=FakeImageProvider(error=RuntimeError("nsfw")))

        with pytest.raises(ProviderError) as exc_info:
            gateway.generate_image("a fox")

        assert exc_info.value.provider == "fake-images"

    def test_unconfigured_raises_provider_error(self):
        with pytest.raises(ProviderError):
            AIGateway().generate_image("a fox")


class TestSpecializedPaths:
    def test_web_search_metadata(self, gateway: AIGateway, fake_provider: FakeProvider):
        response = gateway.web_search("python 3.13 release")

        assert response.metadata["response_kind"] == "search_result"
        assert response.metadata["query"] == "python 3.13 release"
        assert response.metadata["source"] == "web_search"
        assert "timestamp" in response.metadata
        assert "python 3.13 release" in fake_provider.calls[0]["messages"][0].content

    def test_voice_command_metadata(self, gateway: AIGateway):
        response = gateway.process_voice_command("turn on the lights")

        assert response.metadata["response_kind"] == "voice_command"
        assert response.metadata["original_command"] == "turn on the lights"
        assert response.metadata["processed"] is True

    def test_document_analysis_metadata(self, gateway: AIGateway):
        response = gateway.analyze_document("A long document")

        assert response.metadata["response_kind"] == "document_analysis"
        assert response.metadata["document_length"] == len("A long document")
        assert response.metadata["analysis_type"] == "comprehensive"

    def test_apology_is_not_decorated(self):
        gateway = AIGateway(text_providers=[FakeProvider(error=RuntimeError("x"))])
        response = gateway.web_search("anything")

        assert response.is_error
        assert "response_kind" not in response.metadata

    def test_translate(self, gateway: AIGateway, fake_provider: FakeProvider):
        response = gateway.translate("Good morning", "French")

        assert response.metadata["response_kind"] == "translation"
        assert response.metadata["target_language"] == "French"
        assert response.metadata["source_language"] == "auto-detected"
        prompt = fake_provider.calls[0]["messages"][0].content
        assert "French" in prompt and "Good morning" in prompt

    @pytest.mark.parametrize("text,language", [("", "French"), ("hi", " ")])
    def test_translate_validates_input(self, gateway: AIGateway, text, language):
        with pytest.raises(ValidationError):
            gateway.translate(text, language)

    def test_summarize(self, gateway: AIGateway):
        response = gateway.summarize("Some long text to summarize")

        assert response.metadata["response_kind"] == "summary"
        assert response.metadata["original_length"] == 27
        assert response.metadata["summary_type"] == "concise"

    def test_summarize_rejects_empty(self, gateway: AIGateway):
        with pytest.raises(ValidationError):
            gateway.summarize("  ")


class TestDispatch:
    @pytest.mark.parametrize(
        "category,kind",
        [
            (IntentCategory.WEB_SEARCH, "search_result"),
            (IntentCategory.VOICE_COMMAND, "voice_command"),
            (IntentCategory.DOCUMENT_ANALYSIS, "document_analysis"),
        ],
    )
    def test_routes_by_category(self, gateway: AIGateway, category, kind):
        response = gateway.dispatch(category, "payload")
        assert response.metadata["response_kind"] == kind

    def test_image_category(self, gateway: AIGateway):
        response = gateway.dispatch(IntentCategory.IMAGE_GENERATION, "draw a cat")
        assert response.response_type == MessageType.IMAGE

    def test_code_category(self, gateway: AIGateway):
        response = gateway.dispatch(IntentCategory.CODE_GENERATION, "write code")
        assert response.response_type == MessageType.CODE

    def test_text_uses_user_personality(
        self, gateway: AIGateway, fake_provider: FakeProvider
    ):
        user = SimpleNamespace(ai_personality="professional")
        gateway.dispatch(
            IntentCategory.TEXT_RESPONSE,
            "hello",
            history=[_entry(Sender.USER, "earlier")],
            user=user,
        )

        call = fake_provider.calls[0]
        assert call["system_prompt"].endswith(
            PERSONALITY_STYLES[AIPersonality.PROFESSIONAL]
        )
        assert len(call["messages"]) == 2


class TestSpeech:
    def test_speech_to_text_decodes_base64(
        self, gateway: AIGateway, transcriber: FakeTranscriber
    ):
        audio = base64.b64encode(b"RIFF-audio").decode("ascii")

        text = gateway.speech_to_text(audio)

        assert text == transcriber.transcript
        assert transcriber.received == [b"RIFF-audio"]

    def test_speech_to_text_accepts_data_url(
        self, gateway: AIGateway, transcriber: FakeTranscriber
    ):
        audio = "data:audio/webm;base64," + base64.b64encode(b"webm").decode("ascii")
        gateway.speech_to_text(audio)
        assert transcriber.received == [b"webm"]

    def test_speech_to_text_without_transcriber(self):
        assert AIGateway().speech_to_text("anything") == SPEECH_TO_TEXT_UNAVAILABLE

    def test_speech_to_text_rejects_empty(self, gateway: AIGateway):
        with pytest.raises(ValidationError):
            gateway.speech_to_text("")

    def test_text_to_speech_not_implemented(self, gateway: AIGateway):
        result = gateway.text_to_speech("hello")

        assert result["audio_url"] is None
        assert result["text"] == "hello"
        assert result["metadata"]["status"] == "not_implemented"


class TestDecodeAudio:
    def test_bytes_pass_through(self):
        assert decode_audio(b"abc") == b"abc"

    def test_invalid_base64(self):
        with pytest.raises(ValidationError):
            decode_audio("not base64!!")

    def test_empty(self):
        with pytest.raises(ValidationError):
            decode_audio(b"")


class TestBuildGateway:
    @patch("rai.providers.anthropic_provider.Anthropic")
    @patch("rai.providers.openai_provider.OpenAI")
    def test_wires_primary_and_fallback(self, mock_openai, mock_anthropic):
        settings = Settings(
            openai_api_key="sk-test",
            anthropic_api_key="ak-test",
            openai_model="gpt-4",
            openai_code_model="gpt-4",
        )

        gateway = build_gateway(settings)

        assert [p.provider_name for p in gateway.text_providers] == [
            "openai",
            "anthropic",
        ]
        assert gateway.code_providers[0] is gateway.text_providers[0]
        assert gateway.image_provider is gateway.text_providers[0]
        assert gateway.transcriber is gateway.text_providers[0]

    @patch("rai.providers.openai_provider.OpenAI")
    def test_separate_code_model(self, mock_openai):
        settings = Settings(
            openai_api_key="sk-test",
            anthropic_api_key="",
            openai_model="gpt-4",
            openai_code_model="gpt-4o",
        )

        gateway = build_gateway(settings)

        assert gateway.code_providers[0].model_name == "gpt-4o"
        assert gateway.text_providers[0].model_name == "gpt-4"

    def test_no_keys(self):
        gateway = build_gateway(Settings(openai_api_key="", anthropic_api_key=""))

        assert gateway.is_configured is False
        assert gateway.image_provider is None
        assert gateway.transcriber is None
        assert gateway.describe()["text"] == []
