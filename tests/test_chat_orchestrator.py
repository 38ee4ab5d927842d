"""Tests for the conversation orchestrator."""

import base64
import uuid
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from conftest import FakeImageProvider, FakeProvider, auth_headers, make_user
from rai.db.repositories import ConversationRepository, MessageRepository
from rai.exceptions import (
    AccessDeniedError,
    NotFoundError,
    PersistenceError,
    UsageLimitExceededError,
    ValidationError,
)
from rai.gateway import AIGateway
from rai.gateway.prompts import APOLOGY_MESSAGE
from rai.models.db import (
    Conversation,
    MessageStatus,
    MessageType,
    Sender,
    SharePermission,
    SubscriptionPlan,
    User,
)
from rai.services.chat import ConversationOrchestrator


@pytest.fixture
def orchestrator(db_session: Session, gateway: AIGateway) -> ConversationOrchestrator:
    return ConversationOrchestrator(db_session, gateway)


class TestHandleTurn:
    def test_new_conversation(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
    ):
        result = orchestrator.handle_turn(sample_user.id, "Hello there, how are you?")

        conversation = db_session.get(Conversation, result.conversation_id)
        assert conversation.user_id == sample_user.id
        assert conversation.title == "Hello there, how are you?..."
        assert conversation.message_count == 2
        assert conversation.pending_reply_to is None
        assert conversation.last_message == "Hello from the fake provider"

        assert result.user_message.sender == Sender.USER
        assert result.user_message.sequence == 1
        assert result.user_message.status == MessageStatus.DELIVERED
        assert result.ai_message.sender == Sender.AI
        assert result.ai_message.sequence == 2
        assert result.ai_message.content == "Hello from the fake provider"
        assert result.conversation.message_count == 2

    def test_long_first_message_title(
        self, orchestrator: ConversationOrchestrator, sample_user: User
    ):
        text = "Hello " * 20
        result = orchestrator.handle_turn(sample_user.id, text)

        assert result.conversation.title == text.strip()[:50] + "..."

    def test_ai_metadata(self, orchestrator: ConversationOrchestrator, sample_user: User):
        result = orchestrator.handle_turn(sample_user.id, "Hello there")

        metadata = result.ai_message.metadata
        assert metadata["kind"] == "text"
        assert metadata["model"] == "fake-model"
        assert metadata["provider"] == "fake"
        assert metadata["tokens"] == 42
        assert metadata["intent"] == "text_response"
        assert metadata["confidence"] == 0.9

    def test_usage_and_analytics_recorded(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
    ):
        result = orchestrator.handle_turn(sample_user.id, "Hello there")

        db_session.refresh(sample_user)
        assert sample_user.messages_sent == 1
        assert sample_user.last_active is not None

        conversation = db_session.get(Conversation, result.conversation_id)
        assert conversation.total_tokens == 42
        assert conversation.response_count == 1
        assert conversation.average_response_time_ms == 125.0
        assert conversation.feature_usage == {"text_response": 1}

    def test_wire_format(self, orchestrator: ConversationOrchestrator, sample_user: User):
        wire = orchestrator.handle_turn(sample_user.id, "Hello there").to_wire()

        assert set(wire) == {"conversationId", "userMessage", "aiMessage", "conversation"}
        assert wire["aiMessage"]["type"] == "text"
        assert "messageCount" in wire["conversation"]

    def test_continues_existing_conversation_with_history(
        self,
        orchestrator: ConversationOrchestrator,
        fake_provider: FakeProvider,
        sample_user: User,
        sample_conversation: Conversation,
    ):
        result = orchestrator.handle_turn(
            sample_user.id, "And the moons?", conversation_id=sample_conversation.id
        )

        assert result.conversation_id == sample_conversation.id
        assert result.user_message.sequence == 3
        assert result.ai_message.sequence == 4
        messages = fake_provider.calls[0]["messages"]
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Tell me about the solar system"),
            ("assistant", "The solar system has eight planets."),
            ("user", "And the moons?"),
        ]

    def test_history_window(
        self,
        db_session: Session,
        gateway: AIGateway,
        fake_provider: FakeProvider,
        sample_user: User,
        sample_conversation: Conversation,
    ):
        orchestrator = ConversationOrchestrator(db_session, gateway, history_window=1)
        orchestrator.handle_turn(
            sample_user.id, "And the moons?", conversation_id=sample_conversation.id
        )

        messages = fake_provider.calls[0]["messages"]
        assert [m.content for m in messages] == [
            "The solar system has eight planets.",
            "And the moons?",
        ]

    def test_deleted_messages_excluded_from_history(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        fake_provider: FakeProvider,
        sample_user: User,
        sample_conversation: Conversation,
    ):
        repo = MessageRepository(db_session)
        first = repo.get_by_conversation(sample_conversation.id)[0]
        repo.soft_delete(first, sample_user.id)
        db_session.commit()

        orchestrator.handle_turn(
            sample_user.id, "And the moons?", conversation_id=sample_conversation.id
        )

        contents = [m.content for m in fake_provider.calls[0]["messages"]]
        assert "Tell me about the solar system" not in contents
        assert len(contents) == 2

    def test_image_turn(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        image_provider: FakeImageProvider,
        sample_user: User,
    ):
        result = orchestrator.handle_turn(sample_user.id, "Generate an image of a fox")

        assert result.ai_message.type == MessageType.IMAGE
        assert result.ai_message.content == "https://images.example.com/generated.png"
        assert result.ai_message.metadata["image_prompt"] == "Generate an image of a fox"
        assert result.ai_message.metadata["intent"] == "image_generation"
        assert image_provider.prompts == ["Generate an image of a fox"]

        db_session.refresh(sample_user)
        assert sample_user.messages_sent == 1
        assert sample_user.images_generated == 1

    def test_code_turn(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
    ):
        result = orchestrator.handle_turn(sample_user.id, "Write code to reverse a list")

        assert result.ai_message.type == MessageType.CODE
        assert result.ai_message.metadata["language"] == "unknown"

        db_session.refresh(sample_user)
        assert sample_user.code_generated == 1

    def test_user_message_metadata_kept(
        self, orchestrator: ConversationOrchestrator, sample_user: User
    ):
        result = orchestrator.handle_turn(
            sample_user.id, "Hello there", metadata={"client": "web"}
        )

        assert result.user_message.metadata == {"kind": "text", "client": "web"}


class TestDegradedTurns:
    def test_provider_failure_yields_apology(
        self, db_session: Session, sample_user: User
    ):
        gateway = AIGateway(text_providers=[FakeProvider(error=RuntimeError("down"))])
        orchestrator = ConversationOrchestrator(db_session, gateway)

        result = orchestrator.handle_turn(sample_user.id, "Hello there")

        assert result.ai_message.content == APOLOGY_MESSAGE
        assert result.ai_message.metadata["error"] is True
        assert result.conversation.message_count == 2

        conversation = db_session.get(Conversation, result.conversation_id)
        assert conversation.pending_reply_to is None
        assert conversation.response_count == 0

        db_session.refresh(sample_user)
        assert sample_user.messages_sent == 0

    def test_image_failure_yields_apology(self, db_session: Session, sample_user: User):
        gateway = AIGateway(
            text_providers=[FakeProvider()],
            image_provider=FakeImageProvider(error=RuntimeError("content policy")),
        )
        orchestrator = ConversationOrchestrator(db_session, gateway)

        result = orchestrator.handle_turn(sample_user.id, "Create a picture of a cat")

        assert result.ai_message.content == APOLOGY_MESSAGE
        assert result.ai_message.type == MessageType.TEXT

    def test_empty_provider_reply_yields_apology(
        self, db_session: Session, sample_user: User
    ):
        gateway = AIGateway(text_providers=[FakeProvider(reply="")])
        result = ConversationOrchestrator(db_session, gateway).handle_turn(
            sample_user.id, "Hello there"
        )

        assert result.ai_message.content == APOLOGY_MESSAGE


class TestPersistenceFailures:
    def _fail_ai_writes(self):
        create_message = MessageRepository.create_message

        def failing(repo, conversation, sender, *args, **kwargs):
            if sender == Sender.AI:
                raise OperationalError(
                    "INSERT INTO messages", {}, Exception("disk I/O error")
                )
            return create_message(repo, conversation, sender, *args, **kwargs)

        return patch.object(MessageRepository, "create_message", failing)

    def test_user_message_marked_failed(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
    ):
        with self._fail_ai_writes():
            with pytest.raises(PersistenceError):
                orchestrator.handle_turn(sample_user.id, "Hello there")

        conversation = db_session.query(Conversation).one()
        messages = MessageRepository(db_session).get_by_conversation(conversation.id)
        assert [m.sender for m in messages] == [Sender.USER]
        assert messages[0].status == MessageStatus.FAILED
        assert conversation.pending_reply_to == messages[0].id

    def test_resume_clears_failed_status(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
    ):
        with self._fail_ai_writes():
            with pytest.raises(PersistenceError):
                orchestrator.handle_turn(sample_user.id, "Hello there")

        results = orchestrator.resume_pending_turns()

        assert len(results) == 1
        assert results[0].user_message.status == MessageStatus.DELIVERED
        assert results[0].ai_message.content == "Hello from the fake provider"


class TestValidationAndAccess:
    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_message(
        self, orchestrator: ConversationOrchestrator, sample_user: User, text
    ):
        with pytest.raises(ValidationError):
            orchestrator.handle_turn(sample_user.id, text)

    def test_oversized_message(
        self, db_session: Session, gateway: AIGateway, sample_user: User
    ):
        orchestrator = ConversationOrchestrator(
            db_session, gateway, max_message_length=10
        )
        with pytest.raises(ValidationError):
            orchestrator.handle_turn(sample_user.id, "x" * 11)

    def test_unknown_message_type(
        self, orchestrator: ConversationOrchestrator, sample_user: User
    ):
        with pytest.raises(ValidationError):
            orchestrator.handle_turn(sample_user.id, "hi", message_type="hologram")

    def test_invalid_metadata(
        self, orchestrator: ConversationOrchestrator, sample_user: User
    ):
        with pytest.raises(ValidationError):
            orchestrator.handle_turn(sample_user.id, "hi", metadata={"tokens": "lots"})

    def test_unknown_user(self, orchestrator: ConversationOrchestrator):
        with pytest.raises(NotFoundError):
            orchestrator.handle_turn(uuid.uuid4(), "Hello there")

    def test_deactivated_user(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
    ):
        sample_user.deactivate()
        db_session.commit()

        with pytest.raises(AccessDeniedError):
            orchestrator.handle_turn(sample_user.id, "Hello there")

    def test_unknown_conversation(
        self, orchestrator: ConversationOrchestrator, sample_user: User
    ):
        with pytest.raises(NotFoundError):
            orchestrator.handle_turn(
                sample_user.id, "Hello there", conversation_id=uuid.uuid4()
            )

    def test_stranger_cannot_write(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        other_user: User,
        sample_conversation: Conversation,
    ):
        with pytest.raises(AccessDeniedError):
            orchestrator.handle_turn(
                other_user.id, "Hi", conversation_id=sample_conversation.id
            )

        assert MessageRepository(db_session).count_active(sample_conversation.id) == 2

    def test_read_share_cannot_write(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        other_user: User,
        sample_conversation: Conversation,
    ):
        sample_conversation.share_with(other_user.id, SharePermission.READ)
        db_session.commit()

        with pytest.raises(AccessDeniedError):
            orchestrator.handle_turn(
                other_user.id, "Hi", conversation_id=sample_conversation.id
            )

    def test_write_share_can_write(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        other_user: User,
        sample_conversation: Conversation,
    ):
        sample_conversation.share_with(other_user.id, SharePermission.WRITE)
        db_session.commit()

        result = orchestrator.handle_turn(
            other_user.id, "Hi from Bob", conversation_id=sample_conversation.id
        )

        message = MessageRepository(db_session).get(result.user_message.id)
        assert message.author_id == other_user.id
        db_session.refresh(other_user)
        assert other_user.messages_sent == 1


class TestUsageLimits:
    def test_message_limit_blocks_before_any_write(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        fake_provider: FakeProvider,
        sample_user: User,
    ):
        sample_user.messages_sent = 100
        db_session.commit()

        with pytest.raises(UsageLimitExceededError) as exc_info:
            orchestrator.handle_turn(sample_user.id, "Hello there")

        assert exc_info.value.kind == "messages"
        assert exc_info.value.plan == "free"
        assert exc_info.value.limit == 100
        assert ConversationRepository(db_session).count_by_user(sample_user.id) == 0
        assert fake_provider.calls == []

    def test_image_limit(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        image_provider: FakeImageProvider,
        sample_user: User,
    ):
        sample_user.images_generated = 10
        db_session.commit()

        with pytest.raises(UsageLimitExceededError) as exc_info:
            orchestrator.handle_turn(sample_user.id, "Generate an image of a fox")

        assert exc_info.value.kind == "images"
        assert image_provider.prompts == []

    def test_image_limit_does_not_block_text(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
    ):
        sample_user.images_generated = 10
        db_session.commit()

        result = orchestrator.handle_turn(sample_user.id, "Hello there")
        assert result.ai_message.type == MessageType.TEXT

    def test_enterprise_is_unlimited(
        self, orchestrator: ConversationOrchestrator, db_session: Session
    ):
        user = make_user(
            db_session,
            "carol",
            subscription_plan=SubscriptionPlan.ENTERPRISE,
            messages_sent=1_000_000,
        )

        result = orchestrator.handle_turn(user.id, "Hello there")
        assert result.ai_message.sender == Sender.AI


class TestVoiceTurn:
    def test_transcribes_and_stores_voice_message(
        self,
        orchestrator: ConversationOrchestrator,
        transcriber,
        sample_user: User,
    ):
        audio = base64.b64encode(b"voice-bytes").decode("ascii")

        result = orchestrator.handle_voice_turn(sample_user.id, audio)

        assert transcriber.received == [b"voice-bytes"]
        assert result.user_message.type == MessageType.VOICE
        assert result.user_message.content == "what is the weather like today"
        assert result.user_message.original_audio == audio
        assert result.user_message.transcribed_text == "what is the weather like today"
        assert result.user_message.metadata["transcribed_text"] == (
            "what is the weather like today"
        )
        assert result.ai_message.sender == Sender.AI

    def test_raw_bytes_are_echoed_as_base64(
        self, orchestrator: ConversationOrchestrator, sample_user: User
    ):
        result = orchestrator.handle_voice_turn(sample_user.id, b"voice-bytes")

        assert result.user_message.original_audio == base64.b64encode(
            b"voice-bytes"
        ).decode("ascii")

    def test_unknown_user_checked_before_transcription(
        self, orchestrator: ConversationOrchestrator, transcriber
    ):
        with pytest.raises(NotFoundError):
            orchestrator.handle_voice_turn(uuid.uuid4(), b"voice-bytes")
        assert transcriber.received == []


class TestResumePendingTurns:
    def _leave_pending(
        self, session: Session, conversation: Conversation, user: User, text: str
    ):
        message = MessageRepository(session).create_message(
            conversation, Sender.USER, text, author_id=user.id
        )
        conversation.pending_reply_to = message.id
        session.commit()
        return message

    def test_completes_pending_reply(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
        sample_conversation: Conversation,
    ):
        pending = self._leave_pending(
            db_session, sample_conversation, sample_user, "Are you still there?"
        )

        results = orchestrator.resume_pending_turns()

        assert len(results) == 1
        assert results[0].user_message.id == pending.id
        assert results[0].ai_message.sequence == pending.sequence + 1
        db_session.refresh(sample_conversation)
        assert sample_conversation.pending_reply_to is None
        assert orchestrator.resume_pending_turns() == []

    def test_single_conversation(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
        sample_conversation: Conversation,
    ):
        self._leave_pending(db_session, sample_conversation, sample_user, "Ping")

        results = orchestrator.resume_pending_turns(sample_conversation.id)

        assert len(results) == 1

    def test_unknown_conversation(self, orchestrator: ConversationOrchestrator):
        with pytest.raises(NotFoundError):
            orchestrator.resume_pending_turns(uuid.uuid4())

    def test_deleted_pending_message_drops_marker(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
        sample_conversation: Conversation,
    ):
        pending = self._leave_pending(
            db_session, sample_conversation, sample_user, "Never mind"
        )
        MessageRepository(db_session).soft_delete(pending, sample_user.id)
        db_session.commit()

        assert orchestrator.resume_pending_turns() == []
        db_session.refresh(sample_conversation)
        assert sample_conversation.pending_reply_to is None


class TestQueries:
    def test_history(
        self,
        orchestrator: ConversationOrchestrator,
        sample_user: User,
        sample_conversation: Conversation,
    ):
        history = orchestrator.get_conversation_history(
            sample_user.id, sample_conversation.id
        )

        assert history.conversation.id == sample_conversation.id
        assert [m.sequence for m in history.messages] == [1, 2]

    def test_history_requires_access(
        self,
        orchestrator: ConversationOrchestrator,
        other_user: User,
        sample_conversation: Conversation,
    ):
        with pytest.raises(AccessDeniedError):
            orchestrator.get_conversation_history(other_user.id, sample_conversation.id)

    def test_list_user_conversations(
        self,
        orchestrator: ConversationOrchestrator,
        sample_user: User,
        other_user: User,
        sample_conversation: Conversation,
    ):
        assert [c.id for c in orchestrator.list_user_conversations(sample_user.id)] == [
            sample_conversation.id
        ]
        assert orchestrator.list_user_conversations(other_user.id) == []


class TestDeleteConversation:
    def test_owner_deletes_with_messages(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        sample_user: User,
        sample_conversation: Conversation,
    ):
        conversation_id = sample_conversation.id

        orchestrator.delete_conversation(sample_user.id, conversation_id)

        assert db_session.get(Conversation, conversation_id) is None
        assert MessageRepository(db_session).get_by_conversation(
            conversation_id, include_deleted=True
        ) == []

    def test_deleted_messages_are_not_found(
        self,
        orchestrator: ConversationOrchestrator,
        api_client,
        db_session: Session,
        sample_user: User,
        sample_conversation: Conversation,
    ):
        message_ids = [
            m.id
            for m in MessageRepository(db_session).get_by_conversation(
                sample_conversation.id
            )
        ]

        orchestrator.delete_conversation(sample_user.id, sample_conversation.id)

        for message_id in message_ids:
            response = api_client.get(
                f"/messages/{message_id}", headers=auth_headers(sample_user)
            )
            assert response.status_code == 404

    def test_sharee_cannot_delete(
        self,
        orchestrator: ConversationOrchestrator,
        db_session: Session,
        other_user: User,
        sample_conversation: Conversation,
    ):
        sample_conversation.share_with(other_user.id, SharePermission.ADMIN)
        db_session.commit()

        with pytest.raises(AccessDeniedError):
            orchestrator.delete_conversation(other_user.id, sample_conversation.id)

    def test_unknown_conversation(
        self, orchestrator: ConversationOrchestrator, sample_user: User
    ):
        with pytest.raises(NotFoundError):
            orchestrator.delete_conversation(sample_user.id, uuid.uuid4())
