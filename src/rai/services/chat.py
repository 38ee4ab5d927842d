"""
Conversation orchestrator.

Runs one user/AI round-trip per call:

1. validate input, load the user and check usage limits (no writes yet)
2. resolve or create the conversation
3. persist the user message with a pending-reply marker and commit
4. fetch recent context, classify and dispatch to the gateway
5. persist the AI message, clear the marker, record usage and commit

The user turn is committed before the gateway call, so it survives a
failed AI step. A crash between the two commits leaves ``pending_reply_to``
set, and ``resume_pending_turns`` finishes the exchange later.
"""

import base64
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import pydantic
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rai.config import settings
from rai.db.repositories import ConversationRepository, MessageRepository
from rai.exceptions import NotFoundError, PersistenceError, ValidationError
from rai.gateway import AIGateway, GatewayResponse, apology_response
from rai.intent import IntentCategory, IntentResult, classify
from rai.models.db import (
    Conversation,
    Message,
    MessageStatus,
    MessageType,
    Sender,
    SharePermission,
    UsageKind,
    User,
    usage_kind_for,
    validate_message_content,
)
from rai.models.exchange import ConversationSnapshot, ExchangeResult, MessagePayload
from rai.models.metadata import normalize_metadata
from rai.services.access import (
    load_active_user,
    load_conversation,
    load_owned_conversation,
)

logger = logging.getLogger(__name__)

# Message type an intent is expected to produce, for usage accounting
INTENT_OUTPUT_TYPES = {
    IntentCategory.IMAGE_GENERATION: MessageType.IMAGE,
    IntentCategory.CODE_GENERATION: MessageType.CODE,
}


@dataclass
class ConversationHistory:
    """A conversation and its visible messages, oldest first."""

    conversation: Conversation
    messages: list[Message]


class ConversationOrchestrator:
    """
    Handles conversation turns against one database session.

    The gateway is injected so tests and alternative deployments can swap
    providers without touching module state.
    """

    def __init__(
        self,
        session: Session,
        gateway: AIGateway,
        history_window: Optional[int] = None,
        title_length: Optional[int] = None,
        max_message_length: Optional[int] = None,
    ):
        self.session = session
        self.gateway = gateway
        self.conversations = ConversationRepository(session)
        self.messages = MessageRepository(session)
        self.history_window = history_window or settings.history_window
        self.title_length = title_length or settings.title_length
        self.max_message_length = max_message_length or settings.max_message_length

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def handle_turn(
        self,
        user_id: uuid.UUID,
        message_text: str,
        conversation_id: Optional[uuid.UUID] = None,
        message_type: MessageType | str = MessageType.TEXT,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ExchangeResult:
        """
        Run one user/AI exchange.

        Args:
            user_id: Acting user
            message_text: User message text
            conversation_id: Existing conversation, or None to start one
            message_type: Type of the user message
            metadata: Metadata stored on the user message

        Returns:
            ExchangeResult with both persisted messages

        Raises:
            ValidationError: Empty, oversized or malformed input
            NotFoundError: Unknown user or conversation
            AccessDeniedError: Inactive user or no write access
            UsageLimitExceededError: Plan ceiling reached
            PersistenceError: A storage write failed
        """
        text = validate_message_content(message_text, self.max_message_length)
        message_type = self._coerce_message_type(message_type)
        user_metadata = self._validate_metadata(message_type, metadata)

        user = load_active_user(self.session, user_id)
        intent = classify(text)
        self._check_usage(user, intent)

        if conversation_id is not None:
            conversation = load_conversation(
                self.session, conversation_id, user.id, SharePermission.WRITE
            )
        else:
            conversation = None

        try:
            if conversation is None:
                conversation = self.conversations.create_for_user(
                    user.id, text, title_length=self.title_length
                )
                logger.info(f"Created conversation {conversation.id} for user {user.id}")

            user_message = self.messages.create_message(
                conversation,
                Sender.USER,
                text,
                message_type=message_type,
                extra_data=user_metadata,
                author_id=user.id,
            )
            conversation.pending_reply_to = user_message.id
            conversation.touch(text)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to persist user turn: {e}", exc_info=True)
            raise PersistenceError("user message", e) from e

        return self._complete_turn(user, conversation, user_message, intent)

    def handle_voice_turn(
        self,
        user_id: uuid.UUID,
        audio_data: str | bytes,
        conversation_id: Optional[uuid.UUID] = None,
    ) -> ExchangeResult:
        """
        Transcribe audio and run it as a voice turn.

        The returned user message carries the original audio reference and
        the transcript.
        """
        load_active_user(self.session, user_id)
        transcript = self.gateway.speech_to_text(audio_data)
        logger.debug(f"Transcribed {len(transcript)} characters of voice input")

        result = self.handle_turn(
            user_id,
            transcript,
            conversation_id=conversation_id,
            message_type=MessageType.VOICE,
            metadata={"transcribed_text": transcript},
        )
        if isinstance(audio_data, bytes):
            audio_data = base64.b64encode(audio_data).decode("ascii")
        result.user_message.original_audio = audio_data
        result.user_message.transcribed_text = transcript
        return result

    def resume_pending_turns(
        self, conversation_id: Optional[uuid.UUID] = None
    ) -> list[ExchangeResult]:
        """
        Generate the AI turn for user messages left without a reply.

        Args:
            conversation_id: Only resume this conversation (all when None)

        Returns:
            Exchanges completed by this call
        """
        if conversation_id is not None:
            conversation = self.conversations.get(conversation_id)
            if conversation is None:
                raise NotFoundError("Conversation", conversation_id)
            pending = [conversation] if conversation.pending_reply_to else []
        else:
            pending = self.conversations.get_pending_replies()

        results = []
        for conversation in pending:
            user_message = self.messages.get(conversation.pending_reply_to)
            if user_message is None or user_message.is_deleted:
                logger.warning(
                    f"Dropping pending reply marker on conversation {conversation.id}: "
                    f"user message {conversation.pending_reply_to} is gone"
                )
                conversation.pending_reply_to = None
                self.session.commit()
                continue

            user = self.session.get(User, user_message.author_id or conversation.user_id)
            logger.info(
                f"Resuming AI turn for message {user_message.id} "
                f"in conversation {conversation.id}"
            )
            results.append(self._complete_turn(user, conversation, user_message))
        return results

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_conversation_history(
        self,
        user_id: uuid.UUID,
        conversation_id: uuid.UUID,
        include_deleted: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> ConversationHistory:
        """Conversation plus its messages in sequence order."""
        conversation = load_conversation(self.session, conversation_id, user_id)
        messages = self.messages.get_by_conversation(
            conversation.id,
            include_deleted=include_deleted,
            limit=limit,
            offset=offset,
        )
        return ConversationHistory(conversation=conversation, messages=messages)

    def list_user_conversations(
        self,
        user_id: uuid.UUID,
        archived: Optional[bool] = None,
        pinned: Optional[bool] = None,
        tags: Optional[list[str]] = None,
        limit: Optional[int] = 50,
        offset: int = 0,
    ) -> list[Conversation]:
        """Conversations owned by the user, most recently updated first."""
        load_active_user(self.session, user_id)
        return self.conversations.get_by_user(
            user_id,
            archived=archived,
            pinned=pinned,
            tags=tags,
            limit=limit,
            offset=offset,
        )

    def delete_conversation(
        self, user_id: uuid.UUID, conversation_id: uuid.UUID
    ) -> None:
        """
        Delete a conversation with all of its messages and shares.

        Raises:
            NotFoundError: If the conversation does not exist
            AccessDeniedError: If user_id is not the owner
        """
        conversation = load_owned_conversation(self.session, conversation_id, user_id)
        try:
            self.session.delete(conversation)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError("conversation deletion", e) from e
        logger.info(f"Deleted conversation {conversation_id} for user {user_id}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _complete_turn(
        self,
        user: User,
        conversation: Conversation,
        user_message: Message,
        intent: Optional[IntentResult] = None,
    ) -> ExchangeResult:
        history = self.messages.get_recent(
            conversation.id,
            limit=self.history_window,
            before_sequence=user_message.sequence,
        )
        intent = intent or classify(user_message.content)
        response = self._dispatch(intent, user_message.content, history, user)

        metadata = {
            **response.metadata,
            "intent": intent.category.value,
            "confidence": intent.confidence,
        }

        try:
            ai_message = self.messages.create_message(
                conversation,
                Sender.AI,
                response.content,
                message_type=response.response_type,
                extra_data=metadata,
            )
            conversation.pending_reply_to = None
            user_message.status = MessageStatus.DELIVERED

            if not response.is_error:
                conversation.record_response(
                    tokens=metadata.get("tokens") or 0,
                    response_time_ms=metadata.get("response_time_ms"),
                    feature=intent.category.value,
                )
                self._record_usage(user, response.response_type)

            conversation.touch(response.content)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to persist AI turn: {e}", exc_info=True)
            self._mark_failed(user_message)
            raise PersistenceError("AI message", e) from e

        logger.info(
            f"Completed {intent.category.value} turn in conversation {conversation.id}"
            + (" (degraded)" if response.is_error else "")
        )
        return ExchangeResult(
            conversation_id=conversation.id,
            user_message=MessagePayload.from_message(user_message),
            ai_message=MessagePayload.from_message(ai_message),
            conversation=ConversationSnapshot.from_conversation(conversation),
        )

    def _mark_failed(self, user_message: Message) -> None:
        """Flag a committed user turn whose reply could not be stored.

        The pending-reply marker stays set, so ``resume_pending_turns`` can
        still finish the exchange and move the status to delivered.
        """
        try:
            user_message.status = MessageStatus.FAILED
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(
                f"Could not mark message {user_message.id} as failed: {e}"
            )

    def _dispatch(
        self,
        intent: IntentResult,
        text: str,
        history: list[Message],
        user: Optional[User],
    ) -> GatewayResponse:
        try:
            response = self.gateway.dispatch(intent.category, text, history, user)
        except Exception as e:
            logger.error(
                f"Gateway dispatch failed for {intent.category.value}: {e}",
                exc_info=True,
            )
            return apology_response()
        if not response.content:
            logger.warning(f"Empty {intent.category.value} response from gateway")
            return apology_response()
        return response

    @staticmethod
    def _check_usage(user: User, intent: IntentResult) -> None:
        """Raise before any write if the turn would exceed the plan."""
        kinds = [UsageKind.MESSAGES]
        expected_type = INTENT_OUTPUT_TYPES.get(intent.category)
        if expected_type is not None:
            kinds.append(usage_kind_for(expected_type))
        for kind in kinds:
            user.ensure_within_limit(kind)

    @staticmethod
    def _record_usage(user: Optional[User], response_type: MessageType) -> None:
        if user is None:
            return
        user.update_usage(UsageKind.MESSAGES)
        kind = usage_kind_for(response_type)
        if kind != UsageKind.MESSAGES:
            user.update_usage(kind)

    @staticmethod
    def _coerce_message_type(message_type: MessageType | str) -> MessageType:
        try:
            return MessageType(message_type)
        except ValueError:
            raise ValidationError(f"Unknown message type: {message_type}")

    @staticmethod
    def _validate_metadata(
        message_type: MessageType, metadata: Optional[dict[str, Any]]
    ) -> dict[str, Any]:
        try:
            return normalize_metadata(message_type, metadata)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid message metadata: {e}") from e
