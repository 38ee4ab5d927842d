"""
Exchange result models.

A completed turn is delivered as one value holding both persisted messages
and the updated conversation summary. Field names serialize as camelCase,
the shape web clients consume over the socket and the chat endpoint.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rai.models.db import Conversation, Message, MessageStatus, MessageType, Sender


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe mapping with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MessagePayload(_WireModel):
    """One persisted message as delivered to the client."""

    id: UUID
    sender: Sender
    content: str
    type: MessageType
    metadata: dict[str, Any] = Field(default_factory=dict)
    status: MessageStatus
    sequence: int
    timestamp: datetime
    original_audio: Optional[str] = None
    transcribed_text: Optional[str] = None

    @classmethod
    def from_message(cls, message: Message) -> "MessagePayload":
        return cls(
            id=message.id,
            sender=message.sender,
            content=message.display_content,
            type=message.message_type,
            metadata=dict(message.extra_data or {}),
            status=message.status,
            sequence=message.sequence,
            timestamp=message.timestamp,
        )


class ConversationSnapshot(_WireModel):
    """Conversation summary returned with every exchange."""

    id: UUID
    title: str
    last_message: Optional[str] = None
    message_count: int = 0
    updated_at: Optional[datetime] = None

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationSnapshot":
        return cls(
            id=conversation.id,
            title=conversation.title,
            last_message=conversation.last_message,
            message_count=conversation.message_count or 0,
            updated_at=conversation.updated_at,
        )


class ExchangeResult(_WireModel):
    """User turn, AI turn and conversation state of one round-trip."""

    conversation_id: UUID
    user_message: MessagePayload
    ai_message: MessagePayload
    conversation: ConversationSnapshot
