"""
Message repository.

Every path that changes whether a message is visible (create, soft delete,
restore) also adjusts the owning conversation's message_count, so the
counter never needs recomputing.
"""

import uuid
from typing import Any, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from rai.db.repositories.base import BaseRepository
from rai.models.db import (
    Conversation,
    Message,
    MessageStatus,
    MessageType,
    Sender,
)
from rai.models.metadata import normalize_metadata


class MessageRepository(BaseRepository[Message]):
    """Repository for Message model."""

    def __init__(self, session: Session):
        super().__init__(Message, session)

    def next_sequence(self, conversation_id: uuid.UUID) -> int:
        """Next sequence number within a conversation (deleted messages included)."""
        current = (
            self.session.query(func.max(Message.sequence))
            .filter(Message.conversation_id == conversation_id)
            .scalar()
        )
        return (current or 0) + 1

    def create_message(
        self,
        conversation: Conversation,
        sender: Sender,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        extra_data: Optional[dict[str, Any]] = None,
        author_id: Optional[uuid.UUID] = None,
        status: MessageStatus = MessageStatus.SENT,
    ) -> Message:
        """
        Append a message to a conversation.

        Metadata is validated against the variant for message_type before
        it is stored.

        Args:
            conversation: Owning conversation
            sender: user or ai
            content: Message text
            message_type: Type of content
            extra_data: Type-specific metadata
            author_id: Acting user for user turns
            status: Initial delivery status

        Returns:
            Created message
        """
        message = Message(
            id=uuid.uuid4(),
            conversation_id=conversation.id,
            author_id=author_id,
            sender=Sender(sender),
            content=content,
            message_type=MessageType(message_type),
            sequence=self.next_sequence(conversation.id),
            extra_data=normalize_metadata(message_type, extra_data),
            status=MessageStatus(status),
        )
        self.session.add(message)
        conversation.increment_message_count(1)
        self.session.flush()
        return message

    def get_by_conversation(
        self,
        conversation_id: uuid.UUID,
        include_deleted: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
        descending: bool = False,
    ) -> List[Message]:
        """
        Get messages for a conversation in sequence order.

        Args:
            conversation_id: Conversation UUID
            include_deleted: Also return soft-deleted messages
            limit: Maximum number of results
            offset: Number of results to skip
            descending: Newest first instead of oldest first

        Returns:
            List of messages
        """
        query = self.session.query(Message).filter(
            Message.conversation_id == conversation_id
        )
        if not include_deleted:
            query = query.filter(Message.is_deleted.is_(False))
        order = Message.sequence.desc() if descending else Message.sequence.asc()
        query = query.order_by(order).offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_recent(
        self,
        conversation_id: uuid.UUID,
        limit: int = 10,
        before_sequence: Optional[int] = None,
    ) -> List[Message]:
        """
        Get the most recent visible messages in ascending order.

        Args:
            conversation_id: Conversation UUID
            limit: Maximum number of messages
            before_sequence: Only consider messages preceding this sequence

        Returns:
            Up to limit messages, oldest first
        """
        query = self.session.query(Message).filter(
            Message.conversation_id == conversation_id,
            Message.is_deleted.is_(False),
        )
        if before_sequence is not None:
            query = query.filter(Message.sequence < before_sequence)
        newest_first = query.order_by(Message.sequence.desc()).limit(limit).all()
        return list(reversed(newest_first))

    def count_active(self, conversation_id: uuid.UUID) -> int:
        """Count non-deleted messages by querying storage directly."""
        return (
            self.session.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.is_deleted.is_(False),
            )
            .count()
        )

    def soft_delete(self, message: Message, user_id: uuid.UUID) -> bool:
        """
        Soft-delete a message and decrement its conversation's count.

        Returns:
            False if the message was already deleted
        """
        if not message.soft_delete(user_id):
            return False
        message.conversation.increment_message_count(-1)
        self.session.flush()
        return True

    def restore(self, message: Message) -> bool:
        """
        Restore a soft-deleted message and increment its conversation's count.

        Returns:
            False if the message was not deleted
        """
        if not message.restore():
            return False
        message.conversation.increment_message_count(1)
        self.session.flush()
        return True

    def search(self, conversation_id: uuid.UUID, term: str) -> List[Message]:
        """Case-insensitive content search, newest first."""
        return (
            self.session.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.is_deleted.is_(False),
                Message.content.icontains(term, autoescape=True),
            )
            .order_by(Message.sequence.desc())
            .all()
        )

    def get_by_type(
        self, conversation_id: uuid.UUID, message_type: MessageType
    ) -> List[Message]:
        """Visible messages of one type, newest first."""
        return (
            self.session.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.message_type == MessageType(message_type),
                Message.is_deleted.is_(False),
            )
            .order_by(Message.sequence.desc())
            .all()
        )

    def get_stats(self, conversation_id: uuid.UUID) -> dict[str, Any]:
        """
        Aggregate statistics for a conversation.

        Token and timing figures come from AI message metadata.

        Returns:
            Dict with total/user/ai message counts, average response time
            and total tokens
        """
        messages = (
            self.session.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .all()
        )
        response_times = [
            m.extra_data["response_time_ms"]
            for m in messages
            if (m.extra_data or {}).get("response_time_ms") is not None
        ]
        return {
            "total_messages": len(messages),
            "user_messages": sum(1 for m in messages if m.sender == Sender.USER),
            "ai_messages": sum(1 for m in messages if m.sender == Sender.AI),
            "average_response_time_ms": (
                sum(response_times) / len(response_times) if response_times else None
            ),
            "total_tokens": sum(
                (m.extra_data or {}).get("tokens") or 0 for m in messages
            ),
        }
