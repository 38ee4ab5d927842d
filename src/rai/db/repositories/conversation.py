"""
Conversation repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from rai.db.repositories.base import BaseRepository
from rai.models.db import Conversation, ConversationShare


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for Conversation model."""

    def __init__(self, session: Session):
        super().__init__(Conversation, session)

    def create_for_user(
        self, user_id: uuid.UUID, first_message: str, title_length: int = 50, **kwargs
    ) -> Conversation:
        """
        Create a conversation titled after its first message.

        The title is the first title_length characters of the message
        followed by an ellipsis.

        Args:
            user_id: Owner UUID
            first_message: Text of the message that opens the conversation
            title_length: Number of characters kept for the title
            **kwargs: Additional conversation fields

        Returns:
            Created conversation
        """
        title = first_message.strip()[:title_length] + "..."
        return self.create(id=uuid.uuid4(), user_id=user_id, title=title, **kwargs)

    def get_with_shares(self, id: uuid.UUID) -> Optional[Conversation]:
        """
        Get conversation with its sharing list loaded.

        Args:
            id: Conversation UUID

        Returns:
            Conversation or None
        """
        return (
            self.session.query(Conversation)
            .options(selectinload(Conversation.shares))
            .filter(Conversation.id == id)
            .first()
        )

    def get_by_user(
        self,
        user_id: uuid.UUID,
        archived: Optional[bool] = None,
        pinned: Optional[bool] = None,
        tags: Optional[List[str]] = None,
        limit: Optional[int] = 50,
        offset: int = 0,
    ) -> List[Conversation]:
        """
        Get conversations owned by a user, most recently updated first.

        Args:
            user_id: Owner UUID
            archived: Filter by archived flag
            pinned: Filter by pinned flag
            tags: Keep conversations carrying any of these tags
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            List of conversations
        """
        query = self.session.query(Conversation).filter(Conversation.user_id == user_id)
        if archived is not None:
            query = query.filter(Conversation.is_archived.is_(archived))
        if pinned is not None:
            query = query.filter(Conversation.is_pinned.is_(pinned))
        query = query.order_by(Conversation.updated_at.desc())

        if tags:
            # Tags live in a JSON array; filter in Python to stay portable
            wanted = set(tags)
            matches = [c for c in query.all() if wanted.intersection(c.tags or [])]
            end = offset + limit if limit else None
            return matches[offset:end]

        query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def count_by_user(
        self,
        user_id: uuid.UUID,
        archived: Optional[bool] = None,
        pinned: Optional[bool] = None,
    ) -> int:
        """Count conversations owned by a user."""
        query = self.session.query(Conversation).filter(Conversation.user_id == user_id)
        if archived is not None:
            query = query.filter(Conversation.is_archived.is_(archived))
        if pinned is not None:
            query = query.filter(Conversation.is_pinned.is_(pinned))
        return query.count()

    def get_shared_with(self, user_id: uuid.UUID) -> List[Conversation]:
        """
        Get conversations other users have shared with this user.

        Args:
            user_id: Sharee UUID

        Returns:
            List of conversations, most recently updated first
        """
        return (
            self.session.query(Conversation)
            .join(ConversationShare, ConversationShare.conversation_id == Conversation.id)
            .filter(ConversationShare.user_id == user_id)
            .order_by(Conversation.updated_at.desc())
            .all()
        )

    def search(self, user_id: uuid.UUID, term: str) -> List[Conversation]:
        """
        Case-insensitive search over title, last message and tags.

        Args:
            user_id: Owner UUID
            term: Search term

        Returns:
            Matching conversations, most recently updated first
        """
        needle = term.strip().lower()
        if not needle:
            return []
        conversations = (
            self.session.query(Conversation)
            .filter(Conversation.user_id == user_id)
            .order_by(Conversation.updated_at.desc())
            .all()
        )
        return [
            c
            for c in conversations
            if needle in (c.title or "").lower()
            or needle in (c.last_message or "").lower()
            or any(needle in tag.lower() for tag in (c.tags or []))
        ]

    def get_pending_replies(self) -> List[Conversation]:
        """Get conversations with a user turn that never received its AI turn."""
        return (
            self.session.query(Conversation)
            .filter(Conversation.pending_reply_to.is_not(None))
            .all()
        )
