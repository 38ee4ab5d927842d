"""
Access checks shared by the orchestrator and the HTTP routes.

A missing entity raises NotFoundError; an entity that exists but is not
visible to the acting user raises AccessDeniedError. Neither path writes.
"""

import uuid

from sqlalchemy.orm import Session

from rai.db.repositories import ConversationRepository, MessageRepository, UserRepository
from rai.exceptions import AccessDeniedError, NotFoundError
from rai.models.db import Conversation, Message, SharePermission, User


def load_active_user(session: Session, user_id: uuid.UUID) -> User:
    """
    Load a user that may act.

    Raises:
        NotFoundError: If the user does not exist
        AccessDeniedError: If the user has been deactivated
    """
    user = UserRepository(session).get(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    if not user.is_active:
        raise AccessDeniedError("User account is deactivated")
    return user


def load_conversation(
    session: Session,
    conversation_id: uuid.UUID,
    user_id: uuid.UUID,
    required: SharePermission = SharePermission.READ,
) -> Conversation:
    """
    Load a conversation the user owns or has been granted access to.

    Args:
        session: Database session
        conversation_id: Conversation UUID
        user_id: Acting user
        required: Minimum share permission for non-owners

    Raises:
        NotFoundError: If the conversation does not exist
        AccessDeniedError: If the user lacks the required permission
    """
    conversation = ConversationRepository(session).get_with_shares(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation", conversation_id)
    if not conversation.has_access(user_id, required):
        raise AccessDeniedError(
            f"Access denied to conversation {conversation_id}"
        )
    return conversation


def load_owned_conversation(
    session: Session, conversation_id: uuid.UUID, user_id: uuid.UUID
) -> Conversation:
    """Load a conversation only if user_id owns it."""
    conversation = load_conversation(
        session, conversation_id, user_id, SharePermission.READ
    )
    if conversation.user_id != user_id:
        raise AccessDeniedError(
            f"Only the owner can perform this action on conversation {conversation_id}"
        )
    return conversation


def load_message(
    session: Session,
    message_id: uuid.UUID,
    user_id: uuid.UUID,
    required: SharePermission = SharePermission.READ,
) -> Message:
    """
    Load a message through its conversation's access rules.

    Raises:
        NotFoundError: If the message does not exist
        AccessDeniedError: If the user cannot access the conversation
    """
    message = MessageRepository(session).get(message_id)
    if message is None:
        raise NotFoundError("Message", message_id)
    load_conversation(session, message.conversation_id, user_id, required)
    return message
