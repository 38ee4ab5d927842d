"""
Message API routes.

Single-message reads and edits, soft delete and restore, reactions and
mentions. Access follows the owning conversation's sharing rules.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rai.api.auth import AuthContext, get_auth_context
from rai.api.schemas import MentionRequest, MessageEdit, MessageResponse, ReactionRequest
from rai.config import settings
from rai.db.connection import get_db
from rai.db.repositories import MessageRepository, UserRepository
from rai.exceptions import AccessDeniedError, NotFoundError, ValidationError
from rai.models.db import Message, Sender, SharePermission
from rai.services.access import load_message

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_moderator(message: Message, user_id: UUID) -> None:
    """Author, conversation owner or admin sharee may delete and restore."""
    conversation = message.conversation
    if message.author_id == user_id:
        return
    if conversation.has_access(user_id, SharePermission.ADMIN):
        return
    raise AccessDeniedError(f"Not allowed to moderate message {message.id}")


@router.get("/{message_id}", response_model=MessageResponse)
def get_message(
    message_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> MessageResponse:
    """Get one message; deleted content is replaced by a placeholder."""
    return MessageResponse.from_message(load_message(session, message_id, auth.user_id))


@router.patch("/{message_id}", response_model=MessageResponse)
def edit_message(
    message_id: UUID,
    payload: MessageEdit,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> MessageResponse:
    """Edit a user message; the prior content is kept in edit history."""
    message = load_message(session, message_id, auth.user_id, SharePermission.WRITE)
    if message.sender != Sender.USER or message.author_id != auth.user_id:
        raise AccessDeniedError("Only the author can edit a message")
    message.edit(payload.content, settings.max_message_length)
    session.commit()
    session.refresh(message)
    return MessageResponse.from_message(message)


@router.delete("/{message_id}", response_model=MessageResponse)
def delete_message(
    message_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> MessageResponse:
    """Soft-delete a message; it stays in storage and can be restored."""
    message = load_message(session, message_id, auth.user_id)
    _require_moderator(message, auth.user_id)
    if not MessageRepository(session).soft_delete(message, auth.user_id):
        raise ValidationError("Message is already deleted")
    session.commit()
    session.refresh(message)
    return MessageResponse.from_message(message)


@router.post("/{message_id}/restore", response_model=MessageResponse)
def restore_message(
    message_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> MessageResponse:
    """Undo a soft delete."""
    message = load_message(session, message_id, auth.user_id)
    _require_moderator(message, auth.user_id)
    if not MessageRepository(session).restore(message):
        raise ValidationError("Message is not deleted")
    session.commit()
    session.refresh(message)
    return MessageResponse.from_message(message)


@router.post("/{message_id}/reactions", response_model=MessageResponse)
def add_reaction(
    message_id: UUID,
    payload: ReactionRequest,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> MessageResponse:
    """Set the acting user's reaction, replacing any previous one."""
    message = load_message(session, message_id, auth.user_id)
    if message.is_deleted:
        raise ValidationError("Cannot react to a deleted message")
    message.add_reaction(auth.user_id, payload.type)
    session.commit()
    session.refresh(message)
    return MessageResponse.from_message(message)


@router.delete("/{message_id}/reactions", response_model=MessageResponse)
def remove_reaction(
    message_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> MessageResponse:
    """Remove the acting user's reaction."""
    message = load_message(session, message_id, auth.user_id)
    if not message.remove_reaction(auth.user_id):
        raise NotFoundError("Reaction", auth.user_id)
    session.commit()
    session.refresh(message)
    return MessageResponse.from_message(message)


@router.post("/{message_id}/mentions", response_model=MessageResponse)
def add_mention(
    message_id: UUID,
    payload: MentionRequest,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> MessageResponse:
    """Mention another user on a message; repeated mentions are ignored."""
    message = load_message(session, message_id, auth.user_id, SharePermission.WRITE)
    mentioned = UserRepository(session).get_active(payload.user_id)
    if mentioned is None:
        raise NotFoundError("User", payload.user_id)
    message.add_mention(mentioned.id, mentioned.username)
    session.commit()
    session.refresh(message)
    return MessageResponse.from_message(message)
