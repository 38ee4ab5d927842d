"""
Conversation API routes.

Endpoints for creating, listing, organizing, sharing and deleting
conversations. Every endpoint is scoped to the acting user.
"""

import logging
import uuid
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from rai.api.auth import AuthContext, get_auth_context
from rai.api.deps import get_orchestrator
from rai.api.schemas import (
    ConversationCreate,
    ConversationDetail,
    ConversationListResponse,
    ConversationResponse,
    ConversationStats,
    ConversationUpdate,
    MessageResponse,
    ShareRequest,
    TagRequest,
)
from rai.db.connection import get_db
from rai.db.repositories import (
    ConversationRepository,
    MessageRepository,
    UserRepository,
)
from rai.exceptions import NotFoundError
from rai.models.db import SharePermission
from rai.services import ConversationOrchestrator
from rai.services.access import load_conversation

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED
)
def create_conversation(
    payload: ConversationCreate,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> ConversationResponse:
    """Create an empty conversation owned by the acting user."""
    fields = payload.model_dump(exclude_none=True, exclude={"tags"})
    conversation = ConversationRepository(session).create(
        id=uuid.uuid4(), user_id=auth.user_id, **fields
    )
    for tag in payload.tags:
        conversation.add_tag(tag)
    session.commit()
    session.refresh(conversation)
    return ConversationResponse.model_validate(conversation)


@router.get("", response_model=ConversationListResponse)
def list_conversations(
    archived: Optional[bool] = None,
    pinned: Optional[bool] = None,
    tag: Optional[list[str]] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(get_auth_context),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> ConversationListResponse:
    """
    List the acting user's conversations, most recently updated first.

    Query Parameters:
        archived: Filter by archived flag
        pinned: Filter by pinned flag
        tag: Keep conversations carrying any of these tags (repeatable)
        limit: Page size
        offset: Number of conversations to skip
    """
    conversations = orchestrator.list_user_conversations(
        auth.user_id,
        archived=archived,
        pinned=pinned,
        tags=tag,
        limit=limit,
        offset=offset,
    )
    repo = orchestrator.conversations
    if tag:
        total = len(
            repo.get_by_user(
                auth.user_id, archived=archived, pinned=pinned, tags=tag, limit=None
            )
        )
    else:
        total = repo.count_by_user(auth.user_id, archived=archived, pinned=pinned)

    return ConversationListResponse(
        items=[ConversationResponse.model_validate(c) for c in conversations],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/shared", response_model=list[ConversationResponse])
def list_shared_conversations(
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> list[ConversationResponse]:
    """Conversations other users have shared with the acting user."""
    conversations = ConversationRepository(session).get_shared_with(auth.user_id)
    return [ConversationResponse.model_validate(c) for c in conversations]


@router.get("/search", response_model=list[ConversationResponse])
def search_conversations(
    q: str = Query(..., min_length=1, max_length=200),
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> list[ConversationResponse]:
    """Search the acting user's conversations by title, last message and tags."""
    conversations = ConversationRepository(session).search(auth.user_id, q)
    return [ConversationResponse.model_validate(c) for c in conversations]


@router.get("/{conversation_id}", response_model=ConversationDetail)
def get_conversation(
    conversation_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> ConversationDetail:
    """Get a conversation with its visible messages, oldest first."""
    history = orchestrator.get_conversation_history(auth.user_id, conversation_id)
    return ConversationDetail(
        conversation=ConversationResponse.model_validate(history.conversation),
        messages=[MessageResponse.from_message(m) for m in history.messages],
    )


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
def list_messages(
    conversation_id: UUID,
    include_deleted: bool = False,
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(get_auth_context),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> list[MessageResponse]:
    """
    Page through a conversation's messages in sequence order.

    Deleted messages are returned with placeholder content when
    include_deleted is set.
    """
    history = orchestrator.get_conversation_history(
        auth.user_id,
        conversation_id,
        include_deleted=include_deleted,
        limit=limit,
        offset=offset,
    )
    return [MessageResponse.from_message(m) for m in history.messages]


@router.get("/{conversation_id}/stats", response_model=ConversationStats)
def get_conversation_stats(
    conversation_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> ConversationStats:
    """Message counts, token totals and response timing for a conversation."""
    conversation = load_conversation(session, conversation_id, auth.user_id)
    stats = MessageRepository(session).get_stats(conversation.id)
    return ConversationStats(
        conversation_id=conversation.id,
        message_count=conversation.message_count,
        feature_usage=conversation.feature_usage or {},
        **stats,
    )


@router.patch("/{conversation_id}", response_model=ConversationResponse)
def update_conversation(
    conversation_id: UUID,
    payload: ConversationUpdate,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> ConversationResponse:
    """Update title, archive/pin flags or AI settings (owner or admin share)."""
    conversation = load_conversation(
        session, conversation_id, auth.user_id, SharePermission.ADMIN
    )
    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(conversation, field, value)
    session.commit()
    session.refresh(conversation)
    return ConversationResponse.model_validate(conversation)


@router.post("/{conversation_id}/tags", response_model=ConversationResponse)
def add_tag(
    conversation_id: UUID,
    payload: TagRequest,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> ConversationResponse:
    """Add a tag; adding an existing tag is a no-op."""
    conversation = load_conversation(
        session, conversation_id, auth.user_id, SharePermission.WRITE
    )
    conversation.add_tag(payload.tag)
    session.commit()
    session.refresh(conversation)
    return ConversationResponse.model_validate(conversation)


@router.delete("/{conversation_id}/tags", response_model=ConversationResponse)
def remove_tag(
    conversation_id: UUID,
    tag: str = Query(..., min_length=1),
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> ConversationResponse:
    """Remove a tag from the conversation."""
    conversation = load_conversation(
        session, conversation_id, auth.user_id, SharePermission.WRITE
    )
    if not conversation.remove_tag(tag):
        raise NotFoundError("Tag", tag)
    session.commit()
    session.refresh(conversation)
    return ConversationResponse.model_validate(conversation)


@router.post("/{conversation_id}/shares", response_model=ConversationResponse)
def share_conversation(
    conversation_id: UUID,
    payload: ShareRequest,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> ConversationResponse:
    """Grant or update another user's access (owner or admin share)."""
    conversation = load_conversation(
        session, conversation_id, auth.user_id, SharePermission.ADMIN
    )
    if UserRepository(session).get_active(payload.user_id) is None:
        raise NotFoundError("User", payload.user_id)
    conversation.share_with(payload.user_id, payload.permission)
    session.commit()
    session.refresh(conversation)
    logger.info(
        f"Conversation {conversation.id} shared with {payload.user_id} "
        f"({payload.permission.value})"
    )
    return ConversationResponse.model_validate(conversation)


@router.delete("/{conversation_id}/shares", response_model=ConversationResponse)
def unshare_conversation(
    conversation_id: UUID,
    user_id: UUID = Query(...),
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> ConversationResponse:
    """Revoke a user's access (owner or admin share)."""
    conversation = load_conversation(
        session, conversation_id, auth.user_id, SharePermission.ADMIN
    )
    if not conversation.remove_share(user_id):
        raise NotFoundError("Share", user_id)
    session.commit()
    session.refresh(conversation)
    return ConversationResponse.model_validate(conversation)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_conversation(
    conversation_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> Response:
    """Delete a conversation with all of its messages (owner only)."""
    orchestrator.delete_conversation(auth.user_id, conversation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
