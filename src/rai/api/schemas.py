"""
API schemas for RAI.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from rai.models.db import (
    MAX_CONTENT_LENGTH,
    MAX_TAG_LENGTH,
    MAX_TITLE_LENGTH,
    AIPersonality,
    Complexity,
    Message,
    MessageStatus,
    MessageType,
    ReactionType,
    Sender,
    SharePermission,
    SubscriptionPlan,
    Theme,
)

# ===== Users =====


class UserCreate(BaseModel):
    """Request schema for registering a user."""

    username: str = Field(..., min_length=3, max_length=30)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)


class UserResponse(BaseModel):
    """Response schema for User (no secrets)."""

    id: UUID
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    preferences: dict[str, Any] = Field(default_factory=dict)
    subscription_plan: SubscriptionPlan
    is_active: bool
    is_verified: bool
    last_active: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationPreferences(BaseModel):
    email: Optional[bool] = None
    push: Optional[bool] = None


class PreferencesUpdate(BaseModel):
    """Partial update of user preferences."""

    theme: Optional[Theme] = None
    language: Optional[str] = Field(None, min_length=2, max_length=10)
    ai_personality: Optional[AIPersonality] = None
    notifications: Optional[NotificationPreferences] = None


class UsageResponse(BaseModel):
    """Usage counters with the ceilings of the user's plan (None = unlimited)."""

    plan: SubscriptionPlan
    usage: dict[str, int]
    limits: dict[str, Optional[int]]
    last_active: Optional[datetime] = None


# ===== Conversations =====


class ConversationCreate(BaseModel):
    """Request schema for creating an empty conversation."""

    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    tags: list[str] = Field(default_factory=list)
    ai_model: Optional[str] = Field(None, max_length=100)
    language: Optional[str] = Field(None, max_length=10)
    topic: Optional[str] = Field(None, max_length=200)
    complexity: Optional[Complexity] = None


class ConversationUpdate(BaseModel):
    """Partial update of conversation title, flags and AI settings."""

    title: Optional[str] = Field(None, min_length=1, max_length=MAX_TITLE_LENGTH)
    is_archived: Optional[bool] = None
    is_pinned: Optional[bool] = None
    ai_model: Optional[str] = Field(None, max_length=100)
    language: Optional[str] = Field(None, max_length=10)
    topic: Optional[str] = Field(None, max_length=200)
    complexity: Optional[Complexity] = None
    auto_save: Optional[bool] = None
    notifications_enabled: Optional[bool] = None
    sharing_enabled: Optional[bool] = None


class ShareResponse(BaseModel):
    user_id: UUID
    permission: SharePermission
    added_at: datetime

    class Config:
        from_attributes = True


class ConversationResponse(BaseModel):
    """Response schema for Conversation."""

    id: UUID
    user_id: UUID
    title: str
    last_message: Optional[str] = None
    message_count: int
    is_archived: bool
    is_pinned: bool
    tags: list[str] = Field(default_factory=list)
    ai_model: str
    language: str
    topic: Optional[str] = None
    complexity: Complexity
    auto_save: bool
    notifications_enabled: bool
    sharing_enabled: bool
    total_tokens: int
    average_response_time_ms: float
    feature_usage: dict[str, int] = Field(default_factory=dict)
    shares: list[ShareResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ConversationListResponse(BaseModel):
    """Paginated list of conversations."""

    items: list[ConversationResponse]
    total: int
    limit: int
    offset: int


class TagRequest(BaseModel):
    tag: str = Field(..., min_length=1, max_length=MAX_TAG_LENGTH)


class ShareRequest(BaseModel):
    user_id: UUID
    permission: SharePermission = SharePermission.READ


class ConversationStats(BaseModel):
    """Aggregate statistics for one conversation."""

    conversation_id: UUID
    message_count: int
    total_messages: int
    user_messages: int
    ai_messages: int
    average_response_time_ms: Optional[float] = None
    total_tokens: int
    feature_usage: dict[str, int] = Field(default_factory=dict)


# ===== Messages =====


class MessageResponse(BaseModel):
    """Response schema for Message; deleted content is masked."""

    id: UUID
    conversation_id: UUID
    author_id: Optional[UUID] = None
    sender: Sender
    content: str
    message_type: MessageType
    sequence: int
    metadata: dict[str, Any] = Field(default_factory=dict)
    status: MessageStatus
    is_deleted: bool
    is_edited: bool
    edit_history: list[dict[str, Any]] = Field(default_factory=list)
    reactions: list[dict[str, Any]] = Field(default_factory=list)
    mentions: list[dict[str, Any]] = Field(default_factory=list)
    links: list[dict[str, Any]] = Field(default_factory=list)
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    timestamp: datetime

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            author_id=message.author_id,
            sender=message.sender,
            content=message.display_content,
            message_type=message.message_type,
            sequence=message.sequence,
            metadata=message.extra_data or {},
            status=message.status,
            is_deleted=message.is_deleted,
            is_edited=message.is_edited,
            edit_history=[] if message.is_deleted else (message.edit_history or []),
            reactions=message.reactions or [],
            mentions=message.mentions or [],
            links=message.links or [],
            attachments=message.attachments or [],
            timestamp=message.timestamp,
        )


class ConversationDetail(BaseModel):
    """Conversation with its visible messages, oldest first."""

    conversation: ConversationResponse
    messages: list[MessageResponse]


class MessageEdit(BaseModel):
    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)


class ReactionRequest(BaseModel):
    type: ReactionType


class MentionRequest(BaseModel):
    user_id: UUID


# ===== Chat & AI =====


class ChatRequest(BaseModel):
    """One conversation turn over HTTP."""

    message: str
    conversation_id: Optional[UUID] = None
    message_type: MessageType = MessageType.TEXT
    metadata: Optional[dict[str, Any]] = None


class ImageRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)
    size: Optional[str] = None


class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)
    target_language: str = Field(..., min_length=2, max_length=50)


class SummarizeRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)


class GatewayResult(BaseModel):
    """Direct gateway output for the /ai endpoints."""

    content: str
    type: MessageType
    metadata: dict[str, Any] = Field(default_factory=dict)
