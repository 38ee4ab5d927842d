"""
SQLAlchemy database models for RAI.

These models represent the database schema for users, their conversations
and the messages exchanged with the assistant. Convenience methods mutate
in-memory state only; repositories and services own flushing and commits.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from passlib.context import CryptContext
from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from rai.exceptions import UsageLimitExceededError, ValidationError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MAX_CONTENT_LENGTH = 10_000
MAX_TITLE_LENGTH = 200
MAX_LAST_MESSAGE_LENGTH = 500
MAX_TAG_LENGTH = 50
LOGIN_HISTORY_SIZE = 20
DELETED_PLACEHOLDER = "[Message deleted]"


def _utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda x: [e.value for e in x],
    )


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class SubscriptionPlan(str, enum.Enum):
    """Subscription tier of a user."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class UsageKind(str, enum.Enum):
    """Metered feature whose usage is counted per user."""

    MESSAGES = "messages"
    IMAGES = "images"
    CODE = "code"


class Theme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class AIPersonality(str, enum.Enum):
    FRIENDLY = "friendly"
    PROFESSIONAL = "professional"
    CREATIVE = "creative"
    TECHNICAL = "technical"


class Complexity(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class SharePermission(str, enum.Enum):
    """Access level granted on a shared conversation (admin ⊇ write ⊇ read)."""

    READ = "read"
    WRITE = "write"
    ADMIN = "admin"


PERMISSION_ORDER = [SharePermission.READ, SharePermission.WRITE, SharePermission.ADMIN]


class Sender(str, enum.Enum):
    """Author side of a message."""

    USER = "user"
    AI = "ai"


class MessageType(str, enum.Enum):
    """Type of message content."""

    TEXT = "text"
    IMAGE = "image"
    CODE = "code"
    VOICE = "voice"
    FILE = "file"
    SYSTEM = "system"


class MessageStatus(str, enum.Enum):
    """Delivery status of a message."""

    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class ReactionType(str, enum.Enum):
    LIKE = "like"
    LOVE = "love"
    LAUGH = "laugh"
    WOW = "wow"
    SAD = "sad"
    ANGRY = "angry"


# Per-plan ceilings; None means unlimited
PLAN_LIMITS: dict[SubscriptionPlan, Optional[dict[UsageKind, int]]] = {
    SubscriptionPlan.FREE: {
        UsageKind.MESSAGES: 100,
        UsageKind.IMAGES: 10,
        UsageKind.CODE: 50,
    },
    SubscriptionPlan.BASIC: {
        UsageKind.MESSAGES: 1000,
        UsageKind.IMAGES: 100,
        UsageKind.CODE: 500,
    },
    SubscriptionPlan.PREMIUM: {
        UsageKind.MESSAGES: 10000,
        UsageKind.IMAGES: 1000,
        UsageKind.CODE: 5000,
    },
    SubscriptionPlan.ENTERPRISE: None,
}

USAGE_COUNTERS: dict[UsageKind, str] = {
    UsageKind.MESSAGES: "messages_sent",
    UsageKind.IMAGES: "images_generated",
    UsageKind.CODE: "code_generated",
}

DEFAULT_PREFERENCES: dict[str, Any] = {
    "theme": Theme.AUTO.value,
    "language": "en",
    "ai_personality": AIPersonality.FRIENDLY.value,
    "notifications": {"email": True, "push": True},
}


def usage_kind_for(message_type: "MessageType | str") -> UsageKind:
    """Select the usage counter charged for a message of the given type."""
    message_type = MessageType(message_type)
    if message_type == MessageType.IMAGE:
        return UsageKind.IMAGES
    if message_type == MessageType.CODE:
        return UsageKind.CODE
    return UsageKind.MESSAGES


def validate_message_content(content: str, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """
    Validate message text.

    Raises:
        ValidationError: If the content is empty or longer than max_length
    """
    if content is None or not content.strip():
        raise ValidationError("Message content must not be empty")
    if len(content) > max_length:
        raise ValidationError(
            f"Message content exceeds {max_length} characters ({len(content)})"
        )
    return content


def _truncate(text: Optional[str], length: int) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text if len(text) <= length else text[:length]


class User(Base):
    """Registered user with preferences and usage accounting."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    username: Mapped[str] = mapped_column(
        String(30), nullable=False, unique=True, index=True
    )
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Example: {"theme": "dark", "language": "en", "ai_personality": "technical",
    #           "notifications": {"email": true, "push": false}}
    preferences: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=lambda: dict(DEFAULT_PREFERENCES)
    )

    # Subscription
    subscription_plan: Mapped[SubscriptionPlan] = mapped_column(
        _enum_column(SubscriptionPlan),
        nullable=False,
        default=SubscriptionPlan.FREE,
        server_default=SubscriptionPlan.FREE.value,
    )
    subscription_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now
    )
    subscription_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    subscription_features: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=list
    )

    # Usage counters
    messages_sent: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    images_generated: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    code_generated: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    last_active: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true", index=True
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    login_history: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    conversations: Mapped[list["Conversation"]] = relationship(back_populates="owner")

    def set_password(self, raw_password: str) -> None:
        if not raw_password or len(raw_password) < 6:
            raise ValidationError("Password must be at least 6 characters")
        self.password_hash = pwd_context.hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        if not self.password_hash:
            return False
        return pwd_context.verify(raw_password, self.password_hash)

    def usage_for(self, kind: UsageKind) -> int:
        return getattr(self, USAGE_COUNTERS[UsageKind(kind)]) or 0

    def update_usage(self, kind: UsageKind, count: int = 1) -> None:
        """Increment the counter selected by kind and refresh last_active."""
        attr = USAGE_COUNTERS[UsageKind(kind)]
        setattr(self, attr, (getattr(self, attr) or 0) + count)
        self.last_active = _utc_now()

    def limit_for(self, kind: UsageKind) -> Optional[int]:
        """Ceiling for kind on the current plan, or None when unlimited."""
        limits = PLAN_LIMITS[SubscriptionPlan(self.subscription_plan)]
        if limits is None:
            return None
        return limits[UsageKind(kind)]

    def check_limits(self, kind: UsageKind) -> bool:
        """Return True while usage of kind is below the plan ceiling."""
        limit = self.limit_for(kind)
        if limit is None:
            return True
        return self.usage_for(kind) < limit

    def ensure_within_limit(self, kind: UsageKind) -> None:
        """Raise UsageLimitExceededError once the plan ceiling for kind is hit."""
        if not self.check_limits(kind):
            raise UsageLimitExceededError(
                UsageKind(kind).value,
                SubscriptionPlan(self.subscription_plan).value,
                self.limit_for(kind),
            )

    def record_login(
        self, ip: Optional[str] = None, user_agent: Optional[str] = None
    ) -> None:
        now = _utc_now()
        self.last_login = now
        entry = {"timestamp": now.isoformat(), "ip": ip, "user_agent": user_agent}
        history = [*(self.login_history or []), entry]
        self.login_history = history[-LOGIN_HISTORY_SIZE:]

    def deactivate(self) -> None:
        self.is_active = False

    @property
    def ai_personality(self) -> str:
        prefs = self.preferences or {}
        return prefs.get("ai_personality", AIPersonality.FRIENDLY.value)

    def get_public_profile(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "avatar": self.avatar,
            "preferences": self.preferences or {},
            "subscription": {
                "plan": SubscriptionPlan(self.subscription_plan).value,
                "features": self.subscription_features or [],
            },
            "usage": {
                "messages_sent": self.messages_sent or 0,
                "images_generated": self.images_generated or 0,
                "code_generated": self.code_generated or 0,
                "last_active": self.last_active,
            },
            "is_active": self.is_active,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username!r})>"


class Conversation(Base):
    """A titled thread of messages owned by one user."""

    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), nullable=False)
    last_message: Mapped[Optional[str]] = mapped_column(
        String(MAX_LAST_MESSAGE_LENGTH), nullable=True
    )

    # Denormalized count of non-deleted messages, maintained incrementally
    message_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    is_archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    is_pinned: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    tags: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    # AI settings
    ai_model: Mapped[str] = mapped_column(
        String(100), nullable=False, default="gpt-4", server_default="gpt-4"
    )
    language: Mapped[str] = mapped_column(
        String(10), nullable=False, default="en", server_default="en"
    )
    topic: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    complexity: Mapped[Complexity] = mapped_column(
        _enum_column(Complexity),
        nullable=False,
        default=Complexity.INTERMEDIATE,
        server_default=Complexity.INTERMEDIATE.value,
    )

    # Preference flags
    auto_save: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    notifications_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    sharing_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    # Analytics
    total_tokens: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    average_response_time_ms: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default="0"
    )
    response_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    # Example: {"text_response": 12, "image_generation": 2}
    feature_usage: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    # User message still awaiting its AI turn (set between persist and reply)
    pending_reply_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utc_now,
        server_default=func.now(),
        onupdate=_utc_now,
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_conversations_user_updated", "user_id", "updated_at"),
        Index("ix_conversations_user_archived", "user_id", "is_archived"),
        Index("ix_conversations_user_pinned", "user_id", "is_pinned"),
    )

    # Relationships
    owner: Mapped["User"] = relationship(back_populates="conversations")
    shares: Mapped[list["ConversationShare"]] = relationship(
        back_populates="conversation", cascade="all, delete-orphan"
    )
    messages: Mapped[list["Message"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.sequence",
    )

    def increment_message_count(self, delta: int = 1) -> None:
        self.message_count = max(0, (self.message_count or 0) + delta)

    def touch(self, last_message: Optional[str] = None) -> None:
        """Refresh the cached last message and update timestamp."""
        if last_message is not None:
            self.last_message = _truncate(last_message, MAX_LAST_MESSAGE_LENGTH)
        self.updated_at = _utc_now()

    def add_tag(self, tag: str) -> bool:
        """Add a tag; returns False if it was already present."""
        tag = (tag or "").strip()
        if not tag:
            raise ValidationError("Tag must not be empty")
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError(f"Tag exceeds {MAX_TAG_LENGTH} characters")
        tags = list(self.tags or [])
        if tag in tags:
            return False
        self.tags = [*tags, tag]
        return True

    def remove_tag(self, tag: str) -> bool:
        tags = list(self.tags or [])
        if tag not in tags:
            return False
        self.tags = [t for t in tags if t != tag]
        return True

    def get_share(self, user_id: uuid.UUID) -> Optional["ConversationShare"]:
        for share in self.shares:
            if share.user_id == user_id:
                return share
        return None

    def share_with(
        self,
        user_id: uuid.UUID,
        permission: SharePermission = SharePermission.READ,
    ) -> "ConversationShare":
        """Grant or update access for another user."""
        if user_id == self.user_id:
            raise ValidationError("Cannot share a conversation with its owner")
        permission = SharePermission(permission)
        share = self.get_share(user_id)
        if share is not None:
            share.permission = permission
            return share
        share = ConversationShare(user_id=user_id, permission=permission)
        self.shares.append(share)
        return share

    def remove_share(self, user_id: uuid.UUID) -> bool:
        share = self.get_share(user_id)
        if share is None:
            return False
        self.shares.remove(share)
        return True

    def has_access(
        self,
        user_id: uuid.UUID,
        required: SharePermission = SharePermission.READ,
    ) -> bool:
        """Owner always has access; sharees need at least the required level."""
        if self.user_id == user_id:
            return True
        share = self.get_share(user_id)
        if share is None:
            return False
        granted = PERMISSION_ORDER.index(SharePermission(share.permission))
        return granted >= PERMISSION_ORDER.index(SharePermission(required))

    def record_response(
        self,
        tokens: int = 0,
        response_time_ms: Optional[float] = None,
        feature: Optional[str] = None,
    ) -> None:
        """Fold one AI response into the conversation analytics."""
        self.total_tokens = (self.total_tokens or 0) + (tokens or 0)
        if response_time_ms is not None:
            count = self.response_count or 0
            average = self.average_response_time_ms or 0.0
            self.average_response_time_ms = (average * count + response_time_ms) / (
                count + 1
            )
            self.response_count = count + 1
        if feature:
            usage = dict(self.feature_usage or {})
            usage[feature] = usage.get(feature, 0) + 1
            self.feature_usage = usage

    def get_summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "last_message": self.last_message,
            "message_count": self.message_count or 0,
            "is_archived": bool(self.is_archived),
            "is_pinned": bool(self.is_pinned),
            "tags": list(self.tags or []),
            "ai_model": self.ai_model,
            "language": self.language,
            "topic": self.topic,
            "complexity": Complexity(self.complexity).value
            if self.complexity
            else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Conversation(id={self.id}, "
            f"user_id={self.user_id}, "
            f"title={self.title!r})>"
        )


class ConversationShare(Base):
    """Access grant on a conversation for a user other than its owner."""

    __tablename__ = "conversation_shares"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    permission: Mapped[SharePermission] = mapped_column(
        _enum_column(SharePermission),
        nullable=False,
        default=SharePermission.READ,
        server_default=SharePermission.READ.value,
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now
    )

    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_conversation_share"),
    )

    conversation: Mapped["Conversation"] = relationship(back_populates="shares")
    user: Mapped["User"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<ConversationShare(conversation_id={self.conversation_id}, "
            f"user_id={self.user_id}, permission={self.permission})>"
        )


class Message(Base):
    """One turn in a conversation."""

    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )  # Acting user for user turns, None for AI turns

    sender: Mapped[Sender] = mapped_column(
        _enum_column(Sender), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[MessageType] = mapped_column(
        _enum_column(MessageType),
        nullable=False,
        default=MessageType.TEXT,
        server_default=MessageType.TEXT.value,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # order within conversation
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now
    )

    # Type-specific metadata, validated through rai.models.metadata
    extra_data: Mapped[dict] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )

    status: Mapped[MessageStatus] = mapped_column(
        _enum_column(MessageStatus),
        nullable=False,
        default=MessageStatus.SENT,
        server_default=MessageStatus.SENT.value,
    )

    # Soft delete
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deleted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )

    # Edits and social features
    is_edited: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    edit_history: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    reactions: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    mentions: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    links: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    attachments: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_messages_conversation_sequence", "conversation_id", "sequence"),
        Index("ix_messages_created_at", "created_at"),
    )

    # Relationships
    conversation: Mapped["Conversation"] = relationship(back_populates="messages")

    @property
    def metadata_variant(self):
        """Typed view of extra_data keyed by message type."""
        from rai.models.metadata import build_metadata

        return build_metadata(self.message_type, self.extra_data)

    @property
    def display_content(self) -> str:
        return DELETED_PLACEHOLDER if self.is_deleted else self.content

    def add_reaction(self, user_id: uuid.UUID, reaction_type: str) -> None:
        """Set the user's reaction, replacing any previous one."""
        try:
            reaction = ReactionType(reaction_type)
        except ValueError:
            raise ValidationError(f"Unknown reaction type: {reaction_type}")
        reactions = [
            r for r in (self.reactions or []) if r.get("user_id") != str(user_id)
        ]
        reactions.append(
            {
                "user_id": str(user_id),
                "type": reaction.value,
                "timestamp": _utc_now().isoformat(),
            }
        )
        self.reactions = reactions

    def remove_reaction(self, user_id: uuid.UUID) -> bool:
        reactions = list(self.reactions or [])
        remaining = [r for r in reactions if r.get("user_id") != str(user_id)]
        if len(remaining) == len(reactions):
            return False
        self.reactions = remaining
        return True

    def edit(self, new_content: str, max_length: int = MAX_CONTENT_LENGTH) -> None:
        """Replace content, keeping the prior version in edit history."""
        if self.is_deleted:
            raise ValidationError("Cannot edit a deleted message")
        validate_message_content(new_content, max_length)
        self.edit_history = [
            *(self.edit_history or []),
            {"content": self.content, "edited_at": _utc_now().isoformat()},
        ]
        self.content = new_content
        self.is_edited = True

    def soft_delete(self, user_id: uuid.UUID) -> bool:
        """Hide the message; returns False if it was already deleted."""
        if self.is_deleted:
            return False
        self.is_deleted = True
        self.deleted_at = _utc_now()
        self.deleted_by = user_id
        return True

    def restore(self) -> bool:
        """Undo a soft delete; returns False if the message was not deleted."""
        if not self.is_deleted:
            return False
        self.is_deleted = False
        self.deleted_at = None
        self.deleted_by = None
        return True

    def add_mention(self, user_id: uuid.UUID, username: str) -> bool:
        mentions = list(self.mentions or [])
        if any(m.get("user_id") == str(user_id) for m in mentions):
            return False
        self.mentions = [*mentions, {"user_id": str(user_id), "username": username}]
        return True

    def add_attachment(
        self,
        url: str,
        name: Optional[str] = None,
        attachment_type: Optional[str] = None,
        size: Optional[int] = None,
    ) -> None:
        self.attachments = [
            *(self.attachments or []),
            {"type": attachment_type, "url": url, "name": name, "size": size},
        ]

    def add_link(
        self,
        url: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        image: Optional[str] = None,
    ) -> None:
        self.links = [
            *(self.links or []),
            {"url": url, "title": title, "description": description, "image": image},
        ]

    def get_summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sender": Sender(self.sender).value,
            "content": self.display_content,
            "message_type": MessageType(self.message_type).value,
            "timestamp": self.timestamp,
            "is_deleted": bool(self.is_deleted),
            "reactions": list(self.reactions or []),
            "mentions": list(self.mentions or []),
        }

    def __repr__(self) -> str:
        return (
            f"<Message(id={self.id}, sender={self.sender!r}, "
            f"sequence={self.sequence})>"
        )
