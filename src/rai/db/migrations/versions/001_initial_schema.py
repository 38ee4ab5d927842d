"""Initial schema: users, conversations, shares and messages

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=True),
        sa.Column("last_name", sa.String(50), nullable=True),
        sa.Column("avatar", sa.String(500), nullable=True),
        sa.Column(
            "preferences", postgresql.JSONB, nullable=False, server_default="{}"
        ),
        sa.Column(
            "subscription_plan",
            sa.String(10),
            nullable=False,
            server_default="free",
        ),
        sa.Column("subscription_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscription_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "subscription_features",
            postgresql.JSONB,
            nullable=False,
            server_default="[]",
        ),
        sa.Column("messages_sent", sa.Integer, nullable=False, server_default="0"),
        sa.Column("images_generated", sa.Integer, nullable=False, server_default="0"),
        sa.Column("code_generated", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "login_history", postgresql.JSONB, nullable=False, server_default="[]"
        ),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_last_active", "users", ["last_active"])
    op.create_index("ix_users_is_active", "users", ["is_active"])

    op.create_table(
        "conversations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("last_message", sa.String(500), nullable=True),
        sa.Column("message_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_archived", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_pinned", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("tags", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column(
            "ai_model", sa.String(100), nullable=False, server_default="gpt-4"
        ),
        sa.Column("language", sa.String(10), nullable=False, server_default="en"),
        sa.Column("topic", sa.String(200), nullable=True),
        sa.Column(
            "complexity",
            sa.String(12),
            nullable=False,
            server_default="intermediate",
        ),
        sa.Column("auto_save", sa.Boolean, nullable=False, server_default="true"),
        sa.Column(
            "notifications_enabled",
            sa.Boolean,
            nullable=False,
            server_default="true",
        ),
        sa.Column(
            "sharing_enabled", sa.Boolean, nullable=False, server_default="false"
        ),
        sa.Column("total_tokens", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "average_response_time_ms", sa.Float, nullable=False, server_default="0"
        ),
        sa.Column("response_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "feature_usage", postgresql.JSONB, nullable=False, server_default="{}"
        ),
        sa.Column("pending_reply_to", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_conversations_user_id", "conversations", ["user_id"])
    op.create_index("ix_conversations_updated_at", "conversations", ["updated_at"])
    op.create_index(
        "ix_conversations_user_updated", "conversations", ["user_id", "updated_at"]
    )
    op.create_index(
        "ix_conversations_user_archived", "conversations", ["user_id", "is_archived"]
    )
    op.create_index(
        "ix_conversations_user_pinned", "conversations", ["user_id", "is_pinned"]
    )

    op.create_table(
        "conversation_shares",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "conversation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column("permission", sa.String(5), nullable=False, server_default="read"),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "conversation_id", "user_id", name="uq_conversation_share"
        ),
    )
    op.create_index(
        "ix_conversation_shares_conversation_id",
        "conversation_shares",
        ["conversation_id"],
    )
    op.create_index(
        "ix_conversation_shares_user_id", "conversation_shares", ["user_id"]
    )

    op.create_table(
        "messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "conversation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "author_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=True,
        ),
        sa.Column("sender", sa.String(4), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column(
            "message_type", sa.String(6), nullable=False, server_default="text"
        ),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("status", sa.String(9), nullable=False, server_default="sent"),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "deleted_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=True,
        ),
        sa.Column("is_edited", sa.Boolean, nullable=False, server_default="false"),
        sa.Column(
            "edit_history", postgresql.JSONB, nullable=False, server_default="[]"
        ),
        sa.Column("reactions", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("mentions", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("links", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column(
            "attachments", postgresql.JSONB, nullable=False, server_default="[]"
        ),
        *_timestamps(),
    )
    op.create_index("ix_messages_sender", "messages", ["sender"])
    op.create_index("ix_messages_message_type", "messages", ["message_type"])
    op.create_index(
        "ix_messages_conversation_sequence", "messages", ["conversation_id", "sequence"]
    )
    op.create_index("ix_messages_created_at", "messages", ["created_at"])


def downgrade() -> None:
    op.drop_table("messages")
    op.drop_table("conversation_shares")
    op.drop_table("conversations")
    op.drop_table("users")
