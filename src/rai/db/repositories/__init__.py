"""
Repository layer for database operations.

Provides a clean API for CRUD operations on database models.
"""

from rai.db.repositories.base import BaseRepository
from rai.db.repositories.conversation import ConversationRepository
from rai.db.repositories.message import MessageRepository
from rai.db.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "ConversationRepository",
    "MessageRepository",
    "UserRepository",
]
