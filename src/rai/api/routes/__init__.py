"""
API routes for RAI.
"""

from rai.api.routes import ai, chat, conversations, messages, realtime, users

__all__ = [
    "ai",
    "chat",
    "conversations",
    "messages",
    "realtime",
    "users",
]
