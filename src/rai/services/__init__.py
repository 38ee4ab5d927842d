"""Application services."""

from rai.services.chat import ConversationHistory, ConversationOrchestrator

__all__ = ["ConversationHistory", "ConversationOrchestrator"]
