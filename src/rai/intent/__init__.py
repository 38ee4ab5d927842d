"""Intent classification for chat messages."""

from rai.intent.classifier import (
    INTENT_RULES,
    IntentCategory,
    IntentResult,
    classify,
)

__all__ = ["INTENT_RULES", "IntentCategory", "IntentResult", "classify"]
