"""Rule-based intent classifier for incoming chat messages."""

import enum
from dataclasses import dataclass


class IntentCategory(str, enum.Enum):
    """Label routing a message to one AI capability."""

    IMAGE_GENERATION = "image_generation"
    CODE_GENERATION = "code_generation"
    WEB_SEARCH = "web_search"
    VOICE_COMMAND = "voice_command"
    DOCUMENT_ANALYSIS = "document_analysis"
    TEXT_RESPONSE = "text_response"


@dataclass(frozen=True)
class IntentResult:
    """Outcome of classifying one message.

    Attributes:
        category: Capability the message is routed to
        confidence: Fixed confidence of the rule that matched
    """

    category: IntentCategory
    confidence: float

    def to_dict(self) -> dict:
        return {"type": self.category.value, "confidence": self.confidence}


@dataclass(frozen=True)
class IntentRule:
    """One row of the rule table.

    A rule matches when, for every group in ``all_of``, at least one of the
    group's keywords occurs in the lowercased message.
    """

    category: IntentCategory
    all_of: tuple[tuple[str, ...], ...]
    confidence: float

    def matches(self, text: str) -> bool:
        return all(any(word in text for word in group) for group in self.all_of)


# Evaluated in order; first match wins
INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        IntentCategory.IMAGE_GENERATION,
        (("generate", "create"), ("image", "picture")),
        0.9,
    ),
    IntentRule(
        IntentCategory.CODE_GENERATION,
        (("write",), ("code", "script")),
        0.9,
    ),
    IntentRule(
        IntentCategory.CODE_GENERATION,
        (("code", "program", "function"),),
        0.8,
    ),
    IntentRule(
        IntentCategory.WEB_SEARCH,
        (("search", "find", "latest"),),
        0.7,
    ),
    IntentRule(
        IntentCategory.VOICE_COMMAND,
        (("voice", "speak", "audio"),),
        0.8,
    ),
    IntentRule(
        IntentCategory.DOCUMENT_ANALYSIS,
        (("analyze", "document", "file"),),
        0.7,
    ),
)

DEFAULT_INTENT = IntentResult(IntentCategory.TEXT_RESPONSE, 0.9)


def classify(message: str | None) -> IntentResult:
    """Classify a message by case-insensitive keyword matching.

    Never raises; anything no rule matches (including empty input) is a
    plain text response.

    Args:
        message: Raw message text

    Returns:
        IntentResult for the first matching rule, or the text default
    """
    text = (message or "").lower()
    for rule in INTENT_RULES:
        if rule.matches(text):
            return IntentResult(rule.category, rule.confidence)
    return DEFAULT_INTENT
