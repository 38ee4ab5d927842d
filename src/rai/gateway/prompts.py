"""Prompt templates used by the AI gateway."""

from rai.models.db import AIPersonality

ASSISTANT_IDENTITY = (
    "You are RAI (Revolutionary AI Assistant), a comprehensive AI assistant. "
    "You are helpful, creative, and can assist with any task, including "
    "writing, answering questions, generating code and creating images."
)

PERSONALITY_STYLES = {
    AIPersonality.FRIENDLY: "Always be friendly and approachable.",
    AIPersonality.PROFESSIONAL: "Keep a concise, professional tone.",
    AIPersonality.CREATIVE: "Be imaginative and offer original ideas.",
    AIPersonality.TECHNICAL: "Be precise and include technical detail where useful.",
}

CODE_SYSTEM_PROMPT = (
    "You are an expert programmer. Generate clean, working code with "
    "appropriate comments. Always specify the programming language."
)

CODE_PROMPT = (
    "Generate code based on the following request. Provide only the code "
    "with brief comments explaining key parts. If it's a complete "
    "application, provide all necessary files. Request: {request}"
)

WEB_SEARCH_PROMPT = (
    "Search for the latest information about: {query}. "
    "Provide current and accurate information."
)

VOICE_COMMAND_PROMPT = (
    "Process this voice command: {command}. Provide a helpful response and "
    "suggest any actions that could be taken."
)

DOCUMENT_ANALYSIS_PROMPT = (
    "Analyze the following document and provide a comprehensive summary "
    "with key insights: {document}"
)

TRANSLATE_PROMPT = "Translate the following text to {target_language}: {text}"

SUMMARIZE_PROMPT = "Provide a concise summary of the following text: {text}"

APOLOGY_MESSAGE = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Please try again in a moment."
)

SPEECH_TO_TEXT_UNAVAILABLE = (
    "Speech-to-text conversion is not available. "
    "Please provide your message in text format for now."
)


def build_system_prompt(personality: str | None = None) -> str:
    """System prompt for text responses, shaped by the user's AI personality."""
    try:
        style = PERSONALITY_STYLES[AIPersonality(personality)]
    except ValueError:
        style = PERSONALITY_STYLES[AIPersonality.FRIENDLY]
    return f"{ASSISTANT_IDENTITY} {style}"
