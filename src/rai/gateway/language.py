"""Heuristic source-language detection for generated code.

Matches superficial keyword cues only, so it can mislabel (any text that
mentions "import " reads as Python). Callers treat the result as a hint.
"""

UNKNOWN_LANGUAGE = "unknown"

# Evaluated in order; first match wins. Each entry lists alternatives, and
# each alternative is a tuple of markers that must all be present.
LANGUAGE_MARKERS: tuple[tuple[str, tuple[tuple[str, ...], ...]], ...] = (
    ("javascript", (("function", "const", "=>"),)),
    ("python", (("def ",), ("import ",))),
    ("java", (("public class",), ("public static",))),
    ("cpp", (("#include",), ("int main",))),
    ("php", (("<?php",),)),
    ("html", (("html",), ("<!doctype",))),
    ("css", (("css",), ("{", ":"))),
)


def detect_language(code: str | None) -> str:
    """Guess the programming language of a code snippet.

    Args:
        code: Generated code or a response containing code

    Returns:
        Language name, or "unknown" when no cue matches
    """
    text = (code or "").lower()
    for language, alternatives in LANGUAGE_MARKERS:
        if any(all(marker in text for marker in markers) for markers in alternatives):
            return language
    return UNKNOWN_LANGUAGE
