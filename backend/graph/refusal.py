"""Refusal detection for Believer and Skeptic output.

An argument is a refusal when it is empty or when it *opens* with a
first-person declination ("I cannot...", "I'm sorry, but...",
"As an AI, I can't...", "This request violates..."). Matching is anchored
at the start of the trimmed text, so rebuttal prose such as
"The data cannot support this conclusion" is not a refusal.
"""

import re

_AI_PREFIX = r"(?:as an ai(?: language model| assistant)?,?\s+)?"

REFUSAL_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        _AI_PREFIX
        + r"i\s+(?:cannot|can't|can\s+not|am\s+unable|am\s+not\s+able|"
        r"won't|will\s+not|must\s+decline|decline|do\s+not\s+feel\s+comfortable)\b",
        re.IGNORECASE,
    ),
    re.compile(_AI_PREFIX + r"i'm\s+(?:sorry|unable|not\s+able)\b", re.IGNORECASE),
    re.compile(
        r"(?:sorry|unfortunately),?\s+(?:but\s+)?"
        r"(?:i\s+(?:cannot|can't|am\s+unable|am\s+not\s+able|won't|must\s+decline)|i'm\s+unable)\b",
        re.IGNORECASE,
    ),
    re.compile(r"this\s+(?:request\s+)?violates\b", re.IGNORECASE),
]


def _normalize(text: str) -> str:
    # Models sometimes emit typographic apostrophes
    return text.strip().replace("’", "'")


def is_refusal(text: str | None) -> bool:
    """Return True if *text* declines to argue rather than arguing.

    Args:
        text: Raw agent output

    Returns:
        True for empty output or an output that opens with a declination
    """
    if text is None:
        return True
    normalized = _normalize(text)
    if not normalized:
        return True
    return any(pattern.match(normalized) for pattern in REFUSAL_PATTERNS)
