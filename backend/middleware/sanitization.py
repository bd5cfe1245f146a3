"""Claim sanitization to mitigate prompt injection.

Claims are interpolated into all three role prompts, so they are cleaned
before they reach ``validate_claim``.

Strategy:
- Strip invisible Unicode control characters.
- Collapse embedded newlines, since a claim is a single statement.
- Redact common prompt-injection patterns (system/instruction overrides).
- Log sanitization events for audit.
"""

import re
import unicodedata

import structlog

logger = structlog.get_logger(__name__)

REDACTED = "[REDACTED]"

# Patterns that attempt to override system instructions
_INJECTION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?i)\bignore\s+(all\s+)?(previous|above|prior)\s+(instructions?|prompts?|rules?)\b"),
    re.compile(r"(?i)\byou\s+are\s+now\b"),
    re.compile(r"(?i)\bsystem\s*:\s*"),
    re.compile(r"(?i)\b(assistant|user|human)\s*:\s*"),
    re.compile(r"(?i)\bnew\s+instructions?\s*:\s*"),
    re.compile(r"(?i)\bdo\s+not\s+follow\b.*\binstructions?\b"),
    re.compile(r"(?i)\bforget\s+(everything|all)\b"),
    re.compile(r"(?i)<\|?(system|im_start|im_end)\|?>"),
    re.compile(r"(?i)\[INST\]"),
    re.compile(r"(?i)```\s*(system|instruction)"),
]

_WHITESPACE_RE = re.compile(r"\s+")


def _strip_control_chars(text: str) -> str:
    """Remove invisible Unicode control characters (except whitespace)."""
    return "".join(
        ch
        for ch in text
        if ch in ("\n", "\t", "\r")
        or unicodedata.category(ch) not in ("Cc", "Cf")
    )


def _detect_injection(text: str) -> list[str]:
    """Return list of matched injection pattern descriptions."""
    return [pattern.pattern for pattern in _INJECTION_PATTERNS if pattern.search(text)]


def sanitize_claim(claim: str) -> str:
    """Sanitize a user-supplied claim.

    Length is not enforced here; ``validate_claim`` does that on the
    sanitized text.

    Args:
        claim: Raw user input.

    Returns:
        Cleaned claim, possibly empty.
    """
    claim = _strip_control_chars(claim or "")
    claim = _WHITESPACE_RE.sub(" ", claim).strip()

    # Detect injection attempts (log but don't block - just redact)
    injections = _detect_injection(claim)
    if injections:
        logger.warning(
            "prompt_injection_detected",
            pattern_count=len(injections),
            patterns=injections[:3],  # only log first 3
            claim_preview=claim[:80],
        )
        for pattern in _INJECTION_PATTERNS:
            claim = pattern.sub(REDACTED, claim)
        claim = _WHITESPACE_RE.sub(" ", claim).strip()

    return claim
