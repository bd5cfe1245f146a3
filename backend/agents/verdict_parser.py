"""Parsing of agent text into structured data.

Two parsers live here:

``parse_verdict`` turns the Judge's ruling into a ``Verdict``. The Judge is
asked to answer in labeled sections (markdown bold optional)::

    **VERDICT**: Claim Partially Supported
    **CONFIDENCE SCORE**: 62
    **STRENGTH OF BELIEVER CASE**: Strong
    **STRENGTH OF SKEPTIC CASE**: Moderate
    **KEY EVIDENCE FACTORS**:
    1. ...
    **CRITICAL GAPS**: ...
    **RISK ASSESSMENT**:
    If we acted on the Believer's position and they're wrong, what harm could result? Medium
    If we rejected the Believer's position and they're right, what opportunity is lost? High

Any section that is missing or unreadable falls back to ``VERDICT_DEFAULTS``
and is listed in ``Verdict.parse_warnings``. Parsing never raises.

``extract_citations`` pulls citation candidates out of Believer and Skeptic
arguments: absolute URLs, "according to <domain>" style mentions and
author-year references.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote_plus

from graph.state import RiskLevel, Strength, Verdict, VerdictLabel
from utils.resilience import get_logger

logger = get_logger("agents.verdict_parser")


# ---------------------------------------------------------------------------
# Verdict grammar
# ---------------------------------------------------------------------------

VERDICT_DEFAULTS = {
    "label": VerdictLabel.UNPROVEN,
    "confidence": 50,
    "believer_strength": Strength.MODERATE,
    "skeptic_strength": Strength.MODERATE,
    "key_factors": [],
    "critical_gaps": "",
    "harm_if_wrong": RiskLevel.MEDIUM,
    "opportunity_if_wrong": RiskLevel.MEDIUM,
}

SECTION_NAMES = (
    "VERDICT",
    "CONFIDENCE SCORE",
    "STRENGTH OF BELIEVER CASE",
    "STRENGTH OF SKEPTIC CASE",
    "KEY EVIDENCE FACTORS",
    "CRITICAL GAPS",
    "RISK ASSESSMENT",
)

MAX_KEY_FACTORS = 3

# A section header at line start: "**NAME**:", "**NAME:**", "**NAME**" or "NAME:"
_HEADER_RE = re.compile(
    r"^[ \t>#]*(?:\*\*)?[ \t]*(?P<name>"
    + "|".join(re.escape(n) for n in SECTION_NAMES)
    + r")[ \t]*(?:\*\*[ \t]*:?|:[ \t]*(?:\*\*)?)[ \t]*",
    re.IGNORECASE | re.MULTILINE,
)

_CONFIDENCE_RE = re.compile(r"(\d{1,3})(?:\s*%|\s*/\s*100)?")
_STRENGTH_RE = re.compile(r"\b(very\s+strong|strong|moderate|weak)\b", re.IGNORECASE)
_RISK_LEVEL_RE = re.compile(r"\b(low|medium|high)\b", re.IGNORECASE)
_RISK_TEMPLATE_RE = re.compile(r"\(\s*low\s*/\s*medium\s*/\s*high\s*\)", re.IGNORECASE)
_BULLET_RE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")

_STRENGTHS = {
    "very strong": Strength.VERY_STRONG,
    "strong": Strength.STRONG,
    "moderate": Strength.MODERATE,
    "weak": Strength.WEAK,
}


def split_sections(text: str) -> dict[str, str]:
    """Split Judge output into ``{SECTION NAME: body}``.

    The first occurrence of each section wins. Bodies are stripped.
    """
    matches = list(_HEADER_RE.finditer(text))
    sections: dict[str, str] = {}
    for index, match in enumerate(matches):
        name = match.group("name").upper()
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        body = text[match.end():end].strip().strip("*").strip()
        sections.setdefault(name, body)
    return sections


def _parse_label(body: Optional[str]) -> Optional[VerdictLabel]:
    if not body:
        return None
    first_line = body.splitlines()[0].lower()
    # Order matters: "partially supported" and "unsupported" contain "supported"
    if "partially" in first_line:
        return VerdictLabel.PARTIALLY_SUPPORTED
    if "unsupported" in first_line or "not supported" in first_line:
        return VerdictLabel.UNSUPPORTED
    if "unproven" in first_line:
        return VerdictLabel.UNPROVEN
    if "supported" in first_line:
        return VerdictLabel.SUPPORTED
    return None


def _parse_confidence(body: Optional[str]) -> Optional[int]:
    if not body:
        return None
    match = _CONFIDENCE_RE.search(body.splitlines()[0])
    if not match:
        return None
    return max(0, min(100, int(match.group(1))))


def _parse_strength(body: Optional[str]) -> Optional[Strength]:
    if not body:
        return None
    match = _STRENGTH_RE.search(body.splitlines()[0])
    if not match:
        return None
    return _STRENGTHS[" ".join(match.group(1).lower().split())]


def _parse_key_factors(body: Optional[str]) -> Optional[list[str]]:
    if not body:
        return None
    factors = []
    for line in body.splitlines():
        cleaned = _BULLET_RE.sub("", line).strip().strip("*").strip()
        if cleaned:
            factors.append(cleaned)
        if len(factors) == MAX_KEY_FACTORS:
            break
    return factors or None


def _parse_risk(body: Optional[str]) -> tuple[Optional[RiskLevel], Optional[RiskLevel]]:
    """Return (harm, opportunity) levels from the risk section."""
    if not body:
        return None, None
    body = _RISK_TEMPLATE_RE.sub("", body)
    lowered = body.lower()

    harm_at = lowered.find("harm")
    opportunity_at = lowered.find("opportunit")

    def first_level(segment: str) -> Optional[RiskLevel]:
        match = _RISK_LEVEL_RE.search(segment)
        return RiskLevel(match.group(1).capitalize()) if match else None

    if harm_at == -1 and opportunity_at == -1:
        # Bare answer: first level is harm, second is opportunity
        levels = [RiskLevel(m.capitalize()) for m in _RISK_LEVEL_RE.findall(body)]
        harm = levels[0] if levels else None
        opportunity = levels[1] if len(levels) > 1 else None
        return harm, opportunity

    harm = None
    opportunity = None
    if harm_at != -1:
        harm_end = opportunity_at if opportunity_at > harm_at else len(body)
        harm = first_level(body[harm_at:harm_end])
    if opportunity_at != -1:
        opportunity_end = harm_at if harm_at > opportunity_at else len(body)
        opportunity = first_level(body[opportunity_at:opportunity_end])
    return harm, opportunity


def overall_risk(harm: RiskLevel, opportunity: RiskLevel) -> str:
    """Collapse harm and opportunity levels into 'high', 'medium' or 'low'."""
    if RiskLevel.HIGH in (harm, opportunity):
        return "high"
    if harm is RiskLevel.LOW and opportunity is RiskLevel.LOW:
        return "low"
    return "medium"


def parse_verdict(text: str) -> Verdict:
    """Parse Judge output into a ``Verdict``.

    A ruling without a readable confidence score is treated as unreliable:
    its label falls back to ``Claim Unproven`` whatever the text says.

    Args:
        text: Raw Judge content

    Returns:
        Verdict with defaults for every field that could not be parsed
    """
    sections = split_sections(text or "")
    warnings: list[str] = []

    def pick(name: str, value):
        if value is None:
            warnings.append(name)
            return VERDICT_DEFAULTS[name]
        return value

    confidence = pick("confidence", _parse_confidence(sections.get("CONFIDENCE SCORE")))
    label = pick("label", _parse_label(sections.get("VERDICT")))
    if "confidence" in warnings and label is not VerdictLabel.UNPROVEN:
        label = VerdictLabel.UNPROVEN
        warnings.append("label")

    harm, opportunity = _parse_risk(sections.get("RISK ASSESSMENT"))
    harm = pick("harm_if_wrong", harm)
    opportunity = pick("opportunity_if_wrong", opportunity)

    gaps = sections.get("CRITICAL GAPS")

    verdict = Verdict(
        label=label,
        confidence=confidence,
        believer_strength=pick(
            "believer_strength", _parse_strength(sections.get("STRENGTH OF BELIEVER CASE"))
        ),
        skeptic_strength=pick(
            "skeptic_strength", _parse_strength(sections.get("STRENGTH OF SKEPTIC CASE"))
        ),
        key_factors=pick("key_factors", _parse_key_factors(sections.get("KEY EVIDENCE FACTORS"))),
        critical_gaps=pick("critical_gaps", " ".join(gaps.split()) if gaps else None),
        harm_if_wrong=harm,
        opportunity_if_wrong=opportunity,
        risk_assessment=overall_risk(harm, opportunity),
        parse_warnings=sorted(set(warnings)),
    )

    if warnings:
        logger.info("verdict_parse_fallback", fields=verdict.parse_warnings)
    return verdict


# ---------------------------------------------------------------------------
# Citation extraction
# ---------------------------------------------------------------------------

_URL_RE = re.compile(r"https?://[^\s<>\"'{}|\\^`\[\]()]+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?)]'\""
_DOMAIN_MENTION_RE = re.compile(
    r"(?:according to|study by|research from|data from|report by)\s+"
    r"(?P<domain>[a-z0-9-]+(?:\.[a-z0-9-]+)*\.[a-z]{2,})\b",
    re.IGNORECASE,
)
_AUTHOR_YEAR_RE = re.compile(
    r"\b(?P<citation>[A-Z][a-z]+(?:\s+(?:et al\.|&\s+[A-Z][a-z]+))?,?\s+\(?(?:19|20)\d{2})\)?"
)

SNIPPET_CONTEXT = 50


@dataclass(frozen=True)
class Citation:
    """A citation candidate found in argument text."""

    url: str
    snippet: str


def extract_citations(text: str) -> list[Citation]:
    """Find citation candidates in an argument.

    Candidates are not validated here; the evidence tracker rejects bad
    ones. Duplicate URLs are reported once.

    Args:
        text: Believer or Skeptic content

    Returns:
        Citations in order of appearance, URLs first
    """
    if not text:
        return []

    found: dict[str, Citation] = {}

    for match in _URL_RE.finditer(text):
        url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        start = max(0, match.start() - SNIPPET_CONTEXT)
        end = min(len(text), match.end() + SNIPPET_CONTEXT)
        found.setdefault(url, Citation(url=url, snippet=" ".join(text[start:end].split())))

    for match in _DOMAIN_MENTION_RE.finditer(text):
        domain = match.group("domain").lower()
        if any(domain in url.lower() for url in found):
            continue
        url = f"https://{domain}"
        found.setdefault(url, Citation(url=url, snippet=match.group(0)))

    for match in _AUTHOR_YEAR_RE.finditer(text):
        citation = " ".join(match.group("citation").replace("(", "").split())
        url = f"https://scholar.google.com/scholar?q={quote_plus(citation)}"
        found.setdefault(url, Citation(url=url, snippet=f"Academic citation: {citation}"))

    return list(found.values())
