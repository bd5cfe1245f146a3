"""LangGraph state schema for the Crossfire debate pipeline.

This module defines the state that flows through the debate graph along
with the Pydantic models for everything an agent produces: evidence
items, agent responses, the parsed verdict and the stage events the
orchestrator emits.

The DebateState TypedDict is the main state object passed between the
Believer, Skeptic and Judge nodes.
"""

import operator
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field


def _utcnow_iso() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Enums for type-safe string values
# ---------------------------------------------------------------------------


class AgentRole(str, Enum):
    """The three fixed debate roles."""

    BELIEVER = "believer"
    SKEPTIC = "skeptic"
    JUDGE = "judge"


class MentionedBy(str, Enum):
    """Which side cited an evidence item."""

    BELIEVER = "believer"
    SKEPTIC = "skeptic"
    BOTH = "both"


class SourceType(str, Enum):
    """Display grouping for an evidence source."""

    ACADEMIC = "academic"
    NEWS = "news"
    GOVERNMENT = "government"
    SOCIAL = "social"
    UNKNOWN = "unknown"


class VerdictLabel(str, Enum):
    """Judge verdict on the claim."""

    SUPPORTED = "Claim Supported"
    PARTIALLY_SUPPORTED = "Claim Partially Supported"
    UNPROVEN = "Claim Unproven"
    UNSUPPORTED = "Claim Unsupported"


class Strength(str, Enum):
    """Judge rating of one side's case."""

    VERY_STRONG = "Very Strong"
    STRONG = "Strong"
    MODERATE = "Moderate"
    WEAK = "Weak"


class RiskLevel(str, Enum):
    """Impact level used in the Judge's risk assessment."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class PipelineStage(str, Enum):
    """States of the debate state machine."""

    INIT = "init"
    BELIEVER_RUNNING = "believer_running"
    BELIEVER_DONE = "believer_done"
    SKEPTIC_RUNNING = "skeptic_running"
    SKEPTIC_DONE = "skeptic_done"
    JUDGE_RUNNING = "judge_running"
    JUDGE_DONE = "judge_done"
    ABORTED = "aborted"


class StageEventType(str, Enum):
    """Stage-completion events emitted by the orchestrator."""

    BELIEVER_COMPLETE = "believer_complete"
    SKEPTIC_COMPLETE = "skeptic_complete"
    JUDGE_COMPLETE = "judge_complete"


class DebateLength(str, Enum):
    """Requested argument length."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


DEBATE_LENGTH_TOKENS: dict[DebateLength, int] = {
    DebateLength.SHORT: 1000,
    DebateLength.MEDIUM: 2500,
    DebateLength.LONG: 5000,
}


# ---------------------------------------------------------------------------
# Nested Pydantic Models
# ---------------------------------------------------------------------------


class EvidenceItem(BaseModel):
    """A deduplicated, credibility-scored citation.

    The source URL is the natural key. ``mentioned_by`` is the only field
    that changes after creation: it is promoted to ``both`` when the other
    side cites the same URL.
    """

    id: str = Field(
        description="Tracker-assigned identifier, e.g. 'believer-1'"
    )
    source_url: str = Field(
        description="The cited URL"
    )
    domain: str = Field(
        description="Lowercased hostname without 'www.'"
    )
    snippet: str = Field(
        default="",
        description="Excerpt supporting the citation"
    )
    credibility_score: int = Field(
        ge=0,
        le=100,
        description="Tier-based domain reputation (0-100)"
    )
    mentioned_by: MentionedBy = Field(
        description="Which side cited this source"
    )
    source_type: SourceType = Field(
        default=SourceType.UNKNOWN,
        description="Display grouping derived from the domain"
    )
    first_seen_at: str = Field(
        default_factory=_utcnow_iso,
        description="When the URL was first tracked"
    )


class ProviderCallResult(BaseModel):
    """One completed backend call, as returned by the LLM caller."""

    content: str
    provider_id: str
    model: str = ""
    tokens_used: int = 0
    retries: int = 0
    duration_ms: float = 0.0


class AgentResponse(BaseModel):
    """Output of one debate role. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: AgentRole = Field(
        description="Which role produced this response"
    )
    content: str = Field(
        description="The full argument or ruling text"
    )
    evidence: list[EvidenceItem] = Field(
        default_factory=list,
        description="Evidence items this role cited"
    )
    provider_used: str = Field(
        default="",
        description="Backend that produced the content"
    )
    model: str = Field(
        default="",
        description="Model name on that backend"
    )
    tokens_used: int = Field(
        default=0,
        ge=0,
        description="Tokens consumed by the backend call"
    )
    retries: int = Field(
        default=0,
        ge=0,
        description="Failed attempts before the successful call"
    )
    duration_ms: float = Field(
        default=0.0,
        description="Wall time of the backend call"
    )


class Verdict(BaseModel):
    """Structured ruling parsed from the Judge's text.

    ``confidence`` is the Judge's confidence that the claim is true:
    0 means certainly false, 50 genuinely conflicted, 100 certainly true.
    """

    label: VerdictLabel = VerdictLabel.UNPROVEN
    confidence: int = Field(default=50, ge=0, le=100)
    believer_strength: Strength = Strength.MODERATE
    skeptic_strength: Strength = Strength.MODERATE
    key_factors: list[str] = Field(default_factory=list, max_length=3)
    critical_gaps: str = ""
    harm_if_wrong: RiskLevel = RiskLevel.MEDIUM
    opportunity_if_wrong: RiskLevel = RiskLevel.MEDIUM
    risk_assessment: str = Field(
        default="medium",
        description="'high', 'medium' or 'low', derived from harm and opportunity"
    )
    parse_warnings: list[str] = Field(
        default_factory=list,
        description="Fields that fell back to their default value"
    )


class StageEvent(BaseModel):
    """Completion notification for one pipeline stage."""

    type: StageEventType
    stage: AgentRole
    response: AgentResponse
    verdict: Optional[Verdict] = None
    timestamp: str = Field(default_factory=_utcnow_iso)


class DebateResult(BaseModel):
    """Everything a finished debate hands back to its caller."""

    claim: str
    believer_response: AgentResponse
    skeptic_response: AgentResponse
    judge_response: AgentResponse
    verdict: Verdict
    evidence: list[EvidenceItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Main Debate State (TypedDict for LangGraph)
# ---------------------------------------------------------------------------


class DebateState(TypedDict, total=False):
    """State object that flows through the debate graph.

    Fields:
        claim: The validated claim under debate
        max_tokens: Token budget for each argument
        believer_response: Believer node output
        skeptic_response: Skeptic node output
        judge_response: Judge node output
        verdict: Parsed Judge ruling
        stage_trail: Stage transitions in the order they happened

    Example:
        state: DebateState = {
            "claim": "Remote work increases productivity",
            "max_tokens": 2500,
            "stage_trail": [],
        }
    """

    # Input
    claim: str
    max_tokens: int

    # Role outputs
    believer_response: AgentResponse
    skeptic_response: AgentResponse
    judge_response: AgentResponse
    verdict: Verdict

    # Believer and Skeptic may finish in the same step when run
    # concurrently, so transitions are appended rather than overwritten
    stage_trail: Annotated[list[str], operator.add]


# ---------------------------------------------------------------------------
# State Factory Functions
# ---------------------------------------------------------------------------


def create_initial_state(claim: str, max_tokens: int) -> DebateState:
    """Create an initial DebateState for a new debate.

    Args:
        claim: The validated claim
        max_tokens: Token budget per argument

    Returns:
        An initialized DebateState ready for the graph
    """
    return DebateState(
        claim=claim,
        max_tokens=max_tokens,
        stage_trail=[PipelineStage.INIT.value],
    )


def resolve_max_tokens(length: DebateLength | str | None) -> int:
    """Map a debate length to its token budget, defaulting to medium."""
    if length is None:
        return DEBATE_LENGTH_TOKENS[DebateLength.MEDIUM]
    try:
        return DEBATE_LENGTH_TOKENS[DebateLength(length)]
    except ValueError:
        return DEBATE_LENGTH_TOKENS[DebateLength.MEDIUM]
