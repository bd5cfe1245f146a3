"""Graph modules for the Crossfire debate workflow.

This package contains the debate state definitions, refusal detection,
and the LangGraph workflow that sequences the three roles.

Modules:
- state: DebateState TypedDict and the Pydantic models it carries
- refusal: Anchored refusal classification for agent output
- workflow: DebateOrchestrator and its compiled StateGraphs

Note: workflow imports are deferred to avoid circular imports with agents.
Use explicit imports: `from graph.workflow import DebateOrchestrator`
"""

from graph.refusal import is_refusal
from graph.state import (
    DEBATE_LENGTH_TOKENS,
    AgentResponse,
    AgentRole,
    DebateLength,
    DebateResult,
    DebateState,
    EvidenceItem,
    MentionedBy,
    PipelineStage,
    ProviderCallResult,
    RiskLevel,
    SourceType,
    StageEvent,
    StageEventType,
    Strength,
    Verdict,
    VerdictLabel,
    create_initial_state,
    resolve_max_tokens,
)

__all__ = [
    # State
    "DebateState",
    "AgentRole",
    "MentionedBy",
    "SourceType",
    "VerdictLabel",
    "Strength",
    "RiskLevel",
    "PipelineStage",
    "StageEventType",
    "DebateLength",
    "DEBATE_LENGTH_TOKENS",
    "EvidenceItem",
    "ProviderCallResult",
    "AgentResponse",
    "Verdict",
    "StageEvent",
    "DebateResult",
    "create_initial_state",
    "resolve_max_tokens",
    # Refusal
    "is_refusal",
]
