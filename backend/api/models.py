"""Pydantic models for the Crossfire API request/response bodies.

This module defines the request and response contracts of the FastAPI
endpoints and the named Server-Sent Event frames of the debate stream.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from graph.state import DebateLength, DebateResult, EvidenceItem


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------


class DebateRequest(BaseModel):
    """Request body for a blocking debate run.

    Attributes:
        claim: The claim to debate. Length bounds are enforced by
            ``validate_claim`` after sanitization, not here, so the API
            reports them with the same message on every endpoint.
        debate_length: Token budget preset for each argument.
    """

    claim: str = Field(
        ...,
        description="The factual claim to debate"
    )
    debate_length: DebateLength = Field(
        default=DebateLength.MEDIUM,
        alias="debateLength",
        description="Argument length: short, medium or long"
    )

    model_config = {"populate_by_name": True}

    @field_validator("claim")
    @classmethod
    def validate_claim_text(cls, v: str) -> str:
        """Strip surrounding whitespace."""
        return v.strip()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------


class VerdictResponse(BaseModel):
    """Verdict projection returned by the blocking endpoint."""

    verdict: str
    confidence: int
    risk_assessment: str
    believer_strength: str
    skeptic_strength: str
    harm_if_wrong: str
    opportunity_if_wrong: str
    key_factors: list[str] = Field(default_factory=list)
    critical_gaps: str = ""


class ArgumentResponse(BaseModel):
    """One side's argument with the backend that produced it."""

    content: str
    provider_used: str
    model: str = ""
    tokens_used: int = 0
    evidence_count: int = 0


class DebateResponse(BaseModel):
    """Response containing a completed debate.

    Attributes:
        claim: The debated claim.
        believer: Believer argument.
        skeptic: Skeptic argument.
        judge: Judge ruling text.
        verdict: Parsed verdict.
        evidence: Every tracked evidence item.
    """

    claim: str
    believer: ArgumentResponse
    skeptic: ArgumentResponse
    judge: ArgumentResponse
    verdict: VerdictResponse
    evidence: list[EvidenceItem] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: DebateResult) -> "DebateResponse":
        """Project a DebateResult onto the response contract."""

        def argument(response) -> ArgumentResponse:
            return ArgumentResponse(
                content=response.content,
                provider_used=response.provider_used,
                model=response.model,
                tokens_used=response.tokens_used,
                evidence_count=len(response.evidence),
            )

        verdict = result.verdict
        return cls(
            claim=result.claim,
            believer=argument(result.believer_response),
            skeptic=argument(result.skeptic_response),
            judge=argument(result.judge_response),
            verdict=VerdictResponse(
                verdict=verdict.label.value,
                confidence=verdict.confidence,
                risk_assessment=verdict.risk_assessment,
                believer_strength=verdict.believer_strength.value,
                skeptic_strength=verdict.skeptic_strength.value,
                harm_if_wrong=verdict.harm_if_wrong.value,
                opportunity_if_wrong=verdict.opportunity_if_wrong.value,
                key_factors=list(verdict.key_factors),
                critical_gaps=verdict.critical_gaps,
            ),
            evidence=list(result.evidence),
        )


class ToolQuotaStatus(BaseModel):
    """Remaining budget for one external tool."""

    tool: str
    limit: int
    window_seconds: float
    used: int
    remaining: int
    reset_in_seconds: float


class QuotaResponse(BaseModel):
    """Response for the quota endpoint."""

    tools: list[ToolQuotaStatus] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status ('ok' or 'degraded').
        version: API version.
        timestamp: Current server time.
        dependencies: Status of dependent services.
    """

    status: str = Field(
        default="ok",
        description="Service status"
    )
    version: str = Field(
        default="1.0.0",
        description="API version"
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="Current server time"
    )
    dependencies: dict = Field(
        default_factory=dict,
        description="Health status of dependencies"
    )


class ErrorResponse(BaseModel):
    """Standard error response.

    Attributes:
        error: Error type/code.
        message: Human-readable error message.
        detail: Additional error details.
    """

    error: str = Field(
        description="Error type or code"
    )
    message: str = Field(
        description="Human-readable error message"
    )
    detail: Optional[str] = Field(
        default=None,
        description="Additional error details"
    )


# ---------------------------------------------------------------------------
# SSE Event Models
# ---------------------------------------------------------------------------


class SSEEventType(str, Enum):
    """Named events of the debate stream."""

    BELIEVER_TOKEN = "believer_token"
    BELIEVER_EVIDENCE = "believer_evidence"
    SKEPTIC_TOKEN = "skeptic_token"
    SKEPTIC_EVIDENCE = "skeptic_evidence"
    JUDGE_COMPLETE = "judge_complete"
    EVIDENCE_SUMMARY = "evidence_summary"
    ERROR = "error"


class SSEEvent(BaseModel):
    """Server-Sent Event frame.

    Attributes:
        type: The event name.
        data: Event-specific JSON payload.
    """

    type: SSEEventType = Field(
        description="Event type"
    )
    data: dict = Field(
        default_factory=dict,
        description="Event payload"
    )

    def to_sse_format(self) -> str:
        """Format as a named SSE frame: ``event: <name>\\ndata: <json>\\n\\n``."""
        payload = json.dumps(self.data, ensure_ascii=False, separators=(",", ":"))
        return f"event: {self.type.value}\ndata: {payload}\n\n"
