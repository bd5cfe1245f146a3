"""API routes for the Crossfire debate engine.

This module defines the HTTP endpoints for streamed and blocking debates,
tool quota reporting, and health checks.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from api.models import (
    DebateRequest,
    DebateResponse,
    ErrorResponse,
    HealthResponse,
    QuotaResponse,
    ToolQuotaStatus,
)
from api.streaming import create_sse_response
from config import config
from graph.state import DebateLength, resolve_max_tokens
from graph.workflow import DebateOrchestrator
from middleware.sanitization import sanitize_claim
from utils.resilience import (
    AllBackendsExhaustedError,
    InvalidInputError,
    RefusalDetectedError,
    validate_claim,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

_orchestrator: Optional[DebateOrchestrator] = None


def get_orchestrator() -> DebateOrchestrator:
    """Get or create the shared DebateOrchestrator.

    The orchestrator holds no per-debate state, so one instance serves
    every request.
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = DebateOrchestrator()
    return _orchestrator


def prepare_claim(raw_claim: str) -> str:
    """Sanitize and validate a claim, mapping failures to HTTP 400."""
    try:
        return validate_claim(sanitize_claim(raw_claim))
    except InvalidInputError as e:
        logger.info("claim_rejected", reason=e.message, length=len(raw_claim or ""))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )


# ---------------------------------------------------------------------------
# Debate Endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/debate/stream",
    response_class=StreamingResponse,
    responses={
        200: {"description": "SSE event stream"},
        400: {"model": ErrorResponse, "description": "Invalid claim"},
    },
    summary="Stream a debate",
    description="Run a debate and stream arguments, verdict and evidence as Server-Sent Events.",
)
async def stream_debate(
    claim: str = Query(..., description="The claim to debate"),
    debate_length: DebateLength = Query(DebateLength.MEDIUM, alias="debateLength"),
    orchestrator: DebateOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream a debate over *claim*.

    The claim is validated before the stream opens, so an invalid claim
    gets a 400 instead of an ``error`` frame. Failures during the debate
    arrive as a terminal ``error`` frame.

    Args:
        claim: The claim to debate.
        debate_length: Argument length preset.
        orchestrator: Injected orchestrator.

    Returns:
        SSE stream of debate events.
    """
    claim = prepare_claim(claim)
    max_tokens = resolve_max_tokens(debate_length)

    logger.info(
        "debate_stream_requested",
        claim=claim[:100],
        debate_length=debate_length.value,
        max_tokens=max_tokens,
    )
    return create_sse_response(orchestrator, claim, max_tokens)


@router.post(
    "/debate",
    response_model=DebateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid claim"},
        502: {"model": ErrorResponse, "description": "An agent refused to argue"},
        503: {"model": ErrorResponse, "description": "No language model backend available"},
    },
    summary="Run a debate",
    description="Run a debate with both arguments in parallel and return the full result.",
)
async def run_debate(
    request: DebateRequest,
    orchestrator: DebateOrchestrator = Depends(get_orchestrator),
) -> DebateResponse:
    """Run a blocking debate over the requested claim.

    Args:
        request: Claim and debate length.
        orchestrator: Injected orchestrator.

    Returns:
        The completed debate.

    Raises:
        HTTPException: 400 for an invalid claim, 502 on refusal,
            503 when every backend is exhausted.
    """
    claim = prepare_claim(request.claim)
    max_tokens = resolve_max_tokens(request.debate_length)

    try:
        result = await orchestrator.run(claim, max_tokens)
    except RefusalDetectedError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": e.message, "stage": e.stage},
        )
    except AllBackendsExhaustedError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.message,
        )

    return DebateResponse.from_result(result)


# ---------------------------------------------------------------------------
# Status Endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/quota",
    response_model=QuotaResponse,
    summary="Tool quotas",
    description="Remaining request budget per external verification tool.",
)
async def get_quota(
    orchestrator: DebateOrchestrator = Depends(get_orchestrator),
) -> QuotaResponse:
    """Report the sliding-window quota of each tool."""
    statuses = orchestrator.tools.quota_status()
    return QuotaResponse(
        tools=[ToolQuotaStatus(tool=tool, **values) for tool, values in statuses.items()]
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check API health and which backends and tools are configured.",
)
async def health_check() -> HealthResponse:
    """Check API health status.

    Returns:
        Health status; ``degraded`` when no LLM backend is configured.
    """
    backends = sorted(config.backend_keys())
    dependencies = {
        "backends": backends,
        "tools": {
            "web_search": bool(config.tavily_api_key),
            "fact_check": bool(config.fact_check_api_key),
            "archive": True,
            "whois": bool(config.whois_api_key),
        },
    }
    return HealthResponse(
        status="ok" if backends else "degraded",
        dependencies=dependencies,
    )
