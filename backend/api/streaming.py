"""SSE streaming of debate progress.

This module is the serialization boundary between the orchestrator and a
browser: it turns each stage event into named Server-Sent Event frames
and holds no debate logic of its own.

Frame order for one debate:
1. ``believer_evidence`` per Believer evidence item, then ``believer_token``
   per word of the Believer argument
2. The same for the Skeptic (``skeptic_evidence``, ``skeptic_token``)
3. ``judge_complete`` with the parsed verdict
4. ``evidence_summary`` over the whole evidence set

An aborted debate ends with a single ``error`` frame instead.
"""

import asyncio
from collections.abc import AsyncGenerator, Iterator
from typing import Optional

import structlog
from fastapi.responses import StreamingResponse

from agents.evidence_tracker import EvidenceTracker
from api.models import SSEEvent, SSEEventType
from config import config
from graph.state import AgentRole, EvidenceItem, StageEvent, StageEventType, Verdict
from graph.workflow import DebateOrchestrator
from utils.resilience import DebateError

logger = structlog.get_logger(__name__)

SNIPPET_PREVIEW_LENGTH = 100
SUMMARY_TOP_SOURCES = 5

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}

_ROLE_EVENTS = {
    AgentRole.BELIEVER: (SSEEventType.BELIEVER_EVIDENCE, SSEEventType.BELIEVER_TOKEN),
    AgentRole.SKEPTIC: (SSEEventType.SKEPTIC_EVIDENCE, SSEEventType.SKEPTIC_TOKEN),
}


# ---------------------------------------------------------------------------
# Frame builders
# ---------------------------------------------------------------------------


def format_sse(event_type: SSEEventType | str, data: dict) -> str:
    """Format one named SSE frame."""
    return SSEEvent(type=SSEEventType(event_type), data=data).to_sse_format()


def evidence_payload(item: EvidenceItem) -> dict:
    """Wire payload of an evidence frame."""
    return {
        "url": item.source_url,
        "credibility": item.credibility_score,
        "snippet": item.snippet[:SNIPPET_PREVIEW_LENGTH],
        "domain": item.domain,
    }


def iter_tokens(content: str) -> Iterator[str]:
    """Split an argument into word tokens, each followed by a space."""
    for token in content.split(" "):
        yield token + " "


def judge_payload(verdict: Verdict) -> dict:
    """Wire payload of the ``judge_complete`` frame."""
    return {
        "verdict": verdict.label.value,
        "confidence": verdict.confidence,
        "riskAssessment": verdict.risk_assessment,
        "believerStrength": verdict.believer_strength.value,
        "skepticStrength": verdict.skeptic_strength.value,
        "harmIfWrong": verdict.harm_if_wrong.value,
        "opportunityIfWrong": verdict.opportunity_if_wrong.value,
        "keyFactors": list(verdict.key_factors),
        "criticalGaps": verdict.critical_gaps,
    }


def evidence_summary_payload(tracker: EvidenceTracker, top_n: int = SUMMARY_TOP_SOURCES) -> dict:
    """Wire payload of the ``evidence_summary`` frame."""
    summary = tracker.summary(top_n)
    return {
        "total": summary["total"],
        "byRole": summary["by_role"],
        "topSources": summary["top_sources"],
    }


def error_payload(error: Exception) -> dict:
    """Wire payload of the terminal ``error`` frame."""
    if isinstance(error, DebateError):
        payload = {"message": error.message}
        stage = error.details.get("stage")
        if stage:
            payload["stage"] = stage
        return payload
    return {"message": "Internal error while running the debate"}


def stage_frames(event: StageEvent) -> Iterator[str]:
    """All frames for one completed stage, in wire order."""
    if event.type is StageEventType.JUDGE_COMPLETE:
        if event.verdict is not None:
            yield format_sse(SSEEventType.JUDGE_COMPLETE, judge_payload(event.verdict))
        return

    evidence_event, token_event = _ROLE_EVENTS[event.stage]
    for item in event.response.evidence:
        yield format_sse(evidence_event, evidence_payload(item))
    for token in iter_tokens(event.response.content):
        yield format_sse(token_event, {"token": token})


# ---------------------------------------------------------------------------
# Debate streaming
# ---------------------------------------------------------------------------


async def stream_debate_events(
    orchestrator: DebateOrchestrator,
    claim: str,
    max_tokens: int,
    token_delay_ms: Optional[float] = None,
) -> AsyncGenerator[str, None]:
    """Run one debate and yield its SSE frames.

    Args:
        orchestrator: Orchestrator to run the debate with
        claim: Sanitized, validated claim
        max_tokens: Token budget per argument
        token_delay_ms: Pause between token frames (default from config)

    Yields:
        SSE-formatted frames. Errors end the stream with an ``error``
        frame rather than an exception.
    """
    delay = (config.stream_token_delay_ms if token_delay_ms is None else token_delay_ms) / 1000
    tracker = EvidenceTracker()
    frames_sent = 0

    try:
        async for event in orchestrator.run_stream(claim, max_tokens, tracker=tracker):
            for frame in stage_frames(event):
                yield frame
                frames_sent += 1
                if delay > 0 and event.type is not StageEventType.JUDGE_COMPLETE:
                    await asyncio.sleep(delay)

        yield format_sse(SSEEventType.EVIDENCE_SUMMARY, evidence_summary_payload(tracker))
        logger.info("stream_ended", frames=frames_sent + 1, evidence_count=len(tracker))

    except DebateError as e:
        logger.warning(
            "stream_aborted",
            error_type=type(e).__name__,
            error=e.message[:200],
            frames=frames_sent,
        )
        yield format_sse(SSEEventType.ERROR, error_payload(e))

    except asyncio.CancelledError:
        logger.info("stream_cancelled", frames=frames_sent)
        raise

    except Exception as e:
        logger.error("stream_error", error_type=type(e).__name__, error=str(e)[:200])
        yield format_sse(SSEEventType.ERROR, error_payload(e))


def create_sse_response(
    orchestrator: DebateOrchestrator,
    claim: str,
    max_tokens: int,
) -> StreamingResponse:
    """Create an SSE StreamingResponse for one debate.

    Args:
        orchestrator: Orchestrator to run the debate with
        claim: Sanitized, validated claim
        max_tokens: Token budget per argument

    Returns:
        FastAPI StreamingResponse configured for SSE.
    """
    return StreamingResponse(
        stream_debate_events(orchestrator, claim, max_tokens),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
