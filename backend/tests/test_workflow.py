"""Tests for the debate orchestrator.

Drives the compiled LangGraph workflows with scripted backends and fake
tools: stage ordering, refusal aborts, verdict fallback, shared evidence
and the concurrent run mode.
"""

import asyncio
import sys
from pathlib import Path

import pytest
from structlog.testing import capture_logs

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from agents.evidence_tracker import EvidenceTracker  # noqa: E402
from conftest import (  # noqa: E402
    BELIEVER_ARGUMENT,
    JUDGE_RULING,
    ROLE_BY_PROMPT,
    SKEPTIC_ARGUMENT,
    ScriptedBackends,
    make_tool_client,
    single_backend_chains,
)
from graph.state import (  # noqa: E402
    AgentRole,
    DebateResult,
    MentionedBy,
    StageEventType,
    Strength,
    VerdictLabel,
)
from graph.workflow import DebateOrchestrator, ensure_not_refusal  # noqa: E402
from graph.state import AgentResponse  # noqa: E402
from utils.resilience import (  # noqa: E402
    AllBackendsExhaustedError,
    ExternalAPIError,
    RefusalDetectedError,
)

CLAIM = "Remote work increases productivity"


class RendezvousBackends(ScriptedBackends):
    """Scripted backends where the Believer and Skeptic wait for each other."""

    def __init__(self, **replies):
        super().__init__(**replies)
        self.started = {AgentRole.BELIEVER: asyncio.Event(), AgentRole.SKEPTIC: asyncio.Event()}

    @property
    def both_started(self) -> bool:
        return all(event.is_set() for event in self.started.values())

    async def __call__(self, backend, system_prompt, user_prompt, temperature, max_tokens):
        role = ROLE_BY_PROMPT[system_prompt]
        if role in self.started:
            self.started[role].set()
            other = AgentRole.SKEPTIC if role is AgentRole.BELIEVER else AgentRole.BELIEVER
            await asyncio.wait_for(self.started[other].wait(), timeout=2)
        return await super().__call__(backend, system_prompt, user_prompt, temperature, max_tokens)


async def collect(orchestrator: DebateOrchestrator, claim: str = CLAIM, tracker=None):
    return [event async for event in orchestrator.run_stream(claim, 1000, tracker=tracker)]


# ---------------------------------------------------------------------------
# Streaming mode
# ---------------------------------------------------------------------------


class TestRunStream:
    """Tests for the sequential, streamed pipeline."""

    @pytest.mark.asyncio
    async def test_emits_three_events_in_pipeline_order(self, make_orchestrator):
        orchestrator, _ = make_orchestrator()

        events = await collect(orchestrator)

        assert [e.type for e in events] == [
            StageEventType.BELIEVER_COMPLETE,
            StageEventType.SKEPTIC_COMPLETE,
            StageEventType.JUDGE_COMPLETE,
        ]
        assert [e.stage for e in events] == [AgentRole.BELIEVER, AgentRole.SKEPTIC, AgentRole.JUDGE]

    @pytest.mark.asyncio
    async def test_backends_called_in_order(self, make_orchestrator):
        orchestrator, backends = make_orchestrator()

        await collect(orchestrator)

        assert [role for role, _ in backends.calls] == [
            AgentRole.BELIEVER,
            AgentRole.SKEPTIC,
            AgentRole.JUDGE,
        ]

    @pytest.mark.asyncio
    async def test_only_judge_event_carries_verdict(self, make_orchestrator):
        orchestrator, _ = make_orchestrator()

        believer, skeptic, judge = await collect(orchestrator)

        assert believer.verdict is None
        assert skeptic.verdict is None
        assert judge.verdict is not None
        assert judge.verdict.label is VerdictLabel.PARTIALLY_SUPPORTED
        assert judge.verdict.confidence == 62
        assert judge.response.content == JUDGE_RULING

    @pytest.mark.asyncio
    async def test_responses_report_provider(self, make_orchestrator):
        orchestrator, _ = make_orchestrator()

        believer, skeptic, judge = await collect(orchestrator)

        assert believer.response.provider_used == "openai"
        assert skeptic.response.provider_used == "anthropic"
        assert judge.response.provider_used == "gemini"
        assert believer.response.tokens_used > 0

    @pytest.mark.asyncio
    async def test_shared_citation_is_one_item_cited_by_both(self, make_orchestrator):
        """Both sides citing https://nih.gov/study1 yields one item, Both, score 90."""
        orchestrator, _ = make_orchestrator()
        tracker = EvidenceTracker()

        await collect(orchestrator, tracker=tracker)

        evidence = tracker.all()
        assert len(evidence) == 1
        assert evidence[0].source_url == "https://nih.gov/study1"
        assert evidence[0].mentioned_by is MentionedBy.BOTH
        assert evidence[0].credibility_score == 90

    @pytest.mark.asyncio
    async def test_judge_without_confidence_defaults_and_completes(self, make_orchestrator):
        orchestrator, _ = make_orchestrator(
            judge="**VERDICT**: Claim Supported\n\nThe Believer made the stronger case."
        )

        events = await collect(orchestrator)

        assert len(events) == 3
        verdict = events[-1].verdict
        assert verdict.confidence == 50
        assert verdict.label is VerdictLabel.UNPROVEN
        assert "confidence" in verdict.parse_warnings

    @pytest.mark.asyncio
    async def test_unstructured_judge_output_never_aborts(self, make_orchestrator):
        orchestrator, _ = make_orchestrator(judge="I cannot decide this one.")

        events = await collect(orchestrator)

        verdict = events[-1].verdict
        assert verdict.label is VerdictLabel.UNPROVEN
        assert verdict.believer_strength is Strength.MODERATE

    @pytest.mark.asyncio
    async def test_believer_refusal_aborts_before_any_event(self, make_orchestrator):
        orchestrator, backends = make_orchestrator(believer="I cannot help with that.")
        events = []

        with pytest.raises(RefusalDetectedError) as exc_info:
            async for event in orchestrator.run_stream(CLAIM, 1000):
                events.append(event)

        assert events == []
        assert exc_info.value.stage == "believer"
        assert exc_info.value.details["stage"] == "believer"
        assert backends.calls_for(AgentRole.SKEPTIC) == []
        assert backends.calls_for(AgentRole.JUDGE) == []

    @pytest.mark.asyncio
    async def test_skeptic_refusal_aborts_after_believer_event(self, make_orchestrator):
        orchestrator, backends = make_orchestrator(skeptic="As an AI, I cannot argue against this.")
        events = []

        with pytest.raises(RefusalDetectedError) as exc_info:
            async for event in orchestrator.run_stream(CLAIM, 1000):
                events.append(event)

        assert [e.type for e in events] == [StageEventType.BELIEVER_COMPLETE]
        assert exc_info.value.stage == "skeptic"
        assert backends.calls_for(AgentRole.JUDGE) == []

    @pytest.mark.asyncio
    async def test_abort_is_logged_with_failed_stage(self, make_orchestrator):
        orchestrator, _ = make_orchestrator(skeptic="I cannot argue against this.")

        with capture_logs() as logs:
            with pytest.raises(RefusalDetectedError):
                await collect(orchestrator)

        aborted = [entry for entry in logs if entry["event"] == "debate_aborted"]
        assert len(aborted) == 1
        assert aborted[0]["stage"] == "aborted"
        assert aborted[0]["failed_stage"] == "skeptic"
        assert aborted[0]["error_type"] == "RefusalDetectedError"

    @pytest.mark.asyncio
    async def test_rebuttal_language_is_not_a_refusal(self, make_orchestrator):
        orchestrator, _ = make_orchestrator(
            skeptic="The data cannot support this conclusion, and I cannot see why it would."
        )

        events = await collect(orchestrator)

        assert len(events) == 3

    @pytest.mark.asyncio
    async def test_exhausted_backends_abort_the_run(self, make_orchestrator):
        orchestrator, backends = make_orchestrator(believer=ExternalAPIError("backend down"))

        with pytest.raises(AllBackendsExhaustedError):
            await collect(orchestrator)

        assert backends.calls_for(AgentRole.BELIEVER) == ["openai"] * 3
        assert backends.calls_for(AgentRole.SKEPTIC) == []

    @pytest.mark.asyncio
    async def test_each_call_starts_a_fresh_run(self, make_orchestrator):
        orchestrator, backends = make_orchestrator()

        first = await collect(orchestrator)
        second = await collect(orchestrator)

        assert len(first) == len(second) == 3
        assert len(backends.calls) == 6


# ---------------------------------------------------------------------------
# Concurrent mode
# ---------------------------------------------------------------------------


class TestRun:
    """Tests for the concurrent, blocking pipeline."""

    @pytest.mark.asyncio
    async def test_returns_full_debate_result(self, make_orchestrator):
        orchestrator, _ = make_orchestrator()

        result = await orchestrator.run(CLAIM, 2500)

        assert isinstance(result, DebateResult)
        assert result.claim == CLAIM
        assert result.believer_response.role is AgentRole.BELIEVER
        assert result.skeptic_response.role is AgentRole.SKEPTIC
        assert result.judge_response.role is AgentRole.JUDGE
        assert result.verdict.confidence == 62

    @pytest.mark.asyncio
    async def test_judge_runs_last(self, make_orchestrator):
        orchestrator, backends = make_orchestrator()

        await orchestrator.run(CLAIM, 2500)

        roles = [role for role, _ in backends.calls]
        assert roles[-1] is AgentRole.JUDGE
        assert set(roles[:2]) == {AgentRole.BELIEVER, AgentRole.SKEPTIC}

    @pytest.mark.asyncio
    async def test_believer_and_skeptic_overlap(self, make_llm):
        backends = RendezvousBackends(
            believer=BELIEVER_ARGUMENT, skeptic=SKEPTIC_ARGUMENT, judge=JUDGE_RULING
        )
        orchestrator = DebateOrchestrator(
            llm=make_llm(backends, max_retries_per_backend=1),
            tools=make_tool_client(),
            chains=single_backend_chains(),
        )

        result = await orchestrator.run(CLAIM, 2500)

        # Each side waits for the other to start, so a sequential run would time out
        assert result.verdict.confidence == 62
        assert backends.both_started

    @pytest.mark.asyncio
    async def test_shared_citation_promoted_in_concurrent_mode(self, make_orchestrator):
        orchestrator, _ = make_orchestrator()

        result = await orchestrator.run(CLAIM, 2500)

        assert len(result.evidence) == 1
        assert result.evidence[0].mentioned_by is MentionedBy.BOTH
        assert result.evidence[0].credibility_score == 90

    @pytest.mark.asyncio
    async def test_refusal_detected_after_both_sides_ran(self, make_orchestrator):
        orchestrator, backends = make_orchestrator(believer="I'm unable to argue for this claim.")

        with pytest.raises(RefusalDetectedError) as exc_info:
            await orchestrator.run(CLAIM, 2500)

        assert exc_info.value.stage == "believer"
        # No short-circuit: the Skeptic still ran, the Judge never did
        assert backends.calls_for(AgentRole.SKEPTIC) == ["anthropic"]
        assert backends.calls_for(AgentRole.JUDGE) == []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestEnsureNotRefusal:
    """Tests for the refusal gate applied to agent responses."""

    def _response(self, content: str) -> AgentResponse:
        return AgentResponse(role=AgentRole.SKEPTIC, content=content, provider_used="openai")

    def test_passes_argument(self):
        ensure_not_refusal(AgentRole.SKEPTIC, self._response("The evidence is thin."))

    def test_raises_with_truncated_content(self):
        content = "I cannot do that. " + "x" * 500

        with pytest.raises(RefusalDetectedError) as exc_info:
            ensure_not_refusal(AgentRole.SKEPTIC, self._response(content))

        assert exc_info.value.stage == "skeptic"
        assert len(exc_info.value.details["content"]) == 200

    def test_empty_content_is_refusal(self):
        with pytest.raises(RefusalDetectedError):
            ensure_not_refusal(AgentRole.SKEPTIC, self._response("   "))
