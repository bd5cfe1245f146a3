"""LangGraph workflow for the Crossfire debate pipeline.

This module assembles the Believer, Skeptic and Judge into LangGraph
StateGraphs and exposes them through ``DebateOrchestrator``.

Two graphs are compiled:
- Sequential: believer -> skeptic -> judge, streamed one stage at a time.
  A refusal from the Believer or Skeptic aborts the run immediately.
- Concurrent: believer and skeptic fan out from START and join into the
  judge. Both arguments always run; refusals are caught at the judge,
  before any ruling is requested.

The evidence tracker for a run travels in the run config
(``configurable.tracker``) so nodes share it without putting it in state.
"""

from typing import AsyncIterator, Optional

import structlog
from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, START, StateGraph

from agents.believer import run_believer
from agents.evidence_tracker import EvidenceTracker
from agents.judge import run_judge
from agents.llm import LLMCaller, build_chain
from agents.skeptic import run_skeptic
from config import config as app_config
from graph.refusal import is_refusal
from graph.state import (
    DEBATE_LENGTH_TOKENS,
    AgentResponse,
    AgentRole,
    DebateLength,
    DebateResult,
    DebateState,
    PipelineStage,
    StageEvent,
    StageEventType,
    create_initial_state,
)
from mcp_client import ToolClient
from utils.fallback import BackendConfig
from utils.logging import debate_logger
from utils.resilience import DebateError, RefusalDetectedError

logger = structlog.get_logger(__name__)

DEFAULT_MAX_TOKENS = DEBATE_LENGTH_TOKENS[DebateLength.MEDIUM]

_STAGE_EVENTS = {
    "believer": (AgentRole.BELIEVER, StageEventType.BELIEVER_COMPLETE, "believer_response"),
    "skeptic": (AgentRole.SKEPTIC, StageEventType.SKEPTIC_COMPLETE, "skeptic_response"),
    "judge": (AgentRole.JUDGE, StageEventType.JUDGE_COMPLETE, "judge_response"),
}


def default_chains() -> dict[AgentRole, list[BackendConfig]]:
    """Backend chain per role from configuration."""
    return {
        AgentRole.BELIEVER: build_chain(app_config.believer_chain),
        AgentRole.SKEPTIC: build_chain(app_config.skeptic_chain),
        AgentRole.JUDGE: build_chain(app_config.judge_chain),
    }


def ensure_not_refusal(role: AgentRole, response: AgentResponse) -> None:
    """Raise RefusalDetectedError if *response* declines to argue."""
    if is_refusal(response.content):
        logger.warning(
            "refusal_detected",
            stage=role.value,
            provider=response.provider_used,
            content=response.content.strip()[:100],
        )
        raise RefusalDetectedError(role.value, response.content)


def _tracker_from(config: RunnableConfig) -> EvidenceTracker:
    tracker = (config or {}).get("configurable", {}).get("tracker")
    if tracker is None:
        raise RuntimeError("Debate run config is missing its evidence tracker")
    return tracker


class DebateOrchestrator:
    """Runs the three-stage debate over a claim.

    Collaborators are injected so tests can substitute backends and tools.

    Example:
        orchestrator = DebateOrchestrator()

        async for event in orchestrator.run_stream("Remote work increases productivity"):
            print(event.type, event.response.provider_used)

        result = await orchestrator.run("Remote work increases productivity")
    """

    def __init__(
        self,
        llm: Optional[LLMCaller] = None,
        tools: Optional[ToolClient] = None,
        chains: Optional[dict[AgentRole, list[BackendConfig]]] = None,
    ):
        self.llm = llm or LLMCaller()
        self.tools = tools or ToolClient()
        self.chains = chains if chains is not None else default_chains()
        self._sequential = self._create_workflow(concurrent=False)
        self._concurrent = self._create_workflow(concurrent=True)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def _believer_node(self, check_refusal: bool):
        async def believer(state: DebateState, config: RunnableConfig) -> dict:
            response = await run_believer(
                state["claim"],
                self.llm,
                self.tools,
                _tracker_from(config),
                chain=self.chains.get(AgentRole.BELIEVER, []),
                max_tokens=state["max_tokens"],
            )
            if check_refusal:
                ensure_not_refusal(AgentRole.BELIEVER, response)
            return {
                "believer_response": response,
                "stage_trail": [
                    PipelineStage.BELIEVER_RUNNING.value,
                    PipelineStage.BELIEVER_DONE.value,
                ],
            }

        return believer

    def _skeptic_node(self, check_refusal: bool):
        async def skeptic(state: DebateState, config: RunnableConfig) -> dict:
            response = await run_skeptic(
                state["claim"],
                self.llm,
                self.tools,
                _tracker_from(config),
                chain=self.chains.get(AgentRole.SKEPTIC, []),
                max_tokens=state["max_tokens"],
            )
            if check_refusal:
                ensure_not_refusal(AgentRole.SKEPTIC, response)
            return {
                "skeptic_response": response,
                "stage_trail": [
                    PipelineStage.SKEPTIC_RUNNING.value,
                    PipelineStage.SKEPTIC_DONE.value,
                ],
            }

        return skeptic

    def _judge_node(self, check_refusals: bool):
        async def judge(state: DebateState) -> dict:
            believer_response = state["believer_response"]
            skeptic_response = state["skeptic_response"]
            if check_refusals:
                ensure_not_refusal(AgentRole.BELIEVER, believer_response)
                ensure_not_refusal(AgentRole.SKEPTIC, skeptic_response)

            response, verdict = await run_judge(
                state["claim"],
                believer_response.content,
                skeptic_response.content,
                self.llm,
                chain=self.chains.get(AgentRole.JUDGE, []),
                max_tokens=state["max_tokens"],
            )
            return {
                "judge_response": response,
                "verdict": verdict,
                "stage_trail": [
                    PipelineStage.JUDGE_RUNNING.value,
                    PipelineStage.JUDGE_DONE.value,
                ],
            }

        return judge

    # ------------------------------------------------------------------
    # Graph assembly
    # ------------------------------------------------------------------

    def _create_workflow(self, concurrent: bool):
        """Build and compile one debate graph.

        Args:
            concurrent: Fan Believer and Skeptic out in parallel, deferring
                refusal checks to the judge node.

        Returns:
            Compiled StateGraph ready for invocation.
        """
        workflow = StateGraph(DebateState)

        workflow.add_node("believer", self._believer_node(check_refusal=not concurrent))
        workflow.add_node("skeptic", self._skeptic_node(check_refusal=not concurrent))
        workflow.add_node("judge", self._judge_node(check_refusals=concurrent))

        if concurrent:
            workflow.add_edge(START, "believer")
            workflow.add_edge(START, "skeptic")
            # Judge waits for both arguments
            workflow.add_edge(["believer", "skeptic"], "judge")
        else:
            workflow.add_edge(START, "believer")
            workflow.add_edge("believer", "skeptic")
            workflow.add_edge("skeptic", "judge")

        workflow.add_edge("judge", END)

        app = workflow.compile()
        logger.debug("workflow_created", concurrent=concurrent)
        return app

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run_stream(
        self,
        claim: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        tracker: Optional[EvidenceTracker] = None,
    ) -> AsyncIterator[StageEvent]:
        """Run the debate stage by stage.

        Yields exactly three events, Believer then Skeptic then Judge,
        each as soon as its stage completes. Each call starts a fresh run.

        Args:
            claim: A claim already validated by the caller
            max_tokens: Token budget per argument
            tracker: Evidence tracker for this run (a new one if omitted);
                pass one in to read the evidence after the run

        Raises:
            RefusalDetectedError: If the Believer or Skeptic refused
            AllBackendsExhaustedError: If a stage ran out of backends
        """
        tracker = tracker if tracker is not None else EvidenceTracker()
        run_config: RunnableConfig = {"configurable": {"tracker": tracker}}

        log = debate_logger(__name__, "stream")
        log.info("debate_started", claim=claim, max_tokens=max_tokens)

        try:
            async for update in self._sequential.astream(
                create_initial_state(claim, max_tokens),
                config=run_config,
                stream_mode="updates",
            ):
                for node_name, values in update.items():
                    if node_name not in _STAGE_EVENTS or not values:
                        continue
                    role, event_type, response_key = _STAGE_EVENTS[node_name]
                    response = values[response_key]
                    log.info(
                        "stage_completed",
                        stage=role.value,
                        provider=response.provider_used,
                        tokens=response.tokens_used,
                        evidence_count=len(response.evidence),
                    )
                    yield StageEvent(
                        type=event_type,
                        stage=role,
                        response=response,
                        verdict=values.get("verdict"),
                    )
        except DebateError as e:
            log.error(
                "debate_aborted",
                stage=PipelineStage.ABORTED.value,
                error_type=type(e).__name__,
                error=e.message[:200],
                failed_stage=e.details.get("stage"),
            )
            raise

        log.info("debate_completed", claim=claim, evidence_count=len(tracker))

    async def run(
        self,
        claim: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        tracker: Optional[EvidenceTracker] = None,
    ) -> DebateResult:
        """Run the debate with Believer and Skeptic in parallel.

        Refusals are not short-circuited: both arguments always complete,
        then a refusal from either aborts before the Judge is called.

        Args:
            claim: A claim already validated by the caller
            max_tokens: Token budget per argument
            tracker: Evidence tracker for this run (a new one if omitted)

        Returns:
            DebateResult with all three responses, the verdict and evidence

        Raises:
            RefusalDetectedError: If the Believer or Skeptic refused
            AllBackendsExhaustedError: If a stage ran out of backends
        """
        tracker = tracker if tracker is not None else EvidenceTracker()
        run_config: RunnableConfig = {"configurable": {"tracker": tracker}}

        log = debate_logger(__name__, "concurrent")
        log.info("debate_started", claim=claim, max_tokens=max_tokens)

        try:
            final_state = await self._concurrent.ainvoke(
                create_initial_state(claim, max_tokens),
                config=run_config,
            )
        except DebateError as e:
            log.error(
                "debate_aborted",
                stage=PipelineStage.ABORTED.value,
                error_type=type(e).__name__,
                error=e.message[:200],
                failed_stage=e.details.get("stage"),
            )
            raise

        result = DebateResult(
            claim=claim,
            believer_response=final_state["believer_response"],
            skeptic_response=final_state["skeptic_response"],
            judge_response=final_state["judge_response"],
            verdict=final_state["verdict"],
            evidence=tracker.all(),
        )
        log.info(
            "debate_completed",
            claim=claim[:100],
            verdict=result.verdict.label.value,
            confidence=result.verdict.confidence,
            evidence_count=len(result.evidence),
        )
        return result
