"""Believer Agent for Crossfire.

The Believer builds the strongest supporting case for a claim. It searches
the web for supporting material, hands the top results to its backend
chain, and tracks both the search results and any sources its argument
cites as evidence.
"""

from typing import Sequence

from agents.evidence_tracker import EvidenceTracker
from agents.llm import LLMCaller
from agents.prompts import BELIEVER_SYSTEM_PROMPT, build_believer_prompt
from agents.verdict_parser import extract_citations
from graph.state import AgentResponse, AgentRole
from mcp_client import SearchResult, ToolClient
from utils.fallback import BackendConfig
from utils.resilience import get_logger

logger = get_logger("agents.believer")

BELIEVER_TEMPERATURE = 0.7
MAX_SEARCH_RESULTS = 5


def format_search_evidence(results: Sequence[SearchResult]) -> str:
    """Render search results as a numbered list for the prompt."""
    if not results:
        return "No evidence found"
    return "\n\n".join(
        f'{index}. "{result.title}" from {result.url}\n   Snippet: {result.content}'
        for index, result in enumerate(results[:MAX_SEARCH_RESULTS], start=1)
    )


async def run_believer(
    claim: str,
    llm: LLMCaller,
    tools: ToolClient,
    tracker: EvidenceTracker,
    *,
    chain: Sequence[BackendConfig],
    max_tokens: int,
    temperature: float = BELIEVER_TEMPERATURE,
) -> AgentResponse:
    """Argue for *claim*.

    Args:
        claim: The validated claim
        llm: Backend caller with fallback
        tools: Verification tool client
        tracker: Evidence tracker for this debate
        chain: Backend chain for the Believer
        max_tokens: Token budget for the argument
        temperature: Sampling temperature

    Returns:
        AgentResponse with the argument and the evidence it relied on

    Raises:
        AllBackendsExhaustedError: If no backend produced an argument
    """
    search = await tools.web_search(claim, max_results=MAX_SEARCH_RESULTS)
    results: list[SearchResult] = list(search.items[:MAX_SEARCH_RESULTS])
    if search.error:
        logger.info("believer_search_degraded", error=search.error)

    call = await llm.call(
        chain,
        BELIEVER_SYSTEM_PROMPT,
        build_believer_prompt(claim, format_search_evidence(results)),
        temperature,
        max_tokens,
    )

    citations = [(result.url, result.content) for result in results]
    citations += [(c.url, c.snippet) for c in extract_citations(call.content)]
    evidence = tracker.track_many(citations, AgentRole.BELIEVER)

    logger.info(
        "believer_completed",
        provider=call.provider_id,
        tokens=call.tokens_used,
        evidence_count=len(evidence),
        search_results=len(results),
    )

    return AgentResponse(
        role=AgentRole.BELIEVER,
        content=call.content,
        evidence=evidence,
        provider_used=call.provider_id,
        model=call.model,
        tokens_used=call.tokens_used,
        retries=call.retries,
        duration_ms=call.duration_ms,
    )
