"""Skeptic Agent for Crossfire.

The Skeptic builds the strongest counter-case. It gathers counter-evidence
from published fact checks and, when the claim itself points at a web
page, from that page's archive history and domain registration. It never
sees the Believer's argument, so both sides can be argued concurrently.
"""

import asyncio
import re
from typing import Optional, Sequence

from agents.evidence_tracker import EvidenceTracker, extract_domain
from agents.llm import LLMCaller
from agents.prompts import SKEPTIC_SYSTEM_PROMPT, build_skeptic_prompt
from agents.verdict_parser import extract_citations
from graph.state import AgentResponse, AgentRole
from mcp_client import DomainInfo, ToolClient, ToolResult
from utils.fallback import BackendConfig
from utils.resilience import get_logger

logger = get_logger("agents.skeptic")

SKEPTIC_TEMPERATURE = 0.8
MAX_FACT_CHECKS = 3
LIMITED_EVIDENCE_NOTE = "Limited counter-evidence available - rely on logical analysis"

_CLAIM_URL_RE = re.compile(r"https?://[^\s<>\"']+", re.IGNORECASE)


def find_claim_url(claim: str) -> Optional[str]:
    """Return the first URL mentioned in *claim*, if any."""
    match = _CLAIM_URL_RE.search(claim)
    return match.group(0).rstrip(".,;:!?)") if match else None


def format_counter_evidence(
    fact_checks: ToolResult,
    archive: Optional[ToolResult] = None,
    whois: Optional[ToolResult] = None,
) -> str:
    """Summarize tool output for the Skeptic prompt."""
    parts = []

    if fact_checks.items:
        lines = [
            f'- "{fc.claim}" -> Rating: {fc.rating} ({fc.publisher})'
            for fc in fact_checks.items[:MAX_FACT_CHECKS]
        ]
        parts.append("Fact Checks:\n" + "\n".join(lines))

    if whois is not None and whois.items:
        info: DomainInfo = whois.items[0]
        parts.append(
            f"Domain Credibility: {round(info.credibility_score)}% "
            f"({info.domain} registered {info.age_in_days} days ago)"
        )

    if archive is not None and archive.items:
        parts.append(f"Historical snapshots available: {len(archive.items)} archives found")

    if not parts:
        parts.append(LIMITED_EVIDENCE_NOTE)

    return "\n\n".join(parts)


async def gather_counter_evidence(
    claim: str,
    tools: ToolClient,
) -> tuple[ToolResult, Optional[ToolResult], Optional[ToolResult]]:
    """Run the Skeptic's tools concurrently.

    Returns:
        (fact_checks, archive, whois); archive and whois are None unless
        the claim contains a URL
    """
    claim_url = find_claim_url(claim)
    if claim_url is None:
        return await tools.fact_check(claim), None, None

    fact_checks, archive, whois = await asyncio.gather(
        tools.fact_check(claim),
        tools.archive(claim_url),
        tools.whois(extract_domain(claim_url)),
    )
    return fact_checks, archive, whois


async def run_skeptic(
    claim: str,
    llm: LLMCaller,
    tools: ToolClient,
    tracker: EvidenceTracker,
    *,
    chain: Sequence[BackendConfig],
    max_tokens: int,
    temperature: float = SKEPTIC_TEMPERATURE,
) -> AgentResponse:
    """Argue against *claim*.

    Args:
        claim: The validated claim
        llm: Backend caller with fallback
        tools: Verification tool client
        tracker: Evidence tracker for this debate
        chain: Backend chain for the Skeptic
        max_tokens: Token budget for the argument
        temperature: Sampling temperature

    Returns:
        AgentResponse with the counter-argument and its evidence

    Raises:
        AllBackendsExhaustedError: If no backend produced an argument
    """
    fact_checks, archive, whois = await gather_counter_evidence(claim, tools)
    summary = format_counter_evidence(fact_checks, archive, whois)

    call = await llm.call(
        chain,
        SKEPTIC_SYSTEM_PROMPT,
        build_skeptic_prompt(claim, summary),
        temperature,
        max_tokens,
    )

    citations = [
        (fc.url, f"{fc.rating} ({fc.publisher})")
        for fc in fact_checks.items
        if fc.url
    ]
    citations += [(c.url, c.snippet) for c in extract_citations(call.content)]
    evidence = tracker.track_many(citations, AgentRole.SKEPTIC)

    logger.info(
        "skeptic_completed",
        provider=call.provider_id,
        tokens=call.tokens_used,
        evidence_count=len(evidence),
        fact_checks=len(fact_checks.items),
    )

    return AgentResponse(
        role=AgentRole.SKEPTIC,
        content=call.content,
        evidence=evidence,
        provider_used=call.provider_id,
        model=call.model,
        tokens_used=call.tokens_used,
        retries=call.retries,
        duration_ms=call.duration_ms,
    )
