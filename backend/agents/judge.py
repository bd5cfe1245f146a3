"""Judge Agent for Crossfire.

The Judge reads both arguments and rules on the claim. Its output is parsed
into a ``Verdict``; an unreadable ruling degrades to default values rather
than failing the debate.
"""

from typing import Sequence

from agents.llm import LLMCaller
from agents.prompts import JUDGE_SYSTEM_PROMPT, build_judge_prompt
from agents.verdict_parser import parse_verdict
from graph.state import AgentResponse, AgentRole, Verdict
from utils.fallback import BackendConfig
from utils.resilience import get_logger

logger = get_logger("agents.judge")

JUDGE_TEMPERATURE = 0.3


async def run_judge(
    claim: str,
    believer_argument: str,
    skeptic_argument: str,
    llm: LLMCaller,
    *,
    chain: Sequence[BackendConfig],
    max_tokens: int,
    temperature: float = JUDGE_TEMPERATURE,
) -> tuple[AgentResponse, Verdict]:
    """Rule on *claim* given both arguments.

    Returns:
        The Judge's response and the verdict parsed from it

    Raises:
        AllBackendsExhaustedError: If no backend produced a ruling
    """
    call = await llm.call(
        chain,
        JUDGE_SYSTEM_PROMPT,
        build_judge_prompt(claim, believer_argument, skeptic_argument),
        temperature,
        max_tokens,
    )
    verdict = parse_verdict(call.content)

    logger.info(
        "judge_completed",
        provider=call.provider_id,
        tokens=call.tokens_used,
        verdict=verdict.label.value,
        confidence=verdict.confidence,
        parse_warnings=verdict.parse_warnings,
    )

    response = AgentResponse(
        role=AgentRole.JUDGE,
        content=call.content,
        provider_used=call.provider_id,
        model=call.model,
        tokens_used=call.tokens_used,
        retries=call.retries,
        duration_ms=call.duration_ms,
    )
    return response, verdict
