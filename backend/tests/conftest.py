"""Shared fixtures and fakes for the Crossfire test suite.

No test contacts a real backend or tool: backends are scripted invoke
functions and tools are AsyncMocks plugged into a real ToolClient.
"""

import sys
from pathlib import Path
from typing import Callable, Optional
from unittest.mock import AsyncMock

import pytest

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from agents.llm import BackendReply, LLMCaller  # noqa: E402
from agents.prompts import (  # noqa: E402
    BELIEVER_SYSTEM_PROMPT,
    JUDGE_SYSTEM_PROMPT,
    SKEPTIC_SYSTEM_PROMPT,
)
from graph.state import AgentRole  # noqa: E402
from graph.workflow import DebateOrchestrator  # noqa: E402
from mcp_client import ARCHIVE, FACT_CHECK, WEB_SEARCH, WHOIS, ToolClient  # noqa: E402
from utils.cache import ToolResultCache  # noqa: E402
from utils.fallback import BackendConfig, ProviderFallbackExecutor  # noqa: E402
from utils.rate_limiter import QuotaGuard  # noqa: E402
from utils.resilience import ToolUnavailableError  # noqa: E402


JUDGE_RULING = """\
**VERDICT**: Claim Partially Supported
**CONFIDENCE SCORE**: 62
**STRENGTH OF BELIEVER CASE**: Strong
**STRENGTH OF SKEPTIC CASE**: Moderate
**KEY EVIDENCE FACTORS**:
1. Cohort data shows output gains for focused work
2. Most studies rely on self-reported productivity
3. Effects vary widely across industries
4. A fourth factor that should be dropped
**CRITICAL GAPS**: Few randomized trials measure output directly.
**RISK ASSESSMENT**:
If we acted on the Believer's position and they're wrong, what harm could result? Medium
If we rejected the Believer's position and they're right, what opportunity is lost? High
"""

BELIEVER_ARGUMENT = (
    "Remote work measurably boosts output. A cohort study at https://nih.gov/study1 "
    "tracked thousands of workers and found fewer interruptions."
)

SKEPTIC_ARGUMENT = (
    "The cohort data at https://nih.gov/study1 measures self-reported output only, "
    "so it cannot carry the weight the Believer puts on it."
)

ROLE_BY_PROMPT = {
    BELIEVER_SYSTEM_PROMPT: AgentRole.BELIEVER,
    SKEPTIC_SYSTEM_PROMPT: AgentRole.SKEPTIC,
    JUDGE_SYSTEM_PROMPT: AgentRole.JUDGE,
}


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class ScriptedBackends:
    """Backend invoke function that answers per role.

    Each role maps to a reply string or an exception instance; a list is
    consumed one entry per call (the last entry repeats). Every call is
    recorded as ``(role, backend_id)``.
    """

    def __init__(self, **replies):
        self.replies = {AgentRole(role): value for role, value in replies.items()}
        self.calls: list[tuple[AgentRole, str]] = []

    def calls_for(self, role: AgentRole) -> list[str]:
        return [backend for called_role, backend in self.calls if called_role is role]

    async def __call__(self, backend, system_prompt, user_prompt, temperature, max_tokens):
        role = ROLE_BY_PROMPT[system_prompt]
        self.calls.append((role, backend.backend_id))

        script = self.replies[role]
        if isinstance(script, list):
            index = len(self.calls_for(role)) - 1
            script = script[min(index, len(script) - 1)]
        if isinstance(script, Exception):
            raise script
        return BackendReply(text=script, tokens_used=len(script.split()))


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_tool_client(
    search_results: Optional[list] = None,
    fact_checks: Optional[list] = None,
    snapshots: Optional[list] = None,
    domain_info=None,
    quota_guard: Optional[QuotaGuard] = None,
) -> ToolClient:
    """Real ToolClient over AsyncMock tools, a fresh quota guard and cache."""
    impls = {
        WEB_SEARCH: AsyncMock(return_value=list(search_results or [])),
        FACT_CHECK: AsyncMock(return_value=list(fact_checks or [])),
        ARCHIVE: AsyncMock(return_value=list(snapshots or [])),
        WHOIS: (
            AsyncMock(return_value=domain_info)
            if domain_info is not None
            else AsyncMock(side_effect=ToolUnavailableError("WHOIS_API_KEY not configured"))
        ),
    }
    return ToolClient(
        quota_guard=quota_guard or QuotaGuard(),
        cache=ToolResultCache(ttl=300),
        impls=impls,
    )


def single_backend_chains() -> dict[AgentRole, list[BackendConfig]]:
    return {
        AgentRole.BELIEVER: [BackendConfig("openai", "gpt-test")],
        AgentRole.SKEPTIC: [BackendConfig("anthropic", "claude-test")],
        AgentRole.JUDGE: [BackendConfig("gemini", "gemini-test")],
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_llm(recording_sleep) -> Callable[[ScriptedBackends], LLMCaller]:
    """Build an LLMCaller over scripted backends that never really sleeps."""

    def factory(backends: ScriptedBackends, max_retries_per_backend: int = 3) -> LLMCaller:
        executor = ProviderFallbackExecutor(
            max_retries_per_backend=max_retries_per_backend,
            backoff_schedule=(1, 2, 4, 8),
            sleep=recording_sleep,
        )
        return LLMCaller(executor=executor, invoke=backends)

    return factory


@pytest.fixture
def make_orchestrator(make_llm):
    """Build a DebateOrchestrator over scripted backends and fake tools."""

    def factory(
        believer=BELIEVER_ARGUMENT,
        skeptic=SKEPTIC_ARGUMENT,
        judge=JUDGE_RULING,
        tools: Optional[ToolClient] = None,
    ) -> tuple[DebateOrchestrator, ScriptedBackends]:
        backends = ScriptedBackends(believer=believer, skeptic=skeptic, judge=judge)
        orchestrator = DebateOrchestrator(
            llm=make_llm(backends),
            tools=tools or make_tool_client(),
            chains=single_backend_chains(),
        )
        return orchestrator, backends

    return factory
