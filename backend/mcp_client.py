"""Unified Tool Client.

Provides one interface for agents to reach the external verification tools
(web search, fact check, archive, WHOIS) without knowing their APIs.

Every call goes through the same path:

1. A result cached for the same tool, input and options within the TTL
   is returned with ``cached=True``.
2. The quota guard checks and records the request in one step; if the
   tool has no capacity, an empty result with ``rate_limit.limited=True``
   is returned.
3. The tool is called and its result cached.

Tool failures never propagate: they come back as an empty result with
``error`` set, so argumentation proceeds with whatever evidence is left.

Usage:
    from mcp_client import ToolClient

    client = ToolClient()
    result = await client.web_search("Remote work increases productivity")
    for item in result.items:
        print(item.url)
"""

import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

# Add backend directory to path for imports
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from pydantic import BaseModel, Field  # noqa: E402

from config import config  # noqa: E402
from mcp_servers.archive import ArchiveSnapshot, archive_impl  # noqa: E402
from mcp_servers.fact_check import FactCheckResult, fact_check_impl  # noqa: E402
from mcp_servers.web_search import SearchResult, search_impl  # noqa: E402
from mcp_servers.whois import DomainInfo, whois_impl  # noqa: E402
from utils.cache import ToolResultCache  # noqa: E402
from utils.rate_limiter import QuotaGuard, get_quota_guard  # noqa: E402
from utils.resilience import RateLimitExceededError, get_logger  # noqa: E402

# Initialize structured logging
logger = get_logger("mcp_client")

WEB_SEARCH = "web_search"
FACT_CHECK = "fact_check"
ARCHIVE = "archive"
WHOIS = "whois"

ToolImpl = Callable[..., Awaitable[Any]]

DEFAULT_IMPLS: dict[str, ToolImpl] = {
    WEB_SEARCH: search_impl,
    FACT_CHECK: fact_check_impl,
    ARCHIVE: archive_impl,
    WHOIS: whois_impl,
}


def _cache_input(tool_input: str, options: dict[str, Any]) -> str:
    # Options such as max_results change the result, so they are part of the key
    suffix = "".join(f"|{key}={options[key]}" for key in sorted(options))
    return tool_input + suffix


class RateLimitInfo(BaseModel):
    """Quota state reported alongside every tool result."""

    tool: str = Field(description="Tool name")
    remaining: int = Field(description="Requests left in the current window")
    reset_at: float = Field(description="Epoch seconds when the oldest request leaves the window")
    limited: bool = Field(default=False, description="Whether this call was denied by the quota")


class ToolResult(BaseModel):
    """Outcome of one tool call, successful or not."""

    tool: str
    items: list[Any] = Field(default_factory=list)
    cached: bool = False
    error: Optional[str] = None
    rate_limit: RateLimitInfo

    @property
    def ok(self) -> bool:
        return self.error is None


class ToolClient:
    """Quota-gated, cached access to the verification tools.

    Attributes:
        quota_guard: Shared sliding-window limiter
        cache: TTL cache for tool results
    """

    def __init__(
        self,
        quota_guard: Optional[QuotaGuard] = None,
        cache: Optional[ToolResultCache] = None,
        impls: Optional[dict[str, ToolImpl]] = None,
    ):
        """Initialize the client.

        Args:
            quota_guard: Limiter to use (default: the process-wide guard)
            cache: Result cache (default: a new cache with the configured TTL)
            impls: Overrides for tool implementations, keyed by tool name
        """
        self.quota_guard = quota_guard or get_quota_guard()
        self.cache = cache or ToolResultCache(ttl=config.tool_cache_ttl_seconds)
        self._impls = {**DEFAULT_IMPLS, **(impls or {})}

    def _rate_limit(self, tool: str, limited: bool = False) -> RateLimitInfo:
        remaining = self.quota_guard.remaining(tool)
        return RateLimitInfo(
            tool=tool,
            remaining=0 if limited else remaining,
            reset_at=self.quota_guard.reset_at(tool),
            limited=limited,
        )

    async def _run(self, tool: str, tool_input: str, **kwargs: Any) -> ToolResult:
        cache_input = _cache_input(tool_input, kwargs)
        cached = await self.cache.get(tool, cache_input)
        if cached is not None:
            return ToolResult(
                tool=tool,
                items=cached,
                cached=True,
                rate_limit=self._rate_limit(tool),
            )

        try:
            self.quota_guard.acquire(tool)
        except RateLimitExceededError:
            logger.warning("quota_exceeded", tool=tool, input=tool_input[:100])
            return ToolResult(
                tool=tool,
                error="Rate limit exceeded",
                rate_limit=self._rate_limit(tool, limited=True),
            )

        try:
            raw = await self._impls[tool](tool_input, **kwargs)
        except Exception as e:
            logger.warning(
                "tool_degraded",
                tool=tool,
                input=tool_input[:100],
                error_type=type(e).__name__,
                error=str(e)[:200],
            )
            return ToolResult(
                tool=tool,
                error=f"{type(e).__name__}: {e}",
                rate_limit=self._rate_limit(tool),
            )

        items = list(raw) if isinstance(raw, list) else [raw]
        await self.cache.put(tool, cache_input, items)
        return ToolResult(tool=tool, items=items, rate_limit=self._rate_limit(tool))

    async def web_search(self, query: str, max_results: int = 5) -> ToolResult:
        """Search the web. Items are ``SearchResult``."""
        return await self._run(WEB_SEARCH, query, max_results=max_results)

    async def fact_check(self, claim: str) -> ToolResult:
        """Look up published fact checks. Items are ``FactCheckResult``."""
        return await self._run(FACT_CHECK, claim)

    async def archive(self, url: str) -> ToolResult:
        """List archived snapshots. Items are ``ArchiveSnapshot``."""
        return await self._run(ARCHIVE, url)

    async def whois(self, domain: str) -> ToolResult:
        """Look up registration data. The single item is a ``DomainInfo``."""
        return await self._run(WHOIS, domain)

    def quota_status(self) -> dict[str, dict]:
        """Per-tool quota status for health reporting."""
        return self.quota_guard.get_status()


__all__ = [
    "ArchiveSnapshot",
    "DomainInfo",
    "FactCheckResult",
    "RateLimitInfo",
    "SearchResult",
    "ToolClient",
    "ToolResult",
]
