"""Tests for the unified tool client.

Covers caching, quota gating and graceful degradation when a tool fails.
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from conftest import make_tool_client  # noqa: E402
from mcp_client import (  # noqa: E402
    ARCHIVE,
    FACT_CHECK,
    WEB_SEARCH,
    WHOIS,
    DomainInfo,
    FactCheckResult,
    SearchResult,
    ToolClient,
)
from utils.cache import ToolResultCache  # noqa: E402
from utils.rate_limiter import QuotaGuard, ToolQuota  # noqa: E402
from utils.resilience import ExternalAPIError  # noqa: E402


SEARCH_RESULT = SearchResult(
    title="Remote work study",
    url="https://nih.gov/study1",
    content="Workers at home were more productive.",
)


class TestToolClient:
    """Tests for ToolClient."""

    @pytest.mark.asyncio
    async def test_successful_call(self):
        client = make_tool_client(search_results=[SEARCH_RESULT])

        result = await client.web_search("remote work", max_results=3)

        assert result.ok
        assert result.tool == WEB_SEARCH
        assert result.items == [SEARCH_RESULT]
        assert result.cached is False
        assert result.rate_limit.limited is False
        client._impls[WEB_SEARCH].assert_awaited_once_with("remote work", max_results=3)

    @pytest.mark.asyncio
    async def test_repeat_call_served_from_cache(self):
        client = make_tool_client(search_results=[SEARCH_RESULT])

        await client.web_search("remote work")
        second = await client.web_search("  Remote   WORK ")

        assert second.cached is True
        assert second.items == [SEARCH_RESULT]
        assert client._impls[WEB_SEARCH].await_count == 1

    @pytest.mark.asyncio
    async def test_different_max_results_not_served_from_cache(self):
        client = make_tool_client(search_results=[SEARCH_RESULT])

        await client.web_search("remote work", max_results=3)
        wider = await client.web_search("remote work", max_results=10)

        assert wider.cached is False
        assert client._impls[WEB_SEARCH].await_count == 2

    @pytest.mark.asyncio
    async def test_cache_hits_do_not_consume_quota(self):
        guard = QuotaGuard({FACT_CHECK: ToolQuota(max_requests=1, window_seconds=60)})
        client = make_tool_client(
            fact_checks=[FactCheckResult(claim="c", rating="False")],
            quota_guard=guard,
        )

        await client.fact_check("same claim here")
        cached = await client.fact_check("same claim here")

        assert cached.ok
        assert cached.cached is True

    @pytest.mark.asyncio
    async def test_quota_denial_returns_limited_result(self):
        guard = QuotaGuard({ARCHIVE: ToolQuota(max_requests=1, window_seconds=3600)})
        client = make_tool_client(quota_guard=guard)

        first = await client.archive("https://example.com/a")
        denied = await client.archive("https://example.com/b")

        assert first.ok
        assert denied.error == "Rate limit exceeded"
        assert denied.items == []
        assert denied.rate_limit.limited is True
        assert denied.rate_limit.remaining == 0
        assert client._impls[ARCHIVE].await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_quota(self):
        guard = QuotaGuard({ARCHIVE: ToolQuota(max_requests=2, window_seconds=3600)})
        client = make_tool_client(quota_guard=guard)

        results = await asyncio.gather(
            *(client.archive(f"https://example.com/{n}") for n in range(5))
        )

        assert sum(result.ok for result in results) == 2
        assert sum(result.rate_limit.limited for result in results) == 3
        assert client._impls[ARCHIVE].await_count == 2

    @pytest.mark.asyncio
    async def test_tool_failure_degrades_to_empty_result(self):
        client = make_tool_client()

        result = await client.whois("nih.gov")

        assert not result.ok
        assert result.items == []
        assert result.error.startswith("ToolUnavailableError")

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self):
        impls = {FACT_CHECK: AsyncMock(side_effect=[ExternalAPIError("down"), []])}
        client = ToolClient(quota_guard=QuotaGuard(), cache=ToolResultCache(), impls=impls)

        failed = await client.fact_check("claim text")
        retried = await client.fact_check("claim text")

        assert failed.error is not None
        assert retried.ok
        assert retried.cached is False

    @pytest.mark.asyncio
    async def test_single_item_wrapped_in_list(self):
        info = DomainInfo(domain="nih.gov", age_in_days=9000, credibility_score=100.0)
        client = make_tool_client(domain_info=info)

        result = await client.whois("nih.gov")

        assert result.items == [info]

    def test_quota_status(self):
        guard = QuotaGuard({WHOIS: ToolQuota(max_requests=5, window_seconds=86400)})
        client = make_tool_client(quota_guard=guard)

        status = client.quota_status()

        assert status[WHOIS]["limit"] == 5
        assert status[WHOIS]["remaining"] == 5
