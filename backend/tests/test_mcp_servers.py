"""Tests for the verification tool servers.

HTTP tools are exercised against ``httpx.MockTransport``; web search uses
a fake Tavily client. Nothing here reaches the network.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from mcp_servers import archive as archive_server  # noqa: E402
from mcp_servers import fact_check as fact_check_server  # noqa: E402
from mcp_servers import whois as whois_server  # noqa: E402
from mcp_servers.archive import ArchiveSnapshot, archive_impl  # noqa: E402
from mcp_servers.fact_check import fact_check_impl  # noqa: E402
from mcp_servers.web_search import SearchResult, search_impl  # noqa: E402
from mcp_servers.whois import _parse_record, age_credibility, whois_impl  # noqa: E402
from utils.resilience import (  # noqa: E402
    ExternalAPIError,
    InvalidInputError,
    ToolUnavailableError,
)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_response(payload, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return handler


# ---------------------------------------------------------------------------
# Web search
# ---------------------------------------------------------------------------


class FakeTavily:
    """Stands in for AsyncTavilyClient."""

    def __init__(self, response=None, error: Exception | None = None):
        self.response = response or {"results": []}
        self.error = error
        self.calls: list[dict] = []

    async def search(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.response


class TestWebSearch:
    """Tests for the Tavily-backed search tool."""

    @pytest.mark.asyncio
    async def test_maps_results(self):
        client = FakeTavily({
            "results": [
                {
                    "title": "Remote work study",
                    "url": "https://nih.gov/study1",
                    "content": "Workers at home were 13% more productive.",
                    "score": 0.92,
                    "published_date": "2023-05-01",
                },
                {"title": "No score", "url": "https://example.com", "content": "", "score": None},
            ]
        })

        results = await search_impl("remote work productivity", max_results=2, client=client)

        assert results[0] == SearchResult(
            title="Remote work study",
            url="https://nih.gov/study1",
            content="Workers at home were 13% more productive.",
            score=0.92,
            published_date="2023-05-01",
        )
        assert results[1].score == 0.0
        assert client.calls[0]["query"] == "remote work productivity"
        assert client.calls[0]["max_results"] == 2

    @pytest.mark.asyncio
    async def test_max_results_clamped(self):
        client = FakeTavily()

        await search_impl("query", max_results=100, client=client)

        assert client.calls[0]["max_results"] == 20

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "x" * 501])
    async def test_invalid_query(self, query):
        with pytest.raises(InvalidInputError):
            await search_impl(query, client=FakeTavily())

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        from mcp_servers import web_search

        monkeypatch.setattr(web_search.config, "tavily_api_key", "")

        with pytest.raises(ToolUnavailableError):
            await search_impl("remote work")

    @pytest.mark.asyncio
    async def test_api_failure_wrapped(self):
        client = FakeTavily(error=RuntimeError("invalid api key"))

        with pytest.raises(ExternalAPIError) as exc_info:
            await search_impl("remote work", client=client)

        assert "invalid api key" in exc_info.value.message
        assert len(client.calls) == 1


# ---------------------------------------------------------------------------
# Fact check
# ---------------------------------------------------------------------------


FACT_CHECK_PAYLOAD = {
    "claims": [
        {
            "text": "Remote workers are 50% more productive",
            "claimant": "Viral post",
            "claimReview": [
                {
                    "url": "https://www.politifact.com/factchecks/remote-work",
                    "textualRating": "Mostly False",
                    "publisher": {"name": "PolitiFact"},
                }
            ],
        },
        {"text": "Review-less claim"},
    ]
}


class TestFactCheck:
    """Tests for the Google Fact Check tool."""

    @pytest.mark.asyncio
    async def test_parses_reviews(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json=FACT_CHECK_PAYLOAD)

        async with mock_client(handler) as client:
            results = await fact_check_impl("Remote work boosts output", client=client, api_key="k")

        assert seen["query"] == "Remote work boosts output"
        assert seen["key"] == "k"
        assert results[0].rating == "Mostly False"
        assert results[0].publisher == "PolitiFact"
        assert results[0].url == "https://www.politifact.com/factchecks/remote-work"
        assert results[1].rating == "Unknown"
        assert results[1].url is None

    @pytest.mark.asyncio
    async def test_empty_payload(self):
        async with mock_client(json_response({})) as client:
            assert await fact_check_impl("claim text", client=client, api_key="k") == []

    @pytest.mark.asyncio
    async def test_http_error_wrapped(self):
        async with mock_client(json_response({"error": "forbidden"}, status_code=403)) as client:
            with pytest.raises(ExternalAPIError):
                await fact_check_impl("claim text", client=client, api_key="k")

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(fact_check_server.config, "fact_check_api_key", "")

        with pytest.raises(ToolUnavailableError):
            await fact_check_impl("claim text")


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


class TestArchive:
    """Tests for the Wayback Machine CDX tool."""

    @pytest.mark.asyncio
    async def test_parses_rows_after_header(self):
        rows = [
            ["urlkey", "timestamp", "original", "mimetype", "statuscode", "digest", "length"],
            ["gov,nih)/", "20100101000000", "https://nih.gov/", "text/html", "200", "A", "1"],
            ["gov,nih)/x", "20150101000000", "https://nih.gov/x", "text/html", "301", "B", "1"],
            ["broken"],
        ]

        async with mock_client(json_response(rows)) as client:
            snapshots = await archive_impl("https://nih.gov/study1", client=client)

        assert snapshots == [
            ArchiveSnapshot(
                url="https://nih.gov/study1",
                timestamp="20100101000000",
                status=200,
                available=True,
                archive_url="https://web.archive.org/web/20100101000000/https://nih.gov/study1",
            ),
            ArchiveSnapshot(
                url="https://nih.gov/study1",
                timestamp="20150101000000",
                status=301,
                available=False,
                archive_url="https://web.archive.org/web/20150101000000/https://nih.gov/study1",
            ),
        ]

    @pytest.mark.asyncio
    async def test_at_most_five_snapshots(self):
        header = ["urlkey", "timestamp", "original", "mimetype", "statuscode"]
        rows = [header] + [["k", f"2020010100000{i}", "u", "text/html", "200"] for i in range(8)]

        async with mock_client(json_response(rows)) as client:
            snapshots = await archive_impl("example.com", client=client)

        assert len(snapshots) == archive_server.MAX_SNAPSHOTS

    @pytest.mark.asyncio
    async def test_empty_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"")

        async with mock_client(handler) as client:
            assert await archive_impl("example.com", client=client) == []

    @pytest.mark.asyncio
    async def test_server_error_wrapped(self):
        async with mock_client(json_response({}, status_code=503)) as client:
            with pytest.raises(ExternalAPIError):
                await archive_impl("example.com", client=client)


# ---------------------------------------------------------------------------
# WHOIS
# ---------------------------------------------------------------------------


WHOIS_PAYLOAD = {
    "WhoisRecord": {
        "registrarName": "Example Registrar",
        "registryData": {
            "createdDate": "2000-01-01T00:00:00Z",
            "expiresDate": "2030-01-01T00:00:00Z",
            "nameServers": {"hostNames": ["ns1.example.com", "ns2.example.com"]},
        },
    }
}


class TestWhois:
    """Tests for the WHOIS tool."""

    def test_age_credibility(self):
        assert age_credibility(0) == 0.0
        assert age_credibility(1825) == 50.0
        assert age_credibility(3650) == 100.0
        assert age_credibility(10_000) == 100.0

    def test_parse_record_uses_registry_fallbacks(self):
        now = datetime(2010, 1, 1, tzinfo=timezone.utc)

        info = _parse_record("example.com", WHOIS_PAYLOAD, now=now)

        assert info.registrar == "Example Registrar"
        assert info.creation_date == "2000-01-01T00:00:00Z"
        assert info.age_in_days == 3653
        assert info.credibility_score == 100.0
        assert info.name_servers == ["ns1.example.com", "ns2.example.com"]

    def test_parse_record_without_dates(self):
        info = _parse_record("new.example", {"WhoisRecord": {}})

        assert info.age_in_days == 0
        assert info.credibility_score == 0.0

    @pytest.mark.asyncio
    async def test_lookup(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, content=json.dumps(WHOIS_PAYLOAD))

        async with mock_client(handler) as client:
            info = await whois_impl("example.com", client=client, api_key="k")

        assert seen["domainName"] == "example.com"
        assert seen["outputFormat"] == "JSON"
        assert info.domain == "example.com"
        assert info.age_in_days > 3650

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(whois_server.config, "whois_api_key", "")

        with pytest.raises(ToolUnavailableError):
            await whois_impl("example.com")

    @pytest.mark.asyncio
    async def test_invalid_json_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>not json</html>")

        async with mock_client(handler) as client:
            with pytest.raises(ExternalAPIError):
                await whois_impl("example.com", client=client, api_key="k")
