"""Archive MCP Server.

Lists Wayback Machine snapshots of a URL through the CDX API. No API key
is required.
"""

import sys
from pathlib import Path
from typing import Optional

# Add backend directory to path for config import
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import httpx  # noqa: E402
from fastmcp import FastMCP  # noqa: E402
from pydantic import BaseModel, Field  # noqa: E402

from config import config  # noqa: E402
from utils.resilience import (  # noqa: E402
    DEFAULT_TOOL_TIMEOUT,
    ExternalAPIError,
    get_logger,
    log_tool_invocation,
    retry_with_backoff,
)

logger = get_logger("mcp.archive")

mcp = FastMCP("archive-server")

CDX_URL = "https://web.archive.org/cdx/search/cdx"
MAX_SNAPSHOTS = 5


class ArchiveSnapshot(BaseModel):
    """One archived capture of a URL."""

    url: str = Field(description="The URL that was looked up")
    timestamp: str = Field(description="Capture time, YYYYMMDDhhmmss")
    status: int = Field(default=0, description="HTTP status of the capture")
    available: bool = Field(default=False, description="Whether the capture returned 200")
    archive_url: str = Field(description="Link to the capture on web.archive.org")


@retry_with_backoff(max_attempts=3, retry_on=(httpx.TransportError,))
async def _fetch_snapshots(client: httpx.AsyncClient, params: dict) -> list:
    response = await client.get(CDX_URL, params=params)
    response.raise_for_status()
    if not response.content.strip():
        return []
    return response.json()


def _parse_rows(url: str, rows: list) -> list[ArchiveSnapshot]:
    """CDX JSON output is a header row followed by data rows."""
    snapshots = []
    for row in rows[1:MAX_SNAPSHOTS + 1]:
        try:
            timestamp = str(row[1])
            status = int(row[4])
        except (IndexError, TypeError, ValueError):
            logger.debug("archive_row_skipped", row=str(row)[:100])
            continue
        snapshots.append(
            ArchiveSnapshot(
                url=url,
                timestamp=timestamp,
                status=status,
                available=status == 200,
                archive_url=f"https://web.archive.org/web/{timestamp}/{url}",
            )
        )
    return snapshots


@log_tool_invocation("archive")
async def archive_impl(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
) -> list[ArchiveSnapshot]:
    """List up to five archived snapshots of *url*.

    Args:
        url: URL or domain to look up
        client: HTTP client to use (a short-lived one is created if omitted)

    Returns:
        Snapshots, oldest first

    Raises:
        ExternalAPIError: If the CDX API call fails
    """
    params = {
        "url": url,
        "matchType": "domain",
        "output": "json",
        "sort": "timestamp",
        "collapse": "urlkey",
        "filter": "statuscode:200",
        "limit": "100",
    }
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.tool_timeout_seconds or DEFAULT_TOOL_TIMEOUT) as owned:
                rows = await _fetch_snapshots(owned, params)
        else:
            rows = await _fetch_snapshots(client, params)
    except (httpx.HTTPError, ValueError) as e:
        raise ExternalAPIError(
            f"Archive API error: {e}",
            details={"url": url[:100], "error": str(e)},
        ) from e

    return _parse_rows(url, rows or [])


@mcp.tool()
async def archive(url: str) -> list[ArchiveSnapshot]:
    """List archived snapshots of a URL.

    Args:
        url: URL or domain to look up

    Returns:
        Up to five snapshots with timestamp, status and archive link
    """
    return await archive_impl(url)


if __name__ == "__main__":
    mcp.run()
