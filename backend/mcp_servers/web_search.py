"""Web Search MCP Server.

Provides web search through the Tavily API via MCP protocol. The Believer
uses it to gather supporting evidence for a claim.
"""

import sys
import time
from pathlib import Path
from typing import Optional

# Add backend directory to path for config import
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from fastmcp import FastMCP  # noqa: E402
from pydantic import BaseModel, Field  # noqa: E402
from tavily import AsyncTavilyClient  # noqa: E402
from tenacity import (  # noqa: E402
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import config  # noqa: E402
from utils.resilience import (  # noqa: E402
    ExternalAPIError,
    InvalidInputError,
    ToolUnavailableError,
    get_logger,
    log_tool_invocation,
)

# Initialize structured logging
logger = get_logger("mcp.web_search")

# Initialize MCP server
mcp = FastMCP("web-search-server")

MAX_QUERY_LENGTH = 500
MAX_RESULTS_LIMIT = 20


class SearchResult(BaseModel):
    """A single search result from Tavily."""

    title: str = Field(description="Title of the web page")
    url: str = Field(description="URL of the web page")
    content: str = Field(description="Relevant content snippet from the page")
    score: float = Field(default=0.0, description="Relevance score (0.0 to 1.0)")
    published_date: Optional[str] = Field(
        default=None,
        description="Published date of the content (ISO format), if available"
    )


# Retry decorator for transient failures
@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError)),
    reraise=True,
)
async def _call_tavily_api(client: AsyncTavilyClient, query: str, max_results: int) -> dict:
    """Make the actual Tavily API call with retry logic."""
    return await client.search(
        query=query,
        max_results=max_results,
        include_answer=False,
        include_raw_content=False,
        include_images=False,
    )


@log_tool_invocation("web_search")
async def search_impl(
    query: str,
    max_results: int = 5,
    client: Optional[AsyncTavilyClient] = None,
    api_key: Optional[str] = None,
) -> list[SearchResult]:
    """Search the web using Tavily.

    Args:
        query: The search query string (max 500 characters)
        max_results: Maximum number of results to return (1-20, default: 5)
        client: Tavily client to use (created from the API key if omitted)
        api_key: Overrides ``TAVILY_API_KEY``

    Returns:
        List of search results with title, url, content, score, and published_date

    Raises:
        InvalidInputError: If the query is empty or too long
        ToolUnavailableError: If no API key is configured
        ExternalAPIError: If the Tavily API call fails
    """
    start_time = time.perf_counter()

    query = (query or "").strip()
    if not query or len(query) > MAX_QUERY_LENGTH:
        raise InvalidInputError(
            f"Search query must be 1-{MAX_QUERY_LENGTH} characters",
            details={"field": "query", "length": len(query)},
        )
    max_results = max(1, min(max_results, MAX_RESULTS_LIMIT))

    if client is None:
        key = api_key or config.tavily_api_key
        if not key:
            raise ToolUnavailableError(
                "TAVILY_API_KEY not configured",
                details={"tool": "web_search"},
            )
        client = AsyncTavilyClient(api_key=key)

    try:
        response = await _call_tavily_api(client, query, max_results)
    except Exception as e:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.error(
            "search_api_error",
            query=query[:100],
            error_type=type(e).__name__,
            error_message=str(e),
            elapsed_ms=round(elapsed_ms, 2),
        )
        raise ExternalAPIError(
            f"Tavily API error: {e}",
            details={"query": query, "error": str(e)}
        ) from e

    # Transform Tavily response to our SearchResult format
    results = [
        SearchResult(
            title=result.get("title", ""),
            url=result.get("url", ""),
            content=result.get("content", ""),
            score=result.get("score", 0.0) or 0.0,
            published_date=result.get("published_date"),
        )
        for result in response.get("results", [])
    ]

    logger.info(
        "search_completed",
        query=query[:100],
        result_count=len(results),
        latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
    )
    return results


@mcp.tool()
async def search(query: str, max_results: int = 5) -> list[SearchResult]:
    """Search the web for evidence about a claim.

    Args:
        query: The search query string (max 500 characters)
        max_results: Maximum number of results to return (1-20, default: 5)

    Returns:
        List of search results with title, url, content, score, and published_date
    """
    return await search_impl(query, max_results)


if __name__ == "__main__":
    mcp.run()
