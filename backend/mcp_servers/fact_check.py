"""Fact Check MCP Server.

Looks up published fact checks for a claim through the Google Fact Check
Tools ``claims:search`` endpoint. The Skeptic uses the reviews as
counter-evidence.
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
    ToolUnavailableError,
    get_logger,
    log_tool_invocation,
    retry_with_backoff,
)

logger = get_logger("mcp.fact_check")

mcp = FastMCP("fact-check-server")

FACT_CHECK_URL = "https://factchecktools.googleapis.com/v1alpha1/claims:search"


class FactCheckResult(BaseModel):
    """A published review of a claim."""

    claim: str = Field(default="", description="The claim as the reviewer phrased it")
    claimant: Optional[str] = Field(default=None, description="Who made the claim")
    rating: str = Field(default="Unknown", description="Textual rating, e.g. 'False'")
    url: Optional[str] = Field(default=None, description="URL of the review")
    publisher: str = Field(default="Unknown", description="Publisher of the review")


@retry_with_backoff(max_attempts=3, retry_on=(httpx.TransportError,))
async def _fetch_claims(client: httpx.AsyncClient, params: dict) -> dict:
    response = await client.get(FACT_CHECK_URL, params=params)
    response.raise_for_status()
    return response.json()


def _parse_claims(payload: dict) -> list[FactCheckResult]:
    results = []
    for item in payload.get("claims", []) or []:
        review = (item.get("claimReview") or [{}])[0]
        results.append(
            FactCheckResult(
                claim=item.get("text", ""),
                claimant=item.get("claimant"),
                rating=review.get("textualRating") or "Unknown",
                url=review.get("url"),
                publisher=(review.get("publisher") or {}).get("name") or "Unknown",
            )
        )
    return results


@log_tool_invocation("fact_check")
async def fact_check_impl(
    claim: str,
    client: Optional[httpx.AsyncClient] = None,
    api_key: Optional[str] = None,
) -> list[FactCheckResult]:
    """Search published fact checks for *claim*.

    Args:
        claim: Claim text to look up
        client: HTTP client to use (a short-lived one is created if omitted)
        api_key: Overrides ``GOOGLE_FACT_CHECK_API_KEY``

    Returns:
        Fact check results, possibly empty

    Raises:
        ToolUnavailableError: If no API key is configured
        ExternalAPIError: If the API call fails
    """
    key = api_key or config.fact_check_api_key
    if not key:
        raise ToolUnavailableError(
            "GOOGLE_FACT_CHECK_API_KEY not configured",
            details={"tool": "fact_check"},
        )

    params = {"query": claim, "languageCode": "en", "key": key}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.tool_timeout_seconds or DEFAULT_TOOL_TIMEOUT) as owned:
                payload = await _fetch_claims(owned, params)
        else:
            payload = await _fetch_claims(client, params)
    except (httpx.HTTPError, ValueError) as e:
        raise ExternalAPIError(
            f"Fact Check API error: {e}",
            details={"claim": claim[:100], "error": str(e)},
        ) from e

    return _parse_claims(payload)


@mcp.tool()
async def fact_check(claim: str) -> list[FactCheckResult]:
    """Find published fact checks for a claim.

    Args:
        claim: The claim to look up

    Returns:
        List of reviews with claim, claimant, rating, url and publisher
    """
    return await fact_check_impl(claim)


if __name__ == "__main__":
    mcp.run()
