"""WHOIS MCP Server.

Looks up domain registration data through the WHOIS XML API and turns the
registration age into a credibility score: a domain registered ten or
more years ago scores 100, a brand new one scores 0.
"""

import sys
from datetime import datetime, timezone
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

logger = get_logger("mcp.whois")

mcp = FastMCP("whois-server")

WHOIS_URL = "https://www.whoisxmlapi.com/whoisserver/WhoisService"
FULL_CREDIBILITY_AGE_DAYS = 3650


class DomainInfo(BaseModel):
    """Registration data for a domain."""

    domain: str = Field(description="The domain that was looked up")
    registrar: Optional[str] = Field(default=None, description="Registrar name")
    creation_date: Optional[str] = Field(default=None, description="Registration date")
    expiration_date: Optional[str] = Field(default=None, description="Expiry date")
    age_in_days: int = Field(default=0, description="Days since registration")
    credibility_score: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Registration-age credibility (0-100)"
    )
    name_servers: list[str] = Field(default_factory=list, description="Name servers")


def age_credibility(age_in_days: int) -> float:
    """Credibility from registration age, linear up to ten years."""
    return min(100.0, max(0.0, age_in_days / FULL_CREDIBILITY_AGE_DAYS * 100))


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_record(domain: str, payload: dict, now: Optional[datetime] = None) -> DomainInfo:
    record = payload.get("WhoisRecord") or {}
    registry = record.get("registryData") or {}

    created = record.get("createdDate") or registry.get("createdDate")
    expires = record.get("expiresDate") or registry.get("expiresDate")
    registrar = record.get("registrarName") or registry.get("registrarName")
    name_servers = (record.get("nameServers") or registry.get("nameServers") or {}).get("hostNames", [])

    created_at = _parse_date(created)
    now = now or datetime.now(timezone.utc)
    age_in_days = max((now - created_at).days, 0) if created_at else 0

    return DomainInfo(
        domain=domain,
        registrar=registrar,
        creation_date=created,
        expiration_date=expires,
        age_in_days=age_in_days,
        credibility_score=age_credibility(age_in_days),
        name_servers=list(name_servers or []),
    )


@retry_with_backoff(max_attempts=3, retry_on=(httpx.TransportError,))
async def _fetch_record(client: httpx.AsyncClient, params: dict) -> dict:
    response = await client.get(WHOIS_URL, params=params)
    response.raise_for_status()
    return response.json()


@log_tool_invocation("whois")
async def whois_impl(
    domain: str,
    client: Optional[httpx.AsyncClient] = None,
    api_key: Optional[str] = None,
) -> DomainInfo:
    """Look up registration data for *domain*.

    Args:
        domain: Bare domain, e.g. "example.com"
        client: HTTP client to use (a short-lived one is created if omitted)
        api_key: Overrides ``WHOIS_API_KEY``

    Returns:
        DomainInfo with registration age and age-based credibility

    Raises:
        ToolUnavailableError: If no API key is configured
        ExternalAPIError: If the API call fails
    """
    key = api_key or config.whois_api_key
    if not key:
        raise ToolUnavailableError(
            "WHOIS_API_KEY not configured",
            details={"tool": "whois"},
        )

    params = {"apiKey": key, "domainName": domain, "outputFormat": "JSON"}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.tool_timeout_seconds or DEFAULT_TOOL_TIMEOUT) as owned:
                payload = await _fetch_record(owned, params)
        else:
            payload = await _fetch_record(client, params)
    except (httpx.HTTPError, ValueError) as e:
        raise ExternalAPIError(
            f"WHOIS API error: {e}",
            details={"domain": domain, "error": str(e)},
        ) from e

    return _parse_record(domain, payload)


@mcp.tool()
async def whois(domain: str) -> DomainInfo:
    """Look up domain registration data.

    Args:
        domain: Bare domain, e.g. "example.com"

    Returns:
        Registrar, dates, age in days and an age-based credibility score
    """
    return await whois_impl(domain)


if __name__ == "__main__":
    mcp.run()
