"""Resilience utilities for the debate engine.

Provides the exception taxonomy, claim validation, a retry decorator for
external tool calls, and tool invocation logging.
"""

import time
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from utils.logging import get_logger

# Type variable for generic function decorators
F = TypeVar("F", bound=Callable[..., Any])


# ---------------------------------------------------------------------------
# Custom Exception Classes
# ---------------------------------------------------------------------------


class DebateError(Exception):
    """Base exception for debate engine errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputError(DebateError):
    """Raised when a claim fails boundary validation."""

    pass


class RefusalDetectedError(DebateError):
    """Raised when an agent declines to argue its side.

    Attributes:
        stage: The pipeline stage whose output was a refusal.
        content: The offending output, truncated for logs and display.
    """

    def __init__(self, stage: str, content: str):
        preview = content.strip()[:REFUSAL_PREVIEW_LENGTH]
        super().__init__(
            f"{stage.capitalize()} agent refused to argue: {preview!r}",
            details={"stage": stage, "content": preview},
        )
        self.stage = stage
        self.content = preview


class AllBackendsExhaustedError(DebateError):
    """Raised when every backend in a chain failed all its retries."""

    pass


class EmptyResponseError(DebateError):
    """Raised when a backend returns blank content."""

    pass


class InvalidEvidenceError(DebateError):
    """Raised when a cited URL fails validation."""

    pass


class ToolUnavailableError(DebateError):
    """Raised when an external verification tool cannot serve a request."""

    pass


class RateLimitExceededError(ToolUnavailableError):
    """Raised when a tool's request quota is exhausted."""

    pass


class ExternalAPIError(DebateError):
    """Raised when an external API call fails."""

    pass


# ---------------------------------------------------------------------------
# Validation Constants
# ---------------------------------------------------------------------------

MIN_CLAIM_LENGTH = 10
MAX_CLAIM_LENGTH = 500
REFUSAL_PREVIEW_LENGTH = 200
DEFAULT_TOOL_TIMEOUT = 10  # seconds


# ---------------------------------------------------------------------------
# Validation Functions
# ---------------------------------------------------------------------------


def validate_claim(
    claim: str,
    min_length: int = MIN_CLAIM_LENGTH,
    max_length: int = MAX_CLAIM_LENGTH,
) -> str:
    """Validate a claim before it enters the pipeline.

    Args:
        claim: The claim under debate
        min_length: Minimum allowed length after stripping (default: 10)
        max_length: Maximum allowed length after stripping (default: 500)

    Returns:
        The stripped claim

    Raises:
        InvalidInputError: If the claim is missing or outside the length bounds
    """
    if not claim or not claim.strip():
        raise InvalidInputError(
            "Claim cannot be empty",
            details={"field": "claim", "value": claim}
        )

    claim = claim.strip()

    if len(claim) < min_length:
        raise InvalidInputError(
            f"Claim must be at least {min_length} characters",
            details={"field": "claim", "length": len(claim), "min_length": min_length}
        )

    if len(claim) > max_length:
        raise InvalidInputError(
            f"Claim exceeds maximum length of {max_length} characters",
            details={"field": "claim", "length": len(claim), "max_length": max_length}
        )

    return claim


# ---------------------------------------------------------------------------
# Tool Invocation Logging
# ---------------------------------------------------------------------------


def log_tool_invocation(tool_name: str) -> Callable[[F], F]:
    """Decorator factory that logs async tool invocations with timing.

    The first positional argument of the wrapped coroutine is logged as
    the tool input (truncated).

    Args:
        tool_name: Name of the tool being invoked

    Returns:
        Decorator that wraps the coroutine function with logging
    """
    logger = get_logger(f"tools.{tool_name}")

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            tool_input = str(args[0])[:100] if args else None

            logger.info(
                "tool_invocation_started",
                tool=tool_name,
                input=tool_input,
            )

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed_ms = (time.perf_counter() - start_time) * 1000
                logger.error(
                    "tool_invocation_failed",
                    tool=tool_name,
                    latency_ms=round(elapsed_ms, 2),
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                raise

            elapsed_ms = (time.perf_counter() - start_time) * 1000
            result_count = len(result) if hasattr(result, "__len__") else 1
            logger.info(
                "tool_invocation_completed",
                tool=tool_name,
                latency_ms=round(elapsed_ms, 2),
                result_count=result_count,
            )
            return result

        return wrapper

    return decorator  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Retry Decorators
# ---------------------------------------------------------------------------


def retry_with_backoff(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[F], F]:
    """Create a retry decorator with exponential backoff.

    Works on plain and coroutine functions alike.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        min_wait: Minimum wait time between retries in seconds (default: 1.0)
        max_wait: Maximum wait time between retries in seconds (default: 10.0)
        retry_on: Tuple of exception types to retry on

    Returns:
        Decorator that wraps the function with retry logic

    Example:
        @retry_with_backoff(max_attempts=3, retry_on=(httpx.TransportError,))
        async def fetch_data():
            ...
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retry_on),
        reraise=True,
    )
