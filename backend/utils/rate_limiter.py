"""Per-tool request quotas for the external verification tools.

Each tool gets a sliding window: at most ``max_requests`` calls within the
trailing ``window_seconds``. Request timestamps are kept in memory and
pruned lazily on every access, so a quota recovers one slot at a time as
old requests age out rather than resetting all at once.

Tools without a configured quota are unlimited.
"""

import sys
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from utils.resilience import RateLimitExceededError, get_logger

logger = get_logger(__name__)

WARNING_THRESHOLD = 0.9  # Warn when 90% of a window is used

DAY = 24 * 60 * 60


@dataclass(frozen=True)
class ToolQuota:
    """Sliding-window limit for one tool."""

    max_requests: int
    window_seconds: float


DEFAULT_QUOTAS: dict[str, ToolQuota] = {
    "web_search": ToolQuota(max_requests=2000, window_seconds=30 * DAY),
    "fact_check": ToolQuota(max_requests=10000, window_seconds=DAY),
    "archive": ToolQuota(max_requests=100, window_seconds=60 * 60),
    "whois": ToolQuota(max_requests=1000, window_seconds=DAY),
}


class QuotaGuard:
    """Thread-safe sliding-window rate limiter keyed by tool name.

    Attributes:
        quotas: Mapping of tool name to its ``ToolQuota``.

    Example:
        guard = QuotaGuard({"archive": ToolQuota(100, 3600)})

        if guard.can_proceed("archive"):
            guard.record("archive")
            ...  # call the tool
    """

    def __init__(
        self,
        quotas: Optional[dict[str, ToolQuota]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the guard.

        Args:
            quotas: Per-tool limits (default: ``DEFAULT_QUOTAS``)
            clock: Time source in epoch seconds, injectable for tests
        """
        self.quotas = dict(DEFAULT_QUOTAS if quotas is None else quotas)
        self._clock = clock
        self._requests: dict[str, deque[float]] = {name: deque() for name in self.quotas}
        self._lock = threading.Lock()

    def _prune(self, tool: str, now: float) -> deque[float]:
        """Drop timestamps that have left the window. Caller holds the lock."""
        window = self.quotas[tool].window_seconds
        timestamps = self._requests.setdefault(tool, deque())
        while timestamps and now - timestamps[0] >= window:
            timestamps.popleft()
        return timestamps

    def can_proceed(self, tool: str) -> bool:
        """Check whether one more request to *tool* fits in its window.

        Does not consume quota; pair with ``record``.
        """
        if tool not in self.quotas:
            return True
        with self._lock:
            timestamps = self._prune(tool, self._clock())
            return len(timestamps) < self.quotas[tool].max_requests

    def record(self, tool: str) -> None:
        """Record one request to *tool* at the current time."""
        if tool not in self.quotas:
            return
        with self._lock:
            now = self._clock()
            timestamps = self._prune(tool, now)
            timestamps.append(now)
            used = len(timestamps)
            limit = self.quotas[tool].max_requests

        if used >= limit * WARNING_THRESHOLD:
            logger.warning(
                "quota_warning",
                tool=tool,
                used=used,
                limit=limit,
                remaining=max(limit - used, 0),
            )

    def acquire(self, tool: str) -> None:
        """Check and record in one step.

        Raises:
            RateLimitExceededError: If *tool* has no capacity left
        """
        if tool not in self.quotas:
            return
        with self._lock:
            now = self._clock()
            timestamps = self._prune(tool, now)
            limit = self.quotas[tool].max_requests
            if len(timestamps) >= limit:
                raise RateLimitExceededError(
                    f"Quota exceeded for {tool}: {limit} requests per "
                    f"{self.quotas[tool].window_seconds:g}s",
                    details={"tool": tool, "limit": limit},
                )
            timestamps.append(now)

    def remaining(self, tool: str) -> int:
        """Return how many requests *tool* may still make in the window."""
        if tool not in self.quotas:
            return sys.maxsize
        with self._lock:
            timestamps = self._prune(tool, self._clock())
            return max(self.quotas[tool].max_requests - len(timestamps), 0)

    def reset_at(self, tool: str) -> float:
        """Return the timestamp at which the oldest request leaves the window.

        With no requests in the window this is ``now + window``.
        """
        now = self._clock()
        if tool not in self.quotas:
            return now
        with self._lock:
            timestamps = self._prune(tool, now)
            window = self.quotas[tool].window_seconds
            if timestamps:
                return timestamps[0] + window
            return now + window

    def get_status(self) -> dict[str, dict]:
        """Get quota status for every configured tool.

        Returns:
            Mapping of tool name to limit, used, remaining and
            seconds until the next slot frees up
        """
        status = {}
        now = self._clock()
        for tool, quota in self.quotas.items():
            remaining = self.remaining(tool)
            status[tool] = {
                "limit": quota.max_requests,
                "window_seconds": quota.window_seconds,
                "used": quota.max_requests - remaining,
                "remaining": remaining,
                "reset_in_seconds": round(max(self.reset_at(tool) - now, 0.0), 1),
            }
        return status

    def reset(self, tool: Optional[str] = None) -> None:
        """Forget recorded requests for *tool*, or for all tools.

        Use with caution, mainly for testing.
        """
        with self._lock:
            targets = [tool] if tool else list(self._requests)
            for name in targets:
                self._requests.get(name, deque()).clear()
        logger.info("quota_manually_reset", tool=tool or "all")


# Global quota guard shared by every tool client
_quota_guard: Optional[QuotaGuard] = None


def get_quota_guard() -> QuotaGuard:
    """Get or create the process-wide quota guard."""
    global _quota_guard
    if _quota_guard is None:
        _quota_guard = QuotaGuard()
    return _quota_guard
