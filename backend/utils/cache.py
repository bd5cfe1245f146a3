"""In-memory cache with TTL for verification tool results.

Entries are keyed by tool name plus a hash of the normalized input, so
the same search issued by the Believer and then the Skeptic (or by two
debates within the TTL) only costs one external request.

Design:
- Async-safe via ``asyncio.Lock``.
- Automatic eviction of expired entries on access.
- Configurable TTL (default 5 minutes).
- Maximum cache size to bound memory usage.
"""

import asyncio
import hashlib
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS: int = 300
MAX_CACHE_SIZE: int = 500


def _normalize_input(tool_input: str) -> str:
    """Lowercase, strip, collapse whitespace."""
    return " ".join(tool_input.lower().strip().split())


def _cache_key(tool: str, tool_input: str) -> str:
    digest = hashlib.sha256(_normalize_input(tool_input).encode()).hexdigest()
    return f"{tool}:{digest}"


@dataclass
class CacheEntry:
    """A single cached tool result."""

    key: str
    value: Any
    created_at: float = field(default_factory=time.monotonic)
    ttl: float = DEFAULT_TTL_SECONDS

    @property
    def is_expired(self) -> bool:
        return (time.monotonic() - self.created_at) > self.ttl


class ToolResultCache:
    """Async-safe TTL cache for tool results.

    Attributes:
        ttl: Time-to-live in seconds for cache entries.
        max_size: Maximum number of entries before eviction.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        max_size: int = MAX_CACHE_SIZE,
    ) -> None:
        self.ttl = ttl
        self.max_size = max_size
        self._store: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    async def get(self, tool: str, tool_input: str) -> Optional[Any]:
        """Look up a cached result.

        Args:
            tool: Tool name, e.g. ``"web_search"``.
            tool_input: The raw query or URL passed to the tool.

        Returns:
            Cached value or ``None`` on miss / expiry.
        """
        key = _cache_key(tool, tool_input)
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired:
                del self._store[key]
                self._misses += 1
                logger.debug("cache_expired", tool=tool)
                return None
            self._hits += 1
            logger.info("cache_hit", tool=tool, input_preview=tool_input[:60])
            return entry.value

    async def put(self, tool: str, tool_input: str, value: Any) -> None:
        """Store a result, evicting the oldest entry when full."""
        key = _cache_key(tool, tool_input)
        async with self._lock:
            if len(self._store) >= self.max_size and key not in self._store:
                oldest_key = min(self._store, key=lambda k: self._store[k].created_at)
                del self._store[oldest_key]
                logger.debug("cache_evicted", evicted_key=oldest_key[:24])

            self._store[key] = CacheEntry(key=key, value=value, ttl=self.ttl)

    async def clear(self) -> int:
        """Drop all entries. Returns removed count."""
        async with self._lock:
            count = len(self._store)
            self._store.clear()
            logger.info("cache_cleared", removed=count)
            return count

    @property
    def stats(self) -> dict[str, int]:
        """Cache hit/miss statistics."""
        return {
            "size": len(self._store),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate_pct": round(
                self._hits / max(self._hits + self._misses, 1) * 100, 1
            ),
        }
