"""Evidence tracking and credibility scoring.

Turns raw ``(url, snippet, role)`` citations emitted during a debate into
a deduplicated, credibility-scored evidence set.

Scoring methodology:
- Each domain is matched against ordered reputation tiers; first match wins
- Named domains match exactly or as a parent of the hostname
  ("news.bbc.co.uk" matches "bbc.co.uk", "x.com" does not match "netflix.com")
- Institutional suffixes (".edu", ".gov", ...) are only consulted once no
  named domain matched, so "pubmed.gov" keeps its reference-tier score
- Unmatched domains score 45

One tracker belongs to one debate. Its per-domain score memo lives and
dies with it.

Usage:
    from agents.evidence_tracker import EvidenceTracker

    tracker = EvidenceTracker()
    item = tracker.track("https://nih.gov/study1", "Cohort study", AgentRole.BELIEVER)
    item.credibility_score  # 90
"""

import threading
from typing import Iterable, Optional
from urllib.parse import urlparse

from graph.state import AgentRole, EvidenceItem, MentionedBy, SourceType
from utils.resilience import InvalidEvidenceError, get_logger

logger = get_logger("agents.evidence_tracker")


DEFAULT_CREDIBILITY = 45

MIN_URL_LENGTH = 10
MAX_URL_LENGTH = 500

# Percent-encoded space and slash show up when a model mangles a URL
MANGLED_URL_SEQUENCES = ("%20", "%2f")


# Ordered reputation tiers: (score, named domains, institutional suffixes)
CREDIBILITY_TIERS: list[tuple[int, tuple[str, ...], tuple[str, ...]]] = [
    # Academic and government
    (
        90,
        ("scholar.google.com", "ieee.org", "arxiv.org", "nih.gov", "cdc.gov", "nasa.gov"),
        (".edu", ".ac.uk", ".ac.jp", ".gov", ".gov.uk"),
    ),
    # Major press
    (
        80,
        (
            "nytimes.com", "reuters.com", "apnews.com", "bbc.com", "bbc.co.uk",
            "wsj.com", "economist.com", "ft.com", "theguardian.com",
            "washingtonpost.com", "npr.org", "pbs.org",
        ),
        (),
    ),
    # Trade and science press
    (
        70,
        (
            "forbes.com", "bloomberg.com", "techcrunch.com", "wired.com",
            "arstechnica.com", "technologyreview.com", "scientificamerican.com",
            "nature.com", "science.org", "pnas.org",
        ),
        (),
    ),
    # Reference works and databases
    (
        65,
        (
            "wikipedia.org", "britannica.com", "jstor.org", "pubmed.gov",
            "researchgate.net", "academia.edu", "sciencedirect.com",
        ),
        (),
    ),
    # User publishing platforms
    (
        55,
        (
            "medium.com", "substack.com", "stackoverflow.com", "github.com",
            "youtube.com", "vimeo.com", "ted.com",
        ),
        (),
    ),
    # Social media
    (
        30,
        (
            "reddit.com", "twitter.com", "x.com", "facebook.com",
            "instagram.com", "tiktok.com", "quora.com", "yahoo.com",
        ),
        (),
    ),
]

# Keyword lookup for display grouping, checked in order
SOURCE_TYPE_KEYWORDS: list[tuple[SourceType, tuple[str, ...]]] = [
    (SourceType.ACADEMIC, (".edu", "scholar", "research")),
    (SourceType.GOVERNMENT, (".gov", "whitehouse", "parliament", "senate")),
    (SourceType.SOCIAL, ("facebook", "twitter", "reddit", "tiktok", "instagram")),
    (SourceType.NEWS, ("news", "bbc", "reuters", "apnews")),
]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def extract_domain(url: str) -> str:
    """Extract the lowercased hostname of *url* without a ``www.`` prefix.

    Args:
        url: An absolute URL

    Returns:
        The domain (e.g., "nih.gov"), or "" if the URL has no hostname
    """
    hostname = urlparse(url).hostname or ""
    hostname = hostname.lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def _matches_domain(domain: str, pattern: str) -> bool:
    return domain == pattern or domain.endswith("." + pattern)


def score_domain(domain: str) -> int:
    """Tier-based credibility score for *domain*.

    Named domains across all tiers are checked before institutional
    suffixes.

    Args:
        domain: Lowercased domain as returned by ``extract_domain``

    Returns:
        Integer score between 0 and 100
    """
    domain = domain.lower()
    for score, named, _ in CREDIBILITY_TIERS:
        if any(_matches_domain(domain, pattern) for pattern in named):
            return score
    for score, _, suffixes in CREDIBILITY_TIERS:
        if any(domain.endswith(suffix) for suffix in suffixes):
            return score
    return DEFAULT_CREDIBILITY


def classify_source_type(domain: str) -> SourceType:
    """Keyword-on-domain grouping used for display only."""
    domain = domain.lower()
    for source_type, keywords in SOURCE_TYPE_KEYWORDS:
        if any(keyword in domain for keyword in keywords):
            return source_type
    return SourceType.UNKNOWN


def validate_evidence_url(url: str) -> str:
    """Check that *url* is a usable citation.

    Args:
        url: Candidate URL

    Returns:
        The stripped URL

    Raises:
        InvalidEvidenceError: If any validation rule fails
    """
    if not isinstance(url, str):
        raise InvalidEvidenceError("URL must be a string", details={"url": repr(url)})

    url = url.strip()

    def reject(reason: str) -> InvalidEvidenceError:
        return InvalidEvidenceError(
            f"Invalid evidence URL ({reason}): {url[:100]}",
            details={"url": url[:MAX_URL_LENGTH], "reason": reason},
        )

    if len(url) < MIN_URL_LENGTH:
        raise reject("too short")
    if len(url) > MAX_URL_LENGTH:
        raise reject("too long")

    lowered = url.lower()
    if any(seq in lowered for seq in MANGLED_URL_SEQUENCES):
        raise reject("percent-encoded space or slash")

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        raise reject("unparseable")

    if parsed.scheme not in ("http", "https"):
        raise reject("scheme must be http or https")
    if not parsed.netloc or not hostname:
        raise reject("missing hostname")
    if "." not in hostname:
        raise reject("hostname has no dot")

    return url


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------


def _as_mention(role: AgentRole | MentionedBy | str) -> MentionedBy:
    return MentionedBy(role.value if isinstance(role, (AgentRole, MentionedBy)) else role)


class EvidenceTracker:
    """Deduplicated, credibility-scored evidence set for one debate.

    Items are kept in insertion order and keyed by URL. Safe to share
    between the Believer and Skeptic when they run concurrently.
    """

    def __init__(self) -> None:
        self._items: dict[str, EvidenceItem] = {}
        self._domain_scores: dict[str, int] = {}
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    def _credibility(self, domain: str) -> int:
        """Memoized ``score_domain``. Caller holds the lock."""
        score = self._domain_scores.get(domain)
        if score is None:
            score = score_domain(domain)
            self._domain_scores[domain] = score
        return score

    def track(self, url: str, snippet: str, role: AgentRole | MentionedBy | str) -> EvidenceItem:
        """Record a citation.

        Args:
            url: Cited URL (the natural key)
            snippet: Supporting excerpt
            role: The citing side (believer or skeptic)

        Returns:
            The new item, or the existing one for an already-tracked URL.
            An existing item is promoted to ``both`` when the other side
            cites it; nothing else about it changes.

        Raises:
            InvalidEvidenceError: If the URL fails validation
        """
        url = validate_evidence_url(url)
        mention = _as_mention(role)
        if mention is MentionedBy.BOTH:
            raise ValueError("A citation comes from a single side")

        with self._lock:
            existing = self._items.get(url)
            if existing is not None:
                if existing.mentioned_by not in (mention, MentionedBy.BOTH):
                    existing.mentioned_by = MentionedBy.BOTH
                    logger.debug("evidence_promoted", url=url[:100])
                return existing

            domain = extract_domain(url)
            count = self._counters.get(mention.value, 0) + 1
            self._counters[mention.value] = count
            item = EvidenceItem(
                id=f"{mention.value}-{count}",
                source_url=url,
                domain=domain,
                snippet=snippet or "",
                credibility_score=self._credibility(domain),
                mentioned_by=mention,
                source_type=classify_source_type(domain),
            )
            self._items[url] = item

        logger.debug(
            "evidence_tracked",
            url=url[:100],
            domain=domain,
            credibility=item.credibility_score,
            role=mention.value,
        )
        return item

    def try_track(self, url: str, snippet: str, role: AgentRole | MentionedBy | str) -> Optional[EvidenceItem]:
        """Like ``track`` but drops invalid URLs with a log line."""
        try:
            return self.track(url, snippet, role)
        except InvalidEvidenceError as e:
            logger.info("evidence_rejected", reason=e.details.get("reason"), url=str(url)[:100])
            return None

    def track_many(
        self,
        citations: Iterable[tuple[str, str]],
        role: AgentRole | MentionedBy | str,
    ) -> list[EvidenceItem]:
        """Track ``(url, snippet)`` pairs, dropping invalid ones.

        Returns:
            The tracked items, one per distinct URL, in citation order
        """
        items: dict[str, EvidenceItem] = {}
        for url, snippet in citations:
            item = self.try_track(url, snippet, role)
            if item is not None:
                items.setdefault(item.source_url, item)
        return list(items.values())

    def top_evidence(self, n: int) -> list[EvidenceItem]:
        """Return the *n* highest-scoring items.

        Sorted descending by credibility; equal scores keep insertion order.
        """
        if n <= 0:
            return []
        with self._lock:
            items = list(self._items.values())
        # sorted() is stable, so ties stay in insertion order
        return sorted(items, key=lambda item: item.credibility_score, reverse=True)[:n]

    def by_role(self, role: AgentRole | MentionedBy | str) -> list[EvidenceItem]:
        """Return items cited by *role*, including those cited by both sides."""
        mention = _as_mention(role)
        with self._lock:
            return [
                item for item in self._items.values()
                if item.mentioned_by in (mention, MentionedBy.BOTH)
            ]

    def all(self) -> list[EvidenceItem]:
        """Return every tracked item in insertion order."""
        with self._lock:
            return list(self._items.values())

    def clear(self) -> None:
        """Forget every item and the domain score memo."""
        with self._lock:
            self._items.clear()
            self._domain_scores.clear()
            self._counters.clear()

    def summary(self, top_n: int = 5) -> dict:
        """Totals per side plus the top sources, for display."""
        return {
            "total": len(self),
            "by_role": {
                "believer": len(self.by_role(MentionedBy.BELIEVER)),
                "skeptic": len(self.by_role(MentionedBy.SKEPTIC)),
            },
            "top_sources": [
                {"url": item.source_url, "credibility": item.credibility_score}
                for item in self.top_evidence(top_n)
            ],
        }

    def __len__(self) -> int:
        return len(self._items)
