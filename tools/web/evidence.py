"""Evidence fetching, normalization and domain-diverse capping."""

import asyncio
import re
from collections import OrderedDict, deque
from collections.abc import Sequence
from datetime import date, datetime
from email.utils import parsedate_to_datetime
from functools import partial
from typing import Protocol, TypeVar
from urllib.parse import urlparse

from config.config import ResearchMode
from utils.logger import get_logger

from .cache import InMemoryTTLCache
from .contracts import Evidence, FetchOutcome, SearchResult

logger = get_logger(__name__)

TITLE_MAX_CHARS = 140
SNIPPET_MAX_CHARS = 500
ELLIPSIS = "…"

_WHITESPACE_RE = re.compile(r"\s+")


class SearchClient(Protocol):
    def search(
        self,
        query: str,
        max_results: int = 5,
        search_depth: str = "basic",
        include_domains: Sequence[str] | None = None,
        exclude_domains: Sequence[str] | None = None,
    ) -> list[SearchResult]: ...


def truncate(text: str | None, max_chars: int) -> str:
    """Collapse whitespace and cap the length at ``max_chars``, ellipsis included."""
    clean = _WHITESPACE_RE.sub(" ", text or "").strip()
    if len(clean) > max_chars:
        return clean[: max_chars - len(ELLIPSIS)] + ELLIPSIS
    return clean


def parse_published_date(value: str | None) -> date | None:
    """Parse ISO 8601 or RFC 2822 dates; anything else is treated as unknown."""
    if not value:
        return None
    value = value.strip()
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(value).date()
    except (TypeError, ValueError, IndexError):
        return None


def build_search_queries(prompt: str, mode: ResearchMode | str, market: str, year: int) -> list[str]:
    """
    Quick mode issues one broadened query; deep mode adds a trends/themes query
    and a marketplace best-sellers query.
    """
    base = prompt.strip()
    if ResearchMode(mode) is ResearchMode.DEEP:
        return [
            f"{base} party decorations trends themes {year} {market}",
            f"{base} party decor best sellers Etsy keywords {market}",
        ]
    return [f"{base} party decorations trends {market}"]


def _host(url: str) -> str | None:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme not in {"http", "https"}:
        return None
    try:
        return parsed.hostname or None
    except ValueError:
        return None


def normalize_results(
    results: Sequence[SearchResult], query: str, captured_at: str
) -> list[Evidence]:
    """Convert raw results to Evidence, silently dropping unparsable URLs."""
    evidence: list[Evidence] = []
    for result in results:
        host = _host(result.url)
        if not host:
            logger.debug(f"Dropping result with invalid url: {result.url!r}")
            continue
        evidence.append(
            Evidence(
                url=result.url,
                domain=host,
                title=truncate(result.title or host, TITLE_MAX_CHARS),
                snippet=truncate(result.content or "", SNIPPET_MAX_CHARS),
                published_at=parse_published_date(result.published_date),
                captured_at=captured_at,
                query=query,
            )
        )
    return evidence


T = TypeVar("T", bound=Evidence)


def cap_evidence_by_domain(items: Sequence[T], max_total: int, max_per_domain: int) -> list[T]:
    """
    Select at most ``max_total`` items, round-robin across domains.

    Domains rotate in discovery order; each turn takes the oldest unused item of
    the domain. A domain leaves the rotation once exhausted or after
    contributing ``max_per_domain`` items, so no domain can dominate and each
    domain keeps its original relative order.
    """
    by_domain: OrderedDict[str, deque[T]] = OrderedDict()
    for item in items:
        by_domain.setdefault(item.domain, deque()).append(item)

    rotation = deque(by_domain.keys())
    used: dict[str, int] = {domain: 0 for domain in rotation}
    out: list[T] = []

    while len(out) < max_total and rotation:
        domain = rotation.popleft()
        pending = by_domain[domain]
        if not pending or used[domain] >= max_per_domain:
            continue
        out.append(pending.popleft())
        used[domain] += 1
        rotation.append(domain)

    return out


class EvidenceFetcher:
    """
    Fans search queries out concurrently and normalizes the results.

    The blocking provider SDK runs in the default executor. All queries must
    succeed: the first failure propagates and no partial evidence is returned.
    """

    def __init__(self, client: SearchClient, cache: InMemoryTTLCache | None = None):
        self.client = client
        self.cache = cache

    async def fetch(
        self,
        queries: Sequence[str],
        *,
        max_results: int,
        search_depth: str,
        captured_at: str,
        include_domains: Sequence[str] = (),
        exclude_domains: Sequence[str] = (),
    ) -> FetchOutcome:
        outcome = FetchOutcome(queries=list(queries))

        async def _search_one(query: str) -> list[SearchResult]:
            if self.cache is not None:
                cached = self.cache.get(query)
                if cached is not None:
                    logger.info(f"Cache hit for query: '{query[:80]}'")
                    outcome.cache_hits += 1
                    return cached

            loop = asyncio.get_running_loop()
            results = await loop.run_in_executor(
                None,
                partial(
                    self.client.search,
                    query,
                    max_results=max_results,
                    search_depth=search_depth,
                    include_domains=list(include_domains) or None,
                    exclude_domains=list(exclude_domains) or None,
                ),
            )
            if self.cache is not None:
                self.cache.set(query, results)
            return results

        all_results = await asyncio.gather(*(_search_one(q) for q in queries))

        for query, results in zip(queries, all_results):
            outcome.evidence.extend(normalize_results(results, query, captured_at))

        logger.info(
            "Evidence fetched",
            extra={
                "extra_fields": {
                    "queries": len(queries),
                    "evidence": len(outcome.evidence),
                    "cache_hits": outcome.cache_hits,
                }
            },
        )
        return outcome
