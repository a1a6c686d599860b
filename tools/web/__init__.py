"""Web evidence tools: Tavily search, TTL cache, normalization and capping."""

from .cache import InMemoryTTLCache
from .contracts import Evidence, FetchOutcome, SearchResult
from .evidence import EvidenceFetcher, build_search_queries, cap_evidence_by_domain

__all__ = [
    "Evidence",
    "EvidenceFetcher",
    "FetchOutcome",
    "InMemoryTTLCache",
    "SearchResult",
    "build_search_queries",
    "cap_evidence_by_domain",
]
