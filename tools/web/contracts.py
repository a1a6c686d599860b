"""Data contracts for the evidence-gathering module."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any


@dataclass(frozen=True)
class SearchResult:
    """One raw result as returned by the search provider."""

    url: str
    title: str | None = None
    content: str | None = None
    published_date: str | None = None
    score: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResult":
        return cls(
            url=str(data.get("url") or ""),
            title=data.get("title"),
            content=data.get("content"),
            published_date=data.get("published_date"),
            score=data.get("score"),
        )


@dataclass(frozen=True)
class Evidence:
    """A normalized search snippet with provenance, owned by a single run."""

    url: str
    domain: str
    title: str
    snippet: str
    published_at: date | None
    captured_at: str  # ISO 8601 format
    query: str

    def to_prompt_dict(self) -> dict[str, Any]:
        """Shape embedded verbatim in the model prompt."""
        return {
            "url": self.url,
            "domain": self.domain,
            "title": self.title,
            "snippet": self.snippet,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "query": self.query,
        }


@dataclass
class FetchOutcome:
    """Evidence gathered for a run plus cache telemetry."""

    evidence: list[Evidence] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)
    cache_hits: int = 0

    @property
    def cache_hit(self) -> bool:
        return bool(self.queries) and self.cache_hits == len(self.queries)
