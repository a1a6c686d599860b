"""Pydantic schema for the structured output returned by the generative model."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Intent = Literal["buying", "inspiration", "diy", "informational", "supplier"]
Priority = Literal["P0", "P1", "P2"]

MAX_TOP_EVIDENCE = 2
MAX_TOP_KEYWORDS = 5


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _first(value: Any, limit: int) -> Any:
    if isinstance(value, list):
        return value[:limit]
    return value


class EvidenceRef(_CamelModel):
    url: str
    title: str = ""
    snippet: str | None = None
    published_at: str | None = None


class ResearchRow(_CamelModel):
    row_id: str
    cluster: str
    keyword: str
    intent: Intent
    mentions: int = Field(ge=0)
    recency_score: float = Field(ge=0.0, le=1.0)
    # advisory only, overwritten by orchestrator.scoring
    research_score: float = Field(default=0.0, ge=0.0, le=1.0)
    sources_count: int = Field(default=0, ge=0)
    domains_count: int = Field(default=0, ge=0)
    top_evidence: list[EvidenceRef] = Field(default_factory=list)
    cluster_rank: int | None = None

    @field_validator("top_evidence", mode="before")
    @classmethod
    def cap_top_evidence(cls, value: Any) -> Any:
        return _first(value, MAX_TOP_EVIDENCE)


class RecommendedAction(_CamelModel):
    title: str
    priority: Priority


class ClusterBundle(_CamelModel):
    cluster: str
    top_keywords: list[str] = Field(default_factory=list)
    recommended_actions: list[RecommendedAction] = Field(default_factory=list)
    top_evidence: list[EvidenceRef] = Field(default_factory=list)

    @field_validator("top_keywords", mode="before")
    @classmethod
    def cap_top_keywords(cls, value: Any) -> Any:
        return _first(value, MAX_TOP_KEYWORDS)

    @field_validator("top_evidence", mode="before")
    @classmethod
    def cap_top_evidence(cls, value: Any) -> Any:
        return _first(value, MAX_TOP_EVIDENCE)


class ResearchOutput(_CamelModel):
    rows: list[ResearchRow]
    cluster_bundles: list[ClusterBundle]

    @classmethod
    def empty(cls) -> "ResearchOutput":
        return cls(rows=[], cluster_bundles=[])


class ResultBundle(_CamelModel):
    title: str
    summary: str
    next_steps: list[str] = Field(default_factory=list)
    sources: list[dict[str, str]] = Field(default_factory=list)
