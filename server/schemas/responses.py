"""Pydantic response models (DTOs) for FastAPI endpoints.

Fields are snake_case in Python and serialized camelCase on the wire.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class HealthResponseDTO(BaseModel):
    status: str


class ErrorResponseDTO(BaseModel):
    error: str
    details: list[dict[str, Any]] | None = None


class ResearchRunResponseDTO(_CamelDTO):
    run_id: str
    status: str
    timings_ms: dict[str, Any] = Field(default_factory=dict)
    error: dict[str, Any] | None = None

    @classmethod
    def from_outcome(cls, outcome) -> "ResearchRunResponseDTO":
        """Convert a RunOutcome; the stack trace stays in the persisted errorJson only."""
        error = None
        if outcome.error is not None:
            error = {k: v for k, v in outcome.error.items() if k != "stack"}
        return cls(
            run_id=outcome.run_id,
            status=outcome.status,
            timings_ms=outcome.timings_ms,
            error=error,
        )


class RowDTO(_CamelDTO):
    row_id: str
    cluster: str
    keyword: str
    intent: str
    mentions: int
    recency_score: float
    research_score: float
    sources_count: int
    domains_count: int
    cluster_rank: int
    top_evidence: list[dict[str, Any]] = Field(default_factory=list)


class ClusterDTO(_CamelDTO):
    cluster: str
    top_keywords: list[str] = Field(default_factory=list)
    recommended_actions: list[dict[str, Any]] = Field(default_factory=list)
    top_evidence: list[dict[str, Any]] = Field(default_factory=list)


class EvidenceDTO(_CamelDTO):
    url: str
    domain: str
    title: str
    snippet: str
    published_at: date | None = None
    captured_at: str
    query: str


class ResearchRunDetailDTO(_CamelDTO):
    id: str
    query: str
    mode: str
    locale: str | None = None
    geo: str | None = None
    language: str | None = None
    status: str
    timings_ms: dict[str, Any] | None = None
    result_json: dict[str, Any] | None = None
    error_json: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    clusters: list[ClusterDTO] = Field(default_factory=list)
    rows: list[RowDTO] = Field(default_factory=list)
    evidence: list[EvidenceDTO] = Field(default_factory=list)
