"""
Repository layer for research runs.
CRUD functions using SQLAlchemy Core with the tables in db.tables.

Design principles:
- Functions do NOT commit - caller commits for transaction control
- Terminal transitions are guarded by ``status == 'RUNNING'`` so a run is
  finalized exactly once
- Uses SQLAlchemy Core (insert/select/update) not ORM
"""

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from db.tables import research_clusters, research_evidence, research_rows, research_runs
from models.research_output import ClusterBundle, ResearchRow
from tools.web.contracts import Evidence
from utils.logger import get_logger

logger = get_logger(__name__)


class RunAlreadyFinalizedError(RuntimeError):
    """Raised when a terminal transition targets a run that is not RUNNING."""


# ============================================================================
# RUN LIFECYCLE
# ============================================================================


def create_run_running(
    db: Session,
    *,
    query: str,
    mode: str = "quick",
    locale: str | None = None,
    geo: str | None = None,
    language: str | None = None,
) -> str:
    """
    Insert a new run in RUNNING state.

    Returns:
        str: The new run id (uuid4)
    """
    run_id = str(uuid.uuid4())
    db.execute(
        insert(research_runs).values(
            id=run_id,
            query=query,
            mode=mode,
            locale=locale,
            geo=geo,
            language=language,
            status="RUNNING",
        )
    )
    logger.info("Run created", extra={"extra_fields": {"run_id": run_id, "mode": mode}})
    return run_id


def _finalize(db: Session, run_id: str, values: dict[str, Any]) -> None:
    result = db.execute(
        update(research_runs)
        .where(research_runs.c.id == run_id, research_runs.c.status == "RUNNING")
        .values(**values)
    )
    if result.rowcount != 1:
        raise RunAlreadyFinalizedError(f"Run {run_id} is not RUNNING")


def finalize_run_success(
    db: Session, run_id: str, *, timings_ms: dict[str, Any], result_json: dict[str, Any]
) -> None:
    """RUNNING -> SUCCESS. Raises RunAlreadyFinalizedError if the run is terminal."""
    _finalize(
        db,
        run_id,
        {"status": "SUCCESS", "timings_ms": timings_ms, "result_json": result_json, "error_json": None},
    )


def finalize_run_failed(
    db: Session, run_id: str, *, timings_ms: dict[str, Any], error_json: dict[str, Any]
) -> None:
    """RUNNING -> FAILED. Raises RunAlreadyFinalizedError if the run is terminal."""
    _finalize(
        db,
        run_id,
        {"status": "FAILED", "timings_ms": timings_ms, "error_json": error_json},
    )


# ============================================================================
# CHILDREN
# ============================================================================


def save_run_children(
    db: Session,
    run_id: str,
    *,
    rows: Sequence[ResearchRow],
    clusters: Sequence[ClusterBundle],
    evidence: Sequence[Evidence],
) -> None:
    """Insert rows, cluster bundles and capped evidence for a run."""
    if rows:
        db.execute(
            insert(research_rows),
            [
                {
                    "run_id": run_id,
                    "position": position,
                    "row_id": row.row_id,
                    "cluster": row.cluster,
                    "keyword": row.keyword,
                    "intent": row.intent,
                    "mentions": row.mentions,
                    "recency_score": row.recency_score,
                    "research_score": row.research_score,
                    "sources_count": row.sources_count,
                    "domains_count": row.domains_count,
                    "cluster_rank": row.cluster_rank or 0,
                    "top_evidence": [
                        ref.model_dump(by_alias=True, mode="json") for ref in row.top_evidence
                    ],
                }
                for position, row in enumerate(rows)
            ],
        )

    if clusters:
        db.execute(
            insert(research_clusters),
            [
                {
                    "run_id": run_id,
                    "position": position,
                    "cluster": bundle.cluster,
                    "top_keywords": list(bundle.top_keywords),
                    "recommended_actions": [
                        action.model_dump(by_alias=True, mode="json")
                        for action in bundle.recommended_actions
                    ],
                    "top_evidence": [
                        ref.model_dump(by_alias=True, mode="json") for ref in bundle.top_evidence
                    ],
                }
                for position, bundle in enumerate(clusters)
            ],
        )

    if evidence:
        db.execute(
            insert(research_evidence),
            [
                {
                    "run_id": run_id,
                    "position": position,
                    "url": item.url,
                    "domain": item.domain,
                    "title": item.title,
                    "snippet": item.snippet,
                    "published_at": item.published_at,
                    "captured_at": item.captured_at,
                    "query": item.query,
                }
                for position, item in enumerate(evidence)
            ],
        )


# ============================================================================
# READS
# ============================================================================


def get_run(db: Session, run_id: str) -> dict[str, Any] | None:
    row = db.execute(select(research_runs).where(research_runs.c.id == run_id)).mappings().first()
    return dict(row) if row else None


def _children(db: Session, table, run_id: str) -> list[dict[str, Any]]:
    rows = (
        db.execute(select(table).where(table.c.run_id == run_id).order_by(table.c.position))
        .mappings()
        .all()
    )
    return [dict(r) for r in rows]


def get_run_rows(db: Session, run_id: str) -> list[dict[str, Any]]:
    return _children(db, research_rows, run_id)


def get_run_clusters(db: Session, run_id: str) -> list[dict[str, Any]]:
    return _children(db, research_clusters, run_id)


def get_run_evidence(db: Session, run_id: str) -> list[dict[str, Any]]:
    return _children(db, research_evidence, run_id)
