"""
SQLAlchemy Core table definitions for research runs and their children.

Rows, clusters and evidence are bound to exactly one run through ``run_id``;
``position`` preserves the order in which the pipeline produced them.
"""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
)

metadata = MetaData()

RUN_STATUSES = ("RUNNING", "SUCCESS", "FAILED")

research_runs = Table(
    "research_runs",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("query", Text, nullable=False),
    Column("mode", String(16), nullable=False, default="quick"),
    Column("locale", String(32), nullable=True),
    Column("geo", String(32), nullable=True),
    Column("language", String(16), nullable=True),
    Column("status", String(16), nullable=False, default="RUNNING", index=True),
    Column("timings_ms", JSON, nullable=True),
    Column("result_json", JSON, nullable=True),
    Column("error_json", JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    CheckConstraint(
        "status IN (" + ", ".join(f"'{s}'" for s in RUN_STATUSES) + ")",
        name="ck_research_runs_status",
    ),
)

research_rows = Table(
    "research_rows",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "run_id", String(36), ForeignKey("research_runs.id", ondelete="CASCADE"), nullable=False, index=True
    ),
    Column("position", Integer, nullable=False),
    Column("row_id", String(128), nullable=False),
    Column("cluster", Text, nullable=False),
    Column("keyword", Text, nullable=False),
    Column("intent", String(32), nullable=False),
    Column("mentions", Integer, nullable=False, default=0),
    Column("recency_score", Float, nullable=False, default=0.0),
    Column("research_score", Float, nullable=False, default=0.0),
    Column("sources_count", Integer, nullable=False, default=0),
    Column("domains_count", Integer, nullable=False, default=0),
    Column("cluster_rank", Integer, nullable=False),
    Column("top_evidence", JSON, nullable=False),
)

research_clusters = Table(
    "research_clusters",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "run_id", String(36), ForeignKey("research_runs.id", ondelete="CASCADE"), nullable=False, index=True
    ),
    Column("position", Integer, nullable=False),
    Column("cluster", Text, nullable=False),
    Column("top_keywords", JSON, nullable=False),
    Column("recommended_actions", JSON, nullable=False),
    Column("top_evidence", JSON, nullable=False),
)

research_evidence = Table(
    "research_evidence",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "run_id", String(36), ForeignKey("research_runs.id", ondelete="CASCADE"), nullable=False, index=True
    ),
    Column("position", Integer, nullable=False),
    Column("url", Text, nullable=False),
    Column("domain", String(255), nullable=False),
    Column("title", Text, nullable=False),
    Column("snippet", Text, nullable=False),
    Column("published_at", Date, nullable=True),
    Column("captured_at", String(40), nullable=False),
    Column("query", Text, nullable=False),
)
