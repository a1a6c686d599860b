"""
Database package for the research service.
Provides SQLAlchemy engine, session management, table definitions and repository functions.
"""

from db.engine import get_engine, init_db, reset_engine
from db.repository import (
    RunAlreadyFinalizedError,
    # Run lifecycle
    create_run_running,
    finalize_run_failed,
    finalize_run_success,
    # Reads
    get_run,
    get_run_clusters,
    get_run_evidence,
    get_run_rows,
    # Children
    save_run_children,
)
from db.session import SessionLocal, get_db, session_scope
from db.tables import metadata

__all__ = [
    "RunAlreadyFinalizedError",
    "SessionLocal",
    "create_run_running",
    "finalize_run_failed",
    "finalize_run_success",
    "get_db",
    "get_engine",
    "get_run",
    "get_run_clusters",
    "get_run_evidence",
    "get_run_rows",
    "init_db",
    "metadata",
    "reset_engine",
    "save_run_children",
    "session_scope",
]
