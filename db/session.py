"""
SQLAlchemy session management.

Session factory must NOT call get_engine() at import time; the engine is
bound lazily when the first session is created.
"""

from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from db.engine import get_engine

# Session factory (unbound at import time)
_SessionFactory = sessionmaker(autocommit=False, autoflush=False)


def SessionLocal() -> Session:
    """
    Lazy session factory that binds the current engine on each call.

    Usage:
        session = SessionLocal()
        try:
            # Use session
        finally:
            session.close()
    """
    _SessionFactory.configure(bind=get_engine())
    return _SessionFactory()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session that is closed after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: Callable[[], Session] = SessionLocal) -> Iterator[Session]:
    """
    One transaction: commit on success, roll back on any error.

    Repository functions never commit; callers group their writes here.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
