"""
Test Suite: ResearchOrchestrator run lifecycle

Drives the orchestrator directly (no HTTP layer) against a temporary SQLite
database to check that a run never stays RUNNING: cancellation mid-pipeline
and a database failure while recording FAILED are both covered, as is keeping
database work off the event loop thread.
"""

import asyncio
import threading

import pytest
from sqlalchemy import select

from config.config import ResearchConfig
from conftest import FakeLLMClient, FakeSearchClient
from db.engine import get_engine
from db.session import SessionLocal
from db.tables import research_runs
from models.errors import FetchError
from orchestrator.core import ResearchOrchestrator
from orchestrator.pipeline import ResearchParams

pytestmark = pytest.mark.integration


def _runs() -> list[dict]:
    with get_engine().connect() as conn:
        return [dict(r) for r in conn.execute(select(research_runs)).mappings().all()]


def _orchestrator(llm, search=None, session_factory=SessionLocal) -> ResearchOrchestrator:
    return ResearchOrchestrator(
        config=ResearchConfig.from_env(),
        search_client=search or FakeSearchClient(),
        llm_client=llm,
        session_factory=session_factory,
    )


@pytest.fixture
def lifecycle_env(research_env, sqlite_db):
    return research_env


def test_cancelled_run_is_marked_failed(lifecycle_env):
    orchestrator = _orchestrator(FakeLLMClient(delay_s=0.3))

    async def _cancel_mid_run():
        task = asyncio.create_task(orchestrator.run(ResearchParams(query="birthday decor")))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_cancel_mid_run())

    runs = _runs()
    assert len(runs) == 1
    assert runs[0]["status"] == "FAILED"
    assert runs[0]["error_json"]["name"] == "RunCancelledError"
    assert runs[0]["error_json"]["stage"] == "llm"
    assert "tavily" in runs[0]["timings_ms"]


def test_failed_status_write_still_returns_run_id(lifecycle_env):
    sessions = {"count": 0}

    def flaky_factory():
        sessions["count"] += 1
        if sessions["count"] > 1:
            raise RuntimeError("database unavailable")
        return SessionLocal()

    orchestrator = _orchestrator(
        FakeLLMClient(),
        search=FakeSearchClient(error=FetchError("Tavily search failed (502)", status=502)),
        session_factory=flaky_factory,
    )

    outcome = asyncio.run(orchestrator.run(ResearchParams(query="birthday decor")))

    assert outcome.status == "FAILED"
    assert outcome.run_id == _runs()[0]["id"]
    assert outcome.error["name"] == "FetchError"
    assert outcome.http_status == 500


def test_persistence_runs_off_the_event_loop_thread(lifecycle_env):
    loop_thread = threading.get_ident()
    session_threads: list[int] = []

    def recording_factory():
        session_threads.append(threading.get_ident())
        return SessionLocal()

    orchestrator = _orchestrator(FakeLLMClient(), session_factory=recording_factory)

    outcome = asyncio.run(orchestrator.run(ResearchParams(query="birthday decor")))

    assert outcome.status == "SUCCESS"
    assert len(session_threads) == 2
    assert loop_thread not in session_threads
    assert _runs()[0]["status"] == "SUCCESS"
