"""
ResearchOrchestrator - run lifecycle around the research pipeline.

Creates the run in RUNNING state before any external call, bounds the
pipeline with the per-mode overall timeout, then finalizes the run exactly once:
SUCCESS (children and status in one transaction) or FAILED with a structured
error payload. Database work runs in worker threads so concurrent runs keep
their timers and fan-out moving.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from api.base_client import BaseLLMClient
from config.config import ResearchConfig
from db.repository import (
    RunAlreadyFinalizedError,
    create_run_running,
    finalize_run_failed,
    finalize_run_success,
    save_run_children,
)
from db.session import SessionLocal, session_scope
from models.errors import (
    PipelineTimeoutError,
    RunCancelledError,
    http_status_for,
    serialize_error,
)
from orchestrator.pipeline import PipelineResult, ResearchParams, ResearchPipeline, StageTimer
from tools.web.cache import InMemoryTTLCache
from tools.web.evidence import SearchClient
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RunOutcome:
    run_id: str
    status: str
    timings_ms: dict[str, Any]
    error: dict[str, Any] | None = None
    http_status: int = 200

    @property
    def is_success(self) -> bool:
        return self.status == "SUCCESS"


class ResearchOrchestrator:
    """
    Example usage:
        orchestrator = ResearchOrchestrator(config, TavilySearchClient(), OpenAIClient(key))
        outcome = await orchestrator.run(ResearchParams(query="birthday decor"))
    """

    def __init__(
        self,
        config: ResearchConfig,
        search_client: SearchClient,
        llm_client: BaseLLMClient,
        cache: InMemoryTTLCache | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.config = config
        self.search_client = search_client
        self.llm_client = llm_client
        self.cache = cache
        self.session_factory = session_factory

    async def run(self, params: ResearchParams, request_id: str | None = None) -> RunOutcome:
        """
        Execute one research run end to end.

        Every run that gets an id is moved out of RUNNING: pipeline errors and
        timeouts end as FAILED with an outcome, and a cancelled task records
        FAILED before the cancellation propagates.
        """
        timer = StageTimer()
        run_id = await asyncio.to_thread(self._create_run, params)

        log_fields = {"run_id": run_id, "request_id": request_id, "mode": params.mode.value}
        logger.info("Research run started", extra={"extra_fields": log_fields})

        pipeline = ResearchPipeline(self.config, self.search_client, self.llm_client, self.cache)
        timeout_s = self.config.pipeline_timeout_s(params.mode)
        finalized = False

        try:
            try:
                result = await asyncio.wait_for(pipeline.execute(params, timer), timeout=timeout_s)
            except asyncio.TimeoutError:
                error = PipelineTimeoutError(int(timeout_s * 1000), stage=timer.current_stage)
                outcome = await self._fail(run_id, timer, pipeline, error, log_fields)
                finalized = True
                return outcome
            except Exception as exc:
                outcome = await self._fail(run_id, timer, pipeline, exc, log_fields)
                finalized = True
                return outcome

            try:
                timings = await asyncio.to_thread(
                    self._persist_success, run_id, result, timer, pipeline
                )
            except Exception as exc:
                timer.current_stage = "persist"
                outcome = await self._fail(run_id, timer, pipeline, exc, log_fields)
                finalized = True
                return outcome
            finalized = True
        except BaseException:
            if not finalized:
                self._abandon(run_id, timer, pipeline, log_fields)
            raise

        logger.info(
            "Research run succeeded",
            extra={
                "extra_fields": {
                    **log_fields,
                    "timings_ms": timings,
                    "rows": len(result.output.rows),
                    "clusters": len(result.output.cluster_bundles),
                    "degraded": result.degraded,
                }
            },
        )
        return RunOutcome(run_id=run_id, status="SUCCESS", timings_ms=timings)

    def _telemetry(self, pipeline: ResearchPipeline) -> dict[str, Any]:
        return {"tavilyCacheHit": pipeline.cache_hit, "llmAttempts": pipeline.llm_attempts}

    # ------------------------------------------------------------------
    # Blocking persistence, called through asyncio.to_thread
    # ------------------------------------------------------------------

    def _create_run(self, params: ResearchParams) -> str:
        with session_scope(self.session_factory) as session:
            return create_run_running(
                session,
                query=params.query,
                mode=params.mode.value,
                locale=params.locale,
                geo=params.geo,
                language=params.language,
            )

    def _persist_success(
        self,
        run_id: str,
        result: PipelineResult,
        timer: StageTimer,
        pipeline: ResearchPipeline,
    ) -> dict[str, Any]:
        with session_scope(self.session_factory) as session:
            with timer.stage("persist"):
                save_run_children(
                    session,
                    run_id,
                    rows=result.output.rows,
                    clusters=result.output.cluster_bundles,
                    evidence=result.evidence,
                )
            timings = timer.snapshot(**self._telemetry(pipeline))
            finalize_run_success(
                session, run_id, timings_ms=timings, result_json=result.to_result_json()
            )
        return timings

    def _write_failed(
        self, run_id: str, timings: dict[str, Any], error_json: dict[str, Any]
    ) -> None:
        with session_scope(self.session_factory) as session:
            finalize_run_failed(session, run_id, timings_ms=timings, error_json=error_json)

    # ------------------------------------------------------------------
    # Failure paths
    # ------------------------------------------------------------------

    async def _fail(
        self,
        run_id: str,
        timer: StageTimer,
        pipeline: ResearchPipeline,
        exc: BaseException,
        log_fields: dict[str, Any],
    ) -> RunOutcome:
        error_json = serialize_error(exc, stage=timer.current_stage)
        timings = timer.snapshot(**self._telemetry(pipeline))

        try:
            await asyncio.to_thread(self._write_failed, run_id, timings, error_json)
        except Exception:
            # the caller still gets its runId and the original error
            logger.exception(
                "Could not persist FAILED status",
                extra={"extra_fields": {**log_fields, "error_name": error_json["name"]}},
            )

        logger.error(
            f"Research run failed: {error_json['name']}: {error_json['message']}",
            extra={
                "extra_fields": {
                    **log_fields,
                    "stage": error_json.get("stage"),
                    "timeout": error_json.get("timeout"),
                    "is_rate_limit": error_json.get("isRateLimit"),
                    "timings_ms": timings,
                }
            },
        )
        return RunOutcome(
            run_id=run_id,
            status="FAILED",
            timings_ms=timings,
            error=error_json,
            http_status=http_status_for(exc),
        )

    def _abandon(
        self,
        run_id: str,
        timer: StageTimer,
        pipeline: ResearchPipeline,
        log_fields: dict[str, Any],
    ) -> None:
        """
        Record FAILED for a run whose task is going away.

        Runs inline: the task is already cancelled, so awaiting a worker
        thread here could be interrupted again.
        """
        error_json = serialize_error(RunCancelledError(timer.current_stage))
        timings = timer.snapshot(**self._telemetry(pipeline))
        try:
            self._write_failed(run_id, timings, error_json)
        except RunAlreadyFinalizedError:
            logger.info(
                "Cancelled run was already finalized", extra={"extra_fields": log_fields}
            )
            return
        except Exception:
            logger.exception(
                "Could not persist FAILED status for cancelled run",
                extra={"extra_fields": log_fields},
            )
            return

        logger.warning(
            "Research run cancelled",
            extra={"extra_fields": {**log_fields, "stage": timer.current_stage, "timings_ms": timings}},
        )
