"""
ResearchPipeline - fetch, cap, prompt, generate, validate and score.

One pipeline instance serves one run. Stage durations are collected in a
``StageTimer`` shared with the orchestrator, which also reads the stage in
progress when the overall budget runs out.
"""

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from api.base_client import BaseLLMClient
from config.config import ResearchConfig, ResearchMode, mode_settings
from models.research_output import ResearchOutput, ResultBundle
from orchestrator.generative_client import GenerativeClient
from orchestrator.prompt_builder import build_repair_prompt, build_research_prompt
from orchestrator.response_validator import OutputValidator
from orchestrator.result_bundle import build_result_bundle
from orchestrator.scoring import add_cluster_rank, score_and_sort_rows
from tools.web.cache import InMemoryTTLCache
from tools.web.contracts import Evidence
from tools.web.evidence import (
    EvidenceFetcher,
    SearchClient,
    build_search_queries,
    cap_evidence_by_domain,
)
from utils.logger import get_logger

logger = get_logger(__name__)

REPAIR_TEMPERATURE = 0.0
INVALID_OUTPUT_LOG_CHARS = 300


@dataclass(frozen=True)
class ResearchParams:
    query: str
    mode: ResearchMode = ResearchMode.QUICK
    market: str = "US"
    language: str = "en"
    topic: str | None = None
    locale: str | None = None
    geo: str | None = None


class StageTimer:
    """Accumulates per-stage durations in milliseconds."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self._started = clock()
        self.timings: dict[str, Any] = {}
        self.current_stage: str | None = None

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        self.current_stage = name
        start = self._clock()
        try:
            yield
        finally:
            elapsed = int((self._clock() - start) * 1000)
            self.timings[name] = self.timings.get(name, 0) + elapsed

    def elapsed_ms(self) -> int:
        return int((self._clock() - self._started) * 1000)

    def snapshot(self, **extra: Any) -> dict[str, Any]:
        """Stage timings plus ``total`` and any telemetry flags."""
        return {**self.timings, **extra, "total": self.elapsed_ms()}


@dataclass
class PipelineResult:
    output: ResearchOutput
    result_bundle: ResultBundle
    evidence: list[Evidence] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)
    degraded: bool = False

    def to_result_json(self) -> dict[str, Any]:
        return {
            "resultBundle": self.result_bundle.model_dump(by_alias=True, mode="json"),
            "queries": self.queries,
            "evidenceCount": len(self.evidence),
            "rowsCount": len(self.output.rows),
            "clustersCount": len(self.output.cluster_bundles),
            "degraded": self.degraded,
        }


class ResearchPipeline:
    def __init__(
        self,
        config: ResearchConfig,
        search_client: SearchClient,
        llm_client: BaseLLMClient,
        cache: InMemoryTTLCache | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.config = config
        self.fetcher = EvidenceFetcher(search_client, cache if config.cache_enabled else None)
        self.generator = GenerativeClient(llm_client, config)
        self.validator = OutputValidator()
        self._now = now
        self.cache_hit = False

    @property
    def llm_attempts(self) -> int:
        return self.generator.attempts

    async def execute(self, params: ResearchParams, timer: StageTimer) -> PipelineResult:
        settings = mode_settings(params.mode)
        started_at = self._now()

        with timer.stage("tavily"):
            queries = build_search_queries(
                params.query, params.mode, params.market, year=started_at.year
            )
            fetched = await self.fetcher.fetch(
                queries,
                max_results=settings.max_results_per_query,
                search_depth=settings.search_depth,
                captured_at=started_at.isoformat(),
                include_domains=self.config.include_domains,
                exclude_domains=self.config.exclude_domains,
            )
            self.cache_hit = fetched.cache_hit
            evidence = cap_evidence_by_domain(
                fetched.evidence, settings.evidence_cap, settings.max_per_domain
            )

        with timer.stage("llm"):
            prompt = build_research_prompt(
                params.query,
                params.mode,
                params.market,
                params.language,
                evidence,
                topic=params.topic,
            )
            output, degraded = await self._generate(prompt, settings.temperature)

        with timer.stage("scoring"):
            rows = score_and_sort_rows(output.rows)[: settings.max_rows]
            rows = add_cluster_rank(rows)
            clusters = output.cluster_bundles[: settings.max_clusters]
            scored = ResearchOutput(rows=rows, cluster_bundles=clusters)
            bundle = build_result_bundle(params.query, clusters)

        return PipelineResult(
            output=scored,
            result_bundle=bundle,
            evidence=evidence,
            queries=queries,
            degraded=degraded,
        )

    async def _generate(self, prompt: str, temperature: float) -> tuple[ResearchOutput, bool]:
        """
        Call the model, validating its output; repair once at temperature 0.

        Returns:
            (output, degraded) where degraded means both attempts were invalid
            and the empty result was substituted
        """
        raw = await self.generator.complete(prompt, temperature)
        first = self.validator.validate(raw)
        if first.ok:
            return first.output, False

        logger.warning(
            "LLM output invalid, issuing repair prompt",
            extra={"extra_fields": {"reason": first.reason, "error": str(first.error)}},
        )

        raw_repair = await self.generator.complete(build_repair_prompt(prompt), REPAIR_TEMPERATURE)
        second = self.validator.validate(raw_repair)
        if second.ok:
            return second.output, False

        logger.error(
            "LLM invalid output after repair, degrading to empty result",
            extra={
                "extra_fields": {
                    "reason": second.reason,
                    "output_head": (raw_repair or "")[:INVALID_OUTPUT_LOG_CHARS],
                }
            },
        )
        return ResearchOutput.empty(), True
