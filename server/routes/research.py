"""Web research endpoints: start a run and inspect a persisted run."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config.config import ResearchConfig, ResearchMode
from db.repository import get_run, get_run_clusters, get_run_evidence, get_run_rows
from db.session import get_db
from orchestrator.core import ResearchOrchestrator
from orchestrator.pipeline import ResearchParams
from server.dependencies import get_orchestrator, get_research_config
from server.schemas.requests import ResearchWebRequest
from server.schemas.responses import (
    ErrorResponseDTO,
    ResearchRunDetailDTO,
    ResearchRunResponseDTO,
)
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/research", tags=["Research"])


def _build_params(body: ResearchWebRequest, config: ResearchConfig) -> ResearchParams:
    return ResearchParams(
        query=body.query.strip(),
        mode=ResearchMode(body.mode),
        market=body.market or config.default_market,
        language=body.language or config.default_language,
        topic=body.topic,
        locale=body.locale,
        geo=body.geo,
    )


@router.post(
    "/web",
    response_model=ResearchRunResponseDTO,
    responses={
        400: {"model": ErrorResponseDTO},
        500: {"model": ResearchRunResponseDTO},
        504: {"model": ResearchRunResponseDTO},
    },
)
async def research_web(
    body: ResearchWebRequest,
    request: Request,
    config: ResearchConfig = Depends(get_research_config),
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """Run the research pipeline synchronously and report the run's outcome."""
    if not body.query or not body.query.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"error": "query is required"}
        )

    request_id = getattr(request.state, "request_id", None)
    outcome = await orchestrator.run(_build_params(body, config), request_id=request_id)

    dto = ResearchRunResponseDTO.from_outcome(outcome)
    if outcome.is_success:
        return dto

    return JSONResponse(
        status_code=outcome.http_status,
        content=dto.model_dump(by_alias=True, mode="json"),
    )


@router.get(
    "/runs/{run_id}",
    response_model=ResearchRunDetailDTO,
    responses={404: {"model": ErrorResponseDTO}},
)
def get_research_run(run_id: str, db: Session = Depends(get_db)):
    """Return a persisted run with its clusters, rows and evidence."""
    run = get_run(db, run_id)
    if run is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Run not found"})

    return ResearchRunDetailDTO.model_validate(
        {
            **run,
            "clusters": get_run_clusters(db, run_id) or [],
            "rows": get_run_rows(db, run_id) or [],
            "evidence": get_run_evidence(db, run_id) or [],
        }
    )
