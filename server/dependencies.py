"""FastAPI dependencies wiring config, collaborators and the orchestrator."""

import os
from collections.abc import Callable

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from api.base_client import BaseLLMClient
from config.config import ResearchConfig
from db.session import SessionLocal
from orchestrator.core import ResearchOrchestrator
from tools.web.cache import InMemoryTTLCache
from tools.web.evidence import SearchClient
from utils.logger import get_logger

logger = get_logger(__name__)


def get_research_config() -> ResearchConfig:
    """One config object per request, read from the environment once."""
    return ResearchConfig.from_env()


def get_evidence_cache(config: ResearchConfig = Depends(get_research_config)) -> InMemoryTTLCache:
    """Process-wide evidence cache (singleton pattern), TTL fixed at first use."""
    if not hasattr(get_evidence_cache, "_instance"):
        get_evidence_cache._instance = InMemoryTTLCache(ttl_seconds=config.cache_ttl_seconds)
    return get_evidence_cache._instance


def get_search_client() -> SearchClient:
    """Tavily client (singleton pattern)."""
    from tools.web.tavily_client import TavilySearchClient

    if not hasattr(get_search_client, "_instance"):
        try:
            get_search_client._instance = TavilySearchClient()
        except ValueError as e:
            logger.error(f"Search provider not configured: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Search provider not configured",
            ) from e
    return get_search_client._instance


def get_llm_client(config: ResearchConfig = Depends(get_research_config)) -> BaseLLMClient:
    from api.openai_client import OpenAIClient

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        logger.error("OPENAI_API_KEY not found in environment variables")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Generative model provider not configured",
        )
    return OpenAIClient(
        api_key=api_key,
        model_name=config.openai_model,
        request_timeout_s=config.llm_timeout_s,
    )


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_orchestrator(
    config: ResearchConfig = Depends(get_research_config),
    search_client: SearchClient = Depends(get_search_client),
    llm_client: BaseLLMClient = Depends(get_llm_client),
    cache: InMemoryTTLCache = Depends(get_evidence_cache),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> ResearchOrchestrator:
    return ResearchOrchestrator(
        config=config,
        search_client=search_client,
        llm_client=llm_client,
        cache=cache,
        session_factory=session_factory,
    )
