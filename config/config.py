import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv


class ResearchMode(str, Enum):
    """Supported research modes."""
    QUICK = "quick"
    DEEP = "deep"


@dataclass(frozen=True)
class ModeSettings:
    """Per-mode search plan, caps and model parameters."""
    max_results_per_query: int
    search_depth: str
    evidence_cap: int
    max_per_domain: int
    max_rows: int
    max_clusters: int
    temperature: float


MODE_SETTINGS: dict[ResearchMode, ModeSettings] = {
    ResearchMode.QUICK: ModeSettings(
        max_results_per_query=5,
        search_depth="basic",
        evidence_cap=10,
        max_per_domain=3,
        max_rows=12,
        max_clusters=4,
        temperature=0.2,
    ),
    ResearchMode.DEEP: ModeSettings(
        max_results_per_query=6,
        search_depth="advanced",
        evidence_cap=25,
        max_per_domain=3,
        max_rows=25,
        max_clusters=7,
        temperature=0.15,
    ),
}


def mode_settings(mode: ResearchMode | str) -> ModeSettings:
    return MODE_SETTINGS[ResearchMode(mode)]


def load_env_file() -> None:
    """Load the project-level .env file if it exists."""
    env_path = Path(__file__).parent.parent / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class ResearchConfig:
    """
    Configuration for one research run.

    Built once per request via ``from_env`` and passed to every pipeline
    component, so a run never observes environment changes made mid-flight.
    """

    openai_model: str = "gpt-4o-mini"
    llm_timeout_ms: int = 60_000
    retry_max: int = 3
    retry_base_ms: int = 500
    retry_max_backoff_ms: int = 8_000

    timeout_ms_quick: int = 90_000
    timeout_ms_deep: int = 180_000

    cache_enabled: bool = False
    cache_ttl_seconds: int = 3600
    include_domains: tuple[str, ...] = field(default_factory=tuple)
    exclude_domains: tuple[str, ...] = field(default_factory=tuple)

    default_market: str = "US"
    default_language: str = "en"

    @classmethod
    def from_env(cls) -> "ResearchConfig":
        return cls(
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            llm_timeout_ms=_env_int("LLM_TIMEOUT_MS", 60_000),
            retry_max=max(1, _env_int("OPENAI_RETRY_MAX", 3)),
            retry_base_ms=_env_int("OPENAI_RETRY_BASE_MS", 500),
            retry_max_backoff_ms=_env_int("OPENAI_RETRY_MAX_BACKOFF_MS", 8_000),
            timeout_ms_quick=_env_int("RESEARCH_TIMEOUT_MS_QUICK", 90_000),
            timeout_ms_deep=_env_int("RESEARCH_TIMEOUT_MS_DEEP", 180_000),
            cache_enabled=_env_flag("TAVILY_CACHE_ENABLED"),
            cache_ttl_seconds=_env_int("TAVILY_CACHE_TTL_SECONDS", 3600),
            include_domains=_env_list("TAVILY_INCLUDE_DOMAINS"),
            exclude_domains=_env_list("TAVILY_EXCLUDE_DOMAINS"),
            default_market=os.getenv("RESEARCH_DEFAULT_MARKET", "US"),
        )

    def pipeline_timeout_s(self, mode: ResearchMode | str) -> float:
        """Overall fetch-to-scoring budget for the given mode, in seconds."""
        if ResearchMode(mode) is ResearchMode.DEEP:
            return self.timeout_ms_deep / 1000
        return self.timeout_ms_quick / 1000

    @property
    def llm_timeout_s(self) -> float:
        return self.llm_timeout_ms / 1000
