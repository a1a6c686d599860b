import json
import os
import tempfile
import threading
import time
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Keep test logs out of the working tree; must run before any get_logger call
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "web-research-test-logs"))

# Load environment variables from .env file for tests
load_dotenv()

from api.base_client import BaseLLMClient  # noqa: E402
from db.engine import init_db, reset_engine  # noqa: E402
from models.errors import FetchError, LLMRateLimitError  # noqa: E402
from tools.web.contracts import SearchResult  # noqa: E402

DEFAULT_RESULTS = [
    {
        "url": "https://example.com/decor-a",
        "title": "Decor A",
        "content": "Decor A content",
        "published_date": "2026-01-10",
    },
    {
        "url": "https://example.org/decor-b",
        "title": "Decor B",
        "content": "Decor B content",
        "published_date": "2026-01-11",
    },
]


def deterministic_output(**overrides) -> dict:
    """A valid 2-row / 2-cluster model output."""
    payload = {
        "rows": [
            {
                "rowId": "row-1",
                "cluster": "Pastel",
                "keyword": "pastel birthday banner",
                "intent": "buying",
                "mentions": 8,
                "recencyScore": 0.8,
                "researchScore": 0.9,
                "sourcesCount": 2,
                "domainsCount": 2,
                "topEvidence": [
                    {
                        "url": "https://example.com/decor-a",
                        "title": "Decor A",
                        "snippet": "Decor A snippet",
                        "publishedAt": "2026-01-10",
                    },
                    {
                        "url": "https://example.org/decor-b",
                        "title": "Decor B",
                        "snippet": "Decor B snippet",
                        "publishedAt": "2026-01-11",
                    },
                ],
            },
            {
                "rowId": "row-2",
                "cluster": "Neon",
                "keyword": "neon party decor kit",
                "intent": "inspiration",
                "mentions": 5,
                "recencyScore": 0.7,
                "researchScore": 0.84,
                "sourcesCount": 1,
                "domainsCount": 1,
                "topEvidence": [
                    {
                        "url": "https://example.com/decor-a",
                        "title": "Decor A",
                        "snippet": "Decor A snippet",
                        "publishedAt": "2026-01-10",
                    }
                ],
            },
        ],
        "clusterBundles": [
            {
                "cluster": "Pastel",
                "topKeywords": ["pastel birthday banner", "pastel balloon arch"],
                "recommendedActions": [{"title": "Ship pastel SEO set", "priority": "P0"}],
                "topEvidence": [{"url": "https://example.com/decor-a", "title": "Decor A"}],
            },
            {
                "cluster": "Neon",
                "topKeywords": ["neon party decor kit"],
                "recommendedActions": [{"title": "Bundle neon kits", "priority": "P1"}],
                "topEvidence": [{"url": "https://example.org/decor-b", "title": "Decor B"}],
            },
        ],
    }
    payload.update(overrides)
    return payload


def deterministic_output_json(**overrides) -> str:
    return json.dumps(deterministic_output(**overrides))


# -------------------------------------------------------------------
# Fake collaborators (keep tests offline & deterministic)
# -------------------------------------------------------------------


class FakeSearchClient:
    def __init__(self, results: list[dict] | None = None, error: Exception | None = None):
        self.results = results if results is not None else DEFAULT_RESULTS
        self.error = error
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def search(
        self,
        query,
        max_results=5,
        search_depth="basic",
        include_domains=None,
        exclude_domains=None,
    ):
        with self._lock:
            self.calls.append(
                {"query": query, "max_results": max_results, "search_depth": search_depth}
            )
        if self.error is not None:
            raise self.error
        return [SearchResult.from_dict(item) for item in self.results]

    @property
    def call_count(self) -> int:
        return len(self.calls)


class FakeLLMClient(BaseLLMClient):
    provider_name = "fake"

    def __init__(
        self,
        responses: list[str] | None = None,
        delay_s: float = 0.0,
        rate_limited_times: int = 0,
        always_rate_limited: bool = False,
        error: Exception | None = None,
    ):
        super().__init__(api_key="test-key", model_name="fake-model")
        self.responses = list(responses or [])
        self.delay_s = delay_s
        self.rate_limited_times = rate_limited_times
        self.always_rate_limited = always_rate_limited
        self.error = error
        self.calls: list[dict] = []

    def get_completion(self, prompt: str, *, temperature: float) -> str:
        self.calls.append({"prompt": prompt, "temperature": temperature})
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        if self.always_rate_limited:
            raise LLMRateLimitError()
        if self.rate_limited_times > 0:
            self.rate_limited_times -= 1
            raise LLMRateLimitError()
        if self.responses:
            return self.responses.pop(0)
        return deterministic_output_json()

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def fake_search():
    return FakeSearchClient()


@pytest.fixture
def failing_search():
    return FakeSearchClient(error=FetchError("Tavily search failed (502): bad gateway", status=502))


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def research_env(monkeypatch):
    """Baseline pipeline settings; individual tests tighten them."""
    env_vars = {
        "OPENAI_API_KEY": "test-openai-key",
        "TAVILY_API_KEY": "test-tavily-key",
        "OPENAI_RETRY_MAX": "3",
        "OPENAI_RETRY_BASE_MS": "1",
        "OPENAI_RETRY_MAX_BACKOFF_MS": "5",
        "RESEARCH_TIMEOUT_MS_QUICK": "3000",
        "RESEARCH_TIMEOUT_MS_DEEP": "3000",
        "LLM_TIMEOUT_MS": "1000",
        "TAVILY_CACHE_ENABLED": "false",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def sqlite_db(tmp_path, monkeypatch):
    """Fresh SQLite database per test."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'research.db'}")
    reset_engine()
    init_db()
    yield
    reset_engine()
