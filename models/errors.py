"""Error taxonomy for the research pipeline.

Every failure that can end a run derives from ``ResearchError`` and knows how
to render itself as the ``errorJson`` payload persisted on the run.
"""

import traceback
from typing import Any

MAX_STACK_CHARS = 2000


class ResearchError(Exception):
    """Base class for pipeline failures that end a run as FAILED."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        timeout: bool = False,
        is_rate_limit: bool = False,
        code: str | None = None,
        status: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.timeout = timeout
        self.is_rate_limit = is_rate_limit
        self.code = code
        self.status = status


class FetchError(ResearchError):
    """The search provider failed or returned a non-2xx response."""

    def __init__(self, message: str, *, status: int | None = None, code: str | None = None):
        super().__init__(message, stage="tavily", status=status, code=code)


class LLMRateLimitError(ResearchError):
    """The generative provider answered 429; retried up to the configured bound."""

    def __init__(self, message: str = "rate limited", *, code: str | None = "rate_limit_exceeded"):
        super().__init__(message, stage="llm", is_rate_limit=True, code=code, status=429)


class LLMTimeoutError(ResearchError):
    """A single generative call exceeded the per-call timeout."""

    def __init__(self, timeout_ms: int):
        super().__init__(
            f"LLM request timed out after {timeout_ms}ms", stage="llm", timeout=True
        )
        self.timeout_ms = timeout_ms


class LLMProviderError(ResearchError):
    """Non-retryable provider failure (auth, bad request, 5xx)."""

    def __init__(self, message: str, *, status: int | None = None, code: str | None = None):
        super().__init__(message, stage="llm", status=status, code=code)


class PipelineTimeoutError(ResearchError):
    """The overall pipeline budget ran out while ``stage`` was in progress."""

    http_status = 504

    def __init__(self, timeout_ms: int, stage: str | None):
        super().__init__(
            f"Research pipeline timed out after {timeout_ms}ms", stage=stage, timeout=True
        )
        self.timeout_ms = timeout_ms


class RunCancelledError(ResearchError):
    """The run's task was cancelled (client disconnect, shutdown) before it finished."""

    def __init__(self, stage: str | None):
        super().__init__("Research run cancelled", stage=stage)


class SchemaValidationError(Exception):
    """Model output was not valid JSON or did not match the output schema.

    Never ends a run: the pipeline repairs once, then degrades to an empty result.
    """

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


def _truncated_stack(exc: BaseException) -> str:
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return stack[:MAX_STACK_CHARS]


def serialize_error(exc: BaseException, stage: str | None = None) -> dict[str, Any]:
    """
    Build the structured ``errorJson`` payload for a failed run.

    Args:
        exc: The exception that ended the run
        stage: Stage in progress when it was raised, used when the error
            does not carry its own

    Returns:
        Dict with name, message, stack and the timeout/isRateLimit/stage/code/status flags
    """
    payload: dict[str, Any] = {
        "name": type(exc).__name__,
        "message": str(exc),
        "stack": _truncated_stack(exc),
        "timeout": False,
        "isRateLimit": False,
        "stage": stage,
    }

    if isinstance(exc, ResearchError):
        payload["message"] = exc.message
        payload["timeout"] = exc.timeout
        payload["isRateLimit"] = exc.is_rate_limit
        payload["stage"] = exc.stage or stage
        if exc.code is not None:
            payload["code"] = exc.code
        if exc.status is not None:
            payload["status"] = exc.status

    return payload


def http_status_for(exc: BaseException) -> int:
    if isinstance(exc, ResearchError):
        return exc.http_status
    return 500
