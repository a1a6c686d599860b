"""
GenerativeClient - bounded, retrying access to the generative model.

Each attempt runs the blocking provider call in the default executor under
``asyncio.wait_for``. On timeout the orchestrator stops waiting; the worker
thread is not interrupted and its eventual result is discarded.
"""

import asyncio
from functools import partial

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from api.base_client import BaseLLMClient
from config.config import ResearchConfig
from models.errors import LLMRateLimitError, LLMTimeoutError
from utils.logger import get_logger

logger = get_logger(__name__)


class GenerativeClient:
    """
    Wraps a ``BaseLLMClient`` with a per-call timeout and 429 backoff.

    Only ``LLMRateLimitError`` is retried, sequentially, up to
    ``config.retry_max`` total attempts. Timeouts and other provider errors
    propagate on the first occurrence.
    """

    def __init__(self, client: BaseLLMClient, config: ResearchConfig):
        self.client = client
        self.config = config
        self.attempts = 0

    def _log_retry(self, retry_state: RetryCallState) -> None:
        sleep_s = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            "LLM rate limited, backing off",
            extra={
                "extra_fields": {
                    "attempt": retry_state.attempt_number,
                    "retry_max": self.config.retry_max,
                    "sleep_ms": int(sleep_s * 1000),
                }
            },
        )

    async def _call_once(self, prompt: str, temperature: float) -> str:
        self.attempts += 1
        loop = asyncio.get_running_loop()
        call_fn = partial(self.client.get_completion, prompt, temperature=temperature)
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, call_fn), timeout=self.config.llm_timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(
                "LLM call timed out",
                extra={
                    "extra_fields": {
                        "timeout_ms": self.config.llm_timeout_ms,
                        "attempt": self.attempts,
                    }
                },
            )
            raise LLMTimeoutError(self.config.llm_timeout_ms) from None

    async def complete(self, prompt: str, temperature: float) -> str:
        """
        Get raw model text for ``prompt``.

        Raises:
            LLMRateLimitError: Every attempt was rate limited
            LLMTimeoutError: An attempt exceeded the per-call timeout
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(LLMRateLimitError),
            stop=stop_after_attempt(self.config.retry_max),
            wait=wait_exponential(
                multiplier=self.config.retry_base_ms / 1000,
                max=self.config.retry_max_backoff_ms / 1000,
            ),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._call_once(prompt, temperature)
