import time

import openai

from models.errors import LLMProviderError, LLMRateLimitError, LLMTimeoutError
from utils.logger import get_logger

from .base_client import BaseLLMClient

logger = get_logger(__name__)


class OpenAIClient(BaseLLMClient):
    """
    A client for the OpenAI chat completions API.

    The SDK's own retries are disabled: rate-limit backoff is owned by
    ``GenerativeClient`` so every attempt is counted and bounded there.
    """

    provider_name = "openai"

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4o-mini",
        request_timeout_s: float | None = None,
        **kwargs,
    ):
        """
        Initialize the OpenAI client.

        Args:
            api_key: The OpenAI API key
            model_name: The name of the model to use (default: gpt-4o-mini)
            request_timeout_s: Transport-level timeout for the SDK
            **kwargs: Additional keyword arguments
        """
        super().__init__(api_key, model_name=model_name, **kwargs)
        self.client = openai.OpenAI(api_key=api_key, max_retries=0, timeout=request_timeout_s)
        self.model_name = model_name
        self.request_timeout_s = request_timeout_s

    def get_completion(self, prompt: str, *, temperature: float) -> str:
        start_time = time.time()
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
            )
        except openai.RateLimitError as e:
            logger.warning(
                "OpenAI rate limited",
                extra={"extra_fields": {"model": self.model_name, "status": e.status_code}},
            )
            raise LLMRateLimitError(str(e), code=getattr(e, "code", None) or "rate_limit_exceeded") from e
        except openai.APITimeoutError as e:
            timeout_ms = int((self.request_timeout_s or 0) * 1000)
            raise LLMTimeoutError(timeout_ms) from e
        except openai.APIStatusError as e:
            raise LLMProviderError(
                f"OpenAI request failed ({e.status_code}): {e.message}",
                status=e.status_code,
                code=getattr(e, "code", None),
            ) from e
        except openai.APIConnectionError as e:
            raise LLMProviderError(f"OpenAI connection error: {e}") from e

        text = (response.choices[0].message.content or "").strip() if response.choices else ""
        latency_ms = int((time.time() - start_time) * 1000)

        usage = getattr(response, "usage", None)
        logger.info(
            "OpenAI completion successful",
            extra={
                "extra_fields": {
                    "model": self.model_name,
                    "latency_ms": latency_ms,
                    "tokens": usage.total_tokens if usage else None,
                    "chars": len(text),
                }
            },
        )
        return text
