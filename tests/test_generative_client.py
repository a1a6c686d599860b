import asyncio

import pytest

from config.config import ResearchConfig
from conftest import FakeLLMClient
from models.errors import LLMProviderError, LLMRateLimitError, LLMTimeoutError
from orchestrator.generative_client import GenerativeClient


def _config(**overrides) -> ResearchConfig:
    values = {
        "retry_max": 3,
        "retry_base_ms": 1,
        "retry_max_backoff_ms": 5,
        "llm_timeout_ms": 1000,
    }
    values.update(overrides)
    return ResearchConfig(**values)


def _complete(generator: GenerativeClient, prompt: str = "p", temperature: float = 0.2) -> str:
    return asyncio.run(generator.complete(prompt, temperature))


def test_success_on_first_attempt():
    llm = FakeLLMClient(responses=["{}"])
    generator = GenerativeClient(llm, _config())

    assert _complete(generator, temperature=0.15) == "{}"
    assert generator.attempts == 1
    assert llm.calls == [{"prompt": "p", "temperature": 0.15}]


def test_rate_limit_retried_until_success():
    llm = FakeLLMClient(responses=["ok"], rate_limited_times=2)
    generator = GenerativeClient(llm, _config())

    assert _complete(generator) == "ok"
    assert llm.call_count == 3
    assert generator.attempts == 3


def test_rate_limit_exhaustion_raises():
    llm = FakeLLMClient(always_rate_limited=True)
    generator = GenerativeClient(llm, _config(retry_max=2))

    with pytest.raises(LLMRateLimitError):
        _complete(generator)
    assert llm.call_count == 2


def test_timeout_is_not_retried():
    llm = FakeLLMClient(delay_s=0.06)
    generator = GenerativeClient(llm, _config(llm_timeout_ms=20))

    with pytest.raises(LLMTimeoutError) as exc_info:
        _complete(generator)

    assert exc_info.value.timeout is True
    assert exc_info.value.timeout_ms == 20
    assert llm.call_count == 1


def test_provider_error_is_not_retried():
    llm = FakeLLMClient(error=LLMProviderError("invalid api key", status=401))
    generator = GenerativeClient(llm, _config())

    with pytest.raises(LLMProviderError):
        _complete(generator)
    assert llm.call_count == 1
