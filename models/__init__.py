"""
Models package: model-output schema and the pipeline error taxonomy.
"""

from .errors import (
    FetchError,
    LLMProviderError,
    LLMRateLimitError,
    LLMTimeoutError,
    PipelineTimeoutError,
    ResearchError,
    RunCancelledError,
    SchemaValidationError,
)
from .research_output import ClusterBundle, ResearchOutput, ResearchRow, ResultBundle

__all__ = [
    "ClusterBundle",
    "FetchError",
    "LLMProviderError",
    "LLMRateLimitError",
    "LLMTimeoutError",
    "PipelineTimeoutError",
    "ResearchError",
    "ResearchOutput",
    "ResearchRow",
    "ResultBundle",
    "RunCancelledError",
    "SchemaValidationError",
]
