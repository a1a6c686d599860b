from abc import ABC, abstractmethod


class BaseLLMClient(ABC):
    """
    Abstract base class for generative model clients.

    Implementations make one blocking provider call per ``get_completion`` and
    must surface rate limits as ``LLMRateLimitError`` and provider-side
    timeouts as ``LLMTimeoutError`` so the caller can tell them apart.
    Retries and the per-call timeout live in ``orchestrator.generative_client``.
    """

    provider_name: str = "unknown"

    def __init__(self, api_key: str, **kwargs):
        """
        Args:
            api_key: API key for the AI service
            **kwargs: Additional model-specific parameters
        """
        self.api_key = api_key
        self.model_name = kwargs.get("model_name")

    @abstractmethod
    def get_completion(self, prompt: str, *, temperature: float) -> str:
        """
        Get a raw text completion for a single-message prompt.

        Args:
            prompt: The full instruction string
            temperature: Sampling temperature

        Returns:
            The generated text, untouched (parsing is the validator's job)
        """
