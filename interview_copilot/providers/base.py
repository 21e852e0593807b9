"""Abstract base class for LLM provider clients."""

from abc import ABC, abstractmethod

from interview_copilot.models import ProviderConfig

# Shared request parameters
MAX_ANSWER_TOKENS = 1000
TEMPERATURE = 0.7
REQUEST_TIMEOUT_SECONDS = 60
MAX_RETRIES = 2

# Returned when a successful response carries no usable text
NO_ANSWER = "No answer generated"


class ProviderClient(ABC):
    """One configured connection to an LLM provider."""

    name: str = ""

    def __init__(self, config: ProviderConfig):
        if not config.api_key:
            raise ValueError(f"{self.name} client requires an API key")
        self.api_key = config.api_key
        self.model = config.resolved_model

    @abstractmethod
    async def complete(self, system_prompt: str, question: str) -> str:
        """Ask the provider for an answer.

        Args:
            system_prompt: Instructions for the answer's tone and language
            question: The extracted interview question

        Returns:
            Answer text, or NO_ANSWER when the response has none
        """

    async def aclose(self) -> None:
        """Release network resources held by the client."""
