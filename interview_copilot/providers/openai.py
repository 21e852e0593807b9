"""OpenAI chat-completions provider."""

from __future__ import annotations

from typing import Any, Optional

from openai import AsyncOpenAI

from interview_copilot.config import Config
from interview_copilot.models import ProviderConfig
from interview_copilot.providers.base import (
    MAX_ANSWER_TOKENS,
    MAX_RETRIES,
    NO_ANSWER,
    REQUEST_TIMEOUT_SECONDS,
    TEMPERATURE,
    ProviderClient,
)


class OpenAIProvider(ProviderClient):
    name = "openai"

    def __init__(self, config: ProviderConfig, client: Optional[AsyncOpenAI] = None):
        super().__init__(config)
        self.client = client or AsyncOpenAI(
            api_key=self.api_key,
            base_url=Config.OPENAI_BASE_URL,
            timeout=REQUEST_TIMEOUT_SECONDS,
            max_retries=MAX_RETRIES,
        )

    async def complete(self, system_prompt: str, question: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": question},
            ],
            max_tokens=MAX_ANSWER_TOKENS,
            temperature=TEMPERATURE,
        )
        return extract_answer(response)

    async def aclose(self) -> None:
        await self.client.close()


def extract_answer(response: Any) -> str:
    """choices[0].message.content, or NO_ANSWER if any step is missing."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return NO_ANSWER
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    return content or NO_ANSWER
