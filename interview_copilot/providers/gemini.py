from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from interview_copilot.config import Config
from interview_copilot.models import ProviderConfig
from interview_copilot.prompt import inline_prompt
from interview_copilot.providers.base import (
    MAX_ANSWER_TOKENS,
    NO_ANSWER,
    REQUEST_TIMEOUT_SECONDS,
    ProviderClient,
)


class GeminiProvider(ProviderClient):
    """
    Gemini Developer API (AI Studio) over REST.
    Uses the generateContent endpoint; there is no separate system field, so
    the system prompt is sent inline ahead of the question.
    """

    name = "gemini"

    def __init__(
        self,
        config: ProviderConfig,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self.base_url = (base_url or Config.GEMINI_BASE_URL).rstrip("/")
        self._transport = transport

    async def complete(self, system_prompt: str, question: str) -> str:
        # Gemini REST: POST /v1beta/models/{model}:generateContent
        url = f"{self.base_url}/v1beta/models/{self.model}:generateContent"

        body = {
            "contents": [
                {"parts": [{"text": inline_prompt(system_prompt, question)}]}
            ],
            "generationConfig": {"maxOutputTokens": MAX_ANSWER_TOKENS},
        }

        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS, transport=self._transport) as client:
            r = await client.post(url, json=body, headers=headers)
            r.raise_for_status()
            data = r.json()

        return extract_answer(data)


def extract_answer(data: Any) -> str:
    """candidates[0].content.parts[0].text, or NO_ANSWER."""
    if not isinstance(data, dict):
        return NO_ANSWER
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return NO_ANSWER
    content: Dict[str, Any] = candidates[0].get("content") or {}
    if not isinstance(content, dict):
        return NO_ANSWER
    parts = content.get("parts") or []
    if not parts or not isinstance(parts[0], dict):
        return NO_ANSWER
    return parts[0].get("text") or NO_ANSWER
