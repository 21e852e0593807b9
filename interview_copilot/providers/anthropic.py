"""Anthropic Messages API provider (REST)."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from interview_copilot.config import Config
from interview_copilot.models import ProviderConfig
from interview_copilot.providers.base import (
    MAX_ANSWER_TOKENS,
    NO_ANSWER,
    REQUEST_TIMEOUT_SECONDS,
    ProviderClient,
)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(ProviderClient):
    name = "anthropic"

    def __init__(
        self,
        config: ProviderConfig,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self.base_url = (base_url or Config.ANTHROPIC_BASE_URL).rstrip("/")
        self._transport = transport

    async def complete(self, system_prompt: str, question: str) -> str:
        body = {
            "model": self.model,
            "max_tokens": MAX_ANSWER_TOKENS,
            "system": system_prompt,
            "messages": [{"role": "user", "content": question}],
        }
        headers = {
            "content-type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS, transport=self._transport) as client:
            r = await client.post(f"{self.base_url}/v1/messages", json=body, headers=headers)
            r.raise_for_status()
            data = r.json()

        return extract_answer(data)


def extract_answer(data: Any) -> str:
    """Text of the first content block; NO_ANSWER if it is not a text block."""
    if not isinstance(data, dict):
        return NO_ANSWER
    blocks = data.get("content") or []
    if not blocks or not isinstance(blocks[0], dict):
        return NO_ANSWER
    if blocks[0].get("type") != "text":
        return NO_ANSWER
    return blocks[0].get("text") or NO_ANSWER
