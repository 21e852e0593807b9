"""Data models for Interview Copilot."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional
import time


Language = Literal["pl-PL", "en-US"]
ProviderName = Literal["openai", "gemini", "anthropic"]

SUPPORTED_LANGUAGES = ("pl-PL", "en-US")
SUPPORTED_PROVIDERS = ("openai", "gemini", "anthropic")
DEFAULT_LANGUAGE = "en-US"

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "gemini": "gemini-2.0-flash",
    "anthropic": "claude-3-5-sonnet-20241022",
}


class RecognitionState(str, Enum):
    """Lifecycle states of a speech capture session."""
    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    RESTARTING = "restarting"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TranscriptState:
    """Read-only snapshot of the transcript handed to consumers."""
    text: str
    is_listening: bool
    interim: str = ""

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    def to_dict(self):
        return {
            "text": self.text,
            "is_listening": self.is_listening,
            "interim": self.interim,
            "word_count": self.word_count,
        }


@dataclass
class RecognitionSettings:
    """Settings applied to the recognition engine on every start."""
    language: Language = DEFAULT_LANGUAGE
    continuous: bool = True
    interim_results: bool = True
    auto_restart: bool = False


@dataclass(frozen=True)
class ProviderConfig:
    """Which LLM provider to call, with which key and model."""
    provider: ProviderName
    api_key: Optional[str]
    model: str

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]


@dataclass
class ReplyEvent:
    """A reply (or reply failure) pushed to the UI."""
    type: Literal["transcription-reply", "transcription-reply-error"]
    answer: Optional[str] = None
    error: Optional[str] = None
    ts: float = field(default_factory=time.time)

    def to_dict(self):
        data = {"ts": self.ts}
        if self.answer is not None:
            data["answer"] = self.answer
        if self.error is not None:
            data["error"] = self.error
        return data
