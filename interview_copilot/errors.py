"""Exception types for recognition, question extraction and answering."""

import httpx
import openai


class CopilotError(Exception):
    """Base class for errors raised by this package."""


class ConfigError(CopilotError):
    """Invalid configuration value."""


class RecognitionUnavailable(CopilotError):
    """No speech recognition engine can be used (missing key or SDK setup failed)."""


class RecognitionAlreadyStarted(CopilotError):
    """Raised by an engine when start() is called while it is already running."""


class RecognitionError(CopilotError):
    """An error reported by the recognition engine.

    ``recoverable`` errors (silence, a glitch on the capture device) are
    retried by the capture session; terminal ones (permission denied) end it.
    """

    def __init__(self, code: str, message: str = "", recoverable: bool = False):
        self.code = code
        self.message = message
        self.recoverable = recoverable
        super().__init__(f"Speech recognition error: {code}" + (f" ({message})" if message else ""))


class NoQuestionFound(CopilotError):
    """The transcript is empty, so there is nothing to answer."""

    def __init__(self, message: str = "No question found in transcript"):
        super().__init__(message)


class NoProviderConfigured(CopilotError):
    """No provider client is initialized (missing or invalid API key)."""

    def __init__(self, message: str = "No AI client available or API key not configured"):
        super().__init__(message)


class LanguageNotSelected(CopilotError):
    """A session was started before a transcription language was chosen."""

    def __init__(self, message: str = "Choose a transcription language before starting a session"):
        super().__init__(message)


# Errors a provider call can raise. They are passed through unchanged; this
# tuple only exists so callers can catch and report them.
ProviderCallFailed = (httpx.HTTPError, openai.OpenAIError)
