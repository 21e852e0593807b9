"""Session coordination: language choice, start/stop/clear, replies."""

import asyncio
from typing import Any, Dict, List, Optional

from interview_copilot.answer import AnswerGenerator
from interview_copilot.config import ConfigStore
from interview_copilot.errors import LanguageNotSelected
from interview_copilot.logs import get_logger, preview
from interview_copilot.models import SUPPORTED_LANGUAGES, ReplyEvent
from interview_copilot.question import extract_question
from interview_copilot.recognition import SpeechCaptureSession
from interview_copilot.transcript import TranscriptStore

logger = get_logger("session")

REPLY_QUEUE_SIZE = 100


class SessionController:
    """Glue between the capture session, the answer generator and the UI.

    Capture never starts until a language has been chosen explicitly; the
    language stored in the config is only a default for the UI's prompt.
    """

    def __init__(
        self,
        capture: SpeechCaptureSession,
        answers: AnswerGenerator,
        config_store: ConfigStore,
    ):
        self.capture = capture
        self.answers = answers
        self.config_store = config_store
        self.language: Optional[str] = None
        self._reply_queues: List[asyncio.Queue] = []

    @property
    def store(self) -> TranscriptStore:
        return self.capture.store

    @property
    def needs_language_choice(self) -> bool:
        return self.language is None

    def choose_language(self, language: str) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported language: '{language}'. Supported languages are: {', '.join(SUPPORTED_LANGUAGES)}"
            )
        self.language = language
        self.capture.set_language(language)
        if self.config_store.load_config().transcription_language != language:
            self.config_store.update_config(transcription_language=language)

    def start_session(self, language: Optional[str] = None) -> bool:
        """Clear the transcript and start listening.

        Raises:
            LanguageNotSelected: no language given now or earlier
        """
        if language is not None:
            self.choose_language(language)
        if self.language is None:
            raise LanguageNotSelected()

        logger.info(f"Starting session with language: {self.language}")
        started = self.capture.start()
        # a refused start (already listening, no engine) keeps the transcript
        if started:
            self.store.clear()
        return started

    def stop_session(self) -> None:
        logger.info("Stopping session")
        self.capture.stop()

    def clear_transcript(self) -> None:
        self.store.clear()

    def append_transcript(self, text: str) -> None:
        """Append text coming from outside the capture session (e.g. another recognizer)."""
        text = text.strip()
        if text:
            self.store.append(text)

    def status(self) -> Dict[str, Any]:
        snapshot = self.capture.snapshot()
        return {
            "state": self.capture.state.value,
            "language": self.language,
            "needs_language_choice": self.needs_language_choice,
            "is_listening": snapshot.is_listening,
            "transcript": snapshot.text,
            "interim": snapshot.interim,
            "word_count": snapshot.word_count,
            "error": self.capture.error,
            "provider": self.answers.active_provider,
        }

    async def reply_to_question(self) -> str:
        """Answer the latest question in the transcript and publish the result."""
        try:
            question = extract_question(self.store.read())
            logger.info(f"Extracted question: {preview(question)}")
            answer = await self.answers.generate_answer(question)
        except Exception as e:
            logger.error(f"Error generating reply: {e}")
            self._publish(ReplyEvent(type="transcription-reply-error", error=str(e)))
            raise
        self._publish(ReplyEvent(type="transcription-reply", answer=answer))
        return answer

    # ─── Reply subscribers (SSE) ─────────────────────────────────────────

    def subscribe_replies(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=REPLY_QUEUE_SIZE)
        self._reply_queues.append(queue)
        return queue

    def unsubscribe_replies(self, queue: asyncio.Queue) -> None:
        if queue in self._reply_queues:
            self._reply_queues.remove(queue)

    def _publish(self, event: ReplyEvent) -> None:
        for queue in list(self._reply_queues):
            if queue.full():
                # slow reader: drop its oldest event
                queue.get_nowait()
            queue.put_nowait(event)

    def close(self) -> None:
        self.capture.close()
        self._reply_queues.clear()
