"""Continuous speech capture on top of a single-utterance recognition engine.

Recognition engines end their stream on silence, network hiccups or device
glitches. SpeechCaptureSession keeps listening by restarting the engine after
every end while auto-restart is on. The lifecycle is an explicit state
machine; each engine callback maps to one event in ``_TRANSITIONS``.

The restart race: an end event schedules a restart timer, and a stop() can
arrive before the timer fires. stop() clears the auto-restart flag before it
touches the engine, cancels the timer, and the timer callback re-checks the
flag and the state when it fires.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from interview_copilot.errors import (
    RecognitionAlreadyStarted,
    RecognitionError,
    RecognitionUnavailable,
)
from interview_copilot.logs import get_logger, preview
from interview_copilot.models import (
    SUPPORTED_LANGUAGES,
    RecognitionSettings,
    RecognitionState,
    TranscriptState,
)
from interview_copilot.transcript import TranscriptStore

logger = get_logger("recognition")

RESTART_DELAY = 0.1
ERROR_RESTART_DELAY = 1.0

RECOVERABLE_ERRORS = frozenset({"no-speech", "audio-capture"})
TERMINAL_ERRORS = frozenset({"not-allowed", "service-not-allowed"})

Segment = Tuple[str, bool]  # (text, is_final)


class RecognitionEngine(ABC):
    """Abstract interface for speech recognition engines.

    An engine delivers its events by calling the attached listener's
    on_start(), on_result(segments), on_error(code, message) and on_end(),
    one at a time on the event loop thread.
    """

    def __init__(self):
        self.listener = None
        self.language = "en-US"

    def attach(self, listener) -> None:
        self.listener = listener

    def set_language(self, language: str) -> None:
        """Change the language used from the next start(); no restart needed."""
        self.language = language

    @abstractmethod
    def start(self, language: str) -> None:
        """Begin recognition. Raises RecognitionAlreadyStarted if running."""

    @abstractmethod
    def stop(self) -> None:
        """Finish recognition gracefully; on_end follows."""

    @abstractmethod
    def abort(self) -> None:
        """Drop the stream immediately and release the device."""


class Event(str, Enum):
    START = "start"
    ENGINE_STARTED = "engine_started"
    ENGINE_ENDED = "engine_ended"
    ENGINE_ENDED_FINAL = "engine_ended_final"
    RECOVERABLE_ERROR = "recoverable_error"
    RESTART_FIRED = "restart_fired"
    TERMINAL_ERROR = "terminal_error"
    STOP = "stop"


S = RecognitionState
ACTIVE_STATES = (S.STARTING, S.LISTENING, S.RESTARTING)


def _build_transitions() -> Dict[Tuple[RecognitionState, Event], RecognitionState]:
    table = {
        (S.IDLE, Event.START): S.STARTING,
        (S.STOPPED, Event.START): S.STARTING,
        (S.STARTING, Event.ENGINE_STARTED): S.LISTENING,
        (S.RESTARTING, Event.ENGINE_STARTED): S.LISTENING,
        (S.RESTARTING, Event.RESTART_FIRED): S.STARTING,
    }
    for state in ACTIVE_STATES:
        table[(state, Event.ENGINE_ENDED)] = S.RESTARTING
        table[(state, Event.RECOVERABLE_ERROR)] = S.RESTARTING
        table[(state, Event.ENGINE_ENDED_FINAL)] = S.STOPPED
        table[(state, Event.TERMINAL_ERROR)] = S.STOPPED
    for state in RecognitionState:
        table[(state, Event.STOP)] = S.STOPPED
    return table


_TRANSITIONS = _build_transitions()


# scheduler(delay, callback) returns a handle with cancel(), like loop.call_later
Scheduler = Callable[[float, Callable[[], None]], Any]


def loop_scheduler(delay: float, callback: Callable[[], None]):
    return asyncio.get_running_loop().call_later(delay, callback)


def classify_error(code: str, message: str = "") -> RecognitionError:
    return RecognitionError(code, message, recoverable=code in RECOVERABLE_ERRORS)


class SpeechCaptureSession:
    """Keeps one recognition engine listening and feeds its final text to a TranscriptStore."""

    def __init__(
        self,
        engine: Optional[RecognitionEngine],
        store: TranscriptStore,
        language: str = "en-US",
        scheduler: Scheduler = loop_scheduler,
    ):
        self.engine = engine
        self.store = store
        self.settings = RecognitionSettings(language=language)
        self._scheduler = scheduler
        self._restart_timer: Optional[Any] = None
        self._listeners: List[Callable[[RecognitionState], None]] = []

        self.state = RecognitionState.IDLE
        self.is_listening = False
        self.interim = ""
        self.error: Optional[str] = None
        self.last_error: Optional[RecognitionError] = None

        if engine is not None:
            engine.set_language(language)
            engine.attach(self)

    # ─── Public API ──────────────────────────────────────────────────────

    @property
    def auto_restart(self) -> bool:
        return self.settings.auto_restart

    @property
    def restart_pending(self) -> bool:
        return self._restart_timer is not None

    def start(self) -> bool:
        """Start listening. Returns False (with self.error set) if it cannot."""
        if self.engine is None:
            self.error = str(RecognitionUnavailable("Speech recognition engine not available"))
            logger.warning(self.error)
            return False
        if self.state in ACTIVE_STATES:
            self.error = "Speech recognition is already listening"
            logger.warning(self.error)
            return False

        self.error = None
        self.settings.auto_restart = True
        self._transition(Event.START)
        self._start_engine()
        return True

    def stop(self) -> None:
        # Flag first: an end event or timer racing with this call must see it off.
        self.settings.auto_restart = False
        self._cancel_restart()
        if self.engine is not None:
            try:
                self.engine.stop()
            except Exception as e:
                logger.error(f"Failed to stop recognition: {e}")
        self.is_listening = False
        self.interim = ""
        self._transition(Event.STOP)

    def close(self) -> None:
        """Stop, release the engine and detach from it."""
        self.stop()
        if self.engine is not None:
            try:
                self.engine.abort()
            except Exception as e:
                logger.debug(f"Ignoring error while aborting recognition: {e}")
            self.engine.attach(None)
        self._listeners.clear()

    def set_language(self, language: str) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported language: '{language}'. Supported languages are: {', '.join(SUPPORTED_LANGUAGES)}"
            )
        self.settings.language = language
        if self.engine is not None:
            self.engine.set_language(language)
        logger.info(f"Speech recognition configured for language: {language}")

    def snapshot(self) -> TranscriptState:
        return TranscriptState(text=self.store.read(), is_listening=self.is_listening, interim=self.interim)

    def add_listener(self, callback: Callable[[RecognitionState], None]) -> Callable[[], None]:
        """Call ``callback(state)`` after every transition. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ─── Engine callbacks ────────────────────────────────────────────────

    def on_start(self) -> None:
        if self.state == RecognitionState.STOPPED:
            # engine came up after a stop() already went through
            logger.info("Recognition started after stop; stopping engine again")
            self._stop_engine_quietly()
            return
        self.is_listening = True
        self.error = None
        self._transition(Event.ENGINE_STARTED)
        logger.info("Speech recognition started")

    def on_result(self, segments: Sequence[Segment]) -> None:
        finals = [text.strip() for text, is_final in segments if is_final and text.strip()]
        interim = "".join(text for text, is_final in segments if not is_final)

        if finals:
            segment = " ".join(finals)
            self.store.append(segment)
            logger.debug(f"Final segment: {preview(segment)}")
            self.interim = ""
        if interim:
            self.interim = interim

    def on_error(self, code: str, message: str = "") -> None:
        error = classify_error(code, message)
        self.last_error = error
        logger.error(f"Speech recognition error: {code} {message}".rstrip())

        if code in TERMINAL_ERRORS:
            self.settings.auto_restart = False
            self._cancel_restart()
            self.is_listening = False
            self.error = str(error)
            self._transition(Event.TERMINAL_ERROR)
        elif error.recoverable:
            if self.auto_restart and self.state in ACTIVE_STATES:
                self._transition(Event.RECOVERABLE_ERROR)
                self._schedule_restart(ERROR_RESTART_DELAY)
        else:
            # surfaced; the end event that follows takes care of restarting
            self.error = str(error)

    def on_end(self) -> None:
        self.is_listening = False
        self.interim = ""
        logger.info("Speech recognition ended")
        if self.auto_restart:
            if self._transition(Event.ENGINE_ENDED):
                self._schedule_restart(RESTART_DELAY)
        else:
            self._transition(Event.ENGINE_ENDED_FINAL)

    # ─── Internals ───────────────────────────────────────────────────────

    def _transition(self, event: Event) -> bool:
        new_state = _TRANSITIONS.get((self.state, event))
        if new_state is None:
            logger.debug(f"Ignoring {event.value} in state {self.state.value}")
            return False
        if new_state != self.state:
            logger.debug(f"{self.state.value} -> {new_state.value} ({event.value})")
        self.state = new_state
        for callback in list(self._listeners):
            try:
                callback(new_state)
            except Exception as e:
                logger.error(f"State listener failed: {e}")
        return True

    def _start_engine(self) -> None:
        try:
            self.engine.start(self.settings.language)
        except RecognitionAlreadyStarted:
            # a restart raced with an engine that never ended; it is running
            logger.debug("Recognition already started; treating as running")
            self.is_listening = True
            self._transition(Event.ENGINE_STARTED)
        except RecognitionUnavailable as e:
            self._fail(str(e))
        except Exception as e:
            logger.exception("Failed to start speech recognition")
            self._fail(f"Failed to start speech recognition: {e}")

    def _fail(self, message: str) -> None:
        self.settings.auto_restart = False
        self._cancel_restart()
        self.is_listening = False
        self.error = message
        self._transition(Event.TERMINAL_ERROR)

    def _schedule_restart(self, delay: float) -> None:
        self._cancel_restart()
        self._restart_timer = self._scheduler(delay, self._on_restart_timer)
        logger.debug(f"Restart scheduled in {delay:.2f}s")

    def _cancel_restart(self) -> None:
        if self._restart_timer is not None:
            self._restart_timer.cancel()
            self._restart_timer = None

    def _on_restart_timer(self) -> None:
        self._restart_timer = None
        # checked at fire time, not at schedule time
        if not self.auto_restart or self.state != RecognitionState.RESTARTING:
            logger.debug("Restart timer fired after stop; ignoring")
            return
        self._transition(Event.RESTART_FIRED)
        self._start_engine()

    def _stop_engine_quietly(self) -> None:
        try:
            self.engine.stop()
        except Exception as e:
            logger.debug(f"Ignoring error while stopping recognition: {e}")
