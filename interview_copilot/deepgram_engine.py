"""Deepgram live transcription fed from the local microphone."""

import asyncio
import functools
import threading
from concurrent.futures import Executor
from typing import Optional

from deepgram import DeepgramClient, LiveOptions, LiveTranscriptionEvents

from interview_copilot.config import Config
from interview_copilot.errors import RecognitionAlreadyStarted, RecognitionUnavailable
from interview_copilot.logs import get_logger
from interview_copilot.recognition import RecognitionEngine

logger = get_logger("deepgram")

BLOCK_SECONDS = 0.1


def error_code_for(error) -> str:
    """Map a Deepgram error payload onto the engine error codes."""
    text = str(error).lower()
    if "401" in text or "unauthorized" in text or "403" in text or "forbidden" in text:
        return "not-allowed"
    return "network"


class DeepgramEngine(RecognitionEngine):
    """One Deepgram websocket plus one microphone stream per start().

    SDK callbacks arrive on Deepgram's threads and audio on the PortAudio
    thread; every listener call is handed to the event loop that called
    start(), so the capture session only ever runs on that loop. The blocking
    websocket connect and finish run on an executor, never on the loop itself.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        device: Optional[str] = None,
        sample_rate: Optional[int] = None,
        executor: Optional[Executor] = None,
    ):
        super().__init__()
        self.api_key = api_key or Config.DEEPGRAM_API_KEY
        self.model = model or Config.DEEPGRAM_MODEL
        self.device = device if device is not None else Config.AUDIO_DEVICE
        self.sample_rate = sample_rate or Config.SAMPLE_RATE

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connection = None
        self._stream = None
        self._sd = None
        self._running = False
        self._generation = 0
        self._lock = threading.Lock()
        # None means the loop's default thread pool
        self._executor = executor

    @property
    def running(self) -> bool:
        return self._running

    def start(self, language: str) -> None:
        if not self.api_key:
            raise RecognitionUnavailable("DEEPGRAM_API_KEY is not set")
        with self._lock:
            if self._running:
                raise RecognitionAlreadyStarted("Recognition already started")
            self._running = True
            self._generation += 1
            generation = self._generation

        self.language = language
        self._loop = asyncio.get_running_loop()

        client = DeepgramClient(self.api_key)
        connection = client.listen.websocket.v("1")
        # handlers carry the generation so late events from an old connection are dropped
        connection.on(LiveTranscriptionEvents.Open, functools.partial(self._on_open, generation))
        connection.on(LiveTranscriptionEvents.Transcript, functools.partial(self._on_transcript, generation))
        connection.on(LiveTranscriptionEvents.Error, functools.partial(self._on_error, generation))
        connection.on(LiveTranscriptionEvents.Close, functools.partial(self._on_close, generation))

        options = LiveOptions(
            model=self.model,
            language=language,
            smart_format=True,
            punctuate=True,
            encoding="linear16",
            sample_rate=self.sample_rate,
            channels=1,
            interim_results=True,
        )

        # the websocket handshake blocks, so it runs on the executor
        future = self._loop.run_in_executor(self._executor, connection.start, options)
        future.add_done_callback(functools.partial(self._on_connected, generation, connection))

    def stop(self) -> None:
        if not self._running:
            return
        self._close_stream()
        self._close_connection()
        self._finish()

    def abort(self) -> None:
        self.stop()

    def _on_connected(self, generation, connection, future) -> None:
        """Runs on the loop once connection.start() returns."""
        if generation != self._generation or not self._running:
            # stopped (or restarted) while the handshake was in flight
            self._release(connection)
            return

        if future.cancelled():
            failure = "connection attempt cancelled"
        elif future.exception() is not None:
            failure = str(future.exception())
        elif future.result() is False:
            failure = "could not open Deepgram connection"
        else:
            failure = None
        if failure is not None:
            logger.error(f"Failed to start Deepgram connection: {failure}")
            self._emit("on_error", "network", failure)
            self._finish()
            return
        self._connection = connection

        # imported here: loading PortAudio fails on hosts without an audio stack
        import sounddevice as sd
        self._sd = sd

        try:
            self._stream = sd.RawInputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="int16",
                blocksize=int(self.sample_rate * BLOCK_SECONDS),
                device=self.device,
                callback=self._on_audio,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            logger.error(f"Cannot open microphone: {e}")
            self._stream = None
            self._emit("on_error", "audio-capture", str(e))
            self._close_connection()
            self._finish()
            return

        logger.info(f"Deepgram stream started (model={self.model}, language={self.language})")

    # ─── Audio and SDK callbacks (foreign threads) ───────────────────────

    def _on_audio(self, indata, frames, time_info, status):
        if status:
            logger.debug(f"sd_status: {status}")
        connection = self._connection
        if connection is not None and self._running:
            try:
                connection.send(bytes(indata))
            except Exception as e:
                logger.debug(f"Dropping audio block: {e}")

    def _on_open(self, generation, *args, **kwargs):
        if generation != self._generation:
            return
        self._emit("on_start")

    def _on_transcript(self, generation, *args, **kwargs):
        if generation != self._generation:
            return
        result = kwargs.get("result")
        if not (result and result.channel and result.channel.alternatives):
            return
        sentence = result.channel.alternatives[0].transcript
        if sentence:
            self._emit("on_result", [(sentence, bool(result.is_final))])

    def _on_error(self, generation, *args, **kwargs):
        if generation != self._generation:
            return
        error = kwargs.get("error")
        logger.error(f"Deepgram error: {error}")
        self._emit("on_error", error_code_for(error), str(error))

    def _on_close(self, generation, *args, **kwargs):
        if generation != self._generation:
            return
        logger.info("Deepgram connection closed")
        self._close_stream()
        self._finish()

    # ─── Helpers ─────────────────────────────────────────────────────────

    def _finish(self) -> None:
        """Mark the engine stopped and report the end exactly once per start()."""
        with self._lock:
            was_running, self._running = self._running, False
        if was_running:
            self._emit("on_end")

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except self._sd.PortAudioError as e:
                logger.debug(f"Ignoring error while closing microphone: {e}")

    def _close_connection(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            self._release(connection)

    def _release(self, connection) -> None:
        """Finish a connection off the loop; finish() waits for the socket to close."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            loop.run_in_executor(self._executor, self._finish_connection, connection)
        else:
            self._finish_connection(connection)

    @staticmethod
    def _finish_connection(connection) -> None:
        try:
            connection.finish()
        except Exception as e:
            logger.debug(f"Ignoring error while closing Deepgram connection: {e}")

    def _emit(self, method: str, *args) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._dispatch, method, args)

    def _dispatch(self, method: str, args) -> None:
        listener = self.listener
        if listener is not None:
            getattr(listener, method)(*args)


def create_engine() -> Optional[DeepgramEngine]:
    """The configured engine, or None when no Deepgram key is available."""
    if not Config.DEEPGRAM_API_KEY:
        logger.warning("DEEPGRAM_API_KEY is not set; speech recognition unavailable")
        return None
    return DeepgramEngine()
