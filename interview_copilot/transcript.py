import threading

from interview_copilot.logs import get_logger, preview

logger = get_logger("transcript")


class TranscriptStore:
    """Accumulated transcript text for the active session.

    One writer (the capture session or the append endpoint), any number of
    readers. Text only grows by append() or is reset by clear().
    """

    def __init__(self):
        self._text = ""
        self._lock = threading.Lock()

    def append(self, segment: str) -> None:
        with self._lock:
            self._text += (" " if self._text else "") + segment
            text = self._text
        logger.debug(f"Transcript updated: {preview(text)}")

    def clear(self) -> None:
        with self._lock:
            self._text = ""
        logger.info("Transcript cleared")

    def read(self) -> str:
        with self._lock:
            return self._text

    def word_count(self) -> int:
        return len(self.read().split())
