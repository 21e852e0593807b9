"""
Heuristic question detection over a rolling transcript.

The transcript is speech-recognition output, so punctuation is unreliable.
The rules are deliberately simple: take the newest sentence that looks like
a question (a "?" or a leading interrogative word, English or Polish) plus up
to two sentences before it as context.
"""
from __future__ import annotations

import re
from typing import List

from interview_copilot.errors import NoQuestionFound

CONTEXT_SENTENCES = 2
FALLBACK_SENTENCES = 3

ENGLISH_QUESTION_WORDS = (
    "what", "where", "when", "who", "why", "how", "can", "could", "would",
    "should", "is", "are", "do", "does", "did", "will", "have", "has",
    "tell", "explain", "describe",
)

POLISH_QUESTION_WORDS = (
    "co", "gdzie", "kiedy", "kto", "dlaczego", "jak", "czy", "możesz",
    "mógłbyś", "powiedz", "wyjaśnij", "opisz", "czym", "jaki", "jaka",
    "jakie", "jakich", "jakim",
)


def _word_pattern(words) -> re.Pattern:
    return re.compile(r"^(?:" + "|".join(words) + r")\b", re.IGNORECASE)


# Both lists are checked whatever the session language is; interviews
# switch languages mid-sentence often enough.
_ENGLISH_RE = _word_pattern(ENGLISH_QUESTION_WORDS)
_POLISH_RE = _word_pattern(POLISH_QUESTION_WORDS)

_TERMINATORS_RE = re.compile(r"[.!?]")
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]*")


def split_sentences(text: str) -> List[str]:
    """Split on . ! ? keeping each sentence's own punctuation; blanks dropped."""
    sentences = [m.group().strip() for m in _SENTENCE_RE.finditer(text)]
    return [s for s in sentences if s.strip(".!? ")]


def is_question(sentence: str) -> bool:
    s = sentence.strip()
    return "?" in s or bool(_ENGLISH_RE.match(s)) or bool(_POLISH_RE.match(s))


def _as_question(text: str) -> str:
    text = text.strip()
    if text.endswith("?"):
        return text
    return text.rstrip(".! ") + "?"


def extract_question(transcript: str) -> str:
    """Return the most recent likely question with a little context.

    Raises NoQuestionFound when the transcript is empty or whitespace.
    A transcript without any sentence punctuation is returned unchanged.
    """
    if not transcript or not transcript.strip():
        raise NoQuestionFound()

    if not _TERMINATORS_RE.search(transcript):
        return transcript

    sentences = split_sentences(transcript)
    if not sentences:
        # punctuation only, e.g. "?!"
        return transcript

    for i in range(len(sentences) - 1, -1, -1):
        if is_question(sentences[i]):
            start = max(0, i - CONTEXT_SENTENCES)
            return _as_question(" ".join(sentences[start:i + 1]))

    return _as_question(" ".join(sentences[-FALLBACK_SENTENCES:]))
