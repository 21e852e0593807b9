"""Tests for TranscriptStore."""

from interview_copilot.transcript import TranscriptStore


class TestTranscriptStore:

    def test_starts_empty(self):
        assert TranscriptStore().read() == ""

    def test_append_joins_with_single_space(self):
        store = TranscriptStore()
        store.append("hello")
        store.append("world")
        assert store.read() == "hello world"

    def test_clear_then_read_is_empty(self):
        store = TranscriptStore()
        store.append("hello")
        store.append("world")
        store.clear()
        assert store.read() == ""

    def test_append_after_clear_has_no_leading_space(self):
        store = TranscriptStore()
        store.append("old")
        store.clear()
        store.append("new")
        assert store.read() == "new"

    def test_repeated_segments_are_not_deduplicated(self):
        store = TranscriptStore()
        store.append("yes")
        store.append("yes")
        assert store.read() == "yes yes"

    def test_word_count(self):
        store = TranscriptStore()
        assert store.word_count() == 0
        store.append("tell me")
        store.append("about yourself")
        assert store.word_count() == 4
