"""Shared pytest fixtures for Interview Copilot tests."""

import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from interview_copilot.config import ConfigStore
from interview_copilot.errors import RecognitionAlreadyStarted
from interview_copilot.providers.base import ProviderClient
from interview_copilot.recognition import RecognitionEngine, SpeechCaptureSession
from interview_copilot.transcript import TranscriptStore


# ─── Recognition fakes ───────────────────────────────────────────────────────

class FakeEngine(RecognitionEngine):
    """Engine that records calls; tests fire its callbacks by hand."""

    def __init__(self):
        super().__init__()
        self.running = False
        self.started = []
        self.stop_calls = 0
        self.aborted = False
        self.start_error = None

    def start(self, language):
        if self.start_error is not None:
            raise self.start_error
        if self.running:
            raise RecognitionAlreadyStarted("already started")
        self.running = True
        self.started.append(language)

    def stop(self):
        self.stop_calls += 1

    def abort(self):
        self.aborted = True

    # Event helpers
    def fire_start(self):
        self.listener.on_start()

    def fire_result(self, *segments):
        self.listener.on_result(list(segments))

    def fire_error(self, code, message=""):
        self.listener.on_error(code, message)

    def fire_end(self):
        self.running = False
        self.listener.on_end()


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    def fire(self, force=False):
        """Run the callback; force=True runs it even if cancelled (a lost race)."""
        if self.cancelled and not force:
            return
        self.fired = True
        self.callback()


class FakeScheduler:
    """Stands in for loop.call_later; timers only run when a test fires them."""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def fire_pending(self):
        for timer in self.pending:
            timer.fire()


# ─── Provider fakes ──────────────────────────────────────────────────────────

class FakeProvider(ProviderClient):
    """Provider client that answers locally and records what it was asked."""

    def __init__(self, config):
        self.name = config.provider
        super().__init__(config)
        self.calls = []
        self.closed = False

    async def complete(self, system_prompt, question):
        self.calls.append((system_prompt, question))
        return f"answer to: {question}"

    async def aclose(self):
        self.closed = True


class ProviderRecorder:
    """provider_factory that keeps every client it built."""

    def __init__(self):
        self.built = []

    def __call__(self, config):
        provider = FakeProvider(config)
        self.built.append(provider)
        return provider


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer env overrides out of the tests."""
    for name in ConfigStore.ENV_OVERRIDES.values():
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_store(tmp_path):
    return ConfigStore(tmp_path / "config.json")


@pytest.fixture
def keyed_store(config_store):
    """ConfigStore with an OpenAI key already saved."""
    config_store.update_config(api_provider="openai", api_key="sk-test")
    return config_store


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def store():
    return TranscriptStore()


@pytest.fixture
def capture(fake_engine, store, scheduler):
    return SpeechCaptureSession(fake_engine, store, language="en-US", scheduler=scheduler)


@pytest.fixture
def providers():
    return ProviderRecorder()
