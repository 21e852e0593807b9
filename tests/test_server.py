"""Tests for the FastAPI bridge."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeEngine, FakeScheduler, ProviderRecorder
from interview_copilot.main import create_app


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def client(config_store, engine):
    app = create_app(
        config_store=config_store,
        engine=engine,
        provider_factory=ProviderRecorder(),
        scheduler=FakeScheduler(),
    )
    with TestClient(app) as client:
        yield client


class TestTranscriptEndpoints:

    def test_append_and_read(self, client):
        assert client.post("/transcript/append", json={"text": "Hello there."}).json() == {"success": True}
        client.post("/transcript/append", json={"text": "What is REST?"})
        response = client.get("/transcript")
        assert response.json() == {"success": True, "transcript": "Hello there. What is REST?"}

    def test_clear(self, client):
        client.post("/transcript/append", json={"text": "something"})
        client.post("/transcript/clear")
        assert client.get("/transcript").json()["transcript"] == ""

    def test_reply_without_transcript(self, client):
        data = client.post("/transcript/reply").json()
        assert data == {"success": False, "error": "No question found in transcript"}

    def test_reply_without_provider(self, client):
        client.post("/transcript/append", json={"text": "What is REST?"})
        data = client.post("/transcript/reply").json()
        assert data["success"] is False
        assert "API key" in data["error"]

    def test_reply_with_provider(self, client):
        client.put("/config", json={"api_provider": "openai", "api_key": "sk-test"})
        client.post("/transcript/append", json={"text": "Thanks for coming. What is REST?"})
        data = client.post("/transcript/reply").json()
        assert data["success"] is True
        assert data["answer"] == "answer to: Thanks for coming. What is REST?"


class TestSessionEndpoints:

    def test_start_requires_language(self, client, engine):
        data = client.post("/session/start", json={}).json()
        assert data["success"] is False
        assert engine.started == []

    def test_start_with_language(self, client, engine):
        assert client.post("/session/start", json={"language": "pl-PL"}).json() == {"success": True}
        assert engine.started == ["pl-PL"]

        status = client.get("/session/status").json()
        assert status["state"] == "starting"
        assert status["language"] == "pl-PL"
        assert status["needs_language_choice"] is False

    def test_language_then_start_then_stop(self, client, engine):
        client.post("/session/language", json={"language": "en-US"})
        client.post("/session/start", json={})
        assert client.post("/session/stop").json() == {"success": True}
        assert client.get("/session/status").json()["state"] == "stopped"
        assert engine.stop_calls == 1

    def test_invalid_language_rejected(self, client):
        assert client.post("/session/start", json={"language": "fr-FR"}).status_code == 422

    def test_start_without_engine(self, config_store):
        app = create_app(config_store=config_store, engine=None, scheduler=FakeScheduler())
        with TestClient(app) as client:
            data = client.post("/session/start", json={"language": "en-US"}).json()
        assert data["success"] is False
        assert "not available" in data["error"]


class TestConfigEndpoints:

    def test_get_hides_key(self, client):
        client.put("/config", json={"api_key": "secret"})
        data = client.get("/config").json()
        assert "api_key" not in data
        assert data["has_api_key"] is True
        assert data["api_provider"] == "openai"

    def test_put_updates_and_persists(self, client, config_store):
        data = client.put("/config", json={"api_provider": "gemini", "solution_model": "gemini-1.5-pro"}).json()
        assert data["api_provider"] == "gemini"
        assert config_store.load_config().solution_model == "gemini-1.5-pro"

    def test_put_rejects_unknown_provider(self, client):
        assert client.put("/config", json={"api_provider": "ollama"}).status_code == 422

    def test_language_choice_with_stale_file_values(self, config_store, engine):
        config_store.path.write_text('{"api_provider": "ollama", "transcription_language": "de-DE"}')
        app = create_app(config_store=config_store, engine=engine, scheduler=FakeScheduler())
        with TestClient(app) as client:
            response = client.post("/session/language", json={"language": "pl-PL"})
        assert response.status_code == 200
        assert config_store.load_config().transcription_language == "pl-PL"
