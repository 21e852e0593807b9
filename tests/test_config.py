"""Tests for ConfigStore persistence, env overrides and subscriptions."""

import json

import pytest

from interview_copilot.config import AppConfig, Config, ConfigStore
from interview_copilot.errors import ConfigError


class TestLoadConfig:

    def test_defaults_when_file_missing(self, config_store):
        config = config_store.load_config()
        assert config == AppConfig()
        assert config.transcription_language == "en-US"
        assert not config_store.path.exists()

    def test_reads_file_and_ignores_unknown_keys(self, config_store):
        config_store.path.write_text(json.dumps({
            "api_provider": "gemini",
            "api_key": "g-key",
            "opacity": 0.9,
        }))
        config = config_store.load_config()
        assert config.api_provider == "gemini"
        assert config.api_key == "g-key"

    def test_invalid_json_uses_defaults(self, config_store):
        config_store.path.write_text("{not json")
        assert config_store.load_config() == AppConfig()

    def test_env_overrides_file(self, config_store, monkeypatch):
        config_store.update_config(api_provider="openai", api_key="file-key")
        monkeypatch.setenv("API_KEY", "env-key")
        monkeypatch.setenv("TRANSCRIPTION_LANGUAGE", "pl-PL")
        config = config_store.load_config()
        assert config.api_key == "env-key"
        assert config.transcription_language == "pl-PL"

    def test_unsupported_values_in_file_fall_back(self, config_store):
        config_store.path.write_text(json.dumps({
            "api_provider": "ollama",
            "api_key": "k",
            "transcription_language": "de-DE",
        }))
        config = config_store.load_config()
        assert config.api_provider == "openai"
        assert config.transcription_language == "en-US"
        assert config.api_key == "k"

        # a later update still succeeds and repairs the file
        config_store.update_config(transcription_language="pl-PL")
        saved = json.loads(config_store.path.read_text())
        assert saved["api_provider"] == "openai"
        assert saved["transcription_language"] == "pl-PL"

    def test_unsupported_env_override_is_ignored(self, config_store, monkeypatch):
        config_store.update_config(api_provider="gemini")
        monkeypatch.setenv("API_PROVIDER", "ollama")
        monkeypatch.setenv("TRANSCRIPTION_LANGUAGE", "fr-FR")
        config = config_store.load_config()
        assert config.api_provider == "gemini"
        assert config.transcription_language == "en-US"
        config_store.update_config(transcription_language="pl-PL")

    def test_provider_config(self):
        config = AppConfig(api_provider="anthropic", api_key="", solution_model="")
        provider_config = config.provider_config()
        assert provider_config.api_key is None
        assert provider_config.resolved_model == "claude-3-5-sonnet-20241022"

    def test_public_dict_hides_key(self):
        data = AppConfig(api_key="secret").public_dict()
        assert "api_key" not in data
        assert data["has_api_key"] is True


class TestUpdateConfig:

    def test_persists_changes(self, config_store):
        config_store.update_config(api_provider="gemini", solution_model="gemini-1.5-pro")
        saved = json.loads(config_store.path.read_text())
        assert saved["api_provider"] == "gemini"
        assert saved["solution_model"] == "gemini-1.5-pro"
        assert ConfigStore(config_store.path).load_config().api_provider == "gemini"

    def test_rejects_unknown_provider(self, config_store):
        with pytest.raises(ConfigError, match="Unsupported provider"):
            config_store.update_config(api_provider="ollama")

    def test_rejects_unknown_language(self, config_store):
        with pytest.raises(ConfigError, match="Unsupported transcription language"):
            config_store.update_config(transcription_language="de-DE")

    def test_rejects_unknown_keys(self, config_store):
        with pytest.raises(ConfigError, match="Unknown config keys"):
            config_store.update_config(opacity=0.5)

    def test_env_override_is_never_written_to_file(self, config_store, monkeypatch):
        config_store.update_config(api_key="file-key")
        monkeypatch.setenv("API_KEY", "sk-from-env")

        returned = config_store.update_config(transcription_language="pl-PL")
        assert returned.api_key == "sk-from-env"
        saved = json.loads(config_store.path.read_text())
        assert saved["api_key"] == "file-key"
        assert saved["transcription_language"] == "pl-PL"

        monkeypatch.delenv("API_KEY")
        assert config_store.load_config().api_key == "file-key"

    def test_subscribers_see_env_overrides(self, config_store, monkeypatch):
        monkeypatch.setenv("API_PROVIDER", "gemini")
        received = []
        config_store.subscribe(received.append)
        config_store.update_config(api_key="k")
        assert received[0].api_provider == "gemini"
        assert json.loads(config_store.path.read_text())["api_provider"] == "openai"


class TestSubscriptions:

    def test_subscribers_receive_new_config(self, config_store):
        received = []
        config_store.subscribe(received.append)
        config_store.update_config(api_key="k")
        assert len(received) == 1
        assert received[0].api_key == "k"

    def test_unsubscribe_stops_notifications(self, config_store):
        received = []
        subscription = config_store.subscribe(received.append)
        subscription.unsubscribe()
        subscription.unsubscribe()
        config_store.update_config(api_key="k")
        assert received == []
        assert config_store.subscriber_count == 0

    def test_failing_subscriber_does_not_block_others(self, config_store):
        received = []

        def broken(config):
            raise RuntimeError("boom")

        config_store.subscribe(broken)
        config_store.subscribe(received.append)
        config_store.update_config(api_key="k")
        assert len(received) == 1


class TestEnvConfig:

    def test_validate_reports_missing_deepgram_key(self, monkeypatch):
        monkeypatch.setattr(Config, "DEEPGRAM_API_KEY", None)
        assert any("DEEPGRAM_API_KEY" in item for item in Config.validate())

    def test_validate_passes_with_key(self, monkeypatch):
        monkeypatch.setattr(Config, "DEEPGRAM_API_KEY", "dg-key")
        assert Config.validate() == []
