"""Configuration management for API keys and settings."""

import json
import os
import threading
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Callable, List, Optional

from dotenv import load_dotenv

from interview_copilot.errors import ConfigError
from interview_copilot.logs import get_logger
from interview_copilot.models import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    SUPPORTED_PROVIDERS,
    ProviderConfig,
)

# .env lives in the project root, next to the package directory
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path, override=True)

logger = get_logger("config")


class Config:
    """Process settings from environment variables."""

    # Deepgram API key (required for speech recognition)
    DEEPGRAM_API_KEY: Optional[str] = os.getenv("DEEPGRAM_API_KEY")
    DEEPGRAM_MODEL: str = os.getenv("DEEPGRAM_MODEL", "nova-2")

    # Microphone; empty means the system default input device
    AUDIO_DEVICE: Optional[str] = os.getenv("AUDIO_DEVICE") or None
    SAMPLE_RATE: int = int(os.getenv("SAMPLE_RATE", "16000"))

    # Provider endpoints (override for proxies or compatible gateways)
    OPENAI_BASE_URL: Optional[str] = os.getenv("OPENAI_BASE_URL") or None
    GEMINI_BASE_URL: str = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")
    ANTHROPIC_BASE_URL: str = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com")

    # Server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8010"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")

    # Persisted user settings (provider, key, model, language)
    CONFIG_PATH: str = os.getenv(
        "CONFIG_PATH", str(Path.home() / ".interview-copilot" / "config.json")
    )

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration and return list of missing required settings."""
        missing = []
        if not cls.DEEPGRAM_API_KEY:
            missing.append("DEEPGRAM_API_KEY (required for speech recognition)")
        return missing


@dataclass
class AppConfig:
    """User settings, persisted as JSON."""
    api_provider: str = "openai"
    api_key: str = ""
    solution_model: str = ""
    transcription_language: str = DEFAULT_LANGUAGE

    def provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            provider=self.api_provider,
            api_key=self.api_key or None,
            model=self.solution_model,
        )

    def public_dict(self) -> dict:
        """Settings safe to hand to the UI (no raw API key)."""
        data = asdict(self)
        data.pop("api_key")
        data["has_api_key"] = bool(self.api_key)
        return data


def _validate(config: AppConfig) -> None:
    if config.api_provider not in SUPPORTED_PROVIDERS:
        raise ConfigError(
            f"Unsupported provider: '{config.api_provider}'. "
            f"Supported providers are: {', '.join(SUPPORTED_PROVIDERS)}"
        )
    if config.transcription_language not in SUPPORTED_LANGUAGES:
        raise ConfigError(
            f"Unsupported transcription language: '{config.transcription_language}'. "
            f"Supported languages are: {', '.join(SUPPORTED_LANGUAGES)}"
        )


def _sanitize(config: AppConfig, source: str, fallback: Optional[AppConfig] = None) -> AppConfig:
    """Replace an unsupported provider or language with the fallback's value (or the default)."""
    fallback = fallback or AppConfig()
    fixes = {}
    if config.api_provider not in SUPPORTED_PROVIDERS:
        logger.warning(f"Ignoring unsupported provider '{config.api_provider}' from {source}")
        fixes["api_provider"] = fallback.api_provider
    if config.transcription_language not in SUPPORTED_LANGUAGES:
        logger.warning(f"Ignoring unsupported transcription language '{config.transcription_language}' from {source}")
        fixes["transcription_language"] = fallback.transcription_language
    return replace(config, **fixes) if fixes else config


ConfigHandler = Callable[[AppConfig], None]


class Subscription:
    """Handle returned by ConfigStore.subscribe(); unsubscribe() is idempotent."""

    def __init__(self, store: "ConfigStore", handler: ConfigHandler):
        self._store = store
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._store._remove(self)
            self.active = False


class ConfigStore:
    """JSON-backed settings with change notification.

    Lookup order for each field: environment override (API_PROVIDER, API_KEY,
    SOLUTION_MODEL, TRANSCRIPTION_LANGUAGE), then the JSON file, then defaults.
    An unsupported provider or language from either source is logged and
    replaced. Writes carry only the file's own values, never the overrides.
    """

    ENV_OVERRIDES = {
        "api_provider": "API_PROVIDER",
        "api_key": "API_KEY",
        "solution_model": "SOLUTION_MODEL",
        "transcription_language": "TRANSCRIPTION_LANGUAGE",
    }

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or Config.CONFIG_PATH).expanduser()
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def load_config(self) -> AppConfig:
        """Settings from the file with environment overrides applied."""
        return self._apply_env(self._load_file())

    def _load_file(self) -> AppConfig:
        config = AppConfig()
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
                valid_keys = {f.name for f in fields(AppConfig)}
                config = AppConfig(**{k: v for k, v in data.items() if k in valid_keys})
                logger.debug(f"Loaded config from {self.path}")
            except (json.JSONDecodeError, TypeError, OSError) as e:
                logger.warning(f"Error reading config from {self.path}: {e}. Using defaults.")
                config = AppConfig()
        return _sanitize(config, str(self.path))

    def _apply_env(self, config: AppConfig) -> AppConfig:
        overrides = {}
        for field_name, env_name in self.ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                overrides[field_name] = value
        if not overrides:
            return config
        return _sanitize(replace(config, **overrides), "environment", fallback=config)

    def save_config(self, config: AppConfig) -> None:
        _validate(config)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(config), ensure_ascii=False, indent=2), encoding="utf-8")
        logger.debug(f"Saved config to {self.path}")

    def update_config(self, **changes) -> AppConfig:
        """Apply changes, persist them and notify subscribers.

        Only the file's own values plus ``changes`` are written; environment
        overrides apply to the returned config but never reach the file.
        """
        unknown = set(changes) - {f.name for f in fields(AppConfig)}
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        stored = replace(self._load_file(), **changes)
        self.save_config(stored)
        logger.info(f"Config updated: {', '.join(sorted(changes))}")
        config = self._apply_env(stored)
        self._notify(config)
        return config

    def subscribe(self, handler: ConfigHandler) -> Subscription:
        subscription = Subscription(self, handler)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _notify(self, config: AppConfig) -> None:
        with self._lock:
            handlers = [s.handler for s in self._subscriptions]
        for handler in handlers:
            try:
                handler(config)
            except Exception as e:
                logger.error(f"Config subscriber {handler!r} failed: {e}")
