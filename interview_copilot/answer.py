"""Answer generation for extracted interview questions."""

import asyncio
from typing import Callable, Optional, Set

from interview_copilot.config import AppConfig, ConfigStore, Subscription
from interview_copilot.errors import NoProviderConfigured
from interview_copilot.logs import get_logger, preview
from interview_copilot.models import ProviderConfig
from interview_copilot.prompt import system_prompt_for
from interview_copilot.providers import ProviderClient, create_provider

logger = get_logger("answer")

ProviderFactory = Callable[[ProviderConfig], ProviderClient]


class AnswerGenerator:
    """Owns the single active provider client and asks it for answers.

    Only one client exists at a time. reconfigure() drops the current one
    before building its replacement, so switching providers never leaves two
    clients alive.
    """

    def __init__(self, config_store: ConfigStore, provider_factory: ProviderFactory = create_provider):
        self._store = config_store
        self._factory = provider_factory
        self._client: Optional[ProviderClient] = None
        self._subscription: Optional[Subscription] = None
        self._closing: Set[asyncio.Task] = set()
        self.reconfigure(config_store.load_config())

    @property
    def active_provider(self) -> Optional[str]:
        return self._client.name if self._client else None

    def client_for(self, provider: str) -> Optional[ProviderClient]:
        """The client for ``provider`` if it is the active one, else None."""
        if self._client is not None and self._client.name == provider:
            return self._client
        return None

    def bind(self) -> Subscription:
        """Rebuild the client whenever the stored config changes."""
        if self._subscription is None or not self._subscription.active:
            self._subscription = self._store.subscribe(self.reconfigure)
        return self._subscription

    def reconfigure(self, config: AppConfig) -> None:
        previous, self._client = self._client, None
        self._retire(previous)

        provider_config = config.provider_config()
        if not provider_config.api_key:
            logger.warning(f"No API key available for {provider_config.provider}; answers disabled")
            return

        try:
            self._client = self._factory(provider_config)
            logger.info(f"{provider_config.provider} client initialized (model={self._client.model})")
        except Exception as e:
            logger.error(f"Failed to initialize {provider_config.provider} client: {e}")
            self._client = None

    async def generate_answer(self, question: str) -> str:
        """Answer ``question`` with the configured provider.

        Raises:
            NoProviderConfigured: no client for the configured provider
            Provider errors (httpx.HTTPError, openai.OpenAIError) propagate unchanged
        """
        config = self._store.load_config()
        client = self.client_for(config.api_provider)
        if client is None:
            raise NoProviderConfigured()

        system_prompt = system_prompt_for(config.transcription_language)
        logger.info(f"Generating answer with {client.name}: {preview(question)}")
        answer = await client.complete(system_prompt, question)
        logger.info(f"Generated answer: {preview(answer)}")
        return answer

    async def aclose(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    def _retire(self, client: Optional[ProviderClient]) -> None:
        if client is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self._close_quietly(client))
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)
        else:
            asyncio.run(self._close_quietly(client))

    @staticmethod
    async def _close_quietly(client: ProviderClient) -> None:
        try:
            await client.aclose()
        except Exception as e:
            logger.warning(f"Error closing {client.name} client: {e}")
