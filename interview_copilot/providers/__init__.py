"""Provider factory for the supported LLM backends."""

from interview_copilot.models import ProviderConfig
from interview_copilot.providers.base import NO_ANSWER, ProviderClient


def create_provider(config: ProviderConfig) -> ProviderClient:
    """Factory function to create a provider client based on type.

    Args:
        config: Provider name, API key and model

    Returns:
        ProviderClient instance

    Raises:
        ValueError: If the provider is not supported or the key is missing
    """
    provider = config.provider.lower()

    if provider == "openai":
        from interview_copilot.providers.openai import OpenAIProvider
        return OpenAIProvider(config)
    elif provider == "gemini":
        from interview_copilot.providers.gemini import GeminiProvider
        return GeminiProvider(config)
    elif provider == "anthropic":
        from interview_copilot.providers.anthropic import AnthropicProvider
        return AnthropicProvider(config)
    else:
        raise ValueError(
            f"Unsupported provider: '{config.provider}'. "
            f"Supported providers are: 'openai', 'gemini', 'anthropic'"
        )


__all__ = ["create_provider", "ProviderClient", "NO_ANSWER"]
