"""Factory for creating LLM providers."""
import logging

from examgen.config import Settings
from examgen.services.llm.base import LLMProvider

logger = logging.getLogger(__name__)


def create_provider(config: Settings) -> LLMProvider:
    """Create the LLM provider selected by LLM_PROVIDER.

    Raises:
        ValueError: If provider type is unknown or its API key is missing
    """
    provider_name = config.LLM_PROVIDER.lower()

    if provider_name == "openai":
        from examgen.services.llm.openai_provider import OpenAIProvider

        provider = OpenAIProvider(
            api_key=config.OPENAI_API_KEY,
            default_model=config.OPENAI_MODEL,
            mini_model=config.OPENAI_MINI_MODEL,
        )
    elif provider_name == "anthropic":
        from examgen.services.llm.anthropic_provider import AnthropicProvider

        provider = AnthropicProvider(
            api_key=config.ANTHROPIC_API_KEY,
            default_model=config.ANTHROPIC_MODEL,
            mini_model=config.ANTHROPIC_MINI_MODEL,
        )
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")

    logger.info(f"Using {provider_name} LLM provider ({provider.default_model})")
    return provider
