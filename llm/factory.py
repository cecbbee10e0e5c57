"""Factory for creating LLM and embedding provider instances."""

from typing import Optional
from config import Config
from llm.providers.base import LLMProvider, EmbeddingProvider
from llm.providers.openai import OpenAIProvider, OpenAIEmbeddingProvider
from logger import get_logger

logger = get_logger("llm")


def _openai_api_key(config: Config) -> str:
    api_key = getattr(config, "llm_openai_api_key", None)
    if not api_key:
        raise ValueError(
            "OpenAI provider selected but llm_openai_api_key not configured"
        )
    return api_key


def get_llm_provider(config: Config) -> Optional[LLMProvider]:
    """Create a generative model provider based on configuration.

    Args:
        config: Application configuration.

    Returns:
        LLMProvider instance, or None if LLM is disabled.

    Raises:
        ValueError: If provider is configured but settings are invalid.
    """
    if not getattr(config, "llm_enabled", False):
        logger.info("LLM categorization is disabled")
        return None

    provider_name = getattr(config, "llm_provider", None)

    if provider_name == "openai":
        api_key = _openai_api_key(config)
        model = getattr(config, "llm_openai_model", None)
        logger.info(f"Initializing OpenAI provider (model: {model or 'default'})")

        return OpenAIProvider(
            api_key=api_key, model=model, timeout=config.llm_timeout_seconds
        )

    elif not provider_name:
        logger.info("No LLM provider configured")
        return None

    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")


def get_embedding_provider(config: Config) -> Optional[EmbeddingProvider]:
    """Create an embedding provider based on configuration.

    Embeddings come from the same vendor as the generative model, so they
    share the llm_enabled switch and the API key.

    Returns:
        EmbeddingProvider instance, or None if LLM features are disabled.

    Raises:
        ValueError: If provider is configured but settings are invalid.
    """
    if not getattr(config, "llm_enabled", False):
        return None

    provider_name = getattr(config, "llm_provider", None)

    if provider_name == "openai":
        model = config.llm_embedding_model
        logger.info(f"Initializing OpenAI embeddings (model: {model})")
        return OpenAIEmbeddingProvider(
            api_key=_openai_api_key(config),
            model=model,
            timeout=config.llm_timeout_seconds,
        )

    elif not provider_name:
        return None

    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
