"""LLM integration module for transaction categorization."""

from llm.factory import get_llm_provider, get_embedding_provider

__all__ = ["get_llm_provider", "get_embedding_provider"]
