"""LLM client for OpenRouter."""

from medconsult.llm.client import LLMClient, MockLLMClient

__all__ = ["LLMClient", "MockLLMClient"]
