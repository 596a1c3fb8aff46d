"""Chat provider adapters implementing ILLMProvider (ragcast/interfaces/llm_provider.py)."""

from ragcast.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
