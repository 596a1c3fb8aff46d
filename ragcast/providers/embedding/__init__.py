"""Embedding provider adapters implementing IEmbeddingProvider."""

from ragcast.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
