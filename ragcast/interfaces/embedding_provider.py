"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  The
vector index (``ragcast/services/retrieval/vector_index.py``) consumes
this interface both when indexing chunks and when embedding a query.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider: text-embedding-3-small (or any OpenAI-compatible API)
# Located in: ragcast/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the retrieval engine."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations handle
            per-call batch limits internally.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*, all of
            the same length.

        Raises
        ------
        ragcast.utils.errors.RAGError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
