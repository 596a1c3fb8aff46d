"""In-memory cosine-similarity index over transcript chunks.

Vectors come from an :class:`~ragcast.interfaces.embedding_provider.IEmbeddingProvider`
and are stored L2-normalized in one ``numpy`` matrix, so a query is a
single matrix-vector product.

Each chunk's metadata is flattened and restricted to scalar values
(``str``, ``int``, ``float``, ``bool``, ``None``) before it is stored;
anything else is coerced with ``str``.  Metadata filters are matched
against this stored copy.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import structlog

from ragcast.interfaces.embedding_provider import IEmbeddingProvider
from ragcast.models.rag import Chunk
from ragcast.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_SCALAR_TYPES = (str, int, float, bool)


def sanitize_metadata(metadata: dict[str, Any]) -> dict[str, str | int | float | bool | None]:
    """Keep scalar values as-is and stringify everything else."""
    clean: dict[str, str | int | float | bool | None] = {}
    for key, value in metadata.items():
        if value is None or isinstance(value, _SCALAR_TYPES):
            clean[key] = value
        else:
            clean[key] = str(value)
    return clean


def matches_filter(metadata: dict[str, Any], metadata_filter: dict[str, Any] | None) -> bool:
    """True when every filter key is present in *metadata* with an equal value."""
    if not metadata_filter:
        return True
    for key, required in metadata_filter.items():
        if key not in metadata or metadata[key] != required:
            return False
    return True


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0.0] = 1.0
    return matrix / norms


class VectorIndex:
    """Dense retrieval over chunk embeddings."""

    def __init__(
        self,
        chunks: list[Chunk],
        vectors: np.ndarray,
        embedder: IEmbeddingProvider,
    ) -> None:
        self._chunks = chunks
        self._vectors = vectors
        self._metadata = [sanitize_metadata(c.metadata.flat()) for c in chunks]
        self._embedder = embedder

    @classmethod
    async def build(cls, chunks: list[Chunk], embedder: IEmbeddingProvider) -> VectorIndex:
        """Embed every chunk in one batch and build the index.

        Raises
        ------
        RAGError
            If the embedder returns a different number of vectors than
            chunks, or vectors of inconsistent dimension.
        """
        if not chunks:
            return cls([], np.zeros((0, 0), dtype=np.float32), embedder)

        embeddings = await embedder.embed([chunk.text for chunk in chunks])
        if len(embeddings) != len(chunks):
            raise RAGError(
                message=(
                    f"Embedding count mismatch: {len(embeddings)} vectors "
                    f"for {len(chunks)} chunks"
                ),
                provider_name=embedder.get_provider_name(),
            )
        try:
            matrix = np.asarray(embeddings, dtype=np.float32)
        except ValueError as exc:
            raise RAGError(
                message=f"Embeddings have inconsistent dimensions: {exc}",
                provider_name=embedder.get_provider_name(),
            ) from exc
        if matrix.ndim != 2:
            raise RAGError(
                message="Embeddings have inconsistent dimensions",
                provider_name=embedder.get_provider_name(),
            )

        logger.info(
            "vector_index_built",
            chunks=len(chunks),
            dimension=int(matrix.shape[1]),
            provider=embedder.get_provider_name(),
        )
        return cls(list(chunks), _normalize_rows(matrix), embedder)

    def __len__(self) -> int:
        return len(self._chunks)

    async def query(
        self,
        text: str,
        limit: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[Chunk]:
        """Return up to *limit* chunks passing *metadata_filter*, most similar first."""
        candidates = [
            i for i, meta in enumerate(self._metadata) if matches_filter(meta, metadata_filter)
        ]
        if not candidates or limit <= 0:
            return []

        query_vector = np.asarray(await self._embedder.embed_single(text), dtype=np.float32)
        if query_vector.shape[0] != self._vectors.shape[1]:
            raise RAGError(
                message=(
                    f"Query embedding has dimension {query_vector.shape[0]}, "
                    f"index has {self._vectors.shape[1]}"
                ),
                provider_name=self._embedder.get_provider_name(),
            )
        norm = float(np.linalg.norm(query_vector))
        if norm > 0.0:
            query_vector = query_vector / norm

        scores = self._vectors[candidates] @ query_vector
        order = np.argsort(-scores, kind="stable")[:limit]
        return [self._chunks[candidates[int(i)]] for i in order]
