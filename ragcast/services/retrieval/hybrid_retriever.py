"""Hybrid retrieval: weighted reciprocal-rank fusion of vector and BM25 hits.

# ─── HOW A QUESTION IS ANSWERED WITH CONTEXT ───────────────────────────
#
#   question
#     │ expand_query()            normalize + append synonym phrases
#     ▼
#   cache lookup ── hit ──────────────────────────────────────► chunks
#     │ miss
#     ├─► VectorIndex.query(k × multiplier)   ─┐
#     └─► LexicalIndex.query(k × multiplier)  ─┤ metadata filter
#                                              ▼
#                        RRF: weight / (60 + rank + 1), summed per chunk
#                                              │
#                        stable sort, top k, store in cache ─► chunks
#
# Ranks are zero-based.  A chunk found by both indexes collects both
# contributions; deduplication uses Chunk.fingerprint.  Equal fused
# scores keep first-seen order, with vector hits ahead of lexical-only
# ones.  Sub-index failures propagate and nothing is cached.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

import structlog

from ragcast.models.rag import Chunk, QueryExpansionRules
from ragcast.services.retrieval.cache import RetrievalCache, make_cache_key
from ragcast.services.retrieval.lexical_index import LexicalIndex
from ragcast.services.retrieval.query_expansion import expand_query
from ragcast.services.retrieval.vector_index import (
    VectorIndex,
    matches_filter,
    sanitize_metadata,
)

logger = structlog.get_logger(logger_name=__name__)

RRF_K = 60

_DEFAULT_FILTER: dict[str, Any] = {"access_level": "public"}


def rrf_contribution(weight: float, rank: int) -> float:
    """Score contributed by a hit at zero-based *rank* in a list of *weight*."""
    return weight / (RRF_K + rank + 1)


class HybridRetriever:
    """Fuses vector and lexical rankings into one top-``k`` list.

    Parameters
    ----------
    vector_index, lexical_index:
        The two indexes over the same chunk set.
    k:
        Number of chunks returned per question (default 12).
    vector_weight, lexical_weight:
        RRF weights of the two lists (defaults 0.45 / 0.55).
    metadata_filter:
        Required metadata pairs; ``None`` means ``{"access_level": "public"}``
        and ``{}`` disables filtering.
    expansion_rules:
        Synonym rules applied to every question, or ``None`` for none.
    candidate_multiplier:
        Each index is asked for ``k * candidate_multiplier`` candidates.
    cache_size:
        Capacity of this retriever's private LRU result cache.
    """

    def __init__(
        self,
        vector_index: VectorIndex,
        lexical_index: LexicalIndex,
        k: int = 12,
        vector_weight: float = 0.45,
        lexical_weight: float = 0.55,
        metadata_filter: dict[str, Any] | None = None,
        expansion_rules: QueryExpansionRules | None = None,
        candidate_multiplier: int = 4,
        cache_size: int = 256,
    ) -> None:
        if k <= 0:
            raise ValueError(f"k must be positive, got {k}")
        self._vector_index = vector_index
        self._lexical_index = lexical_index
        self._k = k
        self._vector_weight = vector_weight
        self._lexical_weight = lexical_weight
        self._metadata_filter = dict(
            _DEFAULT_FILTER if metadata_filter is None else metadata_filter
        )
        self._rules = expansion_rules
        self._candidates = k * max(1, candidate_multiplier)
        self._cache = RetrievalCache(max_size=cache_size)

    @property
    def k(self) -> int:
        return self._k

    @property
    def cache(self) -> RetrievalCache:
        return self._cache

    async def retrieve(self, question: str) -> list[Chunk]:
        """Return the top-``k`` chunks for *question*, fused and filtered."""
        expanded = expand_query(question, self._rules)
        key = make_cache_key(
            expanded,
            self._k,
            self._vector_weight,
            self._lexical_weight,
            self._metadata_filter,
        )
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("retrieval_cache_hit", query=expanded, results=len(cached))
            return cached

        vector_hits = await self._vector_index.query(
            expanded, self._candidates, self._metadata_filter
        )
        lexical_hits = self._lexical_index.query(expanded, self._candidates)

        vector_hits = self._apply_filter(vector_hits)
        lexical_hits = self._apply_filter(lexical_hits)

        fused = self._fuse(vector_hits, lexical_hits)
        self._cache.set(key, fused)

        logger.debug(
            "retrieval_fused",
            query=expanded,
            vector_hits=len(vector_hits),
            lexical_hits=len(lexical_hits),
            results=len(fused),
        )
        return list(fused)

    def _apply_filter(self, chunks: list[Chunk]) -> list[Chunk]:
        if not self._metadata_filter:
            return chunks
        return [
            c
            for c in chunks
            if matches_filter(sanitize_metadata(c.metadata.flat()), self._metadata_filter)
        ]

    def _fuse(self, vector_hits: list[Chunk], lexical_hits: list[Chunk]) -> list[Chunk]:
        # dicts preserve insertion order, which gives the first-seen tie-break.
        scores: dict[str, float] = {}
        chunks: dict[str, Chunk] = {}

        for weight, hits in (
            (self._vector_weight, vector_hits),
            (self._lexical_weight, lexical_hits),
        ):
            for rank, chunk in enumerate(hits):
                fp = chunk.fingerprint
                if fp not in scores:
                    scores[fp] = 0.0
                    chunks[fp] = chunk
                scores[fp] += rrf_contribution(weight, rank)

        # sorted() is stable, so equal scores stay in insertion order.
        ranked = sorted(scores, key=lambda fp: scores[fp], reverse=True)
        return [chunks[fp] for fp in ranked[: self._k]]
