"""Bounded LRU cache for fused retrieval results.

Backed by ``cachetools.LRUCache``; entries never expire on time, only by
eviction once ``max_size`` is reached.  Keys are canonical JSON strings
built by :func:`make_cache_key`, so two filters with the same pairs in a
different insertion order hit the same entry.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from cachetools import LRUCache

from ragcast.models.rag import Chunk

logger = structlog.get_logger(logger_name=__name__)


def make_cache_key(
    expanded_query: str,
    k: int,
    vector_weight: float,
    lexical_weight: float,
    metadata_filter: dict[str, Any],
) -> str:
    payload = {
        "q": expanded_query,
        "k": k,
        "vw": vector_weight,
        "bw": lexical_weight,
        "f": metadata_filter,
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


class RetrievalCache:
    """Read-through LRU store of ``cache key -> ordered chunk list``.

    Parameters
    ----------
    max_size:
        Number of distinct queries kept before the least-recently-used
        entry is evicted (default 256).
    """

    def __init__(self, max_size: int = 256) -> None:
        self._cache: LRUCache[str, list[Chunk]] = LRUCache(maxsize=max(1, max_size))

    def get(self, key: str) -> list[Chunk] | None:
        """Return a copy of the cached list for *key*, or ``None``."""
        value = self._cache.get(key)
        if value is None:
            return None
        return list(value)

    def set(self, key: str, chunks: list[Chunk]) -> None:
        self._cache[key] = list(chunks)

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)
