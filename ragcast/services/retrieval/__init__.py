"""Hybrid (vector + BM25) retrieval over transcript chunks."""

from ragcast.services.retrieval.cache import RetrievalCache, make_cache_key
from ragcast.services.retrieval.hybrid_retriever import HybridRetriever, rrf_contribution
from ragcast.services.retrieval.lexical_index import LexicalIndex, tokenize
from ragcast.services.retrieval.query_expansion import expand_query, token_variants
from ragcast.services.retrieval.vector_index import VectorIndex, matches_filter, sanitize_metadata

__all__ = [
    "HybridRetriever",
    "LexicalIndex",
    "RetrievalCache",
    "VectorIndex",
    "expand_query",
    "make_cache_key",
    "matches_filter",
    "rrf_contribution",
    "sanitize_metadata",
    "token_variants",
    "tokenize",
]
