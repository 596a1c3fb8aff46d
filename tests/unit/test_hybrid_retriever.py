"""Unit tests for HybridRetriever — weighted RRF fusion, filtering, and caching."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ragcast.models.rag import Chunk, ChunkMetadata, QueryExpansionRules
from ragcast.services.retrieval.cache import RetrievalCache, make_cache_key
from ragcast.services.retrieval.hybrid_retriever import (
    HybridRetriever,
    rrf_contribution,
)
from ragcast.services.retrieval.lexical_index import LexicalIndex
from ragcast.services.retrieval.vector_index import VectorIndex
from ragcast.utils.errors import RAGError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _indexes(vector_hits: list[Chunk], lexical_hits: list[Chunk]) -> tuple[MagicMock, MagicMock]:
    vector_index = MagicMock(spec=VectorIndex)
    vector_index.query = AsyncMock(return_value=vector_hits)
    lexical_index = MagicMock(spec=LexicalIndex)
    lexical_index.query = MagicMock(return_value=lexical_hits)
    return vector_index, lexical_index


def _private_chunk(text: str) -> Chunk:
    return Chunk(
        text=text,
        metadata=ChunkMetadata(chunk_index=9, source_type="audio", access_level="private"),
    )


# ---------------------------------------------------------------------------
# Fusion
# ---------------------------------------------------------------------------


class TestRRF:
    def test_contribution_uses_zero_based_rank(self) -> None:
        assert rrf_contribution(1.0, 0) == pytest.approx(1 / 61)
        assert rrf_contribution(0.55, 3) == pytest.approx(0.55 / 64)


class TestFusion:
    @pytest.mark.asyncio
    async def test_chunk_in_both_lists_wins(self, chunk_factory) -> None:
        a, b, c = (chunk_factory(t, i) for i, t in enumerate(["A", "B", "C"]))
        vector_index, lexical_index = _indexes([a, b], [b, c])

        retriever = HybridRetriever(vector_index, lexical_index, k=3)
        results = await retriever.retrieve("question")

        assert [r.text for r in results] == ["B", "C", "A"]

    @pytest.mark.asyncio
    async def test_duplicates_merged_by_fingerprint(self, chunk_factory) -> None:
        vector_index, lexical_index = _indexes(
            [chunk_factory("same", 0)],
            [chunk_factory("same", 0)],
        )
        retriever = HybridRetriever(vector_index, lexical_index, k=5)

        results = await retriever.retrieve("question")

        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_ties_prefer_vector_hits(self, chunk_factory) -> None:
        vector_index, lexical_index = _indexes(
            [chunk_factory("from vector", 0)],
            [chunk_factory("from lexical", 1)],
        )
        retriever = HybridRetriever(
            vector_index, lexical_index, k=2, vector_weight=0.5, lexical_weight=0.5
        )

        results = await retriever.retrieve("question")

        assert [r.text for r in results] == ["from vector", "from lexical"]

    @pytest.mark.asyncio
    async def test_truncated_to_k(self, chunk_factory) -> None:
        hits = [chunk_factory(f"chunk {i}", i) for i in range(6)]
        vector_index, lexical_index = _indexes(hits, [])
        retriever = HybridRetriever(vector_index, lexical_index, k=2)

        results = await retriever.retrieve("question")

        assert [r.text for r in results] == ["chunk 0", "chunk 1"]

    @pytest.mark.asyncio
    async def test_candidate_pool_size(self, chunk_factory) -> None:
        vector_index, lexical_index = _indexes([], [])
        retriever = HybridRetriever(vector_index, lexical_index, k=3, candidate_multiplier=4)

        await retriever.retrieve("question")

        vector_index.query.assert_awaited_once_with("question", 12, {"access_level": "public"})
        lexical_index.query.assert_called_once_with("question", 12)

    def test_invalid_k(self) -> None:
        vector_index, lexical_index = _indexes([], [])
        with pytest.raises(ValueError):
            HybridRetriever(vector_index, lexical_index, k=0)


# ---------------------------------------------------------------------------
# Filtering and expansion
# ---------------------------------------------------------------------------


class TestFiltering:
    @pytest.mark.asyncio
    async def test_default_filter_drops_non_public(self, chunk_factory) -> None:
        vector_index, lexical_index = _indexes(
            [chunk_factory("public", 0)],
            [_private_chunk("secret")],
        )
        retriever = HybridRetriever(vector_index, lexical_index)

        results = await retriever.retrieve("question")

        assert [r.text for r in results] == ["public"]

    @pytest.mark.asyncio
    async def test_empty_filter_disables_filtering(self, chunk_factory) -> None:
        vector_index, lexical_index = _indexes(
            [chunk_factory("public", 0)],
            [_private_chunk("secret")],
        )
        retriever = HybridRetriever(vector_index, lexical_index, metadata_filter={})

        results = await retriever.retrieve("question")

        assert {r.text for r in results} == {"public", "secret"}

    @pytest.mark.asyncio
    async def test_extra_metadata_filter(self, chunk_factory) -> None:
        vector_index, lexical_index = _indexes(
            [chunk_factory("english", 0, language="en"), chunk_factory("german", 1, language="de")],
            [],
        )
        retriever = HybridRetriever(
            vector_index, lexical_index, metadata_filter={"language": "de"}
        )

        results = await retriever.retrieve("question")

        assert [r.text for r in results] == ["german"]

    @pytest.mark.asyncio
    async def test_expanded_query_reaches_both_indexes(self) -> None:
        vector_index, lexical_index = _indexes([], [])
        rules = QueryExpansionRules(token_synonyms={"car": ["automobile"]})
        retriever = HybridRetriever(vector_index, lexical_index, k=1, expansion_rules=rules)

        await retriever.retrieve("  my   car ")

        assert vector_index.query.await_args.args[0] == "my car automobile"
        assert lexical_index.query.call_args.args[0] == "my car automobile"


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestCaching:
    @pytest.mark.asyncio
    async def test_repeat_question_hits_cache(self, chunk_factory) -> None:
        vector_index, lexical_index = _indexes([chunk_factory("A", 0)], [])
        retriever = HybridRetriever(vector_index, lexical_index)

        first = await retriever.retrieve("what is A?")
        second = await retriever.retrieve("  what is   A? ")

        assert first == second
        assert vector_index.query.await_count == 1
        assert lexical_index.query.call_count == 1

    @pytest.mark.asyncio
    async def test_different_question_misses(self, chunk_factory) -> None:
        vector_index, lexical_index = _indexes([chunk_factory("A", 0)], [])
        retriever = HybridRetriever(vector_index, lexical_index)

        await retriever.retrieve("first")
        await retriever.retrieve("second")

        assert vector_index.query.await_count == 2
        assert len(retriever.cache) == 2

    @pytest.mark.asyncio
    async def test_returned_list_is_a_copy(self, chunk_factory) -> None:
        vector_index, lexical_index = _indexes([chunk_factory("A", 0)], [])
        retriever = HybridRetriever(vector_index, lexical_index)

        results = await retriever.retrieve("q")
        results.clear()

        assert len(await retriever.retrieve("q")) == 1

    @pytest.mark.asyncio
    async def test_index_failure_is_not_cached(self) -> None:
        vector_index, lexical_index = _indexes([], [])
        vector_index.query.side_effect = RAGError(message="embedding down")
        retriever = HybridRetriever(vector_index, lexical_index)

        with pytest.raises(RAGError):
            await retriever.retrieve("q")
        assert len(retriever.cache) == 0


class TestRetrievalCache:
    def test_key_ignores_filter_order(self) -> None:
        one = make_cache_key("q", 12, 0.45, 0.55, {"a": 1, "b": "x"})
        two = make_cache_key("q", 12, 0.45, 0.55, {"b": "x", "a": 1})
        assert one == two

    def test_key_depends_on_weights(self) -> None:
        assert make_cache_key("q", 12, 0.45, 0.55, {}) != make_cache_key("q", 12, 0.5, 0.5, {})

    def test_lru_eviction(self, chunk_factory) -> None:
        cache = RetrievalCache(max_size=2)
        cache.set("a", [chunk_factory("A")])
        cache.set("b", [chunk_factory("B")])
        cache.get("a")
        cache.set("c", [chunk_factory("C")])

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_miss_returns_none(self) -> None:
        assert RetrievalCache().get("missing") is None
