"""Unit tests for the BM25 lexical index and its tokenizer."""

from __future__ import annotations

import pytest

from ragcast.services.retrieval.lexical_index import LexicalIndex, tokenize


@pytest.fixture
def corpus(chunk_factory):
    return [
        chunk_factory("The sourdough starter ferments flour and water.", 0),
        chunk_factory("Replace the worn brake pads and true the bicycle wheel.", 1),
        chunk_factory("Heavy rain is forecast on Friday, bring an umbrella.", 2),
        chunk_factory("The farmers market opens early on Saturday mornings.", 3),
    ]


class TestTokenize:
    def test_lowercases_and_splits_on_punctuation(self) -> None:
        assert tokenize("Hello, World! 42 times") == ["hello", "world", "42", "times"]

    def test_keeps_apostrophes(self) -> None:
        assert tokenize("Don't STOP the rock'n'roll") == ["don't", "stop", "the", "rock'n'roll"]

    def test_non_ascii_is_a_separator(self) -> None:
        assert tokenize("café—menu") == ["caf", "menu"]

    def test_blank(self) -> None:
        assert tokenize("  ...  ") == []


class TestLexicalIndex:
    def test_best_match_ranks_first(self, corpus) -> None:
        index = LexicalIndex.build(corpus)
        results = index.query("brake pads", limit=2)

        assert len(results) == 2
        assert results[0].metadata.chunk_index == 1

    def test_limit_covering_corpus_returns_everything(self, corpus) -> None:
        index = LexicalIndex.build(corpus)
        assert len(index.query("umbrella", limit=50)) == len(corpus)

    def test_ties_keep_corpus_order(self, corpus) -> None:
        index = LexicalIndex.build(corpus)
        results = index.query("nothing matches this", limit=4)
        assert [c.metadata.chunk_index for c in results] == [0, 1, 2, 3]

    def test_zero_limit(self, corpus) -> None:
        assert LexicalIndex.build(corpus).query("rain", limit=0) == []

    def test_empty_corpus(self) -> None:
        index = LexicalIndex.build([])
        assert len(index) == 0
        assert index.query("anything", limit=5) == []

    def test_query_is_case_insensitive(self, corpus) -> None:
        index = LexicalIndex.build(corpus)
        assert index.query("UMBRELLA", limit=1)[0].metadata.chunk_index == 2
