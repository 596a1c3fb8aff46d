"""BM25 lexical index over transcript chunks.

Backed by :class:`rank_bm25.BM25Okapi`.  Documents and queries go through
the same tokenizer: case-folded, with every run of characters other than
ASCII letters, digits and apostrophes treated as a separator.
"""

from __future__ import annotations

import re

import numpy as np
import structlog
from rank_bm25 import BM25Okapi

from ragcast.models.rag import Chunk

logger = structlog.get_logger(logger_name=__name__)

_NON_TOKEN_RE = re.compile(r"[^a-z0-9']+")


def tokenize(text: str) -> list[str]:
    """Lower-case *text* and split it into alphanumeric/apostrophe tokens."""
    return _NON_TOKEN_RE.sub(" ", text.lower()).split()


class LexicalIndex:
    """Okapi BM25 ranking over a fixed list of chunks."""

    def __init__(self, chunks: list[Chunk], bm25: BM25Okapi | None) -> None:
        self._chunks = chunks
        self._bm25 = bm25

    @classmethod
    def build(cls, chunks: list[Chunk]) -> LexicalIndex:
        # BM25Okapi divides by the corpus size, so an empty corpus gets no model.
        if not chunks:
            return cls([], None)
        corpus = [tokenize(chunk.text) for chunk in chunks]
        logger.debug("lexical_index_built", documents=len(corpus))
        return cls(list(chunks), BM25Okapi(corpus))

    def __len__(self) -> int:
        return len(self._chunks)

    def query(self, text: str, limit: int) -> list[Chunk]:
        """Return up to *limit* chunks ranked by BM25 score.

        When *limit* covers the whole corpus every chunk is returned.  Equal
        scores keep corpus order.
        """
        if self._bm25 is None or limit <= 0:
            return []
        scores = self._bm25.get_scores(tokenize(text))
        # Stable sort on the negated scores keeps corpus order for ties.
        order = np.argsort(-np.asarray(scores, dtype=float), kind="stable")
        return [self._chunks[int(i)] for i in order[:limit]]
