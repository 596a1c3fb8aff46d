"""Recursive text chunking with overlapping windows.

Splits a transcript into :class:`~ragcast.models.rag.Chunk` objects of at
most ``chunk_size`` characters (1000 by default) with up to ``overlap``
characters (200 by default) of shared context between neighbours.

The splitter prefers the largest semantic boundary that works:

1. **Paragraphs** (blank lines)
2. **Lines**
3. **Sentences** -- abbreviation-aware, so "Dr. Smith" is not split
4. **Words**
5. **Characters** -- last resort for a single unbroken token

A piece that still exceeds ``chunk_size`` at one level is re-split at the next
finer level; pieces that fit are greedily packed back together with the
level's own joiner.  Transcripts from speech-to-text often arrive as one
long paragraph, so in practice most splitting happens at sentence level.
"""

from __future__ import annotations

import re
from typing import Any

import structlog

from ragcast.models.rag import Chunk, ChunkMetadata

logger = structlog.get_logger(logger_name=__name__)

# Common abbreviations that should NOT trigger a sentence split.
# "Dr. Smith" should remain one sentence, not split at the period.
_ABBREVIATIONS = frozenset(
    {
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "Prof",
        "Jr",
        "Sr",
        "St",
        "Ave",
        "No",
        "vs",
        "etc",
        "approx",
        "dept",
        "est",
        "govt",
        "inc",
        "ltd",
        "co",
        "e.g",
        "i.e",
    }
)

_ABBREVIATION_RE = re.compile(
    r"\b(?:"
    + "|".join(re.escape(a) for a in sorted(_ABBREVIATIONS, key=len, reverse=True))
    + r")\."
)
_PARAGRAPH_RE = re.compile(r"\n\s*\n")
_SENTENCE_END_RE = re.compile(r"[.!?](?:\s|$)")

# Split levels, coarsest first, with the joiner used to re-pack pieces.
_LEVELS: tuple[tuple[str, str], ...] = (
    ("paragraph", "\n\n"),
    ("line", "\n"),
    ("sentence", " "),
    ("word", " "),
    ("character", ""),
)

# Metadata keys the chunker owns; everything else lands in ``extra``.
_FIXED_KEYS = frozenset({"chunk_index", "source_type", "source_display", "access_level"})


def default_source_display(source_type: str) -> str:
    return "Audio Transcript" if source_type == "audio" else "Unknown Source"


class TextChunker:
    """Splits text into overlapping, boundary-respecting chunks.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 1000).
    overlap:
        Maximum characters shared by consecutive chunks (default 200).
        Must be smaller than *chunk_size*.

    Raises
    ------
    ValueError
        If *chunk_size* is not positive, or *overlap* is negative or not
        smaller than *chunk_size*.
    """

    def __init__(self, chunk_size: int = 1000, overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0:
            raise ValueError(f"overlap must be non-negative, got {overlap}")
        if overlap >= chunk_size:
            raise ValueError(
                f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        self._chunk_size = chunk_size
        self._overlap = overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, source_metadata: dict[str, Any] | None = None) -> list[Chunk]:
        """Split *text* into ordered :class:`Chunk` objects.

        Parameters
        ----------
        text:
            The full transcript text.
        source_metadata:
            Metadata shared by every chunk.  ``source_type`` and
            ``source_display`` populate the fixed fields; all other keys
            are copied into ``ChunkMetadata.extra``.

        Returns
        -------
        list[Chunk]
            Chunks numbered from 0 in document order.  Blank input returns
            an empty list.
        """
        if not text or not text.strip():
            return []

        source_metadata = source_metadata or {}
        source_type = str(source_metadata.get("source_type") or "unknown")
        source_display = str(
            source_metadata.get("source_display") or default_source_display(source_type)
        )
        extra = {k: v for k, v in source_metadata.items() if k not in _FIXED_KEYS}

        pieces = self._split(text.strip(), 0)
        chunks = [
            Chunk(
                text=piece,
                metadata=ChunkMetadata(
                    chunk_index=index,
                    source_type=source_type,
                    source_display=source_display,
                    access_level="public",
                    extra=extra,
                ),
            )
            for index, piece in enumerate(pieces)
        ]

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            avg_chars=sum(len(c.text) for c in chunks) // len(chunks) if chunks else 0,
            source_type=source_type,
        )
        return chunks

    # ------------------------------------------------------------------
    # Recursive splitting
    # ------------------------------------------------------------------

    def _split(self, text: str, level: int) -> list[str]:
        """Split *text* starting at *level*, recursing into oversized pieces."""
        pieces, joiner, next_level = self._pieces(text, level)

        result: list[str] = []
        fitting: list[str] = []
        for piece in pieces:
            if len(piece) <= self._chunk_size:
                fitting.append(piece)
                continue
            if fitting:
                result.extend(self._merge(fitting, joiner))
                fitting = []
            if next_level is None:
                result.append(piece)
            else:
                result.extend(self._split(piece, next_level))
        if fitting:
            result.extend(self._merge(fitting, joiner))
        return result

    def _pieces(self, text: str, level: int) -> tuple[list[str], str, int | None]:
        """Return the pieces of the first level (from *level*) that actually splits."""
        last = len(_LEVELS) - 1
        for index in range(level, len(_LEVELS)):
            name, joiner = _LEVELS[index]
            pieces = self._split_level(text, name)
            if len(pieces) > 1 or index == last:
                return pieces, joiner, (index + 1 if index < last else None)
        return [text], "", None

    def _split_level(self, text: str, name: str) -> list[str]:
        if name == "paragraph":
            parts = _PARAGRAPH_RE.split(text)
        elif name == "line":
            parts = text.split("\n")
        elif name == "sentence":
            parts = self._split_sentences(text)
        elif name == "word":
            return text.split()
        else:
            return list(text)
        return [p.strip() for p in parts if p.strip()]

    @staticmethod
    def _split_sentences(text: str) -> list[str]:
        """Split *text* at sentence boundaries while respecting abbreviations.

        Handles ``.``, ``!``, ``?`` followed by whitespace or end-of-string.
        Periods after known abbreviations are masked with ``\\x00`` first
        (same length, so match offsets still index the original text).
        """
        masked = _ABBREVIATION_RE.sub(lambda m: m.group(0)[:-1] + "\x00", text)

        sentences: list[str] = []
        last = 0
        for match in _SENTENCE_END_RE.finditer(masked):
            end = match.end()
            sentence = text[last:end].strip()
            if sentence:
                sentences.append(sentence)
            last = end

        remainder = text[last:].strip()
        if remainder:
            sentences.append(remainder)
        return sentences if sentences else [text]

    # ------------------------------------------------------------------
    # Packing with overlap
    # ------------------------------------------------------------------

    def _merge(self, splits: list[str], joiner: str) -> list[str]:
        """Greedily pack *splits* into windows of at most ``chunk_size`` chars.

        When a window is flushed, pieces are dropped from its head until
        at most ``overlap`` characters remain (and the next piece fits);
        the survivors open the next window.
        """
        sep_len = len(joiner)
        docs: list[str] = []
        current: list[str] = []
        total = 0

        for piece in splits:
            length = len(piece)
            if current and total + length + sep_len > self._chunk_size:
                doc = joiner.join(current).strip()
                if doc:
                    docs.append(doc)
                while current and (
                    total > self._overlap
                    or total + length + (sep_len if current else 0) > self._chunk_size
                ):
                    total -= len(current[0]) + (sep_len if len(current) > 1 else 0)
                    current.pop(0)
            current.append(piece)
            total += length + (sep_len if len(current) > 1 else 0)

        doc = joiner.join(current).strip()
        if doc:
            docs.append(doc)
        return docs
