"""Builds the queryable state for one transcript.

A :class:`TranscriptSession` bundles everything a ready ingestion needs in
memory: the transcript text, its chunks, and the bound
:class:`~ragcast.services.qa_service.TranscriptAsker`.  The
:class:`TranscriptSessionFactory` produces sessions two ways:

- ``from_audio``      -- transcribe, then index (the ingestion path)
- ``from_transcript`` -- index a persisted transcript (the rebuild path
                         after a restart, when the asker was lost)

Both paths share one indexing routine, so a rebuilt session answers the
same way the original one did.
"""

from __future__ import annotations

from typing import Any

import structlog

from ragcast.config.settings import Settings
from ragcast.interfaces.embedding_provider import IEmbeddingProvider
from ragcast.interfaces.llm_provider import ILLMProvider
from ragcast.interfaces.transcription_provider import ITranscriptionProvider
from ragcast.models.rag import Chunk, QueryExpansionRules
from ragcast.services.chunker import TextChunker
from ragcast.services.qa_service import TranscriptAsker
from ragcast.services.retrieval.hybrid_retriever import HybridRetriever
from ragcast.services.retrieval.lexical_index import LexicalIndex
from ragcast.services.retrieval.vector_index import VectorIndex

logger = structlog.get_logger(logger_name=__name__)


class TranscriptSession:
    """Transcript text, its chunks, and the asker built over them."""

    def __init__(self, transcript_text: str, chunks: list[Chunk], asker: TranscriptAsker) -> None:
        self._transcript_text = transcript_text
        self._chunks = list(chunks)
        self._asker = asker

    @property
    def transcript_text(self) -> str:
        return self._transcript_text

    @property
    def chunks(self) -> list[Chunk]:
        return list(self._chunks)

    @property
    def asker(self) -> TranscriptAsker:
        return self._asker


class TranscriptSessionFactory:
    """Creates :class:`TranscriptSession` objects from audio or text.

    Parameters
    ----------
    settings:
        Chunking, retrieval, and answering parameters.
    transcriber, embedder, llm:
        The external capabilities every session uses.
    default_rules:
        Query expansion rules used when a submission does not carry its
        own (typically loaded from ``query_expansions_path`` at startup).
    """

    def __init__(
        self,
        settings: Settings,
        transcriber: ITranscriptionProvider,
        embedder: IEmbeddingProvider,
        llm: ILLMProvider,
        default_rules: QueryExpansionRules | None = None,
    ) -> None:
        self._settings = settings
        self._transcriber = transcriber
        self._embedder = embedder
        self._llm = llm
        self._default_rules = default_rules
        self._chunker = TextChunker(
            chunk_size=settings.chunk_size,
            overlap=settings.chunk_overlap,
        )

    async def from_audio(
        self,
        audio_bytes: bytes,
        source: str,
        file_name: str,
        mime_type: str,
        expansion_rules: QueryExpansionRules | None = None,
    ) -> TranscriptSession:
        """Transcribe *audio_bytes* and index the resulting transcript.

        A silent recording yields an empty transcript and no chunks; the
        resulting session answers every question from empty context.

        Raises
        ------
        TranscriptionError
            If the transcription call fails.
        RAGError
            If embedding the chunks fails.
        """
        result = await self._transcriber.transcribe(audio_bytes, file_name, mime_type)
        metadata = {
            "source": source,
            "source_type": "audio",
            "source_display": "Audio Transcript",
            "transcription_model": result.model,
        }
        if result.language:
            metadata["language"] = result.language
        return await self._build(result.text, metadata, expansion_rules)

    async def from_transcript(
        self,
        transcript_text: str,
        source: str,
        expansion_rules: QueryExpansionRules | None = None,
    ) -> TranscriptSession:
        """Index an existing transcript without calling the transcriber."""
        metadata = {
            "source": source,
            "source_type": "audio",
            "source_display": "Audio Transcript",
        }
        return await self._build(transcript_text, metadata, expansion_rules)

    async def _build(
        self,
        transcript_text: str,
        metadata: dict[str, Any],
        expansion_rules: QueryExpansionRules | None,
    ) -> TranscriptSession:
        s = self._settings
        chunks = self._chunker.chunk(transcript_text, metadata)
        vector_index = await VectorIndex.build(chunks, self._embedder)
        lexical_index = LexicalIndex.build(chunks)

        retriever = HybridRetriever(
            vector_index,
            lexical_index,
            k=s.retrieval_top_k,
            vector_weight=s.vector_weight,
            lexical_weight=s.lexical_weight,
            expansion_rules=(
                expansion_rules if expansion_rules is not None else self._default_rules
            ),
            candidate_multiplier=s.candidate_multiplier,
            cache_size=s.retrieval_cache_size,
        )
        asker = TranscriptAsker(
            retriever,
            transcript_text,
            self._llm,
            temperature=s.answer_temperature,
            max_tokens=s.answer_max_tokens,
        )
        logger.info(
            "transcript_session_built",
            source=metadata.get("source"),
            chars=len(transcript_text),
            chunks=len(chunks),
        )
        return TranscriptSession(transcript_text, chunks, asker)
