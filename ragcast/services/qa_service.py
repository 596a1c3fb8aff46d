"""Grounded Q&A and summarization over a single transcript.

:class:`TranscriptAsker` is the capability bound to a ready ingestion job.
It owns one :class:`~ragcast.services.retrieval.HybridRetriever` plus the
transcript text, and talks to the chat model through :class:`ILLMProvider`.

The data flow for a question follows the usual RAG shape:

  1. RETRIEVE -- the hybrid retriever returns the top-k chunks (with its
                 own LRU cache in front of both indexes).
  2. STUFF    -- chunk texts are joined with blank lines into one context
                 block.
  3. ANSWER   -- the chat model answers from that context only, and is told
                 to say it does not know when the context falls short.

Summaries skip retrieval: the transcript head (first 10,000 characters) is
sent in one prompt and the result is cached for the asker's lifetime.
"""

from __future__ import annotations

import asyncio

import structlog

from ragcast.interfaces.llm_provider import ILLMProvider
from ragcast.models.rag import AskResult, Chunk
from ragcast.services.retrieval.hybrid_retriever import HybridRetriever
from ragcast.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

ANSWER_SYSTEM_PROMPT = (
    "You are a helpful assistant answering questions about an audio transcript. "
    "Use the provided context to craft concise, factual answers. "
    "If the context is insufficient, say you do not know. "
    "Always cite the source using the simplified source information "
    "(e.g., 'Source: Audio Transcript')."
)

SUMMARY_SYSTEM_PROMPT = (
    "You are a summarization assistant. Provide a clear, concise summary "
    "of the following transcript. Focus on the key points, main topics, "
    "and important takeaways. Respond in the same language as the transcript "
    "text unless the user explicitly requested another language."
)

# Characters of transcript sent for summarization.
_SUMMARY_CHAR_LIMIT = 10_000


def format_context(chunks: list[Chunk]) -> str:
    return "\n\n".join(chunk.text for chunk in chunks)


class TranscriptAsker:
    """Answers questions about one transcript.

    Parameters
    ----------
    retriever:
        Hybrid retriever over the transcript's chunks.
    transcript_text:
        The full transcript, used for summaries.
    llm:
        Chat model used for answers and summaries.
    temperature:
        Sampling temperature for both calls (default 0.2).
    max_tokens:
        Response token bound for both calls.
    """

    def __init__(
        self,
        retriever: HybridRetriever,
        transcript_text: str,
        llm: ILLMProvider,
        temperature: float = 0.2,
        max_tokens: int = 1500,
    ) -> None:
        self._retriever = retriever
        self._transcript_text = transcript_text
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._summary: str | None = None
        self._summary_lock = asyncio.Lock()

    @property
    def retriever(self) -> HybridRetriever:
        return self._retriever

    async def ask(self, question: str) -> AskResult:
        """Retrieve context for *question* and return the model's answer."""
        sources = await self._retriever.retrieve(question)
        user_prompt = f"Question: {question}\n\nContext:\n{format_context(sources)}"

        answer = await self._llm.complete(
            system_prompt=ANSWER_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        answer = answer.strip()
        if not answer:
            raise LLMError(
                message="Model returned an empty answer",
                provider_name=self._llm.get_provider_name(),
            )

        logger.info(
            "qa_answered",
            question=question[:80],
            sources=len(sources),
            provider=self._llm.get_provider_name(),
        )
        return AskResult(answer=answer, sources=sources)

    async def summarize(self) -> str:
        """Return a summary of the transcript, computing it at most once."""
        async with self._summary_lock:
            if self._summary is not None:
                return self._summary

            text = self._transcript_text
            if len(text) > _SUMMARY_CHAR_LIMIT:
                text = text[:_SUMMARY_CHAR_LIMIT] + "\n[...truncated]"

            summary = await self._llm.complete(
                system_prompt=SUMMARY_SYSTEM_PROMPT,
                user_prompt=f"Summarize this transcript:\n\n{text}",
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
            self._summary = summary.strip()
            logger.info("qa_summary_generated", chars=len(self._summary))
            return self._summary
