"""Transcript chunking, hybrid retrieval, and grounded Q&A."""

from ragcast.services.chunker import TextChunker
from ragcast.services.qa_service import TranscriptAsker
from ragcast.services.transcript_session import TranscriptSession, TranscriptSessionFactory

__all__ = ["TextChunker", "TranscriptAsker", "TranscriptSession", "TranscriptSessionFactory"]
