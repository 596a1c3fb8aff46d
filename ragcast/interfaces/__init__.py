"""Public interface definitions for all external capabilities.

Every external service ragcast depends on is reached exclusively through
the abstract base classes in this package.  Concrete adapters implement
them and are wired in ``ragcast/main.py``; tests inject fakes instead.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in ragcast/providers/)
    ─────────────────────────────────────────────────────────────────────
    ITranscriptionProvider     →  WhisperAPIProvider
    IEmbeddingProvider         →  OpenAIEmbeddingProvider
    ILLMProvider               →  OpenAILLMProvider
    IMediaExtractor            →  FFmpegAudioExtractor
    IMediaDownloader           →  YtDlpDownloader
"""

from ragcast.interfaces.embedding_provider import IEmbeddingProvider
from ragcast.interfaces.llm_provider import ILLMProvider
from ragcast.interfaces.media_provider import IMediaDownloader, IMediaExtractor
from ragcast.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)

__all__ = [
    "IEmbeddingProvider",
    "ILLMProvider",
    "IMediaDownloader",
    "IMediaExtractor",
    "ITranscriptionProvider",
    "TranscriptionResult",
]
