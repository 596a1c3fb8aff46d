"""Shared pytest fixtures for the ragcast test suite."""

from __future__ import annotations

import hashlib
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from ragcast.config.settings import Settings
from ragcast.interfaces.embedding_provider import IEmbeddingProvider
from ragcast.interfaces.llm_provider import ILLMProvider
from ragcast.interfaces.media_provider import IMediaDownloader, IMediaExtractor
from ragcast.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from ragcast.models.rag import Chunk, ChunkMetadata
from ragcast.services.retrieval.lexical_index import tokenize
from ragcast.utils.errors import ToolUnavailableError

# ---------------------------------------------------------------------------
# Fake capabilities
# ---------------------------------------------------------------------------

_FAKE_DIM = 256


class FakeEmbedder(IEmbeddingProvider):
    """Deterministic bag-of-words embedder.

    Each token is hashed into one of 256 buckets, so texts sharing words
    have a positive cosine similarity and unrelated texts score zero.
    """

    def __init__(self) -> None:
        self.embed_calls = 0
        self.single_calls = 0

    @staticmethod
    def vectorize(text: str) -> list[float]:
        vector = [0.0] * _FAKE_DIM
        for token in tokenize(text):
            bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % _FAKE_DIM
            vector[bucket] += 1.0
        return vector

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.embed_calls += 1
        return [self.vectorize(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.single_calls += 1
        return self.vectorize(text)

    def get_provider_name(self) -> str:
        return "fake_embedding"

    def is_available(self) -> bool:
        return True


class FakeTranscriber(ITranscriptionProvider):
    """Returns a fixed transcript and records what it was given."""

    def __init__(self, text: str = "", language: str | None = "en") -> None:
        self.text = text
        self.language = language
        self.calls: list[tuple[bytes, str, str]] = []

    async def transcribe(
        self,
        audio_bytes: bytes,
        file_name: str,
        mime_type: str,
    ) -> TranscriptionResult:
        self.calls.append((audio_bytes, file_name, mime_type))
        return TranscriptionResult(
            text=self.text,
            model="fake-whisper",
            language=self.language,
            duration_seconds=12.5,
        )

    def get_provider_name(self) -> str:
        return "fake_transcription"

    def is_available(self) -> bool:
        return True


class FakeExtractor(IMediaExtractor):
    """Writes a small MP3 placeholder instead of running ffmpeg."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def extract_audio(self, input_path: str, output_path: str) -> str:
        self.calls.append((input_path, output_path))
        Path(output_path).write_bytes(b"ID3-extracted-audio")
        return output_path

    def get_provider_name(self) -> str:
        return "fake_ffmpeg"


class FakeDownloader(IMediaDownloader):
    """Writes a small MP3 placeholder instead of running yt-dlp."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def download_audio(self, url: str, output_path: str) -> str:
        self.calls.append((url, output_path))
        Path(output_path).write_bytes(b"ID3-downloaded-audio")
        return output_path

    def get_provider_name(self) -> str:
        return "fake_ytdlp"


class MissingToolExtractor(IMediaExtractor):
    async def extract_audio(self, input_path: str, output_path: str) -> str:
        raise ToolUnavailableError(message="ffmpeg is not installed", provider_name="ffmpeg")

    def get_provider_name(self) -> str:
        return "ffmpeg"


class MissingToolDownloader(IMediaDownloader):
    async def download_audio(self, url: str, output_path: str) -> str:
        raise ToolUnavailableError(message="yt-dlp is not installed", provider_name="yt-dlp")

    def get_provider_name(self) -> str:
        return "yt-dlp"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_transcript() -> str:
    """A short multi-topic transcript, one paragraph per topic."""
    return (
        "Welcome to the show. Today we talk about sourdough bread and how "
        "a starter culture ferments flour and water over several days.\n\n"
        "Our second guest is Dr. Patel, who restores vintage bicycles. She "
        "explained how to true a wheel and replace worn brake pads.\n\n"
        "Finally we covered the weather. Heavy rain is expected on Friday, "
        "so bring an umbrella if you head to the farmers market."
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing durable storage at a per-test temp directory."""
    return Settings(
        openai_api_key="sk-test",
        uploads_dir=str(tmp_path / "uploads"),
        ingestions_dir=str(tmp_path / "ingestions"),
        chunk_size=200,
        chunk_overlap=40,
        retrieval_top_k=4,
        capability_timeout_seconds=5.0,
        app_env="development",
    )


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def mock_llm_provider() -> MagicMock:
    """Mock ILLMProvider with a canned answer."""
    mock = MagicMock(spec=ILLMProvider)
    mock.complete = AsyncMock(return_value="The starter ferments for several days.")
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    return mock


def make_chunk(text: str, index: int = 0, **extra: object) -> Chunk:
    """Build an audio chunk with the standard public metadata."""
    return Chunk(
        text=text,
        metadata=ChunkMetadata(
            chunk_index=index,
            source_type="audio",
            source_display="Audio Transcript",
            access_level="public",
            extra=dict(extra),
        ),
    )


@pytest.fixture
def chunk_factory():
    return make_chunk


@pytest.fixture
def fake_transcriber(sample_transcript: str) -> FakeTranscriber:
    return FakeTranscriber(text=sample_transcript)


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def fake_downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def missing_extractor() -> MissingToolExtractor:
    return MissingToolExtractor()


@pytest.fixture
def missing_downloader() -> MissingToolDownloader:
    return MissingToolDownloader()
