"""Abstract base class for audio transcription providers.

# ─── ADAPTER PATTERN ───────────────────────────────────────────────────
#
# ITranscriptionProvider follows the same adapter pattern as ILLMProvider
# and IEmbeddingProvider.  Concrete implementations wrap a specific
# speech-to-text backend behind this interface so the ingestion pipeline
# never imports a vendor SDK directly.
#
# Input is the raw audio bytes plus the filename and MIME type the
# provider needs to label the upload; output is plain transcript text.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class TranscriptionResult(BaseModel):
    """Immutable result from an audio transcription."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Full transcribed text.")
    model: str = Field(description="Model that produced the transcript, e.g. whisper-1.")
    language: str | None = Field(default=None, description="Detected language code, if reported.")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Audio duration in seconds.")


class ITranscriptionProvider(ABC):
    """Contract for speech-to-text backends."""

    @abstractmethod
    async def transcribe(
        self,
        audio_bytes: bytes,
        file_name: str,
        mime_type: str,
    ) -> TranscriptionResult:
        """Transcribe an audio payload to text.

        Parameters
        ----------
        audio_bytes:
            The complete audio file contents.
        file_name:
            Name to present to the backend; some APIs infer the container
            format from its extension.
        mime_type:
            MIME type of the payload, e.g. ``"audio/mpeg"``.

        Returns
        -------
        TranscriptionResult
            The transcript text and the model that produced it.

        Raises
        ------
        ragcast.utils.errors.TranscriptionError
            If the backend call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the provider is configured to accept requests."""
