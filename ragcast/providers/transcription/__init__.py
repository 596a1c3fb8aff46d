"""Speech-to-text adapters implementing ITranscriptionProvider."""

from ragcast.providers.transcription.whisper_api_provider import WhisperAPIProvider

__all__ = ["WhisperAPIProvider"]
