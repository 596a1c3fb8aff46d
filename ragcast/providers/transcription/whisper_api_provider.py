"""OpenAI Whisper API transcription provider.

# ─── CLOUD TRANSCRIPTION ────────────────────────────────────────────
#
# The Whisper API accepts the audio payload directly; no local
# preprocessing is needed for mp3, mp4, mpeg, mpga, m4a, wav or webm.
# Video uploads are reduced to mono MP3 by FFmpegAudioExtractor first,
# which also keeps requests under the 25 MB upload limit for most talks.
#
# The client is configured with three SDK-level retries and the shared
# capability timeout (300 s by default).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import openai
import structlog

from ragcast.config.settings import Settings
from ragcast.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from ragcast.utils.errors import TranscriptionError

logger = structlog.get_logger(logger_name=__name__)

_MAX_RETRIES = 3


class WhisperAPIProvider(ITranscriptionProvider):
    """Transcription via the OpenAI audio transcriptions endpoint.

    Parameters
    ----------
    settings:
        Supplies the API key, optional base URL, model name
        (``transcription_model``) and request timeout.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.transcription_model

        client_kwargs: dict = {
            "api_key": self._api_key,
            "max_retries": _MAX_RETRIES,
            "timeout": settings.capability_timeout_seconds,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

    async def transcribe(
        self,
        audio_bytes: bytes,
        file_name: str,
        mime_type: str,
    ) -> TranscriptionResult:
        """Transcribe audio using the OpenAI Whisper API."""
        try:
            response = await self._client.audio.transcriptions.create(
                model=self._model,
                file=(file_name, audio_bytes, mime_type),
                response_format="verbose_json",
            )
        except openai.APITimeoutError as exc:
            raise TranscriptionError(
                message="Transcription request timed out",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise TranscriptionError(
                message=f"Transcription API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text = (response.text or "").strip()
        duration = getattr(response, "duration", 0.0) or 0.0
        language = getattr(response, "language", None)

        logger.info(
            "whisper_api_transcription_complete",
            model=self._model,
            duration=duration,
            language=language,
            chars=len(text),
        )

        return TranscriptionResult(
            text=text,
            model=self._model,
            language=language,
            duration_seconds=duration,
        )

    def get_provider_name(self) -> str:
        return "whisper_api (OpenAI)"

    def is_available(self) -> bool:
        return bool(self._api_key)
