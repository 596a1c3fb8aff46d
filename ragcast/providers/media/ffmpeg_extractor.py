"""ffmpeg-backed audio extraction for video uploads.

Re-encodes the input to a speech-friendly MP3: the video stream is
dropped and the audio is downmixed to mono at 16 kHz and 64 kbps, which
keeps an hour-long talk comfortably under the transcription upload limit.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from ragcast.interfaces.media_provider import IMediaExtractor
from ragcast.providers.media.process import run_tool
from ragcast.utils.errors import MediaProcessingError

logger = structlog.get_logger(logger_name=__name__)


class FFmpegAudioExtractor(IMediaExtractor):
    """Extract an audio-only MP3 with the ffmpeg CLI.

    Parameters
    ----------
    binary:
        Executable name or path, ``"ffmpeg"`` by default.
    """

    def __init__(self, binary: str = "ffmpeg") -> None:
        self._binary = binary

    async def extract_audio(self, input_path: str, output_path: str) -> str:
        args = [
            "-y",
            "-i", input_path,
            "-vn",
            "-ac", "1",
            "-ar", "16000",
            "-b:a", "64k",
            output_path,
        ]
        await run_tool(self._binary, args, self.get_provider_name())

        if not Path(output_path).exists():
            raise MediaProcessingError(
                message="ffmpeg finished without writing an output file",
                provider_name=self.get_provider_name(),
            )
        logger.info("audio_extracted", input=input_path, output=output_path)
        return output_path

    def get_provider_name(self) -> str:
        return "ffmpeg"
