"""Abstract base classes for media extraction and remote media download.

Both capabilities wrap command-line tools (ffmpeg, yt-dlp) that the
pipeline calls but does not implement.  They must fail *distinctly*:

    ToolUnavailableError    the tool is not installed  → setup error
    DownloadForbiddenError  remote host answered 403   → downloader only
    MediaProcessingError    the tool ran and failed    → capability error

so the ingestion service can turn a missing tool into an actionable
message instead of a generic failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IMediaExtractor(ABC):
    """Contract for stripping the video stream from a media file."""

    @abstractmethod
    async def extract_audio(self, input_path: str, output_path: str) -> str:
        """Write an audio-only MP3 of *input_path* to *output_path*.

        Returns
        -------
        str
            The path of the written audio file (``output_path``).

        Raises
        ------
        ragcast.utils.errors.ToolUnavailableError
            If the extraction tool is not installed.
        ragcast.utils.errors.MediaProcessingError
            If the conversion itself fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the tool name, e.g. ``"ffmpeg"``."""


class IMediaDownloader(ABC):
    """Contract for materializing remote media as a local audio file."""

    @abstractmethod
    async def download_audio(self, url: str, output_path: str) -> str:
        """Download *url* and write its audio track as MP3 to *output_path*.

        Returns
        -------
        str
            The path of the written audio file (``output_path``).

        Raises
        ------
        ragcast.utils.errors.ToolUnavailableError
            If the download tool is not installed.
        ragcast.utils.errors.DownloadForbiddenError
            If every client profile is refused with HTTP 403.
        ragcast.utils.errors.MediaProcessingError
            For unsupported URLs and any other download failure.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the tool name, e.g. ``"yt-dlp"``."""
