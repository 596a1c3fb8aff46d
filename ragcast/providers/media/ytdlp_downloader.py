"""yt-dlp-backed audio download for remote links.

yt-dlp picks the container extension itself, so the adapter hands it an
output *template* (``<stem>.%(ext)s``) and lets ``-x --audio-format mp3``
(which runs ffmpeg internally) produce ``<stem>.mp3``.

YouTube regularly answers the default client with HTTP 403.  The first
attempt uses the ``android`` player client; when its output mentions
``HTTP Error 403`` a single retry is made with the ``ios`` client.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

import structlog

from ragcast.interfaces.media_provider import IMediaDownloader
from ragcast.providers.media.process import run_tool
from ragcast.utils.errors import DownloadForbiddenError, MediaProcessingError

logger = structlog.get_logger(logger_name=__name__)

_FORBIDDEN_SIGNAL = "HTTP Error 403"
_PLAYER_CLIENTS = ("android", "ios")
_SUPPORTED_SCHEMES = frozenset({"http", "https"})

FORBIDDEN_MESSAGE = (
    "YouTube download failed (HTTP 403). "
    "Try updating yt-dlp to the latest version or retry later."
)


def _output_template(output_path: str) -> str:
    path = Path(output_path)
    if path.suffix.lower() == ".mp3":
        return str(path.with_suffix(".%(ext)s"))
    return f"{output_path}.%(ext)s"


class YtDlpDownloader(IMediaDownloader):
    """Download the audio track of a remote link as MP3 via yt-dlp."""

    def __init__(self, binary: str = "yt-dlp") -> None:
        self._binary = binary

    async def download_audio(self, url: str, output_path: str) -> str:
        scheme = urlparse(url).scheme.lower()
        if scheme not in _SUPPORTED_SCHEMES:
            raise MediaProcessingError(
                message=f"Unsupported link scheme {scheme or '(none)'!r}; expected http or https",
                provider_name=self.get_provider_name(),
            )

        template = _output_template(output_path)
        for attempt, client in enumerate(_PLAYER_CLIENTS):
            try:
                await run_tool(self._binary, self._args(client, template, url), self.get_provider_name())
                break
            except MediaProcessingError as exc:
                if _FORBIDDEN_SIGNAL not in exc.message:
                    raise
                if attempt == len(_PLAYER_CLIENTS) - 1:
                    raise DownloadForbiddenError(
                        message=FORBIDDEN_MESSAGE,
                        provider_name=self.get_provider_name(),
                    ) from exc
                logger.info("ytdlp_forbidden_retrying", url=url, failed_client=client)

        if not Path(output_path).exists():
            raise MediaProcessingError(
                message=f"yt-dlp finished but {Path(output_path).name} was not written",
                provider_name=self.get_provider_name(),
            )
        logger.info("remote_audio_downloaded", url=url, output=output_path)
        return output_path

    @staticmethod
    def _args(client: str, template: str, url: str) -> list[str]:
        return [
            "--no-playlist",
            "--extractor-args", f"youtube:player_client={client}",
            "-x",
            "--audio-format", "mp3",
            "-o", template,
            url,
        ]

    def get_provider_name(self) -> str:
        return "yt-dlp"
