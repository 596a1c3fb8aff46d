"""Command-line media adapters implementing IMediaExtractor / IMediaDownloader."""

from ragcast.providers.media.ffmpeg_extractor import FFmpegAudioExtractor
from ragcast.providers.media.ytdlp_downloader import YtDlpDownloader

__all__ = ["FFmpegAudioExtractor", "YtDlpDownloader"]
