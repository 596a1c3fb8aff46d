"""Utility modules for ragcast.

- **errors** -- Domain exception hierarchy rooted at RagcastError; setup,
  media, capability and lookup failures each get their own subclass.
- **logging** -- structlog setup: coloured console output in development,
  JSON lines in production.
"""

from ragcast.utils.errors import (
    ConfigurationError,
    DownloadForbiddenError,
    JobNotFoundError,
    JobNotReadyError,
    LLMError,
    MediaProcessingError,
    RagcastError,
    RAGError,
    ToolUnavailableError,
    TranscriptionError,
)
from ragcast.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "DownloadForbiddenError",
    "JobNotFoundError",
    "JobNotReadyError",
    "LLMError",
    "MediaProcessingError",
    "RAGError",
    "RagcastError",
    "ToolUnavailableError",
    "TranscriptionError",
    "configure_logging",
    "get_logger",
]
