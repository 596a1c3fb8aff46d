"""Custom exception hierarchy for ragcast.

All application exceptions inherit from :class:`RagcastError`, which
carries an optional ``provider_name`` so error handlers can identify which
external capability (e.g. "openai", "ffmpeg", "yt-dlp") caused the failure.

The hierarchy is organized by pipeline concern:

    RagcastError  (base -- catch-all for any ragcast error)
    +-- ConfigurationError        (startup / missing config)
    |   +-- ToolUnavailableError  (required binary such as ffmpeg is absent)
    +-- MediaProcessingError      (audio extraction / download failed)
    |   +-- DownloadForbiddenError (remote host answered HTTP 403)
    +-- TranscriptionError        (speech-to-text call failed)
    +-- LLMError                  (any chat/completion call failure)
    +-- RAGError                  (embedding or index failure)
    +-- JobNotFoundError          (unknown or foreign ingestion id)
    +-- JobNotReadyError          (transcript / ask before ``ready``)

Setup errors (``ToolUnavailableError``) carry actionable text that ends up
verbatim in the job's ``error`` field, so keep their messages user-facing.
"""


class RagcastError(Exception):
    """Base exception for all ragcast errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external capability triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Setup / configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(RagcastError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ToolUnavailableError(ConfigurationError):
    """Raised when an external command-line tool cannot be launched.

    Distinct from :class:`MediaProcessingError`: the tool is not installed
    (or not on ``PATH``), so retrying will never help.
    """

    def __init__(
        self,
        message: str = "Required external tool is not installed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Media errors
# ---------------------------------------------------------------------------

class MediaProcessingError(RagcastError):
    """Raised when media extraction or download exits unsuccessfully."""

    def __init__(
        self,
        message: str = "Media processing failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DownloadForbiddenError(MediaProcessingError):
    """Raised when the remote media host refuses the download (HTTP 403)."""

    def __init__(
        self,
        message: str = "Remote download was forbidden (HTTP 403)",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Capability errors
# ---------------------------------------------------------------------------

class TranscriptionError(RagcastError):
    """Raised when the transcription capability fails."""

    def __init__(
        self,
        message: str = "Audio transcription failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(RagcastError):
    """Raised when an LLM API call fails or returns an empty response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RAGError(RagcastError):
    """Raised when a retrieval operation fails (embedding or index)."""

    def __init__(
        self,
        message: str = "RAG pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion lookup errors
# ---------------------------------------------------------------------------

class JobNotFoundError(RagcastError):
    """Raised when an ingestion id is unknown or belongs to another owner."""

    def __init__(
        self,
        message: str = "Ingestion not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class JobNotReadyError(RagcastError):
    """Raised when transcript or Q&A access is attempted before ``ready``."""

    def __init__(
        self,
        message: str = "Ingestion not ready",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
