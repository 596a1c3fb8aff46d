"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ─────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources, in priority order:
#
#   1. Environment variables, e.g. OPENAI_API_KEY=sk-abc123 (always wins)
#   2. .env file in the working directory (local development)
#
# Field ``chunk_size`` maps to env var ``CHUNK_SIZE``, and so on.  Defaults
# below apply when neither source sets a value.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """ragcast application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === OpenAI-compatible providers ===
    # Empty string = "not configured"; providers raise ConfigurationError
    # on first use rather than at import time.
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_text_model: str = ""  # default gpt-4o-mini
    openai_embedding_model: str = ""  # default text-embedding-3-small
    transcription_model: str = "whisper-1"

    # === Durable storage ===
    uploads_dir: str = "./uploads"
    ingestions_dir: str = "./ingestions"
    # Jobs found in queued/processing at startup have no worker anymore.
    # Off: they keep their last persisted status, which never advances, so
    # clients polling them must resubmit on their own.  On: they are marked
    # error with a "resubmit" message, so every job ends in a terminal state.
    recover_interrupted_as_error: bool = False

    # === Chunking / retrieval ===
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    retrieval_top_k: int = Field(default=12, gt=0)
    vector_weight: float = 0.45
    lexical_weight: float = 0.55
    candidate_multiplier: int = Field(default=4, gt=0)
    retrieval_cache_size: int = Field(default=256, gt=0)
    query_expansions_path: str = ""

    # === Answering ===
    answer_temperature: float = 0.2
    answer_max_tokens: int = 1500

    # === External capabilities ===
    capability_timeout_seconds: float = Field(default=300.0, gt=0)
    ffmpeg_binary: str = "ffmpeg"
    ytdlp_binary: str = "yt-dlp"

    # === Owner session cookie ===
    session_cookie_name: str = "sid"
    session_cookie_max_age: int = 60 * 60 * 24 * 30

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"
