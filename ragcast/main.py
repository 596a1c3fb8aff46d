"""ragcast FastAPI application entry point.

Wires providers, services, and routes together via dependency injection.
Configuration comes from ``.env`` / environment variables (``Settings``)
plus the optional query expansion rules file.

Everything the routes need is stored on ``app.state`` during the lifespan
startup; tests pass pre-built components to :func:`create_app` instead.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from ragcast.api.middleware import (
    ErrorHandlingMiddleware,
    OwnerSessionMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from ragcast.api.routes import router as api_router
from ragcast.config.loader import load_query_expansions
from ragcast.config.settings import Settings
from ragcast.pipeline.ingestion_service import IngestionService
from ragcast.pipeline.job_repository import IngestionJobRepository
from ragcast.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from ragcast.providers.llm.openai_provider import OpenAILLMProvider
from ragcast.providers.media.ffmpeg_extractor import FFmpegAudioExtractor
from ragcast.providers.media.ytdlp_downloader import YtDlpDownloader
from ragcast.providers.transcription.whisper_api_provider import WhisperAPIProvider
from ragcast.services.transcript_session import TranscriptSessionFactory
from ragcast.utils.logging import configure_logging, get_logger

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    app_env=settings.app_env,
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component wiring
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service for the web application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    transcriber = WhisperAPIProvider(app_settings)
    embedder = OpenAIEmbeddingProvider(app_settings)
    llm = OpenAILLMProvider(app_settings)
    extractor = FFmpegAudioExtractor(binary=app_settings.ffmpeg_binary)
    downloader = YtDlpDownloader(binary=app_settings.ytdlp_binary)

    rules = load_query_expansions(app_settings.query_expansions_path)
    session_factory = TranscriptSessionFactory(
        app_settings,
        transcriber=transcriber,
        embedder=embedder,
        llm=llm,
        default_rules=rules,
    )
    repository = IngestionJobRepository(
        ingestions_dir=app_settings.ingestions_dir,
        uploads_dir=app_settings.uploads_dir,
    )
    ingestion_service = IngestionService(
        app_settings,
        repository=repository,
        session_factory=session_factory,
        media_extractor=extractor,
        media_downloader=downloader,
    )

    provider_registry = {
        "transcription": {
            "name": transcriber.get_provider_name(),
            "available": transcriber.is_available(),
        },
        "embedding": {
            "name": embedder.get_provider_name(),
            "available": embedder.is_available(),
        },
        "llm": {"name": llm.get_provider_name(), "available": llm.is_available()},
        "media_extractor": {"name": extractor.get_provider_name()},
        "media_downloader": {"name": downloader.get_provider_name()},
    }
    return {
        "repository": repository,
        "ingestion_service": ingestion_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Parameters
    ----------
    app_settings:
        Settings to use; the module-level ``settings`` by default.
    components:
        Pre-built ``app.state`` components (must include
        ``ingestion_service`` and ``repository``).  When omitted they are
        built from *app_settings* at startup.
    """
    cfg = app_settings or settings

    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        built = components if components is not None else _build_all(cfg)
        for key, value in built.items():
            setattr(application.state, key, value)
        application.state.version = __version__

        service: IngestionService = built["ingestion_service"]
        await service.initialize()

        _logger.info(
            "app_startup",
            version=__version__,
            environment=cfg.app_env,
            ingestions_dir=cfg.ingestions_dir,
        )

        yield

        await service.shutdown()
        built["repository"].close()
        _logger.info("app_shutdown")

    application = FastAPI(
        title="ragcast API",
        version=__version__,
        description=(
            "Upload audio or video (or submit a link), get a transcript, and "
            "ask questions answered from it with hybrid vector + BM25 retrieval."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(
        OwnerSessionMiddleware,
        cookie_name=cfg.session_cookie_name,
        max_age=cfg.session_cookie_max_age,
        secure=cfg.is_production,
    )
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def run() -> None:
    uvicorn.run(
        "ragcast.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    run()
