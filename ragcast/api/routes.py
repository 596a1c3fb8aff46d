"""FastAPI routes for ingestion, transcript access, and Q&A.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern; the owner id comes from
``request.state.owner_id`` (set by ``OwnerSessionMiddleware``).

# ─── API ROUTE MAP ─────────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/ingestions                       POST    Upload audio/video (202)
# /api/ingestions/link                  POST    Ingest a remote link (202)
# /api/ingestions                       DELETE  Delete all of the caller's jobs
# /api/ingestions/{id}                  GET     Poll job status
# /api/ingestions/{id}                  DELETE  Delete one job and its files
# /api/ingestions/{id}/transcript       GET     Plain-text transcript
# /api/ingestions/{id}/ask              POST    Grounded answer + sources
# /api/ingestions/{id}/summary          GET     Transcript summary
# /api/health                           GET     Health check + providers
#
# Jobs belonging to another owner are indistinguishable from missing
# ones (404).  Jobs not yet ``ready`` answer 409 on transcript/ask/summary.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import PlainTextResponse

from ragcast.api.schemas import (
    AskRequest,
    AskResponse,
    HealthResponse,
    IngestionCreatedResponse,
    IngestionResponse,
    LinkIngestionRequest,
    SourceChunkResponse,
    SummaryResponse,
)
from ragcast.models.rag import QueryExpansionRules
from ragcast.pipeline.ingestion_service import IngestionService
from ragcast.utils.errors import JobNotFoundError, JobNotReadyError
from ragcast.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api")

_ALLOWED_AUDIO_EXT = frozenset({".mp3", ".wav", ".m4a", ".aac", ".ogg", ".webm", ".flac"})
_ALLOWED_VIDEO_EXT = frozenset({".mp4", ".mov", ".mkv", ".webm"})

# Read uploads in 1 MB increments rather than one unbounded read().
_UPLOAD_CHUNK_SIZE = 1024 * 1024


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_owner_id(request: Request) -> str:
    owner_id = getattr(request.state, "owner_id", None)
    if not owner_id:
        raise HTTPException(status_code=401, detail="Missing session")
    return owner_id


IngestionServiceDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
OwnerDep = Annotated[str, Depends(_get_owner_id)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_allowed_upload(file_name: str, content_type: str) -> bool:
    if content_type.startswith(("audio/", "video/")):
        return True
    ext = Path(file_name).suffix.lower()
    return ext in _ALLOWED_AUDIO_EXT or ext in _ALLOWED_VIDEO_EXT


def _parse_expansions_form(raw: str | None) -> QueryExpansionRules | None:
    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="Invalid queryExpansions JSON") from exc
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=400, detail="queryExpansions must be a JSON object")
    return QueryExpansionRules.from_mapping(parsed)


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Ingestion not found")


def _not_ready() -> HTTPException:
    return HTTPException(status_code=409, detail="Ingestion not ready")


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/ingestions",
    response_model=IngestionCreatedResponse,
    status_code=202,
    summary="Upload audio or video for transcription",
)
async def create_ingestion(
    service: IngestionServiceDep,
    owner_id: OwnerDep,
    audio: UploadFile | None = None,
    query_expansions: Annotated[str | None, Form(alias="queryExpansions")] = None,
) -> IngestionCreatedResponse:
    """Accept a multipart upload (field ``audio``) and queue it."""
    if audio is None:
        raise HTTPException(status_code=400, detail="Missing file field: audio")

    file_name = audio.filename or "audio"
    content_type = (audio.content_type or "").lower()
    if not _is_allowed_upload(file_name, content_type):
        raise HTTPException(status_code=400, detail="Unsupported file type")

    rules = _parse_expansions_form(query_expansions)

    parts: list[bytes] = []
    while True:
        part = await audio.read(_UPLOAD_CHUNK_SIZE)
        if not part:
            break
        parts.append(part)
    data = b"".join(parts)
    del parts
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    job = await service.submit_upload(
        owner_id,
        data,
        file_name=file_name,
        mime_type=content_type,
        query_expansions=rules,
    )
    return IngestionCreatedResponse(ingestion_id=job.id, status=job.status)


@router.post(
    "/ingestions/link",
    response_model=IngestionCreatedResponse,
    status_code=202,
    summary="Ingest audio from a remote link",
)
async def create_ingestion_from_link(
    body: LinkIngestionRequest,
    service: IngestionServiceDep,
    owner_id: OwnerDep,
) -> IngestionCreatedResponse:
    url = body.url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="Missing url")
    rules = (
        QueryExpansionRules.from_mapping(body.query_expansions)
        if body.query_expansions is not None
        else None
    )
    job = await service.submit_link(owner_id, url, query_expansions=rules)
    return IngestionCreatedResponse(ingestion_id=job.id, status=job.status)


@router.get(
    "/ingestions/{ingestion_id}",
    response_model=IngestionResponse,
    summary="Poll ingestion status",
)
async def get_ingestion(
    ingestion_id: str,
    service: IngestionServiceDep,
    owner_id: OwnerDep,
) -> IngestionResponse:
    job = service.get(owner_id, ingestion_id)
    if job is None:
        raise _not_found()
    return IngestionResponse(**job.to_public().model_dump())


@router.get(
    "/ingestions/{ingestion_id}/transcript",
    response_class=PlainTextResponse,
    summary="Fetch the plain-text transcript",
)
async def get_transcript(
    ingestion_id: str,
    service: IngestionServiceDep,
    owner_id: OwnerDep,
) -> PlainTextResponse:
    try:
        text = await service.get_transcript_text(owner_id, ingestion_id)
    except JobNotFoundError as exc:
        raise _not_found() from exc
    except JobNotReadyError as exc:
        raise _not_ready() from exc
    return PlainTextResponse(text)


@router.post(
    "/ingestions/{ingestion_id}/ask",
    response_model=AskResponse,
    summary="Ask a question about the transcript",
)
async def ask_ingestion(
    ingestion_id: str,
    body: AskRequest,
    service: IngestionServiceDep,
    owner_id: OwnerDep,
) -> AskResponse:
    question = body.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Missing question")

    try:
        result = await service.ask(owner_id, ingestion_id, question)
    except JobNotFoundError as exc:
        raise _not_found() from exc
    except JobNotReadyError as exc:
        raise _not_ready() from exc
    except TimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc

    return AskResponse(
        answer=result.answer,
        sources=[
            SourceChunkResponse(text=chunk.text, metadata=chunk.metadata.flat())
            for chunk in result.sources
        ],
    )


@router.get(
    "/ingestions/{ingestion_id}/summary",
    response_model=SummaryResponse,
    summary="Summarize the transcript",
)
async def summarize_ingestion(
    ingestion_id: str,
    service: IngestionServiceDep,
    owner_id: OwnerDep,
) -> SummaryResponse:
    try:
        summary = await service.summarize(owner_id, ingestion_id)
    except JobNotFoundError as exc:
        raise _not_found() from exc
    except JobNotReadyError as exc:
        raise _not_ready() from exc
    except TimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    return SummaryResponse(summary=summary)


@router.delete(
    "/ingestions/{ingestion_id}",
    status_code=204,
    summary="Delete one ingestion and its files",
)
async def delete_ingestion(
    ingestion_id: str,
    service: IngestionServiceDep,
    owner_id: OwnerDep,
) -> Response:
    await service.delete(owner_id, ingestion_id)
    return Response(status_code=204)


@router.delete(
    "/ingestions",
    status_code=204,
    summary="Delete every ingestion of the caller",
)
async def delete_all_ingestions(
    service: IngestionServiceDep,
    owner_id: OwnerDep,
) -> Response:
    deleted = await service.delete_all(owner_id)
    _logger.info("ingestions_deleted_for_owner", count=deleted)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    required = ("transcription", "embedding", "llm")
    status = "healthy" if all(providers.get(k, {}).get("available") for k in required) else "degraded"

    return HealthResponse(
        status=status,
        version=getattr(request.app.state, "version", "0.0.0"),
        providers=providers,
    )
