"""Ingestion state machine: submissions, background processing, and lookups.

# ─── JOB LIFECYCLE ─────────────────────────────────────────────────────
#
#   submit_upload / submit_link
#     │  write upload bytes (uploads only) + queued record, return at once
#     ▼
#   background task (one asyncio.Task per job)
#     │  processing ─ persist
#     │  video/*  → extract audio (ffmpeg), swap source to MP3 ─ persist
#     │  link     → download audio (yt-dlp)
#     │  read audio → transcribe → chunk → index → bind asker
#     │  write <id>.txt
#     ▼
#   ready ─ persist                 any exception → error ─ persist
#
# Deletion marks the id cancelled.  Every write goes through the
# repository, which skips it once the id is cancelled or unregistered,
# and the task checks the same flag before mutating the job after each
# external call.  Nothing the task does can resurrect a deleted job.
#
# External calls are bounded by ``capability_timeout_seconds``; a timeout
# fails the job like any other error.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import re
import time
import uuid
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

import structlog

from ragcast.config.settings import Settings
from ragcast.interfaces.media_provider import IMediaDownloader, IMediaExtractor
from ragcast.models.ingestion import IngestionJob, IngestionStatus
from ragcast.models.rag import AskResult, QueryExpansionRules
from ragcast.pipeline.job_repository import IngestionJobRepository
from ragcast.services.qa_service import TranscriptAsker
from ragcast.services.transcript_session import TranscriptSessionFactory
from ragcast.utils.errors import (
    JobNotFoundError,
    JobNotReadyError,
    RagcastError,
    ToolUnavailableError,
)

logger = structlog.get_logger(logger_name=__name__)

T = TypeVar("T")

FFMPEG_MISSING_MESSAGE = "ffmpeg is not installed. Install ffmpeg to process video uploads."
YTDLP_MISSING_MESSAGE = (
    "yt-dlp is not installed. Install yt-dlp (and ffmpeg) to process remote links."
)
INTERRUPTED_MESSAGE = "Processing was interrupted by a server restart. Please resubmit."

_DEFAULT_MIME_TYPE = "application/octet-stream"
_AUDIO_MIME_TYPE = "audio/mpeg"
_SAFE_SUFFIX_RE = re.compile(r"^\.[a-z0-9]{1,10}$")


def _safe_suffix(file_name: str) -> str:
    suffix = Path(file_name).suffix.lower()
    return suffix if _SAFE_SUFFIX_RE.match(suffix) else ""


class IngestionService:
    """Drives ingestion jobs from submission to ``ready`` or ``error``.

    Parameters
    ----------
    settings:
        Timeouts, environment (for error formatting), and recovery policy.
    repository:
        Job map, cancellation set, and durable storage.
    session_factory:
        Builds the transcript session (transcription + indexes + asker).
    media_extractor:
        Strips video down to audio for ``video/*`` uploads.
    media_downloader:
        Fetches remote links as MP3.
    """

    def __init__(
        self,
        settings: Settings,
        repository: IngestionJobRepository,
        session_factory: TranscriptSessionFactory,
        media_extractor: IMediaExtractor,
        media_downloader: IMediaDownloader,
    ) -> None:
        self._settings = settings
        self._repo = repository
        self._sessions = session_factory
        self._extractor = media_extractor
        self._downloader = media_downloader
        self._timeout = settings.capability_timeout_seconds
        self._tasks: set[asyncio.Task[None]] = set()
        self._rebuild_locks: dict[str, asyncio.Lock] = {}

    # ─── Startup / shutdown ────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create storage directories and reload persisted jobs."""
        await self._repo.ensure_dirs()
        jobs = await self._repo.load_all()

        interrupted = [job for job in jobs if not job.status.is_terminal]
        if interrupted and self._settings.recover_interrupted_as_error:
            for job in interrupted:
                job.status = IngestionStatus.ERROR
                job.error = INTERRUPTED_MESSAGE
                job.transcript_path = None
                job.touch()
                await self._repo.persist(job)

        logger.info(
            "ingestion_service_initialized",
            jobs=len(jobs),
            interrupted=len(interrupted),
            interrupted_marked_error=self._settings.recover_interrupted_as_error,
        )

    async def shutdown(self) -> None:
        """Cancel outstanding background tasks and wait for them to finish."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("ingestion_service_shutdown", cancelled_tasks=len(tasks))

    async def drain(self) -> None:
        """Wait until every background task started so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ─── Submission ────────────────────────────────────────────────────

    async def submit_upload(
        self,
        owner_id: str,
        data: bytes,
        file_name: str,
        mime_type: str,
        query_expansions: QueryExpansionRules | None = None,
    ) -> IngestionJob:
        """Store an uploaded file and queue it for processing."""
        job_id = str(uuid.uuid4())
        source_path = self._repo.source_media_path(job_id, _safe_suffix(file_name))
        await self._repo.write_media(source_path, data)

        job = IngestionJob(
            id=job_id,
            owner_id=owner_id,
            source_name=file_name or source_path.name,
            source_path=str(source_path),
            mime_type=mime_type or _DEFAULT_MIME_TYPE,
        )
        await self._enqueue(job, url=None, rules=query_expansions)
        logger.info(
            "ingestion_submitted",
            id=job_id,
            kind="upload",
            mime_type=job.mime_type,
            bytes=len(data),
        )
        return job

    async def submit_link(
        self,
        owner_id: str,
        url: str,
        query_expansions: QueryExpansionRules | None = None,
    ) -> IngestionJob:
        """Queue a remote link for download and processing."""
        job_id = str(uuid.uuid4())
        job = IngestionJob(
            id=job_id,
            owner_id=owner_id,
            source_name=url,
            source_path=str(self._repo.audio_path(job_id)),
            mime_type=_AUDIO_MIME_TYPE,
        )
        await self._enqueue(job, url=url, rules=query_expansions)
        logger.info("ingestion_submitted", id=job_id, kind="link")
        return job

    async def _enqueue(
        self,
        job: IngestionJob,
        url: str | None,
        rules: QueryExpansionRules | None,
    ) -> None:
        await self._repo.register(job)
        await self._repo.persist(job)
        task = asyncio.create_task(self._process(job, url, rules), name=f"ingestion-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "ingestion_task_crashed",
                task=task.get_name(),
                error_type=type(exc).__name__,
                error=str(exc),
            )

    # ─── Background processing ─────────────────────────────────────────

    async def _process(
        self,
        job: IngestionJob,
        url: str | None,
        rules: QueryExpansionRules | None,
    ) -> None:
        job_id = job.id
        if not self._repo.is_active(job_id):
            return

        started = time.monotonic()
        job.status = IngestionStatus.PROCESSING
        job.touch()
        await self._repo.persist(job)
        logger.info(
            "ingestion_processing_start",
            id=job_id,
            ms_since_create=int((job.updated_at - job.created_at).total_seconds() * 1000),
        )

        try:
            if url is not None:
                await self._download(job, url)
            elif job.is_video:
                await self._extract(job)
            if not self._repo.is_active(job_id):
                await self._discard_media(job)
                return

            audio = await self._repo.read_media(job.source_path)
            session = await self._bounded(
                self._sessions.from_audio(
                    audio,
                    source=job.source_name,
                    file_name=Path(job.source_path).name,
                    mime_type=job.mime_type,
                    expansion_rules=rules,
                ),
                "transcription",
            )
            if not self._repo.is_active(job_id):
                return

            transcript_path = await self._repo.write_transcript(job_id, session.transcript_text)
            if transcript_path is None:
                return

            job.asker = session.asker
            job.transcript_path = str(transcript_path)
            job.error = None
            job.status = IngestionStatus.READY
            job.touch()
            await self._repo.persist(job)
            logger.info(
                "ingestion_ready",
                id=job_id,
                ms_total=int((time.monotonic() - started) * 1000),
                chunks=len(session.chunks),
            )
        except Exception as exc:
            if not self._repo.is_active(job_id):
                await self._discard_media(job)
                logger.info("ingestion_failed_after_delete", id=job_id, error=str(exc))
                return
            job.asker = None
            job.transcript_path = None
            job.status = IngestionStatus.ERROR
            job.error = self._describe(exc)
            job.touch()
            await self._repo.persist(job)
            logger.error(
                "ingestion_failed",
                id=job_id,
                ms_total=int((time.monotonic() - started) * 1000),
                error_type=type(exc).__name__,
                error=str(exc),
            )

    async def _discard_media(self, job: IngestionJob) -> None:
        """Remove media the worker produced after its job was deleted."""
        await self._repo.discard(job.source_path)
        await self._repo.discard(self._repo.audio_path(job.id))

    async def _extract(self, job: IngestionJob) -> None:
        extracted = self._repo.audio_path(job.id)
        try:
            await self._bounded(
                self._extractor.extract_audio(job.source_path, str(extracted)),
                "audio extraction",
            )
        except ToolUnavailableError as exc:
            raise ToolUnavailableError(
                message=FFMPEG_MISSING_MESSAGE,
                provider_name=exc.provider_name,
            ) from exc

        if not self._repo.is_active(job.id):
            await self._repo.discard(extracted)
            return

        await self._repo.discard(job.source_path)
        job.source_path = str(extracted)
        job.mime_type = _AUDIO_MIME_TYPE
        job.touch()
        await self._repo.persist(job)

    async def _download(self, job: IngestionJob, url: str) -> None:
        try:
            await self._bounded(
                self._downloader.download_audio(url, job.source_path),
                "download",
            )
        except ToolUnavailableError as exc:
            raise ToolUnavailableError(
                message=YTDLP_MISSING_MESSAGE,
                provider_name=exc.provider_name,
            ) from exc

    async def _bounded(self, awaitable: Awaitable[T], stage: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise TimeoutError(f"{stage} timed out after {self._timeout:g}s") from exc

    def _describe(self, exc: Exception) -> str:
        """Human-readable error text stored on the job.

        Production shows the bare message; elsewhere the exception type is
        prefixed to make logs and the UI easier to debug.
        """
        message = exc.message if isinstance(exc, RagcastError) else str(exc)
        message = message or "Unexpected error"
        if self._settings.is_production:
            return message
        return f"{type(exc).__name__}: {message}"

    # ─── Lookups ───────────────────────────────────────────────────────

    def get(self, owner_id: str, job_id: str) -> IngestionJob | None:
        """Return the job if it exists and belongs to *owner_id*."""
        job = self._repo.get(job_id)
        if job is None or job.owner_id != owner_id:
            return None
        return job

    def _require(self, owner_id: str, job_id: str) -> IngestionJob:
        job = self.get(owner_id, job_id)
        if job is None:
            raise JobNotFoundError()
        return job

    def _require_ready(self, owner_id: str, job_id: str) -> IngestionJob:
        job = self._require(owner_id, job_id)
        if job.status != IngestionStatus.READY or not job.transcript_path:
            raise JobNotReadyError()
        return job

    async def get_transcript_text(self, owner_id: str, job_id: str) -> str:
        job = self._require_ready(owner_id, job_id)
        try:
            return await self._repo.read_transcript(job.transcript_path)
        except FileNotFoundError as exc:
            raise JobNotReadyError(message="Transcript file is missing") from exc

    async def ask(self, owner_id: str, job_id: str, question: str) -> AskResult:
        """Answer *question* from the job's transcript."""
        job = self._require_ready(owner_id, job_id)
        asker = await self._asker_for(job)
        return await self._bounded(asker.ask(question), "answer")

    async def summarize(self, owner_id: str, job_id: str) -> str:
        job = self._require_ready(owner_id, job_id)
        asker = await self._asker_for(job)
        return await self._bounded(asker.summarize(), "summary")

    async def _asker_for(self, job: IngestionJob) -> TranscriptAsker:
        """Return the bound asker, rebuilding it from the transcript if needed."""
        if job.asker is not None:
            return job.asker

        lock = self._rebuild_locks.setdefault(job.id, asyncio.Lock())
        try:
            async with lock:
                if job.asker is not None:
                    return job.asker
                try:
                    text = await self._repo.read_transcript(job.transcript_path)
                except FileNotFoundError as exc:
                    raise JobNotReadyError(message="Transcript file is missing") from exc
                session = await self._bounded(
                    self._sessions.from_transcript(text, source=job.source_name),
                    "index rebuild",
                )
                job.asker = session.asker
                logger.info("ingestion_asker_rebuilt", id=job.id, chunks=len(session.chunks))
                return job.asker
        finally:
            if self._rebuild_locks.get(job.id) is lock:
                del self._rebuild_locks[job.id]

    # ─── Deletion ──────────────────────────────────────────────────────

    async def delete(self, owner_id: str, job_id: str) -> bool:
        """Cancel and remove a job with all its files.

        Unknown ids, already-deleted ids, and ids owned by someone else
        are no-ops.  Returns whether anything was deleted.
        """
        if self.get(owner_id, job_id) is None:
            return False
        job = await self._repo.remove(job_id)
        removed = await self._repo.delete_artifacts(job_id, job)
        self._rebuild_locks.pop(job_id, None)
        logger.info("ingestion_deleted", id=job_id, files_removed=removed)
        return True

    async def delete_all(self, owner_id: str) -> int:
        """Delete every job owned by *owner_id*; return how many were removed."""
        job_ids = [job.id for job in self._repo.for_owner(owner_id)]
        deleted = 0
        for job_id in job_ids:
            if await self.delete(owner_id, job_id):
                deleted += 1
        return deleted
