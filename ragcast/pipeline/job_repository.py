"""In-memory job map, cancellation set, and durable job records.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# IngestionJobRepository is the only place that touches:
#   - the id -> IngestionJob map
#   - the set of cancelled ids
#   - <ingestions_dir>/<id>.json and <id>.txt, and media under <uploads_dir>
#
# Mutations (register, remove/cancel, record and transcript writes) run
# under one asyncio.Lock.  Reads (get, is_active, for_owner) are plain
# dict lookups and never await, so they need no lock.
#
# Writes are conditional: a record or transcript is only written while
# the job is still registered and not cancelled, checked under the same
# lock that deletion takes.  A write therefore either lands before the
# delete (and is then unlinked by it) or is skipped.
#
# Record files are written to <id>.json.tmp first and moved into place
# with os.replace, so a crash never leaves a half-written record.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import structlog
from pydantic import ValidationError

from ragcast.models.ingestion import IngestionJob

logger = structlog.get_logger(logger_name=__name__)

_RECORD_SUFFIX = ".json"
_TRANSCRIPT_SUFFIX = ".txt"
_TEMP_SUFFIX = ".tmp"


def _write_atomic(target: Path, payload: str) -> None:
    tmp = target.with_name(target.name + _TEMP_SUFFIX)
    tmp.write_text(payload, encoding="utf-8")
    os.replace(tmp, target)


def _unlink_quietly(path: Path) -> bool:
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("artifact_unlink_failed", path=str(path), error=str(exc))
        return False


class IngestionJobRepository:
    """Owns every ingestion job, in memory and on disk.

    Parameters
    ----------
    ingestions_dir:
        Directory for ``<id>.json`` records and ``<id>.txt`` transcripts.
    uploads_dir:
        Directory for uploaded, extracted, and downloaded media.
    """

    def __init__(self, ingestions_dir: str | Path, uploads_dir: str | Path) -> None:
        self._ingestions_dir = Path(ingestions_dir)
        self._uploads_dir = Path(uploads_dir)
        self._jobs: dict[str, IngestionJob] = {}
        self._cancelled: set[str] = set()
        self._lock = asyncio.Lock()

    # ─── Paths ─────────────────────────────────────────────────────────

    def record_path(self, job_id: str) -> Path:
        return self._ingestions_dir / f"{job_id}{_RECORD_SUFFIX}"

    def transcript_path(self, job_id: str) -> Path:
        return self._ingestions_dir / f"{job_id}{_TRANSCRIPT_SUFFIX}"

    def source_media_path(self, job_id: str, suffix: str = "") -> Path:
        """Where an uploaded file is stored before any conversion."""
        return self._uploads_dir / f"{job_id}-source{suffix}"

    def audio_path(self, job_id: str) -> Path:
        """Where extracted or downloaded MP3 audio is written."""
        return self._uploads_dir / f"{job_id}.mp3"

    # ─── Lifecycle ─────────────────────────────────────────────────────

    async def ensure_dirs(self) -> None:
        await asyncio.to_thread(self._ingestions_dir.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(self._uploads_dir.mkdir, parents=True, exist_ok=True)

    async def load_all(self) -> list[IngestionJob]:
        """Register every well-formed record found on disk.

        Malformed records are skipped with a warning; temp files are
        ignored because they do not end in ``.json``.  Loaded jobs carry
        no asker.
        """
        paths = await asyncio.to_thread(
            lambda: sorted(self._ingestions_dir.glob(f"*{_RECORD_SUFFIX}"))
        )
        loaded: list[IngestionJob] = []
        for path in paths:
            try:
                raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
                job = IngestionJob.model_validate_json(raw)
            except (OSError, ValidationError, ValueError) as exc:
                logger.warning("ingestion_record_skipped", path=str(path), error=str(exc))
                continue
            loaded.append(job)

        async with self._lock:
            for job in loaded:
                self._jobs[job.id] = job
        logger.info("ingestion_records_loaded", count=len(loaded), scanned=len(paths))
        return loaded

    def close(self) -> None:
        self._jobs.clear()
        self._cancelled.clear()

    # ─── Job map ───────────────────────────────────────────────────────

    async def register(self, job: IngestionJob) -> None:
        async with self._lock:
            self._jobs[job.id] = job
            self._cancelled.discard(job.id)

    async def remove(self, job_id: str) -> IngestionJob | None:
        """Cancel *job_id* and drop it from the map; return the dropped job."""
        async with self._lock:
            self._cancelled.add(job_id)
            return self._jobs.pop(job_id, None)

    def get(self, job_id: str) -> IngestionJob | None:
        return self._jobs.get(job_id)

    def for_owner(self, owner_id: str) -> list[IngestionJob]:
        return [job for job in self._jobs.values() if job.owner_id == owner_id]

    def is_cancelled(self, job_id: str) -> bool:
        return job_id in self._cancelled

    def is_active(self, job_id: str) -> bool:
        """True while *job_id* is registered and has not been cancelled."""
        return job_id in self._jobs and job_id not in self._cancelled

    def __len__(self) -> int:
        return len(self._jobs)

    # ─── Durable writes ────────────────────────────────────────────────

    async def persist(self, job: IngestionJob) -> bool:
        """Write *job*'s record atomically; skipped (``False``) once cancelled."""
        async with self._lock:
            if not self.is_active(job.id):
                logger.debug("ingestion_persist_skipped", id=job.id)
                return False
            payload = job.model_dump_json()
            await asyncio.to_thread(_write_atomic, self.record_path(job.id), payload)
            return True

    async def write_transcript(self, job_id: str, text: str) -> Path | None:
        """Write the transcript file, or return ``None`` if the job was cancelled."""
        async with self._lock:
            if not self.is_active(job_id):
                return None
            path = self.transcript_path(job_id)
            await asyncio.to_thread(path.write_text, text, encoding="utf-8")
            return path

    async def read_transcript(self, path: str | Path) -> str:
        return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")

    async def write_media(self, path: Path, data: bytes) -> None:
        await asyncio.to_thread(path.write_bytes, data)

    async def read_media(self, path: str | Path) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def discard(self, path: str | Path | None) -> None:
        """Best-effort removal of a single file."""
        if path:
            await asyncio.to_thread(_unlink_quietly, Path(path))

    async def delete_artifacts(self, job_id: str, job: IngestionJob | None) -> int:
        """Unlink the record, transcript, and media of *job_id*.

        Missing files are ignored.  Returns how many files were removed.
        """
        paths = {
            self.record_path(job_id),
            self.transcript_path(job_id),
            self.audio_path(job_id),
        }
        if job is not None:
            if job.transcript_path:
                paths.add(Path(job.transcript_path))
            if job.source_path:
                paths.add(Path(job.source_path))

        removed = 0
        for path in paths:
            if await asyncio.to_thread(_unlink_quietly, path):
                removed += 1
        return removed
