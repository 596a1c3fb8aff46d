"""Ingestion job models.

An :class:`IngestionJob` is the single source of truth for one upload or
link.  The background task owning the job mutates it in place and then
persists it (see ``ragcast/pipeline/job_repository.py``); callers polling
the API only ever see the :class:`PublicIngestion` projection.

Invariants the pipeline maintains:

    status == READY   <=>  transcript_path is not None
    status == ERROR   <=>  error is not None

The bound asker capability is a pydantic private attribute, so it is
never part of ``model_dump``/``model_dump_json`` and is therefore absent
from the persisted record.  It is rebuilt lazily after a restart.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class IngestionStatus(str, Enum):  # noqa: UP042
    """Lifecycle states of an ingestion job.

        QUEUED → PROCESSING → READY
                            ↘ ERROR

    READY and ERROR are terminal; a failed job is retried by submitting a
    new one.
    """

    QUEUED = "queued"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestionStatus.READY, IngestionStatus.ERROR)


class IngestionJob(BaseModel):
    """Mutable record of one ingestion, persisted as JSON after each transition."""

    id: str
    owner_id: str
    # Original filename for uploads, the URL for links.
    source_name: str
    # Local media path; swapped to the extracted audio for video uploads.
    source_path: str
    mime_type: str
    status: IngestionStatus = IngestionStatus.QUEUED
    error: str | None = None
    transcript_path: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    _asker: Any = PrivateAttr(default=None)

    @property
    def asker(self) -> Any:
        """The in-memory Q&A capability, or ``None`` until built."""
        return self._asker

    @asker.setter
    def asker(self, value: Any) -> None:
        self._asker = value

    @property
    def is_video(self) -> bool:
        return self.mime_type.lower().startswith("video/")

    def touch(self) -> None:
        self.updated_at = utc_now()

    def to_public(self) -> PublicIngestion:
        return PublicIngestion(
            id=self.id,
            status=self.status,
            error=self.error,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PublicIngestion(BaseModel):
    """The fields of a job that are safe to hand back to its owner."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: IngestionStatus
    error: str | None = None
    created_at: datetime
    updated_at: datetime
