"""Pydantic request/response schemas for the ragcast API.

# ─── HOW SCHEMAS WORK ─────────────────────────────────────────────────
#
# Request schemas end with "Request", response schemas with "Response".
# FastAPI validates incoming JSON against them (422 on shape errors) and
# serializes outgoing objects through ``response_model``.  Checks that
# need a specific 400 message (blank question, bad expansions JSON) live
# in the route handlers instead.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ragcast.models.ingestion import IngestionStatus


class IngestionCreatedResponse(BaseModel):
    """Returned with 202 when an upload or link is accepted."""

    ingestion_id: str
    status: IngestionStatus


class IngestionResponse(BaseModel):
    """Public view of an ingestion job, polled by clients."""

    id: str
    status: IngestionStatus
    error: str | None = None
    created_at: datetime
    updated_at: datetime


class LinkIngestionRequest(BaseModel):
    """Remote media link to ingest."""

    url: str = Field(default="", max_length=2048)
    # Same shape as the ``queryExpansions`` form field of uploads.
    query_expansions: dict[str, Any] | None = None


class AskRequest(BaseModel):
    question: str = Field(default="", max_length=4000)


class SourceChunkResponse(BaseModel):
    """One transcript chunk used as answer context."""

    text: str
    metadata: dict[str, Any]


class AskResponse(BaseModel):
    answer: str
    sources: list[SourceChunkResponse] = Field(default_factory=list)


class SummaryResponse(BaseModel):
    summary: str


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
