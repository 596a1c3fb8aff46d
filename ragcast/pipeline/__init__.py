"""Ingestion pipeline: durable job storage and the background state machine."""

from ragcast.pipeline.ingestion_service import IngestionService
from ragcast.pipeline.job_repository import IngestionJobRepository

__all__ = ["IngestionJobRepository", "IngestionService"]
