"""ragcast domain models — re-exports all public model classes.

    - ingestion.py — ingestion job lifecycle records
    - rag.py       — transcript chunks, query expansion rules, answers
"""

from __future__ import annotations

from ragcast.models.ingestion import (
    IngestionJob,
    IngestionStatus,
    PublicIngestion,
    utc_now,
)
from ragcast.models.rag import (
    AskResult,
    Chunk,
    ChunkMetadata,
    QueryExpansionRules,
    normalize_query,
)

__all__ = [
    "AskResult",
    "Chunk",
    "ChunkMetadata",
    "IngestionJob",
    "IngestionStatus",
    "PublicIngestion",
    "QueryExpansionRules",
    "normalize_query",
    "utc_now",
]
