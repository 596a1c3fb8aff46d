"""Unit tests for the retrieval and ingestion data models."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from ragcast.models.ingestion import IngestionJob, IngestionStatus, PublicIngestion
from ragcast.models.rag import (
    AskResult,
    Chunk,
    ChunkMetadata,
    QueryExpansionRules,
    normalize_query,
)


# ======================================================================
# normalize_query
# ======================================================================


class TestNormalizeQuery:
    def test_collapses_whitespace(self) -> None:
        assert normalize_query("  a \n\t b   c ") == "a b c"

    def test_folds_curly_apostrophes(self) -> None:
        assert normalize_query("it’s ‘quoted’") == "it's 'quoted'"

    def test_empty(self) -> None:
        assert normalize_query("   ") == ""


# ======================================================================
# Chunk
# ======================================================================


class TestChunk:
    def test_chunk_is_frozen(self, chunk_factory) -> None:
        chunk = chunk_factory("text")
        with pytest.raises(ValidationError):
            chunk.text = "other"

    def test_negative_index_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChunkMetadata(chunk_index=-1)

    def test_flat_merges_extra(self) -> None:
        meta = ChunkMetadata(
            chunk_index=2,
            source_type="audio",
            source_display="Audio Transcript",
            extra={"source": "talk.mp3", "access_level": "private"},
        )
        assert meta.flat() == {
            "source": "talk.mp3",
            "chunk_index": 2,
            "source_type": "audio",
            "source_display": "Audio Transcript",
            "access_level": "public",
        }

    def test_fingerprint_equal_for_equal_chunks(self, chunk_factory) -> None:
        assert chunk_factory("hello", 0).fingerprint == chunk_factory("hello", 0).fingerprint

    def test_fingerprint_differs_by_metadata(self, chunk_factory) -> None:
        assert chunk_factory("hello", 0).fingerprint != chunk_factory("hello", 1).fingerprint

    def test_fingerprint_uses_text_prefix(self, chunk_factory) -> None:
        base = "x" * 100
        assert (
            chunk_factory(base + "tail one", 0).fingerprint
            == chunk_factory(base + "tail two", 0).fingerprint
        )

    def test_ask_result_defaults(self) -> None:
        assert AskResult(answer="yes").sources == []


# ======================================================================
# QueryExpansionRules
# ======================================================================


class TestQueryExpansionRules:
    def test_defaults(self) -> None:
        rules = QueryExpansionRules()
        assert rules.max_extra_phrases == 8
        assert rules.token_synonyms == {}
        assert rules.phrase_synonyms == {}

    def test_from_camel_case_mapping(self) -> None:
        rules = QueryExpansionRules.from_mapping(
            {
                "maxExtraPhrases": 3,
                "tokenSynonyms": {"Car": ["  auto   mobile ", 5, ""]},
                "phraseSynonyms": {"machine learning": ["ML"]},
            }
        )
        assert rules.max_extra_phrases == 3
        assert rules.token_synonyms == {"car": ["auto mobile"]}
        assert rules.phrase_synonyms == {"machine learning": ["ML"]}

    def test_from_snake_case_mapping(self) -> None:
        rules = QueryExpansionRules.from_mapping(
            {"max_extra_phrases": 1, "token_synonyms": {"a": ["b"]}}
        )
        assert rules.max_extra_phrases == 1
        assert rules.token_synonyms == {"a": ["b"]}

    @pytest.mark.parametrize("raw", [None, [], "rules", 42])
    def test_non_mapping_gives_defaults(self, raw: object) -> None:
        assert QueryExpansionRules.from_mapping(raw) == QueryExpansionRules()

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(-4, 0), (2.9, 2), ("5", 8), (True, 8), (float("inf"), 8)],
    )
    def test_max_extra_phrases_coercion(self, value: object, expected: int) -> None:
        rules = QueryExpansionRules.from_mapping({"maxExtraPhrases": value})
        assert rules.max_extra_phrases == expected

    def test_invalid_synonym_entries_dropped(self) -> None:
        rules = QueryExpansionRules.from_mapping(
            {"tokenSynonyms": {"a": "not-a-list", "b": [], "c": ["ok"]}}
        )
        assert rules.token_synonyms == {"c": ["ok"]}


# ======================================================================
# IngestionJob
# ======================================================================


def _job(**overrides) -> IngestionJob:
    fields = {
        "id": "job-1",
        "owner_id": "owner-1",
        "source_name": "talk.mp3",
        "source_path": "/tmp/uploads/job-1-source.mp3",
        "mime_type": "audio/mpeg",
    }
    fields.update(overrides)
    return IngestionJob(**fields)


class TestIngestionJob:
    def test_new_job_is_queued(self) -> None:
        job = _job()
        assert job.status == IngestionStatus.QUEUED
        assert job.error is None
        assert job.transcript_path is None
        assert job.asker is None

    def test_terminal_states(self) -> None:
        assert IngestionStatus.READY.is_terminal
        assert IngestionStatus.ERROR.is_terminal
        assert not IngestionStatus.QUEUED.is_terminal
        assert not IngestionStatus.PROCESSING.is_terminal

    @pytest.mark.parametrize(
        ("mime", "expected"),
        [("video/mp4", True), ("VIDEO/webm", True), ("audio/mpeg", False)],
    )
    def test_is_video(self, mime: str, expected: bool) -> None:
        assert _job(mime_type=mime).is_video is expected

    def test_asker_not_serialized(self) -> None:
        job = _job()
        job.asker = object()

        payload = json.loads(job.model_dump_json())

        assert "asker" not in payload
        assert "_asker" not in payload
        restored = IngestionJob.model_validate_json(job.model_dump_json())
        assert restored.asker is None

    def test_round_trip_preserves_status(self) -> None:
        job = _job(status=IngestionStatus.ERROR, error="boom")
        restored = IngestionJob.model_validate_json(job.model_dump_json())
        assert restored.status == IngestionStatus.ERROR
        assert restored.error == "boom"
        assert restored.created_at == job.created_at

    def test_touch_advances_updated_at(self) -> None:
        job = _job()
        before = job.updated_at
        job.touch()
        assert job.updated_at >= before

    def test_public_view_hides_internal_fields(self) -> None:
        public = _job().to_public()
        assert isinstance(public, PublicIngestion)
        dumped = public.model_dump()
        assert set(dumped) == {"id", "status", "error", "created_at", "updated_at"}
