"""Unit tests for IngestionJobRepository — job map, cancellation, and durable files."""

from __future__ import annotations

from pathlib import Path

import pytest

from ragcast.models.ingestion import IngestionJob, IngestionStatus
from ragcast.pipeline.job_repository import IngestionJobRepository


@pytest.fixture
def repo(tmp_path: Path) -> IngestionJobRepository:
    return IngestionJobRepository(tmp_path / "ingestions", tmp_path / "uploads")


def _job(job_id: str = "job-1", owner_id: str = "owner-1", **overrides) -> IngestionJob:
    fields = {
        "id": job_id,
        "owner_id": owner_id,
        "source_name": "talk.mp3",
        "source_path": f"/nonexistent/{job_id}-source.mp3",
        "mime_type": "audio/mpeg",
    }
    fields.update(overrides)
    return IngestionJob(**fields)


class TestPaths:
    def test_layout(self, repo: IngestionJobRepository, tmp_path: Path) -> None:
        assert repo.record_path("abc") == tmp_path / "ingestions" / "abc.json"
        assert repo.transcript_path("abc") == tmp_path / "ingestions" / "abc.txt"
        assert repo.audio_path("abc") == tmp_path / "uploads" / "abc.mp3"
        assert repo.source_media_path("abc", ".mp4") == tmp_path / "uploads" / "abc-source.mp4"


class TestJobMap:
    @pytest.mark.asyncio
    async def test_register_and_get(self, repo: IngestionJobRepository) -> None:
        job = _job()
        await repo.register(job)

        assert repo.get("job-1") is job
        assert repo.is_active("job-1")
        assert len(repo) == 1

    @pytest.mark.asyncio
    async def test_remove_cancels(self, repo: IngestionJobRepository) -> None:
        await repo.register(_job())

        removed = await repo.remove("job-1")

        assert removed is not None
        assert repo.get("job-1") is None
        assert repo.is_cancelled("job-1")
        assert not repo.is_active("job-1")

    @pytest.mark.asyncio
    async def test_remove_unknown_returns_none(self, repo: IngestionJobRepository) -> None:
        assert await repo.remove("missing") is None

    @pytest.mark.asyncio
    async def test_for_owner(self, repo: IngestionJobRepository) -> None:
        await repo.register(_job("a", "alice"))
        await repo.register(_job("b", "bob"))
        await repo.register(_job("c", "alice"))

        assert sorted(j.id for j in repo.for_owner("alice")) == ["a", "c"]
        assert repo.for_owner("nobody") == []


class TestDurableWrites:
    @pytest.mark.asyncio
    async def test_persist_writes_record(self, repo: IngestionJobRepository) -> None:
        await repo.ensure_dirs()
        job = _job(status=IngestionStatus.PROCESSING)
        await repo.register(job)

        assert await repo.persist(job) is True

        stored = IngestionJob.model_validate_json(repo.record_path("job-1").read_text())
        assert stored.status == IngestionStatus.PROCESSING
        assert not repo.record_path("job-1").with_name("job-1.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_persist_skipped_after_remove(self, repo: IngestionJobRepository) -> None:
        await repo.ensure_dirs()
        job = _job()
        await repo.register(job)
        await repo.remove("job-1")

        assert await repo.persist(job) is False
        assert not repo.record_path("job-1").exists()

    @pytest.mark.asyncio
    async def test_transcript_write_and_read(self, repo: IngestionJobRepository) -> None:
        await repo.ensure_dirs()
        await repo.register(_job())

        path = await repo.write_transcript("job-1", "hello transcript")

        assert path == repo.transcript_path("job-1")
        assert await repo.read_transcript(path) == "hello transcript"

    @pytest.mark.asyncio
    async def test_transcript_skipped_after_remove(self, repo: IngestionJobRepository) -> None:
        await repo.ensure_dirs()
        await repo.register(_job())
        await repo.remove("job-1")

        assert await repo.write_transcript("job-1", "late") is None
        assert not repo.transcript_path("job-1").exists()

    @pytest.mark.asyncio
    async def test_delete_artifacts(self, repo: IngestionJobRepository) -> None:
        await repo.ensure_dirs()
        source = repo.source_media_path("job-1", ".mp4")
        await repo.write_media(source, b"video")
        job = _job(source_path=str(source))
        await repo.register(job)
        await repo.persist(job)
        await repo.write_transcript("job-1", "text")
        repo.audio_path("job-1").write_bytes(b"audio")

        removed = await repo.delete_artifacts("job-1", job)

        assert removed == 4
        assert not source.exists()
        assert not repo.record_path("job-1").exists()
        assert not repo.transcript_path("job-1").exists()
        assert not repo.audio_path("job-1").exists()

    @pytest.mark.asyncio
    async def test_delete_artifacts_tolerates_missing_files(self, repo: IngestionJobRepository) -> None:
        await repo.ensure_dirs()
        assert await repo.delete_artifacts("ghost", None) == 0


class TestLoadAll:
    @pytest.mark.asyncio
    async def test_reload_from_disk(self, repo: IngestionJobRepository, tmp_path: Path) -> None:
        await repo.ensure_dirs()
        for job_id in ("a", "b"):
            job = _job(job_id, status=IngestionStatus.READY, transcript_path=f"/x/{job_id}.txt")
            await repo.register(job)
            await repo.persist(job)

        fresh = IngestionJobRepository(tmp_path / "ingestions", tmp_path / "uploads")
        loaded = await fresh.load_all()

        assert sorted(j.id for j in loaded) == ["a", "b"]
        assert fresh.get("a").status == IngestionStatus.READY
        assert fresh.get("a").asker is None

    @pytest.mark.asyncio
    async def test_malformed_records_skipped(self, repo: IngestionJobRepository, tmp_path: Path) -> None:
        await repo.ensure_dirs()
        job = _job("good")
        await repo.register(job)
        await repo.persist(job)
        (tmp_path / "ingestions" / "bad.json").write_text("{not json", encoding="utf-8")
        (tmp_path / "ingestions" / "partial.json").write_text('{"id": "x"}', encoding="utf-8")
        (tmp_path / "ingestions" / "good.json.tmp").write_text("{}", encoding="utf-8")

        fresh = IngestionJobRepository(tmp_path / "ingestions", tmp_path / "uploads")
        loaded = await fresh.load_all()

        assert [j.id for j in loaded] == ["good"]

    @pytest.mark.asyncio
    async def test_empty_directory(self, repo: IngestionJobRepository) -> None:
        await repo.ensure_dirs()
        assert await repo.load_all() == []
