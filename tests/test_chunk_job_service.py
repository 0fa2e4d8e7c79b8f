"""
tests/test_chunk_job_service.py

Tests for the chunk-oriented, fault-tolerant ingestion job.

Coverage
--------
- Mixed valid/invalid input with counts and final status
- Chunk boundaries and per-chunk bulk writes
- Skip budget: exactly at the limit, and exceeded
- Storage failure mid-run (recording store and SQLite)
- Upload staging: validation and temp-file cleanup
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from app.domain.person_record import PersonRecordInput
from app.repositories.person_record_repository import PersonRecordRepository
from app.services.chunk_job_service import ChunkJobService
from app.services.job_execution_tracker import JobExecutionTracker
from app.validators.upload_validator import CSVUploadValidationError
from db.models.job_run import JobRunStatus
from tests.conftest import CSV_HEADER, RecordingStore


def _rows(count: int, *, start: int = 0) -> list[str]:
    return [f"Person {index},p{index}@x.com,{index % 90},City" for index in range(start, start + count)]


class TestRunFile:
    def test_padded_email_and_blank_name_scenario(self, write_csv, recording_store: RecordingStore) -> None:
        path = write_csv(
            [
                "Alice, alice@x.com ,30,NYC",
                ",bob@x.com,25,LA",
                "Carl,carl@x.com,-5,Chicago",
            ]
        )
        service = ChunkJobService(chunk_size=2, skip_limit=5)

        summary = service.run_file(path=path, store=recording_store)

        assert summary.status == JobRunStatus.COMPLETED
        assert (summary.read_count, summary.write_count, summary.skip_count) == (3, 2, 1)
        assert recording_store.records == [
            PersonRecordInput(name="Alice", email="alice@x.com", age=30, city="NYC"),
            PersonRecordInput(name="Carl", email="carl@x.com", age=0, city="Chicago"),
        ]

    def test_mixed_input_completes_with_counts(self, write_csv, recording_store: RecordingStore) -> None:
        path = write_csv(["Alice,alice@x.com,30,Paris", ",nobody@x.com,20,Nowhere", "Carl,c@x.com,-4,"])
        service = ChunkJobService(chunk_size=2, skip_limit=5)

        summary = service.run_file(path=path, store=recording_store)

        assert summary.status == JobRunStatus.COMPLETED
        assert summary.succeeded
        assert (summary.read_count, summary.write_count, summary.skip_count) == (3, 2, 1)
        assert summary.chunk_count == 2
        assert summary.error_message is None
        assert summary.completed_at is not None
        assert recording_store.bulk_calls == [1, 1]
        assert recording_store.records[1] == PersonRecordInput(name="Carl", email="c@x.com", age=0, city=None)

    def test_read_count_equals_write_plus_skip(self, write_csv, recording_store: RecordingStore) -> None:
        rows = _rows(7) + ["", "a,b", ",x@x.com,1,c"] + _rows(3, start=100)
        service = ChunkJobService(chunk_size=4, skip_limit=10)

        summary = service.run_file(path=write_csv(rows), store=recording_store)

        assert summary.read_count == 13
        assert summary.write_count == 10
        assert summary.skip_count == 3
        assert summary.read_count == summary.write_count + summary.skip_count
        assert all(size <= 4 for size in recording_store.bulk_calls)

    def test_header_only_file_completes_empty(self, write_csv, recording_store: RecordingStore) -> None:
        summary = ChunkJobService().run_file(path=write_csv([]), store=recording_store)

        assert summary.status == JobRunStatus.COMPLETED
        assert (summary.read_count, summary.write_count, summary.skip_count, summary.chunk_count) == (0, 0, 0, 0)
        assert recording_store.bulk_calls == []

    def test_chunk_of_only_skips_does_not_call_store(self, write_csv, recording_store: RecordingStore) -> None:
        path = write_csv(["", ",a@x.com,1,c"] + _rows(1))
        service = ChunkJobService(chunk_size=2, skip_limit=5)

        summary = service.run_file(path=path, store=recording_store)

        assert summary.succeeded
        assert recording_store.bulk_calls == [1]

    def test_skip_count_equal_to_limit_still_completes(self, write_csv, recording_store: RecordingStore) -> None:
        path = write_csv(["", ""] + _rows(2))
        service = ChunkJobService(chunk_size=10, skip_limit=2)

        summary = service.run_file(path=path, store=recording_store)

        assert summary.status == JobRunStatus.COMPLETED
        assert summary.skip_count == 2

    def test_skip_limit_exceeded_fails_run(self, write_csv, recording_store: RecordingStore) -> None:
        rows = _rows(2) + ["", "", "bad"] + _rows(2, start=10)
        service = ChunkJobService(chunk_size=2, skip_limit=2)

        summary = service.run_file(path=write_csv(rows), store=recording_store)

        assert summary.status == JobRunStatus.FAILED
        assert not summary.succeeded
        assert summary.error_message is not None
        assert "SkipLimitExceededError" in summary.error_message
        assert summary.write_count == 2
        assert summary.skip_count == 3
        assert [record.name for record in recording_store.records] == ["Person 0", "Person 1"]

    def test_zero_skip_limit_fails_on_first_skip(self, write_csv, recording_store: RecordingStore) -> None:
        path = write_csv(_rows(1) + ["broken line"])
        service = ChunkJobService(chunk_size=5, skip_limit=0)

        summary = service.run_file(path=path, store=recording_store)

        assert summary.status == JobRunStatus.FAILED
        assert recording_store.records == []

    def test_storage_error_fails_run(self, write_csv) -> None:
        store = RecordingStore(fail_on_bulk_call=2)
        service = ChunkJobService(chunk_size=2, skip_limit=5)

        summary = service.run_file(path=write_csv(_rows(5)), store=store)

        assert summary.status == JobRunStatus.FAILED
        assert "StorageError" in (summary.error_message or "")
        assert summary.write_count == 2
        assert summary.read_count == 4
        assert store.bulk_calls == [2, 2]

    def test_missing_file_fails_run(self, tmp_path: Path, recording_store: RecordingStore) -> None:
        summary = ChunkJobService().run_file(path=tmp_path / "absent.csv", store=recording_store)

        assert summary.status == JobRunStatus.FAILED
        assert summary.read_count == 0

    def test_invalid_utf8_fails_run(self, tmp_path: Path, recording_store: RecordingStore) -> None:
        path = tmp_path / "latin1.csv"
        path.write_bytes(CSV_HEADER.encode("utf-8") + b"Ren\xe9,r@x.com,3,Caen\n")

        summary = ChunkJobService().run_file(path=path, store=recording_store)

        assert summary.status == JobRunStatus.FAILED
        assert "UnicodeDecodeError" in (summary.error_message or "")

    def test_unexpected_error_finishes_run_then_propagates(self, write_csv) -> None:
        class ExplodingStore(RecordingStore):
            def insert_bulk(self, records):
                raise KeyError("boom")

        tracker = JobExecutionTracker()
        service = ChunkJobService(tracker=tracker)

        with pytest.raises(KeyError):
            service.run_file(path=write_csv(_rows(1)), store=ExplodingStore())

        summaries = tracker.list_summaries()
        assert summaries[0].status == JobRunStatus.FAILED

    def test_runs_get_increasing_ids(self, write_csv, recording_store: RecordingStore) -> None:
        service = ChunkJobService()
        path = write_csv(_rows(1))

        first = service.run_file(path=path, store=recording_store)
        second = service.run_file(path=path, store=recording_store)

        assert second.run_id > first.run_id
        assert service.tracker.get_summary(first.run_id) == first


class TestChunkAtomicityWithDatabase:
    def test_failing_chunk_is_invisible_and_prior_chunks_remain(self, write_csv, session) -> None:
        class FailOnSecondChunk(PersonRecordRepository):
            calls = 0

            def insert_bulk(self, records):
                self.calls += 1
                if self.calls == 2:
                    # NOT NULL violation on the last row of the chunk
                    records = list(records) + [PersonRecordInput(name=None, email="x@x.com", age=1)]
                return super().insert_bulk(records)

        repository = FailOnSecondChunk(session)
        service = ChunkJobService(chunk_size=2, skip_limit=5)

        summary = service.run_file(path=write_csv(_rows(6)), store=repository)

        assert summary.status == JobRunStatus.FAILED
        assert summary.write_count == 2
        assert repository.count() == 2


class TestRunUpload:
    def test_upload_is_staged_and_removed(self, tmp_path: Path, recording_store: RecordingStore) -> None:
        staging = tmp_path / "staging"
        staging.mkdir()
        service = ChunkJobService(temp_dir=str(staging))
        upload = io.BytesIO((CSV_HEADER + "Ann,a@x.com,5,Lima\n").encode("utf-8"))

        summary = service.run_upload(upload=upload, file_name="people.csv", store=recording_store)

        assert summary.succeeded
        assert summary.source == "people.csv"
        assert summary.write_count == 1
        assert list(staging.iterdir()) == []

    def test_temp_file_removed_after_failed_run(self, tmp_path: Path) -> None:
        staging = tmp_path / "staging"
        staging.mkdir()
        service = ChunkJobService(temp_dir=str(staging))
        upload = io.BytesIO((CSV_HEADER + "Ann,a@x.com,5,Lima\n").encode("utf-8"))

        summary = service.run_upload(
            upload=upload,
            file_name="people.csv",
            store=RecordingStore(fail_on_bulk_call=1),
        )

        assert summary.status == JobRunStatus.FAILED
        assert list(staging.iterdir()) == []

    def test_content_type_accepts_non_csv_name(self, recording_store: RecordingStore) -> None:
        upload = io.BytesIO((CSV_HEADER + "Ann,a@x.com,5,Lima\n").encode("utf-8"))

        summary = ChunkJobService().run_upload(
            upload=upload,
            file_name="export.txt",
            content_type="application/vnd.ms-excel",
            store=recording_store,
        )

        assert summary.succeeded

    def test_rejects_non_csv_upload(self, recording_store: RecordingStore) -> None:
        with pytest.raises(CSVUploadValidationError, match="File must be a CSV"):
            ChunkJobService().run_upload(
                upload=io.BytesIO(b"a,b\n"),
                file_name="report.pdf",
                content_type="application/pdf",
                store=recording_store,
            )

    def test_rejects_empty_upload(self, tmp_path: Path, recording_store: RecordingStore) -> None:
        staging = tmp_path / "staging"
        staging.mkdir()
        service = ChunkJobService(temp_dir=str(staging))

        with pytest.raises(CSVUploadValidationError, match="File is empty"):
            service.run_upload(upload=io.BytesIO(b""), file_name="people.csv", store=recording_store)

        assert list(staging.iterdir()) == []
        assert service.tracker.list_summaries() == []
