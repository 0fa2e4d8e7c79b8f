"""
app/services/chunk_job_service.py

Fault-tolerant, chunk-oriented CSV ingestion job.

Lines are read in groups of ``chunk_size``. Every line in a group is parsed
and normalized; malformed lines and rows missing a required field advance
the run's skip counter. The group's valid records are then committed with a
single bulk insert, so a chunk is either fully visible or not at all.
Once the skip counter exceeds ``skip_limit`` the run fails without writing
the offending chunk; chunks committed earlier stay committed.

Run lifecycle: STARTING -> RUNNING -> COMPLETED | FAILED. Chunks are
processed strictly in input order on the calling thread.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from functools import lru_cache
from pathlib import Path
from typing import IO, TextIO

from app.config import get_ingestion_settings
from app.domain.job_run import JobRun, JobRunSummary
from app.domain.person_record import PersonRecordInput, SkipDecision
from app.logging_utils import log_event
from app.mappers.field_parser import DEFAULT_DELIMITER, iter_data_lines, parse_line
from app.repositories.person_record_repository import PersonRecordStore
from app.services.job_execution_tracker import JobExecutionTracker, PersistentJobExecutionTracker
from app.validators.record_normalizer import MalformedLineError, RecordNormalizer
from app.validators.upload_validator import validate_csv_upload
from db.models.job_run import JobRunStatus
from db.repositories.errors import StorageError

logger = logging.getLogger(__name__)

_COPY_BUFFER_BYTES = 1024 * 1024


class SkipLimitExceededError(RuntimeError):
    """
    Raised when a run skips more lines than its skip budget allows.
    """

    def __init__(self, *, skip_count: int, skip_limit: int) -> None:
        super().__init__(f"Skip limit exceeded: {skip_count} skipped lines, limit is {skip_limit}.")
        self.skip_count = skip_count
        self.skip_limit = skip_limit


class ChunkJobService:
    """
    Runs chunk jobs against a record store and reports each run's outcome.
    """

    def __init__(
        self,
        *,
        chunk_size: int = 1000,
        skip_limit: int = 1000,
        delimiter: str = DEFAULT_DELIMITER,
        log_skipped_rows: bool = True,
        temp_dir: str | None = None,
        normalizer: RecordNormalizer | None = None,
        tracker: JobExecutionTracker | None = None,
    ) -> None:
        self._chunk_size = max(1, chunk_size)
        self._skip_limit = max(0, skip_limit)
        self._delimiter = delimiter
        self._log_skipped_rows = log_skipped_rows
        self._temp_dir = temp_dir
        self._normalizer = normalizer or RecordNormalizer()
        self._tracker = tracker or JobExecutionTracker()

    @property
    def tracker(self) -> JobExecutionTracker:
        return self._tracker

    def run_file(
        self,
        *,
        path: str | Path,
        store: PersonRecordStore,
        source: str | None = None,
    ) -> JobRunSummary:
        """
        Ingest a local CSV file as one tracked run.

        Storage, decoding and skip-budget failures never raise: they end the
        run as FAILED and the returned summary names the cause.
        """

        run = self._tracker.start_run(source or str(path))
        return self._execute(run=run, path=Path(path), store=store)

    def run_upload(
        self,
        *,
        upload: IO[bytes],
        file_name: str,
        store: PersonRecordStore,
        content_type: str | None = None,
    ) -> JobRunSummary:
        """
        Stage an uploaded byte stream in a temporary file and run it.

        The temporary copy is removed on every exit path.
        """

        validate_csv_upload(file_name=file_name, content_type=content_type)
        temp_path, file_size = self._persist_temp_upload(upload, file_name)
        try:
            validate_csv_upload(file_name=file_name, content_type=content_type, size_bytes=file_size)
            logger.info(
                "Received CSV upload file=%s size=%s bytes staged at %s",
                file_name,
                file_size,
                temp_path,
            )
            run = self._tracker.start_run(file_name)
            return self._execute(run=run, path=Path(temp_path), store=store)
        finally:
            self._delete_file_quietly(temp_path)

    def _execute(self, *, run: JobRun, path: Path, store: PersonRecordStore) -> JobRunSummary:
        log_event(
            logger,
            logging.INFO,
            "chunk_job_started",
            run_id=run.run_id,
            source=run.source,
            chunk_size=self._chunk_size,
            skip_limit=self._skip_limit,
        )
        try:
            with path.open("r", encoding="utf-8-sig") as handle:
                self._tracker.mark_running(run)
                for chunk in self._read_chunks(handle):
                    self._process_chunk(run=run, chunk=chunk, store=store)
        except SkipLimitExceededError as exc:
            return self._fail(run, exc, level=logging.WARNING)
        except (StorageError, OSError, UnicodeDecodeError) as exc:
            return self._fail(run, exc, level=logging.ERROR)
        except Exception as exc:
            try:
                self._fail(run, exc, level=logging.ERROR)
            except Exception:
                logger.exception("Could not record failure for run_id=%s", run.run_id)
            raise

        summary = self._tracker.finish(run, JobRunStatus.COMPLETED)
        self._log_finished(summary, level=logging.INFO)
        return summary

    def _read_chunks(self, handle: TextIO) -> Iterator[list[tuple[int, str]]]:
        chunk: list[tuple[int, str]] = []
        for line_number, line in iter_data_lines(handle):
            chunk.append((line_number, line))
            if len(chunk) >= self._chunk_size:
                yield chunk
                chunk = []
        if chunk:
            yield chunk

    def _process_chunk(
        self,
        *,
        run: JobRun,
        chunk: list[tuple[int, str]],
        store: PersonRecordStore,
    ) -> None:
        records: list[PersonRecordInput] = []
        skipped = 0
        for line_number, line in chunk:
            record = self._process_line(line_number=line_number, line=line)
            if record is None:
                skipped += 1
            else:
                records.append(record)

        total_skipped = run.skip_count + skipped
        if total_skipped > self._skip_limit:
            self._tracker.record_chunk_outcome(run, read=len(chunk), written=0, skipped=skipped)
            raise SkipLimitExceededError(skip_count=total_skipped, skip_limit=self._skip_limit)

        try:
            if records:
                store.insert_bulk(records)
        except StorageError:
            self._tracker.record_chunk_outcome(run, read=len(chunk), written=0, skipped=skipped)
            raise

        self._tracker.record_chunk_outcome(run, read=len(chunk), written=len(records), skipped=skipped)
        log_event(
            logger,
            logging.DEBUG,
            "chunk_committed",
            run_id=run.run_id,
            chunk=run.chunk_count,
            read=len(chunk),
            written=len(records),
            skipped=skipped,
        )

    def _process_line(self, *, line_number: int, line: str) -> PersonRecordInput | None:
        fields = parse_line(line, self._delimiter)
        try:
            outcome = self._normalizer.normalize(fields, line_number=line_number)
        except MalformedLineError as exc:
            self._log_skip(line_number=line_number, reason=str(exc))
            return None

        if isinstance(outcome, SkipDecision):
            self._log_skip(line_number=line_number, reason=outcome.reason)
            return None
        return outcome

    def _log_skip(self, *, line_number: int, reason: str) -> None:
        if self._log_skipped_rows:
            logger.warning("Skipping CSV line=%s reason=%s", line_number, reason)

    def _fail(self, run: JobRun, exc: BaseException, *, level: int) -> JobRunSummary:
        error_message = f"{type(exc).__name__}: {exc}"
        if level >= logging.ERROR:
            logger.error("Chunk job failed run_id=%s error=%s", run.run_id, error_message, exc_info=exc)
        summary = self._tracker.finish(run, JobRunStatus.FAILED, error_message=error_message)
        self._log_finished(summary, level=level)
        return summary

    def _log_finished(self, summary: JobRunSummary, *, level: int) -> None:
        log_event(
            logger,
            level,
            "chunk_job_finished",
            run_id=summary.run_id,
            status=summary.status,
            read=summary.read_count,
            written=summary.write_count,
            skipped=summary.skip_count,
            chunks=summary.chunk_count,
            error=summary.error_message,
        )

    def _persist_temp_upload(self, upload: IO[bytes], file_name: str) -> tuple[str, int]:
        _, ext = os.path.splitext(file_name)
        suffix = ext if ext else ".csv"
        if upload.seekable():
            upload.seek(0)

        with tempfile.NamedTemporaryFile(
            delete=False,
            prefix="csv_upload_",
            suffix=suffix,
            dir=self._temp_dir,
        ) as temp_file:
            while True:
                block = upload.read(_COPY_BUFFER_BYTES)
                if not block:
                    break
                temp_file.write(block)
            temp_path = temp_file.name
            file_size = temp_file.tell()

        return temp_path, file_size

    def _delete_file_quietly(self, file_path: str) -> None:
        try:
            os.remove(file_path)
        except OSError:
            logger.warning("Could not delete staged upload %s", file_path)


@lru_cache(maxsize=1)
def get_chunk_job_service() -> ChunkJobService:
    """
    Build and cache the chunk job service with env-driven settings and a
    database-backed run tracker.
    """

    settings = get_ingestion_settings()
    return ChunkJobService(
        chunk_size=settings.chunk_size,
        skip_limit=settings.skip_limit,
        delimiter=settings.delimiter,
        log_skipped_rows=settings.log_skipped_rows,
        temp_dir=settings.temp_dir,
        tracker=PersistentJobExecutionTracker(),
    )
