"""
app/services/job_execution_tracker.py

Bookkeeping for chunk job runs: lifecycle status plus read, write and skip
counts summed across chunks.

The tracker holds no business logic. Callers drive every transition; the
tracker only validates ordering and keeps the numbers.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from dataclasses import fields, replace
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.domain.job_run import JobRun, JobRunSummary
from db.models.job_run import JobRunRecord, JobRunStatus
from db.repositories.errors import JobRunNotFoundError
from db.repositories.job_run_repository import JobRunRepository

logger = logging.getLogger(__name__)

# Run ids stay unique and increasing across all in-memory trackers in a process.
_RUN_IDS = itertools.count(1)
_RUN_IDS_LOCK = threading.Lock()


class JobRunStateError(RuntimeError):
    """
    Raised when a tracker call does not fit the run's current state.
    """


class JobExecutionTracker:
    """
    In-memory job execution tracker.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._runs: dict[int, JobRun] = {}

    def start_run(self, source: str) -> JobRun:
        started_at = datetime.now(timezone.utc)
        run = JobRun(
            run_id=self._allocate_run_id(source=source, started_at=started_at),
            source=source,
            started_at=started_at,
        )
        with self._lock:
            self._runs[run.run_id] = run
        logger.info("Job run started run_id=%s source=%s", run.run_id, source)
        return run

    @property
    def active_run_count(self) -> int:
        """Number of runs currently held in memory."""
        with self._lock:
            return len(self._runs)

    def mark_running(self, run: JobRun) -> None:
        with self._lock:
            if run.status != JobRunStatus.STARTING:
                raise JobRunStateError(f"Run {run.run_id} cannot start from status {run.status}.")
            updated = replace(run, status=JobRunStatus.RUNNING)
        self._apply_transition(run, updated)

    def record_chunk_outcome(
        self,
        run: JobRun,
        *,
        read: int,
        written: int,
        skipped: int,
    ) -> None:
        if min(read, written, skipped) < 0:
            raise JobRunStateError("Chunk counts must not be negative.")

        with self._lock:
            if run.is_finished:
                raise JobRunStateError(f"Run {run.run_id} is already {run.status}.")
            updated = replace(
                run,
                read_count=run.read_count + read,
                write_count=run.write_count + written,
                skip_count=run.skip_count + skipped,
                chunk_count=run.chunk_count + 1,
            )
        self._apply_transition(run, updated)

    def finish(
        self,
        run: JobRun,
        status: str,
        *,
        error_message: str | None = None,
    ) -> JobRunSummary:
        if status not in JobRunStatus.TERMINAL:
            raise JobRunStateError(f"{status} is not a terminal status.")

        with self._lock:
            if run.is_finished:
                raise JobRunStateError(f"Run {run.run_id} is already {run.status}.")
            updated = replace(
                run,
                status=status,
                completed_at=datetime.now(timezone.utc),
                error_message=error_message,
            )
        self._apply_transition(run, updated)
        summary = JobRunSummary.from_run(updated)

        logger.info(
            "Job run finished run_id=%s status=%s read=%s written=%s skipped=%s",
            summary.run_id,
            summary.status,
            summary.read_count,
            summary.write_count,
            summary.skip_count,
        )
        return summary

    def get_summary(self, run_id: int) -> JobRunSummary | None:
        with self._lock:
            run = self._runs.get(run_id)
            return JobRunSummary.from_run(run) if run is not None else None

    def list_summaries(self, *, limit: int = 100) -> list[JobRunSummary]:
        with self._lock:
            runs = sorted(self._runs.values(), key=lambda item: item.run_id, reverse=True)
            return [JobRunSummary.from_run(run) for run in runs[: max(1, limit)]]

    def _allocate_run_id(self, *, source: str, started_at: datetime) -> int:
        with _RUN_IDS_LOCK:
            return next(_RUN_IDS)

    def _apply_transition(self, run: JobRun, updated: JobRun) -> None:
        """
        Record ``updated`` through the transition hook, then copy it onto ``run``.

        If the hook raises, ``run`` keeps its previous state.
        """

        self._on_transition(updated)
        with self._lock:
            for field in fields(JobRun):
                setattr(run, field.name, getattr(updated, field.name))

    def _on_transition(self, run: JobRun) -> None:
        """Hook invoked with the new state before it is applied in memory."""


class PersistentJobExecutionTracker(JobExecutionTracker):
    """
    Tracker that mirrors every transition into the ``job_runs`` table.

    Each write uses a short-lived session so run bookkeeping commits
    independently of the record store's transactions. Finished runs are
    dropped from memory once their terminal state is committed; later
    lookups read ``job_runs``.
    """

    def __init__(self, *, session_factory: Callable[[], Session] | None = None) -> None:
        super().__init__()
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

    def finish(
        self,
        run: JobRun,
        status: str,
        *,
        error_message: str | None = None,
    ) -> JobRunSummary:
        summary = super().finish(run, status, error_message=error_message)
        with self._lock:
            self._runs.pop(run.run_id, None)
        return summary

    def get_summary(self, run_id: int) -> JobRunSummary | None:
        summary = super().get_summary(run_id)
        if summary is not None:
            return summary

        with self._session_factory() as db:
            record = JobRunRepository(db).get_run(run_id)
            return _summary_from_record(record) if record is not None else None

    def list_summaries(self, *, limit: int = 100) -> list[JobRunSummary]:
        with self._session_factory() as db:
            records = JobRunRepository(db).list_runs(limit=limit)
            return [_summary_from_record(record) for record in records]

    def _allocate_run_id(self, *, source: str, started_at: datetime) -> int:
        with self._session_factory() as db:
            record = JobRunRepository(db).create_run(source=source, started_at=started_at)
            db.commit()
            return record.id

    def _on_transition(self, run: JobRun) -> None:
        with self._session_factory() as db:
            repository = JobRunRepository(db)
            record = repository.record_progress(
                run_id=run.run_id,
                read_count=run.read_count,
                write_count=run.write_count,
                skip_count=run.skip_count,
                chunk_count=run.chunk_count,
            )
            if record is None:
                raise JobRunNotFoundError(f"Job run not found: {run.run_id}")

            if run.status == JobRunStatus.RUNNING:
                repository.mark_running(run_id=run.run_id)
            elif run.status == JobRunStatus.COMPLETED:
                repository.mark_completed(run_id=run.run_id, completed_at=run.completed_at)
            elif run.status == JobRunStatus.FAILED:
                repository.mark_failed(
                    run_id=run.run_id,
                    error_message=(run.error_message or "")[:2000],
                    completed_at=run.completed_at,
                )
            db.commit()


def _summary_from_record(record: JobRunRecord) -> JobRunSummary:
    return JobRunSummary(
        run_id=record.id,
        source=record.source,
        status=record.status,
        read_count=record.read_count,
        write_count=record.write_count,
        skip_count=record.skip_count,
        chunk_count=record.chunk_count,
        started_at=record.started_at,
        completed_at=record.completed_at,
        error_message=record.error_message,
    )
