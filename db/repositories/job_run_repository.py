"""
Repository for chunk job run lifecycle persistence and status lookup.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.job_run import JobRunRecord, JobRunStatus


class JobRunRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_run(
        self,
        *,
        source: str,
        started_at: datetime | None = None,
    ) -> JobRunRecord:
        run = JobRunRecord(
            source=source,
            status=JobRunStatus.STARTING,
            started_at=started_at or datetime.now(timezone.utc),
            read_count=0,
            write_count=0,
            skip_count=0,
            chunk_count=0,
        )
        self._session.add(run)
        self._session.flush()
        self._session.refresh(run)
        return run

    def get_run(self, run_id: int) -> JobRunRecord | None:
        return self._session.get(JobRunRecord, run_id)

    def list_runs(
        self,
        *,
        limit: int = 100,
        status: str | None = None,
    ) -> list[JobRunRecord]:
        stmt: Select[tuple[JobRunRecord]] = select(JobRunRecord)

        if status:
            stmt = stmt.where(JobRunRecord.status == status)

        stmt = stmt.order_by(JobRunRecord.id.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_running(self, *, run_id: int) -> JobRunRecord | None:
        run = self.get_run(run_id)
        if run is None:
            return None
        run.status = JobRunStatus.RUNNING
        run.completed_at = None
        run.error_message = None
        return run

    def record_progress(
        self,
        *,
        run_id: int,
        read_count: int,
        write_count: int,
        skip_count: int,
        chunk_count: int,
    ) -> JobRunRecord | None:
        run = self.get_run(run_id)
        if run is None:
            return None
        run.read_count = read_count
        run.write_count = write_count
        run.skip_count = skip_count
        run.chunk_count = chunk_count
        return run

    def mark_completed(
        self,
        *,
        run_id: int,
        completed_at: datetime | None = None,
    ) -> JobRunRecord | None:
        run = self.get_run(run_id)
        if run is None:
            return None
        run.status = JobRunStatus.COMPLETED
        run.completed_at = completed_at or datetime.now(timezone.utc)
        run.error_message = None
        return run

    def mark_failed(
        self,
        *,
        run_id: int,
        error_message: str,
        completed_at: datetime | None = None,
    ) -> JobRunRecord | None:
        run = self.get_run(run_id)
        if run is None:
            return None
        run.status = JobRunStatus.FAILED
        run.completed_at = completed_at or datetime.now(timezone.utc)
        run.error_message = error_message
        return run
