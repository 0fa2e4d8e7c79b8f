"""
app/domain/job_run.py

In-process view of one chunk job execution.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from db.models.job_run import JobRunStatus


@dataclass
class JobRun:
    """
    Mutable run state owned by a job execution tracker for the run's lifetime.
    """

    run_id: int
    source: str
    started_at: datetime
    status: str = JobRunStatus.STARTING
    read_count: int = 0
    write_count: int = 0
    skip_count: int = 0
    chunk_count: int = 0
    completed_at: datetime | None = None
    error_message: str | None = None

    @property
    def is_finished(self) -> bool:
        return self.status in JobRunStatus.TERMINAL


@dataclass(frozen=True)
class JobRunSummary:
    """
    Read-only snapshot of a finished (or in-flight) run.
    """

    run_id: int
    source: str
    status: str
    read_count: int
    write_count: int
    skip_count: int
    chunk_count: int
    started_at: datetime
    completed_at: datetime | None = None
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == JobRunStatus.COMPLETED

    @classmethod
    def from_run(cls, run: JobRun) -> JobRunSummary:
        return cls(
            run_id=run.run_id,
            source=run.source,
            status=run.status,
            read_count=run.read_count,
            write_count=run.write_count,
            skip_count=run.skip_count,
            chunk_count=run.chunk_count,
            started_at=run.started_at,
            completed_at=run.completed_at,
            error_message=run.error_message,
        )
