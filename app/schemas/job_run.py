"""
app/schemas/job_run.py

Caller-facing payloads for ingestion results.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.job_run import JobRunSummary


class JobRunSummaryResponse(BaseModel):
    """
    Chunk job outcome, serialized with camelCase keys.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    status: bool
    exit_status: str = Field(..., alias="exitStatus")
    run_id: int = Field(..., alias="runId", ge=1)
    read_count: int = Field(..., alias="readCount", ge=0)
    write_count: int = Field(..., alias="writeCount", ge=0)
    skip_count: int = Field(..., alias="skipCount", ge=0)
    message: str
    source: str | None = None
    started_at: datetime | None = Field(default=None, alias="startedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    error_message: str | None = Field(default=None, alias="errorMessage")

    @classmethod
    def from_summary(cls, summary: JobRunSummary) -> JobRunSummaryResponse:
        if summary.succeeded:
            message = f"Job completed with total {summary.write_count} records"
        else:
            message = f"Job failed after writing {summary.write_count} records"

        return cls(
            status=summary.succeeded,
            exit_status=summary.status,
            run_id=summary.run_id,
            read_count=summary.read_count,
            write_count=summary.write_count,
            skip_count=summary.skip_count,
            message=message,
            source=summary.source,
            started_at=summary.started_at,
            completed_at=summary.completed_at,
            error_message=summary.error_message,
        )


class RecordCountResponse(BaseModel):
    """
    Record count returned by the single and batched strategies and by count().
    """

    model_config = ConfigDict(populate_by_name=True)

    mode: str
    record_count: int = Field(..., alias="recordCount", ge=0)
