"""
db/models/job_run.py

Chunk job run bookkeeping: lifecycle status and aggregated item counts.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class JobRunStatus:
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    TERMINAL = frozenset({COMPLETED, FAILED})


class JobRunRecord(Base, TimestampMixin):
    __tablename__ = "job_runs"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Monotonically increasing run identifier",
    )
    source: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Input file name or path",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=JobRunStatus.STARTING,
    )
    read_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    write_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skip_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    chunk_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_job_runs_status", "status"),
        Index("ix_job_runs_started_at", "started_at"),
    )
