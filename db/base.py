"""
db/base.py

Declarative base for the ingestion tables.

Only ``job_runs`` carries the audit timestamps from TimestampMixin; person
rows are insert-only and keep a single ``created_at`` of their own.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """
    created_at / updated_at audit columns for rows that change after insert.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=_utc_now,
    )
