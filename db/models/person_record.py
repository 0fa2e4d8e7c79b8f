"""
db/models/person_record.py

Persisted person row produced by CSV ingestion.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class PersonRecord(Base):
    __tablename__ = "person_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        comment="Trimmed and lower-cased; not unique across runs",
    )
    age: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_person_records_email", "email"),
        Index("ix_person_records_created_at", "created_at"),
    )
