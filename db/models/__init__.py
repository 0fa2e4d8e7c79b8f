"""
Model package exports.

Import every SQLAlchemy model here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.job_run import JobRunRecord, JobRunStatus
from db.models.person_record import PersonRecord

__all__ = [
    "JobRunRecord",
    "JobRunStatus",
    "PersonRecord",
]
