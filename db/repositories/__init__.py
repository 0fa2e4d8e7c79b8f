"""
Repository layer exports.
"""

from db.repositories.errors import JobRunNotFoundError, RepositoryError, StorageError
from db.repositories.job_run_repository import JobRunRepository

__all__ = [
    "JobRunRepository",
    "JobRunNotFoundError",
    "RepositoryError",
    "StorageError",
]
