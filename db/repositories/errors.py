"""
Repository-layer exceptions for the record store and job-run bookkeeping.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for repository failures."""


class StorageError(RepositoryError):
    """Raised when records cannot be written to or read from the store."""


class JobRunNotFoundError(RepositoryError):
    """Raised when a referenced job run does not exist."""
