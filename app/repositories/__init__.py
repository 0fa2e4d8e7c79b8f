"""
app/repositories package marker.
"""

from app.repositories.person_record_repository import PersonRecordRepository, PersonRecordStore

__all__ = [
    "PersonRecordRepository",
    "PersonRecordStore",
]
