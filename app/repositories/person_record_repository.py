"""
app/repositories/person_record_repository.py

Persistence layer for normalized person records.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from sqlalchemy import func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.person_record import PersonRecordInput
from db.models.person_record import PersonRecord
from db.repositories.errors import StorageError

logger = logging.getLogger(__name__)


class PersonRecordStore(Protocol):
    """
    Record store contract consumed by every ingestion strategy.
    """

    def insert_one(self, record: PersonRecordInput) -> None:
        ...

    def insert_bulk(self, records: Sequence[PersonRecordInput]) -> int:
        ...

    def count(self) -> int:
        ...


class PersonRecordRepository:
    """
    SQLAlchemy-backed record store.

    Each write call is its own transaction: it commits on success, and on
    any SQLAlchemy failure rolls back and raises StorageError.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_one(self, record: PersonRecordInput) -> None:
        try:
            self._session.add(PersonRecord(**self._to_payload(record)))
            self._session.commit()
        except SQLAlchemyError as exc:
            self._rollback_quietly()
            raise StorageError("Failed to persist person record.") from exc

    def insert_bulk(self, records: Sequence[PersonRecordInput]) -> int:
        """
        Insert all records in one transaction; nothing is visible on failure.
        """

        if not records:
            return 0

        payloads: list[dict[str, Any]] = [self._to_payload(record) for record in records]
        try:
            self._session.execute(insert(PersonRecord), payloads)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._rollback_quietly()
            raise StorageError(f"Failed to persist batch of {len(payloads)} person records.") from exc
        return len(payloads)

    def count(self) -> int:
        try:
            total = self._session.scalar(select(func.count()).select_from(PersonRecord))
        except SQLAlchemyError as exc:
            self._rollback_quietly()
            raise StorageError("Failed to count person records.") from exc
        return int(total or 0)

    @staticmethod
    def _to_payload(record: PersonRecordInput) -> dict[str, Any]:
        return {
            "name": record.name,
            "email": record.email,
            "age": record.age,
            "city": record.city,
        }

    def _rollback_quietly(self) -> None:
        try:
            self._session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed after person record storage error")
