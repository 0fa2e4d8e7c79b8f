from __future__ import annotations

from collections.abc import Iterator, Sequence
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.domain.person_record import PersonRecordInput
from db.base import Base
from db.models import JobRunRecord, PersonRecord  # noqa: F401  registers tables on Base.metadata
from db.repositories.errors import StorageError
from db.session import build_session_factory

CSV_HEADER = "name,email,age,city\n"


class RecordingStore:
    """
    In-memory record store that remembers every call it receives.
    """

    def __init__(self, *, fail_on_bulk_call: int | None = None, fail_on_insert: int | None = None) -> None:
        self.records: list[PersonRecordInput] = []
        self.insert_one_calls = 0
        self.bulk_calls: list[int] = []
        self._fail_on_bulk_call = fail_on_bulk_call
        self._fail_on_insert = fail_on_insert

    def insert_one(self, record: PersonRecordInput) -> None:
        self.insert_one_calls += 1
        if self._fail_on_insert is not None and self.insert_one_calls == self._fail_on_insert:
            raise StorageError("insert rejected")
        self.records.append(record)

    def insert_bulk(self, records: Sequence[PersonRecordInput]) -> int:
        self.bulk_calls.append(len(records))
        if self._fail_on_bulk_call is not None and len(self.bulk_calls) == self._fail_on_bulk_call:
            raise StorageError("bulk insert rejected")
        self.records.extend(records)
        return len(records)

    def count(self) -> int:
        return len(self.records)


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture()
def write_csv(tmp_path: Path):
    def _write(rows: Sequence[str], *, name: str = "people.csv", header: str = CSV_HEADER) -> Path:
        path = tmp_path / name
        path.write_text(header + "".join(f"{row}\n" for row in rows), encoding="utf-8")
        return path

    return _write
