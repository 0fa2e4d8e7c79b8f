"""
app/services/csv_ingestion_service.py

Single-record and in-memory batched CSV ingestion.

Both strategies stream the upload line by line, skip the header, and hand
each data line to the shared RecordNormalizer. Malformed lines and rows
missing a required field are dropped without error; only storage and
decoding failures reach the caller.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from contextlib import closing
from functools import lru_cache
from typing import IO

from app.config import get_ingestion_settings
from app.domain.person_record import PersonRecordInput, SkipDecision
from app.mappers.field_parser import DEFAULT_DELIMITER, iter_data_lines, parse_line
from app.repositories.person_record_repository import PersonRecordStore
from app.validators.record_normalizer import MalformedLineError, RecordNormalizer

logger = logging.getLogger(__name__)


class CSVFormatError(ValueError):
    """
    Raised when the upload cannot be decoded as UTF-8 text.
    """


class CSVIngestionService:
    """
    Drives the per-record and batched ingestion loops.
    """

    def __init__(
        self,
        *,
        batch_size: int = 1000,
        delimiter: str = DEFAULT_DELIMITER,
        normalizer: RecordNormalizer | None = None,
    ) -> None:
        self._batch_size = max(1, batch_size)
        self._delimiter = delimiter
        self._normalizer = normalizer or RecordNormalizer()

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def ingest_single(self, *, stream: IO, store: PersonRecordStore) -> int:
        """
        Persist every valid record with its own insert call.

        Returns the number of records written. A StorageError aborts the
        remaining stream; records written before it stay written.
        """

        record_count = 0
        with closing(self._iter_records(stream)) as records:
            for record in records:
                store.insert_one(record)
                record_count += 1

        logger.info("Single-record ingestion finished records=%s", record_count)
        return record_count

    def ingest_batched(
        self,
        *,
        stream: IO,
        store: PersonRecordStore,
        batch_size: int | None = None,
    ) -> int:
        """
        Persist valid records in groups of ``batch_size`` via bulk inserts.

        At most ``batch_size`` records are held in memory; the trailing
        partial group is flushed once the stream is exhausted.
        """

        size = max(1, batch_size) if batch_size is not None else self._batch_size
        record_count = 0
        batch: list[PersonRecordInput] = []

        with closing(self._iter_records(stream)) as records:
            for record in records:
                batch.append(record)
                if len(batch) >= size:
                    record_count += self._flush(store=store, batch=batch)
                    batch = []

        if batch:
            record_count += self._flush(store=store, batch=batch)

        logger.info("Batched ingestion finished records=%s batch_size=%s", record_count, size)
        return record_count

    def count_records(self, *, store: PersonRecordStore) -> int:
        return store.count()

    def _flush(self, *, store: PersonRecordStore, batch: list[PersonRecordInput]) -> int:
        store.insert_bulk(batch)
        logger.debug("Flushed batch of %s records", len(batch))
        return len(batch)

    def _iter_records(self, stream: IO) -> Iterator[PersonRecordInput]:
        owns_wrapper = not isinstance(stream, io.TextIOBase)
        text_stream = io.TextIOWrapper(stream, encoding="utf-8-sig") if owns_wrapper else stream

        try:
            for line_number, line in iter_data_lines(text_stream):
                fields = parse_line(line, self._delimiter)
                try:
                    outcome = self._normalizer.normalize(fields, line_number=line_number)
                except MalformedLineError as exc:
                    logger.debug("Dropping malformed line: %s", exc)
                    continue
                if isinstance(outcome, SkipDecision):
                    continue
                yield outcome
        except UnicodeDecodeError as exc:
            raise CSVFormatError("CSV must be UTF-8 encoded.") from exc
        finally:
            if owns_wrapper:
                try:
                    text_stream.detach()
                except ValueError:
                    pass


@lru_cache(maxsize=1)
def get_csv_ingestion_service() -> CSVIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """

    settings = get_ingestion_settings()
    return CSVIngestionService(
        batch_size=settings.batch_size,
        delimiter=settings.delimiter,
    )
