"""
Run CSV ingestion from the command line.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from app.config import get_ingestion_settings
from app.logging_utils import configure_logging
from app.repositories.person_record_repository import PersonRecordRepository
from app.schemas.job_run import JobRunSummaryResponse, RecordCountResponse
from app.services.chunk_job_service import ChunkJobService
from app.services.csv_ingestion_service import CSVFormatError, CSVIngestionService
from app.services.job_execution_tracker import PersistentJobExecutionTracker
from app.validators.upload_validator import CSVUploadValidationError
from db.repositories.errors import StorageError
from db.session import SessionLocal

logger = logging.getLogger(__name__)

MODES = ("single", "batched", "chunk")


def _build_parser() -> argparse.ArgumentParser:
    settings = get_ingestion_settings()
    parser = argparse.ArgumentParser(description="Ingest a name,email,age,city CSV file.")
    parser.add_argument("path", nargs="?", help="CSV file to ingest.")
    parser.add_argument("--mode", choices=MODES, default="batched")
    parser.add_argument("--batch-size", type=int, default=settings.batch_size)
    parser.add_argument("--chunk-size", type=int, default=settings.chunk_size)
    parser.add_argument("--skip-limit", type=int, default=settings.skip_limit)
    parser.add_argument(
        "--count",
        action="store_true",
        help="Print the total number of stored records instead of ingesting.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = get_ingestion_settings()

    if not args.count and not args.path:
        parser.error("a CSV path is required unless --count is given")

    with SessionLocal() as db:
        store = PersonRecordRepository(db)
        try:
            if args.count:
                payload = RecordCountResponse(mode="count", record_count=store.count())
                exit_code = 0
            elif args.mode == "chunk":
                service = ChunkJobService(
                    chunk_size=args.chunk_size,
                    skip_limit=args.skip_limit,
                    delimiter=settings.delimiter,
                    log_skipped_rows=settings.log_skipped_rows,
                    temp_dir=settings.temp_dir,
                    tracker=PersistentJobExecutionTracker(),
                )
                path = Path(args.path)
                with path.open("rb") as upload:
                    summary = service.run_upload(upload=upload, file_name=path.name, store=store)
                payload = JobRunSummaryResponse.from_summary(summary)
                exit_code = 0 if summary.succeeded else 1
            else:
                service = CSVIngestionService(
                    batch_size=args.batch_size,
                    delimiter=settings.delimiter,
                )
                with open(args.path, "rb") as stream:
                    if args.mode == "single":
                        record_count = service.ingest_single(stream=stream, store=store)
                    else:
                        record_count = service.ingest_batched(stream=stream, store=store)
                payload = RecordCountResponse(mode=args.mode, record_count=record_count)
                exit_code = 0
        except (StorageError, CSVFormatError, CSVUploadValidationError, OSError) as exc:
            logger.error("CSV ingestion failed: %s", exc)
            print(json.dumps({"status": False, "error": f"{type(exc).__name__}: {exc}"}, indent=2))
            return 1

    print(json.dumps(payload.model_dump(mode="json", by_alias=True), indent=2))
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
