"""
app/services package marker.
"""

from app.services.chunk_job_service import (
    ChunkJobService,
    SkipLimitExceededError,
    get_chunk_job_service,
)
from app.services.csv_ingestion_service import (
    CSVFormatError,
    CSVIngestionService,
    get_csv_ingestion_service,
)
from app.services.job_execution_tracker import (
    JobExecutionTracker,
    JobRunStateError,
    PersistentJobExecutionTracker,
)

__all__ = [
    "ChunkJobService",
    "CSVFormatError",
    "CSVIngestionService",
    "JobExecutionTracker",
    "JobRunStateError",
    "PersistentJobExecutionTracker",
    "SkipLimitExceededError",
    "get_chunk_job_service",
    "get_csv_ingestion_service",
]
