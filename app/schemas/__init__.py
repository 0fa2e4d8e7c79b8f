"""
app/schemas package marker.
"""

from app.schemas.job_run import JobRunSummaryResponse, RecordCountResponse

__all__ = [
    "JobRunSummaryResponse",
    "RecordCountResponse",
]
