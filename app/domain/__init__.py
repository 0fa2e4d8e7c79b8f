"""
app/domain package marker.
"""

from app.domain.job_run import JobRun, JobRunSummary
from app.domain.person_record import PersonRecordInput, SkipDecision

__all__ = [
    "JobRun",
    "JobRunSummary",
    "PersonRecordInput",
    "SkipDecision",
]
