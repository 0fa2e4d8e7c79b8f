"""
app/validators package marker.
"""

from app.validators.record_normalizer import MalformedLineError, RecordNormalizer
from app.validators.upload_validator import (
    CSVUploadValidationError,
    is_csv_upload,
    validate_csv_upload,
)

__all__ = [
    "CSVUploadValidationError",
    "MalformedLineError",
    "RecordNormalizer",
    "is_csv_upload",
    "validate_csv_upload",
]
