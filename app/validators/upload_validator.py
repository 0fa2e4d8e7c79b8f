"""
app/validators/upload_validator.py

Checks applied to an uploaded file before a chunk job is started for it.
"""

from __future__ import annotations

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


class CSVUploadValidationError(ValueError):
    """
    Raised when an upload is not a CSV file or carries no content.
    """


def is_csv_upload(file_name: str | None, content_type: str | None) -> bool:
    """
    Accept a file when either its extension or its MIME type says CSV.
    """

    filename = (file_name or "").strip().lower()
    normalized_type = (content_type or "").split(";", 1)[0].strip().lower()
    return filename.endswith(".csv") or normalized_type in CSV_CONTENT_TYPES


def validate_csv_upload(
    *,
    file_name: str | None,
    content_type: str | None,
    size_bytes: int | None = None,
) -> None:
    if not is_csv_upload(file_name, content_type):
        raise CSVUploadValidationError("File must be a CSV.")
    if size_bytes is not None and size_bytes <= 0:
        raise CSVUploadValidationError("File is empty.")
