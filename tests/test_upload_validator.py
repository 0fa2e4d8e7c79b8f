from __future__ import annotations

import pytest

from app.validators.upload_validator import CSVUploadValidationError, is_csv_upload, validate_csv_upload


@pytest.mark.parametrize(
    ("file_name", "content_type"),
    [
        ("people.csv", None),
        ("PEOPLE.CSV", "application/octet-stream"),
        ("people", "text/csv"),
        ("people.txt", "text/csv; charset=utf-8"),
        ("export.xls", "application/vnd.ms-excel"),
    ],
)
def test_accepts_csv_by_extension_or_type(file_name: str, content_type: str | None) -> None:
    assert is_csv_upload(file_name, content_type)


@pytest.mark.parametrize(
    ("file_name", "content_type"),
    [("people.json", "application/json"), (None, None), ("", "text/plain")],
)
def test_rejects_other_files(file_name: str | None, content_type: str | None) -> None:
    assert not is_csv_upload(file_name, content_type)

    with pytest.raises(CSVUploadValidationError):
        validate_csv_upload(file_name=file_name, content_type=content_type)


def test_empty_upload_is_rejected() -> None:
    with pytest.raises(CSVUploadValidationError, match="File is empty"):
        validate_csv_upload(file_name="people.csv", content_type="text/csv", size_bytes=0)


def test_non_empty_upload_passes() -> None:
    validate_csv_upload(file_name="people.csv", content_type="text/csv", size_bytes=12)
