"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_delimiter_env(name: str, default: str) -> str:
    """
    Read a single-character delimiter. Whitespace delimiters such as a tab
    are kept; anything longer than one character falls back to the default.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None or len(raw_value) != 1:
        return default
    return raw_value


@dataclass(frozen=True)
class IngestionSettings:
    """
    Runtime settings shared by the single, batched and chunk strategies.
    """

    batch_size: int = 1000
    chunk_size: int = 1000
    skip_limit: int = 1000
    delimiter: str = ","
    log_skipped_rows: bool = True
    temp_dir: str | None = None


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    return IngestionSettings(
        batch_size=max(1, _get_int_env("CSV_INGEST_BATCH_SIZE", 1000)),
        chunk_size=max(1, _get_int_env("CSV_INGEST_CHUNK_SIZE", 1000)),
        skip_limit=max(0, _get_int_env("CSV_INGEST_SKIP_LIMIT", 1000)),
        delimiter=_get_delimiter_env("CSV_INGEST_DELIMITER", ","),
        log_skipped_rows=_get_bool_env("CSV_INGEST_LOG_SKIPPED_ROWS", True),
        temp_dir=_get_optional_str_env("CSV_INGEST_TEMP_DIR"),
    )
