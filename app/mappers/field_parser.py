"""
app/mappers/field_parser.py

Plain delimited-text splitting for CSV data lines.

No quoting or escaping is supported: a delimiter inside a field always
starts a new field.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TextIO

DEFAULT_DELIMITER = ","


def parse_line(line: str, delimiter: str = DEFAULT_DELIMITER) -> tuple[str, ...]:
    """
    Split one data line into its raw fields.

    The trailing line terminator is dropped before splitting. The result may
    be shorter than the schema requires; arity is the caller's concern.
    """

    return tuple(line.rstrip("\r\n").split(delimiter))


def iter_data_lines(text_stream: TextIO) -> Iterator[tuple[int, str]]:
    """
    Yield ``(line_number, line)`` for every line after the header.

    Line numbers are 1-based and exclude the header, which is consumed
    without inspection.
    """

    header = text_stream.readline()
    if not header:
        return

    for line_number, line in enumerate(text_stream, start=1):
        yield line_number, line
