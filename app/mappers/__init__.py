"""
app/mappers package marker.
"""

from app.mappers.field_parser import DEFAULT_DELIMITER, iter_data_lines, parse_line

__all__ = [
    "DEFAULT_DELIMITER",
    "iter_data_lines",
    "parse_line",
]
