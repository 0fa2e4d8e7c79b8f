"""
app/validators/record_normalizer.py

Maps one parsed field tuple to a canonical person record or a skip decision.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from app.domain.person_record import PersonRecordInput, SkipDecision

logger = logging.getLogger(__name__)

REQUIRED_ARITY = 4

NAME_INDEX = 0
EMAIL_INDEX = 1
AGE_INDEX = 2
CITY_INDEX = 3

MISSING_REQUIRED_FIELD = "missing required field"

_INTEGER_PATTERN = re.compile(r"[+-]?\d+")
_MAX_AGE = 2**31 - 1


class MalformedLineError(ValueError):
    """
    Raised when a line has fewer fields than the schema requires.
    """

    def __init__(self, *, field_count: int, required: int, line_number: int | None = None) -> None:
        location = f"line {line_number}" if line_number is not None else "line"
        super().__init__(f"Malformed {location}: expected at least {required} fields, got {field_count}.")
        self.field_count = field_count
        self.required = required
        self.line_number = line_number


class RecordNormalizer:
    """
    Trims, lower-cases and coerces raw fields into a PersonRecordInput.

    Every ingestion strategy shares one instance; the normalizer keeps no
    per-call state.
    """

    def __init__(self, *, required_arity: int = REQUIRED_ARITY) -> None:
        self._required_arity = max(REQUIRED_ARITY, required_arity)

    @property
    def required_arity(self) -> int:
        return self._required_arity

    def normalize(
        self,
        fields: Sequence[str],
        *,
        line_number: int | None = None,
    ) -> PersonRecordInput | SkipDecision:
        """
        Return a canonical record, or a SkipDecision when name or email is blank.

        Raises MalformedLineError for tuples shorter than the required arity.
        """

        if len(fields) < self._required_arity:
            raise MalformedLineError(
                field_count=len(fields),
                required=self._required_arity,
                line_number=line_number,
            )

        name = fields[NAME_INDEX].strip()
        email = fields[EMAIL_INDEX].strip().lower()
        if not name or not email:
            logger.debug("Skipping line=%s: %s", line_number, MISSING_REQUIRED_FIELD)
            return SkipDecision(reason=MISSING_REQUIRED_FIELD, line_number=line_number)

        return PersonRecordInput(
            name=name,
            email=email,
            age=self._coerce_age(fields[AGE_INDEX], line_number=line_number),
            city=self._parse_optional_string(fields[CITY_INDEX]),
        )

    def _coerce_age(self, value: str, *, line_number: int | None) -> int:
        stripped = value.strip()
        if not _INTEGER_PATTERN.fullmatch(stripped):
            logger.debug("Unparsable age %r on line=%s, coercing to 0", value, line_number)
            return 0

        age = int(stripped)
        if age < 0:
            logger.debug("Negative age %s on line=%s, coercing to 0", age, line_number)
            return 0
        if age > _MAX_AGE:
            logger.debug("Out-of-range age %s on line=%s, coercing to 0", age, line_number)
            return 0
        return age

    @staticmethod
    def _parse_optional_string(value: str) -> str | None:
        stripped = value.strip()
        return stripped if stripped else None
