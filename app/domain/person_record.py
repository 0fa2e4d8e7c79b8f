"""
app/domain/person_record.py

Domain models shared by the three CSV ingestion strategies.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PersonRecordInput:
    """
    Validated, normalized record ready for persistence.
    """

    name: str
    email: str
    age: int
    city: str | None = None


@dataclass(frozen=True)
class SkipDecision:
    """
    Outcome for a row that is excluded from output without being an error.
    """

    reason: str
    line_number: int | None = None
