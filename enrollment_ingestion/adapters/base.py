"""
Submission parser protocol and shared decoding helpers.

Contract:
    SubmissionParser.parse() turns raw submission bytes into an
    EnrollmentSubmission, or raises ParseError.  Pure transform; no field
    semantics beyond the ClientOfYoursLastYear boolean.

Architecture: enrollment_ingestion/adapters. No DB imports.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from enrollment_ingestion.domain.types import EnrollmentSubmission

_TRUE_VALUES = frozenset({"true", "1", "yes", "y"})


@runtime_checkable
class SubmissionParser(Protocol):
    """Protocol for decoding one submission format."""

    def parse(self, raw: bytes) -> EnrollmentSubmission:
        ...


def parse_flag(value: str | None) -> bool:
    """True for true/1/yes/y in any case; everything else is False."""
    if value is None:
        return False
    return value.strip().lower() in _TRUE_VALUES
