"""Submission parsers (byte decoding only, no DB)."""

from __future__ import annotations

from enrollment_kernel.exceptions import ParseError
from enrollment_ingestion.adapters.base import SubmissionParser, parse_flag
from enrollment_ingestion.adapters.flat_adapter import FlatSubmissionParser
from enrollment_ingestion.adapters.xml_adapter import XmlSubmissionParser
from enrollment_ingestion.domain.types import EnrollmentSubmission, SourceFormat


def get_parser(source_format: str | SourceFormat, delimiter: str = "|") -> SubmissionParser:
    """Parser for a declared format. Unknown formats raise ParseError."""
    try:
        fmt = SourceFormat(source_format)
    except ValueError as exc:
        raise ParseError(f"Unknown source format {source_format!r}") from exc
    if fmt is SourceFormat.FLAT:
        return FlatSubmissionParser(delimiter=delimiter)
    return XmlSubmissionParser()


def parse_submission(
    raw: bytes,
    source_format: str | SourceFormat,
    delimiter: str = "|",
) -> EnrollmentSubmission:
    """Decode ``raw`` in the declared format."""
    return get_parser(source_format, delimiter).parse(raw)


__all__ = [
    "FlatSubmissionParser",
    "SubmissionParser",
    "XmlSubmissionParser",
    "get_parser",
    "parse_flag",
    "parse_submission",
]
