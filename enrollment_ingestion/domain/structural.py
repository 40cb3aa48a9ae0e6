"""
Structural validation of a whole submission (submission-level gate).

Cross-checks header metadata against the parsed body and reports EVERY
discrepancy, not just the first.  Any discrepancy rejects the submission
before a single persistence call is made.

Architecture: enrollment_ingestion/domain. ZERO I/O.
"""

from __future__ import annotations

from enrollment_kernel.domain.dtos import ValidationError
from enrollment_kernel.exceptions import StructuralError
from enrollment_ingestion.domain.types import EnrollmentSubmission

MISSING_HEADER_FIELD = "MISSING_HEADER_FIELD"
INVALID_RECORD_COUNT = "INVALID_RECORD_COUNT"
RECORD_COUNT_MISMATCH = "RECORD_COUNT_MISMATCH"
PROCESSING_YEAR_MISMATCH = "PROCESSING_YEAR_MISMATCH"

_MANDATORY_HEADER_FIELDS: tuple[tuple[str, str], ...] = (
    ("RecordCount", "record_count"),
    ("TransmitterId", "transmitter_id"),
    ("ProcessingYear", "processing_year"),
)


def validate_structure(submission: EnrollmentSubmission) -> list[ValidationError]:
    """Return all structural discrepancies of ``submission`` (empty when sound)."""
    errors: list[ValidationError] = []
    header = submission.header

    for field_name, attr in _MANDATORY_HEADER_FIELDS:
        if not getattr(header, attr):
            errors.append(
                ValidationError(
                    code=MISSING_HEADER_FIELD,
                    message=f"Header field {field_name} is missing",
                    field=field_name,
                )
            )

    parsed_count = len(submission.records)
    if header.record_count:
        try:
            declared = int(header.record_count)
        except ValueError:
            errors.append(
                ValidationError(
                    code=INVALID_RECORD_COUNT,
                    message=f"Declared record count {header.record_count!r} is not an integer",
                    field="RecordCount",
                    details={"declared": header.record_count},
                )
            )
        else:
            if declared != parsed_count:
                errors.append(
                    ValidationError(
                        code=RECORD_COUNT_MISMATCH,
                        message=f"Header declares {declared} records, body has {parsed_count}",
                        field="RecordCount",
                        details={"declared": declared, "parsed": parsed_count},
                    )
                )

    if header.processing_year:
        for record in submission.records:
            if record.processing_year != header.processing_year:
                errors.append(
                    ValidationError(
                        code=PROCESSING_YEAR_MISMATCH,
                        message=(
                            f"Record {record.index} ProcessingYear "
                            f"{record.processing_year!r} differs from header "
                            f"{header.processing_year!r}"
                        ),
                        field="ProcessingYear",
                        details={
                            "record_index": record.index,
                            "record_year": record.processing_year,
                            "header_year": header.processing_year,
                        },
                    )
                )

    return errors


def check_structure(submission: EnrollmentSubmission) -> None:
    """Raise StructuralError carrying all discrepancies, if there are any."""
    errors = validate_structure(submission)
    if errors:
        raise StructuralError(tuple(errors))
