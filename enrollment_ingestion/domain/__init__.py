"""
enrollment_ingestion.domain -- Pure types, rules and validators for ingestion.

ZERO I/O. Imports only from enrollment_kernel.
"""

from enrollment_ingestion.domain.structural import check_structure, validate_structure
from enrollment_ingestion.domain.types import (
    EnrollmentRecord,
    EnrollmentSubmission,
    FieldViolation,
    OfficeInfo,
    OwnerInfo,
    PriorYearInfo,
    ProcessingReport,
    RecordOutcome,
    RecordStatus,
    ResolutionAmbiguity,
    SourceFormat,
    SubmissionHeader,
)
from enrollment_ingestion.domain.validators import validate_record

__all__ = [
    "EnrollmentRecord",
    "EnrollmentSubmission",
    "FieldViolation",
    "OfficeInfo",
    "OwnerInfo",
    "PriorYearInfo",
    "ProcessingReport",
    "RecordOutcome",
    "RecordStatus",
    "ResolutionAmbiguity",
    "SourceFormat",
    "SubmissionHeader",
    "check_structure",
    "validate_record",
    "validate_structure",
]
