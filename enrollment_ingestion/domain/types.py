"""
enrollment_ingestion.domain.types -- Pure frozen dataclasses for enrollment ingestion.

ZERO I/O. Imports only from enrollment_kernel.

Reuses:
    - ValidationError from enrollment_kernel.domain.dtos (structural discrepancies)
    - InvalidTransitionError from enrollment_kernel.exceptions (record lifecycle)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from enrollment_kernel.domain.dtos import ValidationError
from enrollment_kernel.exceptions import InvalidTransitionError


class SourceFormat(str, Enum):
    """Declared format of a submission. Never auto-detected."""

    FLAT = "flat"
    XML = "xml"


# =============================================================================
# Wire field names -> dataclass attributes (shared by adapters and rules)
# =============================================================================

ENROLLMENT_FIELDS: tuple[tuple[str, str], ...] = (
    ("MasterEfin", "master_efin"),
    ("EFIN", "efin"),
    ("TransmitterID", "transmitter_id"),
    ("ProcessingYear", "processing_year"),
)

OFFICE_FIELDS: tuple[tuple[str, str], ...] = (
    ("OfficeName", "name"),
    ("PrimaryContactFirst", "contact_first_name"),
    ("PrimaryContactLast", "contact_last_name"),
    ("PhoneNumber", "phone"),
    ("FaxNumber", "fax"),
    ("Email", "email"),
    ("Address1", "address1"),
    ("Address2", "address2"),
    ("City", "city"),
    ("State", "state"),
    ("Zip", "zip"),
)

OWNER_FIELDS: tuple[tuple[str, str], ...] = (
    ("FirstName", "first_name"),
    ("LastName", "last_name"),
    ("PhoneNumber", "phone"),
    ("Email", "email"),
    ("Address1", "address1"),
    ("Address2", "address2"),
    ("City", "city"),
    ("State", "state"),
    ("Zip", "zip"),
    ("SSN", "ssn"),
    ("DateOfBirth", "date_of_birth"),
)

PRIOR_YEAR_FIELDS: tuple[tuple[str, str], ...] = (
    ("Bank", "bank"),
    ("ClientOfYoursLastYear", "client_last_year"),
)


# =============================================================================
# Record sections
# =============================================================================


@dataclass(frozen=True)
class OfficeInfo:
    """Office description as submitted."""

    name: str = ""
    contact_first_name: str = ""
    contact_last_name: str = ""
    phone: str = ""
    fax: str = ""
    email: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""


@dataclass(frozen=True)
class OwnerInfo:
    """Owner description as submitted (general owner or EFIN owner)."""

    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    ssn: str = ""
    date_of_birth: str = ""

    @property
    def has_name(self) -> bool:
        return bool(self.first_name or self.last_name)

    @property
    def ssn_digits(self) -> str | None:
        """SSN with separators removed, or None when absent."""
        digits = "".join(ch for ch in self.ssn if ch.isdigit())
        return digits or None


@dataclass(frozen=True)
class PriorYearInfo:
    bank: str = ""
    client_last_year: bool = False


# =============================================================================
# Submission DTOs
# =============================================================================


def parse_transaction_date(value: str) -> datetime:
    """
    Convert a TransactionDate string to an absolute UTC timestamp.

    Accepts ``YYYY-MM-DD`` (midnight UTC), a naive ISO datetime (read as
    UTC), or an ISO datetime with ``Z`` or an offset (converted to UTC).

    Raises:
        ValueError: if ``value`` is not one of those forms.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty TransactionDate")
    if "T" not in text and " " not in text:
        d = date.fromisoformat(text)
        return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class EnrollmentRecord:
    """One enrollment as parsed, before any validation."""

    index: int  # 1-based position in the submission
    master_efin: str = ""
    efin: str = ""
    transmitter_id: str = ""
    processing_year: str = ""
    office: OfficeInfo = field(default_factory=OfficeInfo)
    owner: OwnerInfo = field(default_factory=OwnerInfo)
    efin_owner: OwnerInfo = field(default_factory=OwnerInfo)
    prior_year: PriorYearInfo = field(default_factory=PriorYearInfo)
    transaction_date: str = ""

    @property
    def received_at(self) -> datetime:
        """TransactionDate as UTC. Only valid on field-validated records."""
        return parse_transaction_date(self.transaction_date)

    @property
    def tax_year(self) -> int:
        return int(self.processing_year)


@dataclass(frozen=True)
class SubmissionHeader:
    """
    Declared submission metadata.

    Values are kept raw: a missing element is None and a non-numeric
    record count stays a string, so the structural validator can report
    both.
    """

    record_count: str | None = None
    transmitter_id: str | None = None
    processing_year: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_count": self.record_count,
            "transmitter_id": self.transmitter_id,
            "processing_year": self.processing_year,
        }


@dataclass(frozen=True)
class EnrollmentSubmission:
    """A decoded submission: header plus records in file order."""

    source_format: SourceFormat
    header: SubmissionHeader
    records: tuple[EnrollmentRecord, ...] = ()


# =============================================================================
# Record-level findings (values, never raised)
# =============================================================================


@dataclass(frozen=True)
class FieldViolation:
    """A field that failed one rule of the rule table."""

    field: str
    rule: str
    value: str
    section: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "rule": self.rule,
            "value": self.value,
            "section": self.section,
        }


@dataclass(frozen=True)
class ResolutionAmbiguity:
    """Two or more persisted entities tied for the best score at or above threshold."""

    entity_kind: str  # "office" | "owner"
    chosen_id: UUID
    tied_ids: tuple[UUID, ...]
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_kind": self.entity_kind,
            "chosen_id": str(self.chosen_id),
            "tied_ids": [str(i) for i in self.tied_ids],
            "score": self.score,
        }


# =============================================================================
# Record lifecycle
# =============================================================================


class RecordStatus(str, Enum):
    """
    Per-record lifecycle status.

    State machine:
        PARSED -> STRUCTURALLY_ACCEPTED -> CLEAN | QUARANTINED
        CLEAN -> RESOLVED -> COMMITTED | FAILED
    """

    PARSED = "parsed"
    STRUCTURALLY_ACCEPTED = "structurally_accepted"
    CLEAN = "clean"
    QUARANTINED = "quarantined"
    RESOLVED = "resolved"
    COMMITTED = "committed"
    FAILED = "failed"


VALID_TRANSITIONS: dict[RecordStatus, frozenset[RecordStatus]] = {
    RecordStatus.PARSED: frozenset({RecordStatus.STRUCTURALLY_ACCEPTED}),
    RecordStatus.STRUCTURALLY_ACCEPTED: frozenset({
        RecordStatus.CLEAN, RecordStatus.QUARANTINED,
    }),
    RecordStatus.CLEAN: frozenset({RecordStatus.RESOLVED, RecordStatus.FAILED}),
    RecordStatus.RESOLVED: frozenset({RecordStatus.COMMITTED, RecordStatus.FAILED}),
    # Terminal states
    RecordStatus.QUARANTINED: frozenset(),
    RecordStatus.COMMITTED: frozenset(),
    RecordStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)


def validate_transition(
    record_index: int,
    current: RecordStatus,
    target: RecordStatus,
) -> RecordStatus:
    """Return ``target`` if the lifecycle allows it, else raise InvalidTransitionError."""
    if target not in VALID_TRANSITIONS[current]:
        raise InvalidTransitionError(record_index, current.value, target.value)
    return target


# =============================================================================
# Report
# =============================================================================


@dataclass(frozen=True)
class RecordOutcome:
    """Terminal result of one record."""

    index: int
    efin: str
    status: RecordStatus
    violations: tuple[FieldViolation, ...] = ()
    ambiguities: tuple[ResolutionAmbiguity, ...] = ()
    error: str | None = None
    office_id: UUID | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "efin": self.efin,
            "status": self.status.value,
            "violations": [v.to_dict() for v in self.violations],
            "ambiguities": [a.to_dict() for a in self.ambiguities],
            "error": self.error,
            "office_id": str(self.office_id) if self.office_id else None,
        }


@dataclass(frozen=True)
class ProcessingReport:
    """Result of processing one submission. Outcomes are sorted by index."""

    submission_id: UUID
    source_format: SourceFormat
    header: SubmissionHeader
    outcomes: tuple[RecordOutcome, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def _count(self, status: RecordStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def committed_count(self) -> int:
        return self._count(RecordStatus.COMMITTED)

    @property
    def quarantined_count(self) -> int:
        return self._count(RecordStatus.QUARANTINED)

    @property
    def failed_count(self) -> int:
        return self._count(RecordStatus.FAILED)

    @property
    def ambiguous_count(self) -> int:
        return sum(1 for o in self.outcomes if o.ambiguities)

    def outcome(self, index: int) -> RecordOutcome:
        """Outcome for the record at 1-based ``index``."""
        for o in self.outcomes:
            if o.index == index:
                return o
        raise KeyError(index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "submission_id": str(self.submission_id),
            "source_format": self.source_format.value,
            "header": self.header.to_dict(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "counts": {
                "total": len(self.outcomes),
                "committed": self.committed_count,
                "quarantined": self.quarantined_count,
                "failed": self.failed_count,
                "ambiguous": self.ambiguous_count,
            },
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


__all__ = [
    "ENROLLMENT_FIELDS",
    "OFFICE_FIELDS",
    "OWNER_FIELDS",
    "PRIOR_YEAR_FIELDS",
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
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    "ValidationError",
    "parse_transaction_date",
    "validate_transition",
]
