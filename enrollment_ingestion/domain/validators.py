"""
Field-level validation of one enrollment record.

A small interpreter over ``rules.RULE_TABLE``.  Non-required rules skip
empty values; a failed ``required`` suppresses the remaining rules of that
field.  Violations come back in table order.  An empty list means Clean.

Architecture: enrollment_ingestion/domain. ZERO I/O.
"""

from __future__ import annotations

import re
from typing import Callable, Sequence

from enrollment_ingestion.domain.rules import (
    EFIN_OWNER_SECTION,
    ENROLLMENT_SECTION,
    OFFICE_SECTION,
    OWNER_SECTION,
    PRIOR_YEAR_SECTION,
    RULE_TABLE,
    FieldRuleSpec,
    Rule,
    RuleKind,
)
from enrollment_ingestion.domain.types import (
    ENROLLMENT_FIELDS,
    OFFICE_FIELDS,
    OWNER_FIELDS,
    PRIOR_YEAR_FIELDS,
    EnrollmentRecord,
    FieldViolation,
    parse_transaction_date,
)

_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,}$")
_SSN_RE = re.compile(r"^\d{3}[- ]?\d{2}[- ]?\d{4}$")

# section -> (section object accessor, wire field -> attribute)
_SECTIONS: dict[str, tuple[Callable[[EnrollmentRecord], object], dict[str, str]]] = {
    ENROLLMENT_SECTION: (
        lambda r: r,
        dict(ENROLLMENT_FIELDS) | {"TransactionDate": "transaction_date"},
    ),
    OFFICE_SECTION: (lambda r: r.office, dict(OFFICE_FIELDS)),
    OWNER_SECTION: (lambda r: r.owner, dict(OWNER_FIELDS)),
    EFIN_OWNER_SECTION: (lambda r: r.efin_owner, dict(OWNER_FIELDS)),
    PRIOR_YEAR_SECTION: (lambda r: r.prior_year, dict(PRIOR_YEAR_FIELDS)),
}


def field_value(record: EnrollmentRecord, section: str, field: str) -> str:
    """Raw value of ``section.field`` as a string."""
    accessor, attrs = _SECTIONS[section]
    value = getattr(accessor(record), attrs[field])
    return "" if value is None else str(value)


# -----------------------------------------------------------------------------
# Rule predicates (value is non-empty for everything but REQUIRED)
# -----------------------------------------------------------------------------


def _is_alphanumeric(value: str, rule: Rule) -> bool:
    extra = rule.param("allowed_extra", "")
    return all((ch.isascii() and ch.isalnum()) or ch in extra for ch in value)


def _is_numeric(value: str, rule: Rule) -> bool:
    return value.isascii() and value.isdigit()


def _has_length(value: str, rule: Rule) -> bool:
    return rule.param("min", 0) <= len(value) <= rule.param("max", len(value))


def _is_email(value: str, rule: Rule) -> bool:
    return _EMAIL_RE.match(value) is not None


def _is_ssn(value: str, rule: Rule) -> bool:
    return _SSN_RE.match(value) is not None


def _is_date(value: str, rule: Rule) -> bool:
    try:
        parse_transaction_date(value)
    except ValueError:
        return False
    return True


_CHECKS: dict[RuleKind, Callable[[str, Rule], bool]] = {
    RuleKind.ALPHANUMERIC: _is_alphanumeric,
    RuleKind.NUMERIC: _is_numeric,
    RuleKind.LENGTH: _has_length,
    RuleKind.EMAIL: _is_email,
    RuleKind.SSN: _is_ssn,
    RuleKind.DATE: _is_date,
}


def evaluate_field(spec: FieldRuleSpec, value: str) -> list[FieldViolation]:
    """Apply one table entry to one value."""
    violations: list[FieldViolation] = []
    for rule in spec.rules:
        if rule.kind is RuleKind.REQUIRED:
            if not value.strip():
                violations.append(
                    FieldViolation(spec.field, rule.kind.value, value, spec.section)
                )
                break
            continue
        if not value:
            continue
        if not _CHECKS[rule.kind](value, rule):
            violations.append(
                FieldViolation(spec.field, rule.kind.value, value, spec.section)
            )
    return violations


def validate_record(
    record: EnrollmentRecord,
    table: Sequence[FieldRuleSpec] = RULE_TABLE,
) -> list[FieldViolation]:
    """Evaluate the rule table against ``record``."""
    violations: list[FieldViolation] = []
    for spec in table:
        violations.extend(
            evaluate_field(spec, field_value(record, spec.section, spec.field))
        )
    return violations
