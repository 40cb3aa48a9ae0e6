"""
Declarative field rule table.

Each FieldRuleSpec names a section, a wire field name and the rules that
apply to it, in evaluation order.  The table is plain data: the interpreter
in ``validators.py`` looks values up through the section's field map, never
by reflection over the record type.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# Section names as they appear in violations
ENROLLMENT_SECTION = "Enrollment"
OFFICE_SECTION = "OfficeInfo"
OWNER_SECTION = "OwnerInformation"
EFIN_OWNER_SECTION = "EFINOwnerInfo"
PRIOR_YEAR_SECTION = "PriorYearInfo"


class RuleKind(str, Enum):
    REQUIRED = "required"
    ALPHANUMERIC = "alphanumeric"
    NUMERIC = "numeric"
    LENGTH = "length"
    EMAIL = "email"
    SSN = "ssn"
    DATE = "date"


@dataclass(frozen=True)
class Rule:
    """One rule kind plus its parameters (e.g. length min/max, allowed extras)."""

    kind: RuleKind
    params: tuple[tuple[str, Any], ...] = ()

    def param(self, name: str, default: Any = None) -> Any:
        for key, value in self.params:
            if key == name:
                return value
        return default


@dataclass(frozen=True)
class FieldRuleSpec:
    section: str
    field: str
    rules: tuple[Rule, ...]


REQUIRED = Rule(RuleKind.REQUIRED)
ALPHANUMERIC = Rule(RuleKind.ALPHANUMERIC, (("allowed_extra", " "),))
NUMERIC = Rule(RuleKind.NUMERIC)
EMAIL = Rule(RuleKind.EMAIL)
SSN = Rule(RuleKind.SSN)
DATE = Rule(RuleKind.DATE)
STATE_LENGTH = Rule(RuleKind.LENGTH, (("min", 2), ("max", 2)))


def _specs(section: str, fields: tuple[str, ...], *rules: Rule) -> tuple[FieldRuleSpec, ...]:
    return tuple(FieldRuleSpec(section, name, tuple(rules)) for name in fields)


# EFINOwnerInfo and PriorYearInfo carry no rules.
RULE_TABLE: tuple[FieldRuleSpec, ...] = (
    *_specs(
        ENROLLMENT_SECTION,
        ("MasterEfin", "EFIN", "TransmitterID", "ProcessingYear"),
        REQUIRED, NUMERIC,
    ),
    *_specs(ENROLLMENT_SECTION, ("TransactionDate",), REQUIRED, DATE),
    *_specs(
        OFFICE_SECTION,
        ("OfficeName", "PrimaryContactFirst", "PrimaryContactLast", "Address1", "City", "Zip"),
        REQUIRED, ALPHANUMERIC,
    ),
    *_specs(OFFICE_SECTION, ("Email",), REQUIRED, EMAIL),
    *_specs(OFFICE_SECTION, ("State",), STATE_LENGTH),
    *_specs(
        OWNER_SECTION,
        ("FirstName", "LastName", "PhoneNumber", "Address1", "City", "Zip"),
        REQUIRED, ALPHANUMERIC,
    ),
    *_specs(OWNER_SECTION, ("Email",), EMAIL),
    *_specs(OWNER_SECTION, ("State",), STATE_LENGTH),
    *_specs(OWNER_SECTION, ("SSN",), SSN),
)
