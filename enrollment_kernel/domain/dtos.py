"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the persistence
    boundary: validation errors, and read-only snapshots of persisted
    offices and owners that the identity resolver scores against.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the matching/service layer (never from scoring logic).

Invariants enforced:
    - Scoring code accepts snapshots, never ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from enrollment_kernel.models.office import Office as OfficeModel
    from enrollment_kernel.models.owner import Owner as OwnerModel


# Actor recorded in created_by_id when the caller supplies none.
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


@dataclass(frozen=True)
class ValidationError:
    """
    A single validation error.

    Contract:
        Carries a machine-readable code, human-readable message, optional field
        path, and optional details dict.  Structural discrepancies are
        reported as ValidationErrors.

    Non-goals:
        - Does NOT raise exceptions -- it IS the error representation.
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "field": self.field,
            "details": self.details,
        }


@dataclass(frozen=True)
class OfficeSnapshot:
    """Read-only view of a persisted office, as scored by the resolver."""

    id: UUID
    efin: str | None
    name: str
    address1: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None

    @classmethod
    def from_model(cls, model: OfficeModel) -> OfficeSnapshot:
        return cls(
            id=model.id,
            efin=model.efin,
            name=model.name,
            address1=model.address1,
            city=model.city,
            state=model.state,
            zip=model.zip,
        )


@dataclass(frozen=True)
class OwnerSnapshot:
    """Read-only view of a persisted owner, as scored by the resolver."""

    id: UUID
    first_name: str
    last_name: str
    ssn: str | None = None

    @classmethod
    def from_model(cls, model: OwnerModel) -> OwnerSnapshot:
        return cls(
            id=model.id,
            first_name=model.first_name,
            last_name=model.last_name,
            ssn=model.ssn,
        )
