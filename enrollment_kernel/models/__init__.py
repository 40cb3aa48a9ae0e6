"""ORM models for the enrollment registry."""

from enrollment_kernel.models.enrollment import EFINEnrollment
from enrollment_kernel.models.office import Office
from enrollment_kernel.models.owner import Owner, OwnerEFINAssociation, OwnerRole

__all__ = [
    "Office",
    "EFINEnrollment",
    "Owner",
    "OwnerEFINAssociation",
    "OwnerRole",
]
