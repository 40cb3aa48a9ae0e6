"""
Module: enrollment_kernel.models.owner
Responsibility: ORM persistence for office owners and their links to EFINs.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``ssn`` is stored as nine digits with separators removed, or NULL.
    - One association per (owner_id, efin, role) (uq_owner_efin_role).
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from enrollment_kernel.db.base import TrackedBase, UUIDString


class OwnerRole(str, Enum):
    """Capacity in which an owner is linked to an EFIN."""

    OWNER = "owner"
    EFIN_OWNER = "efin-owner"


class Owner(TrackedBase):
    """A person who owns an office or an EFIN."""

    __tablename__ = "owners"

    __table_args__ = (
        Index("idx_owner_ssn", "ssn"),
        Index("idx_owner_last_name", "last_name"),
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    ssn: Mapped[str | None] = mapped_column(String(9), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    zip: Mapped[str | None] = mapped_column(String(10), nullable=True)
    date_of_birth: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<Owner {self.first_name} {self.last_name}>"


class OwnerEFINAssociation(TrackedBase):
    """Link between an owner and an EFIN in a given role."""

    __tablename__ = "owner_efin_associations"

    __table_args__ = (
        UniqueConstraint("owner_id", "efin", "role", name="uq_owner_efin_role"),
        Index("idx_owner_assoc_efin", "efin"),
    )

    owner_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("owners.id"),
        nullable=False,
    )
    efin: Mapped[str] = mapped_column(String(20), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<OwnerEFINAssociation {self.owner_id} {self.efin} {self.role}>"
