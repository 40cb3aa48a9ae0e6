"""
Module: enrollment_kernel.models.office
Responsibility: ORM persistence for ERO offices, the identity anchor that
    EFIN enrollments and owner links hang off.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - An office's primary ``efin`` is bound once (on first reconciliation that
      finds it empty) and never reassigned by a later submission.
    - Descriptive columns are last-write-wins: each committed record overwrites
      them with its own values.

Failure modes:
    - None at the ORM level; offices have no natural unique key.  Duplicate
      prevention is the identity resolver's job.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from enrollment_kernel.db.base import TrackedBase


class Office(TrackedBase):
    """
    A tax-preparation office (ERO) known to the registry.

    Guarantees:
        - ``efin`` is nullable: an office created from a record whose EFIN was
          already bound elsewhere carries no primary EFIN of its own.
        - ``name`` is always present.
    """

    __tablename__ = "offices"

    __table_args__ = (
        Index("idx_office_efin", "efin"),
        Index("idx_office_name", "name"),
    )

    efin: Mapped[str | None] = mapped_column(String(20), nullable=True)
    master_efin: Mapped[str | None] = mapped_column(String(20), nullable=True)
    transmitter_id: Mapped[str | None] = mapped_column(String(20), nullable=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    contact_last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    fax: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    address1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    zip: Mapped[str | None] = mapped_column(String(10), nullable=True)

    def __repr__(self) -> str:
        return f"<Office {self.name} efin={self.efin}>"
