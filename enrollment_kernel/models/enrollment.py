"""
Module: enrollment_kernel.models.enrollment
Responsibility: ORM persistence for the per-tax-year EFIN enrollment fact.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one fact per (efin, tax_year) (uq_enrollment_efin_year).
      Concurrent writers from separate processes converge on this constraint;
      the loser's IntegrityError is retried into the update path.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from enrollment_kernel.db.base import TrackedBase, UUIDString


class EFINEnrollment(TrackedBase):
    """
    One EFIN's enrollment for one processing year.

    ``received_date`` is the submission's TransactionDate, normalized to UTC.
    ``office_id`` records the office the EFIN enrolled through and is what
    lets a later submission find the office by EFIN even when the office's
    own primary EFIN is a different one.
    """

    __tablename__ = "efin_enrollments"

    __table_args__ = (
        UniqueConstraint("efin", "tax_year", name="uq_enrollment_efin_year"),
        Index("idx_enrollment_office", "office_id"),
    )

    efin: Mapped[str] = mapped_column(String(20), nullable=False)
    tax_year: Mapped[int] = mapped_column(Integer, nullable=False)
    received_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    office_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("offices.id"),
        nullable=True,
    )
    transmitter_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    master_efin: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Prior-year section of the submission
    prior_year_bank: Mapped[str | None] = mapped_column(String(100), nullable=True)
    prior_year_client: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    def __repr__(self) -> str:
        return f"<EFINEnrollment {self.efin}/{self.tax_year}>"
