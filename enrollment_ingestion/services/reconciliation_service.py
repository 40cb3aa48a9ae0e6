"""
Reconciliation engine: one clean record -> one atomic upsert transaction.

Per record, in a single transaction on a fresh session:
    1. Resolve or create the office; overwrite its descriptive fields
       (last write wins); bind the record's EFIN if the office has none.
    2. Upsert the enrollment fact keyed by (EFIN, ProcessingYear).
    3. Resolve or create the general owner; link it to the EFIN as "owner".
    4. Same for the EFIN owner as "efin-owner", skipped when it has no name.

Any failure rolls the whole transaction back.  Transient failures
(OperationalError, IntegrityError from a lost unique-key race, invalidated
connections) are retried with linear backoff up to ``retry_attempts``
times; after that, or on any other database error, the record is Failed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from enrollment_config.schema import ProcessingConfig
from enrollment_kernel.domain.clock import Clock, SystemClock
from enrollment_kernel.domain.dtos import SYSTEM_ACTOR_ID
from enrollment_kernel.exceptions import PersistenceError
from enrollment_kernel.logging_config import get_logger
from enrollment_kernel.models.enrollment import EFINEnrollment
from enrollment_kernel.models.office import Office
from enrollment_kernel.models.owner import Owner, OwnerEFINAssociation, OwnerRole
from enrollment_ingestion.domain.types import (
    EnrollmentRecord,
    OwnerInfo,
    RecordStatus,
    ResolutionAmbiguity,
)
from enrollment_ingestion.matching.resolver import IdentityResolver, Resolution

logger = get_logger("ingestion.reconciliation_service")


def is_transient(exc: BaseException) -> bool:
    """Whether a database error is worth retrying."""
    if isinstance(exc, (OperationalError, IntegrityError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


@dataclass(frozen=True)
class ReconciliationResult:
    """Terminal result of reconciling one record."""

    record_index: int
    status: RecordStatus  # COMMITTED or FAILED
    resolved: bool  # identity resolution completed on the last attempt
    attempts: int
    office_id: UUID | None = None
    ambiguities: tuple[ResolutionAmbiguity, ...] = ()
    error: PersistenceError | None = None
    finished_at: datetime | None = None

    @property
    def committed(self) -> bool:
        return self.status == RecordStatus.COMMITTED


class _Attempt:
    """Mutable progress of one transaction attempt."""

    def __init__(self) -> None:
        self.resolved = False
        self.office_id: UUID | None = None
        self.ambiguities: list[ResolutionAmbiguity] = []


class ReconciliationEngine:
    """Upserts clean records, one transaction per record."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        resolver: IdentityResolver,
        clock: Clock | None = None,
        config: ProcessingConfig | None = None,
        actor_id: UUID | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self._resolver = resolver
        self._clock = clock or SystemClock()
        self._config = config or ProcessingConfig()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._sleep = sleep

    @property
    def actor_id(self) -> UUID:
        return self._actor_id

    def reconcile(self, record: EnrollmentRecord) -> ReconciliationResult:
        """Commit ``record`` or report it Failed. Never raises database errors."""
        max_attempts = self._config.retry_attempts
        attempt = _Attempt()
        last_exc: SQLAlchemyError | None = None
        attempts_made = 0

        for n in range(max_attempts):
            attempts_made = n + 1
            attempt = _Attempt()
            session = self._session_factory()
            try:
                with session.begin():
                    self._apply(session, record, attempt)
            except SQLAlchemyError as exc:
                last_exc = exc
                if not is_transient(exc):
                    break
                if attempts_made < max_attempts:
                    delay = self._config.retry_backoff_seconds * attempts_made
                    logger.warning(
                        "persistence_retry",
                        extra={
                            "record_index": record.index,
                            "attempt": attempts_made,
                            "max_attempts": max_attempts,
                            "delay_seconds": delay,
                            "error_type": type(exc).__name__,
                        },
                    )
                    self._sleep(delay)
                continue
            finally:
                session.close()

            logger.info(
                "record_committed",
                extra={
                    "record_index": record.index,
                    "efin": record.efin,
                    "office_id": str(attempt.office_id),
                    "attempts": attempts_made,
                },
            )
            return ReconciliationResult(
                record_index=record.index,
                status=RecordStatus.COMMITTED,
                resolved=True,
                attempts=attempts_made,
                office_id=attempt.office_id,
                ambiguities=tuple(attempt.ambiguities),
                finished_at=self._clock.now(),
            )

        error = PersistenceError(
            record_index=record.index,
            cause=f"{type(last_exc).__name__}: {last_exc}",
            transient=is_transient(last_exc) if last_exc is not None else False,
            attempts=attempts_made,
        )
        logger.error(
            "record_failed",
            extra={
                "record_index": record.index,
                "efin": record.efin,
                "attempts": attempts_made,
                "transient": error.transient,
                "error_code": error.code,
                "error_msg": error.cause,
            },
        )
        return ReconciliationResult(
            record_index=record.index,
            status=RecordStatus.FAILED,
            resolved=attempt.resolved,
            attempts=attempts_made,
            ambiguities=tuple(attempt.ambiguities),
            error=error,
            finished_at=self._clock.now(),
        )

    # ------------------------------------------------------------------
    # Transaction body
    # ------------------------------------------------------------------

    def _apply(self, session: Session, record: EnrollmentRecord, attempt: _Attempt) -> None:
        office_resolution = self._resolver.resolve_office(session, record)
        owner_resolution = self._resolver.resolve_owner(session, record, record.owner)
        attempt.resolved = True
        for resolution in (office_resolution, owner_resolution):
            if resolution.ambiguity is not None:
                attempt.ambiguities.append(resolution.ambiguity)

        office = self._upsert_office(session, record, office_resolution)
        attempt.office_id = office.id
        self._upsert_enrollment(session, record, office.id)

        owner = self._upsert_owner(session, record.owner, owner_resolution)
        self._link_owner(session, owner.id, record.efin, OwnerRole.OWNER)

        if record.efin_owner.has_name:
            efin_owner_resolution = self._resolver.resolve_owner(
                session, record, record.efin_owner
            )
            if efin_owner_resolution.ambiguity is not None:
                attempt.ambiguities.append(efin_owner_resolution.ambiguity)
            efin_owner = self._upsert_owner(session, record.efin_owner, efin_owner_resolution)
            self._link_owner(session, efin_owner.id, record.efin, OwnerRole.EFIN_OWNER)

    def _upsert_office(
        self,
        session: Session,
        record: EnrollmentRecord,
        resolution: Resolution,
    ) -> Office:
        info = record.office
        if resolution.is_new:
            office = Office(name=info.name, created_by_id=self._actor_id)
            session.add(office)
        else:
            office = session.get(Office, resolution.entity_id)
            office.updated_by_id = self._actor_id

        if office.efin is None:
            office.efin = record.efin
        office.master_efin = record.master_efin or None
        office.transmitter_id = record.transmitter_id or None
        office.name = info.name
        office.contact_first_name = info.contact_first_name or None
        office.contact_last_name = info.contact_last_name or None
        office.phone = info.phone or None
        office.fax = info.fax or None
        office.email = info.email or None
        office.address1 = info.address1 or None
        office.address2 = info.address2 or None
        office.city = info.city or None
        office.state = info.state or None
        office.zip = info.zip or None
        session.flush()
        return office

    def _upsert_enrollment(
        self,
        session: Session,
        record: EnrollmentRecord,
        office_id: UUID,
    ) -> EFINEnrollment:
        fact = session.scalars(
            select(EFINEnrollment).where(
                EFINEnrollment.efin == record.efin,
                EFINEnrollment.tax_year == record.tax_year,
            )
        ).first()
        if fact is None:
            fact = EFINEnrollment(
                efin=record.efin,
                tax_year=record.tax_year,
                received_date=record.received_at,
                created_by_id=self._actor_id,
            )
            session.add(fact)
        else:
            fact.received_date = record.received_at
            fact.updated_by_id = self._actor_id

        fact.office_id = office_id
        fact.transmitter_id = record.transmitter_id or None
        fact.master_efin = record.master_efin or None
        fact.prior_year_bank = record.prior_year.bank or None
        fact.prior_year_client = record.prior_year.client_last_year
        session.flush()
        return fact

    def _upsert_owner(
        self,
        session: Session,
        info: OwnerInfo,
        resolution: Resolution,
    ) -> Owner:
        if resolution.is_new:
            owner = Owner(
                first_name=info.first_name,
                last_name=info.last_name,
                created_by_id=self._actor_id,
            )
            session.add(owner)
        else:
            owner = session.get(Owner, resolution.entity_id)
            owner.updated_by_id = self._actor_id

        owner.first_name = info.first_name
        owner.last_name = info.last_name
        if info.ssn_digits:
            owner.ssn = info.ssn_digits
        for attr in ("phone", "email", "address1", "address2", "city", "state", "zip", "date_of_birth"):
            value = getattr(info, attr)
            if value:
                setattr(owner, attr, value)
        session.flush()
        return owner

    def _link_owner(
        self,
        session: Session,
        owner_id: UUID,
        efin: str,
        role: OwnerRole,
    ) -> None:
        existing = session.scalars(
            select(OwnerEFINAssociation.id).where(
                OwnerEFINAssociation.owner_id == owner_id,
                OwnerEFINAssociation.efin == efin,
                OwnerEFINAssociation.role == role.value,
            )
        ).first()
        if existing is None:
            session.add(
                OwnerEFINAssociation(
                    owner_id=owner_id,
                    efin=efin,
                    role=role.value,
                    created_by_id=self._actor_id,
                )
            )
            session.flush()
