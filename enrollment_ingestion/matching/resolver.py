"""
Identity resolution of incoming offices and owners against the registry.

Office resolution:
    1. EFIN authority: an office whose primary EFIN equals the record's EFIN,
       or failing that the office named by an existing enrollment fact for
       that EFIN, is the match regardless of text similarity.
    2. Fuzzy fallback: weighted name/address similarity against every
       persisted office.

Owner resolution:
    Name similarity against every persisted owner, boosted when SSNs agree,
    excluded when both SSNs are present and disagree.

Decision rule (fuzzy):
    The highest score at or above the threshold wins.  Ties at that score
    go to the lowest identifier (compared as strings) and are reported as a
    ResolutionAmbiguity.  Below threshold the caller creates a new entity.

Read-only: the resolver never writes through the session it is given.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from enrollment_config.schema import MatchingConfig
from enrollment_kernel.domain.dtos import OfficeSnapshot, OwnerSnapshot
from enrollment_kernel.logging_config import get_logger
from enrollment_kernel.models.enrollment import EFINEnrollment
from enrollment_kernel.models.office import Office
from enrollment_kernel.models.owner import Owner
from enrollment_ingestion.domain.types import (
    EnrollmentRecord,
    OwnerInfo,
    ResolutionAmbiguity,
)
from enrollment_ingestion.matching.similarity import office_score, owner_score

logger = get_logger("ingestion.resolver")

OFFICE_KIND = "office"
OWNER_KIND = "owner"


class MatchMethod:
    EFIN = "efin"
    FUZZY = "fuzzy"
    NEW = "new"


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one entity. ``entity_id`` is None for NEW."""

    entity_id: UUID | None
    method: str
    score: float = 0.0
    ambiguity: ResolutionAmbiguity | None = None

    @property
    def is_new(self) -> bool:
        return self.entity_id is None


def choose_best(
    candidates: list[tuple[UUID, float]],
    threshold: float,
    entity_kind: str,
) -> Resolution:
    """Apply the decision rule to already-rounded (id, score) pairs."""
    eligible = [(cid, score) for cid, score in candidates if score >= threshold]
    if not eligible:
        return Resolution(entity_id=None, method=MatchMethod.NEW)

    best_score = max(score for _, score in eligible)
    tied = sorted((cid for cid, score in eligible if score == best_score), key=str)
    chosen = tied[0]
    ambiguity = None
    if len(tied) > 1:
        ambiguity = ResolutionAmbiguity(
            entity_kind=entity_kind,
            chosen_id=chosen,
            tied_ids=tuple(tied),
            score=best_score,
        )
    return Resolution(
        entity_id=chosen,
        method=MatchMethod.FUZZY,
        score=best_score,
        ambiguity=ambiguity,
    )


class IdentityResolver:
    """Resolve offices and owners; configured once, used from any worker."""

    def __init__(self, config: MatchingConfig):
        self._config = config

    @property
    def config(self) -> MatchingConfig:
        return self._config

    def office_for_efin(self, session: Session, efin: str) -> UUID | None:
        """Office bound to ``efin``, directly or through an enrollment fact."""
        if not efin:
            return None
        office_id = session.scalars(
            select(Office.id).where(Office.efin == efin).order_by(Office.id).limit(1)
        ).first()
        if office_id is not None:
            return office_id
        return session.scalars(
            select(EFINEnrollment.office_id)
            .where(
                EFINEnrollment.efin == efin,
                EFINEnrollment.office_id.is_not(None),
            )
            .order_by(EFINEnrollment.tax_year.desc())
            .limit(1)
        ).first()

    def resolve_office(self, session: Session, record: EnrollmentRecord) -> Resolution:
        bound = self.office_for_efin(session, record.efin)
        if bound is not None:
            return Resolution(entity_id=bound, method=MatchMethod.EFIN, score=1.0)

        candidates = [
            (snapshot.id, office_score(record.office, snapshot, self._config))
            for snapshot in (
                OfficeSnapshot.from_model(o) for o in session.scalars(select(Office))
            )
        ]
        resolution = choose_best(candidates, self._config.office_threshold, OFFICE_KIND)
        self._log(record, OFFICE_KIND, resolution)
        return resolution

    def resolve_owner(
        self,
        session: Session,
        record: EnrollmentRecord,
        owner: OwnerInfo,
    ) -> Resolution:
        candidates: list[tuple[UUID, float]] = []
        for model in session.scalars(select(Owner)):
            score = owner_score(owner, OwnerSnapshot.from_model(model), self._config)
            if score is not None:
                candidates.append((model.id, score))
        resolution = choose_best(candidates, self._config.owner_threshold, OWNER_KIND)
        self._log(record, OWNER_KIND, resolution)
        return resolution

    def _log(self, record: EnrollmentRecord, kind: str, resolution: Resolution) -> None:
        if resolution.ambiguity is not None:
            logger.warning(
                "resolution_ambiguity",
                extra={
                    "record_index": record.index,
                    "entity_kind": kind,
                    "chosen_id": str(resolution.ambiguity.chosen_id),
                    "tied_ids": [str(i) for i in resolution.ambiguity.tied_ids],
                    "score": resolution.ambiguity.score,
                },
            )
        else:
            logger.debug(
                "entity_resolved",
                extra={
                    "record_index": record.index,
                    "entity_kind": kind,
                    "method": resolution.method,
                    "score": resolution.score,
                },
            )
