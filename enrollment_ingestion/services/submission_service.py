"""
Submission service: parse -> structural gate -> validate -> reconcile.

Orchestrates the parsers, the structural validator, the field rule table
and the reconciliation engine, and assembles the processing report.
Uses structured logging (LogContext, get_logger("ingestion.*")).

Concurrency:
    Parsing and the structural gate run on the calling thread; a rejected
    submission raises before any session is opened.  Accepted records are
    partitioned into identity groups.  Records share a group when they have
    an EFIN, an owner SSN or name, or a normalized office name in common,
    or when their offices or owners score at or above the matching
    thresholds against each other, so two records the resolver would bind
    to one office or owner never reconcile concurrently.  Groups run on a
    bounded thread pool; records inside a group run one after another in
    file order.  ``process`` returns only after every group has finished.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Sequence
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from enrollment_config.schema import EnrollmentConfig, MatchingConfig
from enrollment_kernel.domain.clock import Clock, SystemClock
from enrollment_kernel.domain.dtos import SYSTEM_ACTOR_ID
from enrollment_kernel.exceptions import ParseError, StructuralError
from enrollment_kernel.logging_config import LogContext, get_logger
from enrollment_ingestion.adapters import parse_submission
from enrollment_ingestion.domain.structural import check_structure
from enrollment_ingestion.domain.types import (
    EnrollmentRecord,
    ProcessingReport,
    RecordOutcome,
    RecordStatus,
    SourceFormat,
    validate_transition,
)
from enrollment_ingestion.domain.validators import validate_record
from enrollment_ingestion.matching.resolver import IdentityResolver
from enrollment_ingestion.matching.similarity import (
    normalize,
    submitted_office_score,
    submitted_owner_score,
)
from enrollment_ingestion.services.reconciliation_service import ReconciliationEngine

logger = get_logger("ingestion.submission_service")


# -----------------------------------------------------------------------------
# Identity groups
# -----------------------------------------------------------------------------


def _identity_keys(record: EnrollmentRecord) -> list[tuple[str, str]]:
    keys: list[tuple[str, str]] = []
    if record.efin:
        keys.append(("efin", record.efin))
    office_name = normalize(record.office.name)
    if office_name:
        keys.append(("office", office_name))
    for owner in (record.owner, record.efin_owner):
        if owner.ssn_digits:
            keys.append(("owner-ssn", owner.ssn_digits))
        name = normalize(f"{owner.first_name} {owner.last_name}")
        if name:
            keys.append(("owner-name", name))
    return keys


def _fuzzy_match(a: EnrollmentRecord, b: EnrollmentRecord, config: MatchingConfig) -> bool:
    """True when the resolver could bind ``a`` and ``b`` to the same office or owner."""
    if normalize(a.office.name) and normalize(b.office.name):
        if submitted_office_score(a.office, b.office, config) >= config.office_threshold:
            return True
    for owner_a in (a.owner, a.efin_owner):
        if not owner_a.has_name:
            continue
        for owner_b in (b.owner, b.efin_owner):
            if not owner_b.has_name:
                continue
            score = submitted_owner_score(owner_a, owner_b, config)
            if score is not None and score >= config.owner_threshold:
                return True
    return False


def identity_groups(
    records: Sequence[EnrollmentRecord],
    config: MatchingConfig | None = None,
) -> list[list[EnrollmentRecord]]:
    """
    Partition records so that any two that could resolve to one identity
    land together.

    Records are joined when they share an identity key, or when their
    offices or any pair of their owners score at or above the matching
    thresholds against each other.  Groups are ordered by their first
    record; records within a group keep file order.
    """
    config = config or MatchingConfig()
    parent = list(range(len(records)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    def union(i: int, j: int) -> None:
        a, b = find(i), find(j)
        if a != b:
            parent[max(a, b)] = min(a, b)

    owner_of_key: dict[tuple[str, str], int] = {}
    for pos, record in enumerate(records):
        for key in _identity_keys(record):
            if key in owner_of_key:
                union(owner_of_key[key], pos)
            else:
                owner_of_key[key] = pos

    for i in range(len(records)):
        for j in range(i + 1, len(records)):
            if find(i) != find(j) and _fuzzy_match(records[i], records[j], config):
                union(i, j)

    groups: dict[int, list[EnrollmentRecord]] = {}
    for pos, record in enumerate(records):
        groups.setdefault(find(pos), []).append(record)
    return [sorted(g, key=lambda r: r.index) for _, g in sorted(groups.items())]


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


class SubmissionService:
    """Processes one enrollment submission end to end."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: EnrollmentConfig | None = None,
        clock: Clock | None = None,
        resolver: IdentityResolver | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self._config = config or EnrollmentConfig()
        self._clock = clock or SystemClock()
        self._resolver = resolver or IdentityResolver(self._config.matching)
        self._sleep = sleep

    def process_file(
        self,
        path: Path | str,
        source_format: str | SourceFormat,
        actor_id: UUID | None = None,
    ) -> ProcessingReport:
        """Read ``path`` and process its bytes in the declared format."""
        raw = Path(path).read_bytes()
        return self.process(raw, source_format, actor_id=actor_id)

    def process(
        self,
        raw: bytes,
        source_format: str | SourceFormat,
        actor_id: UUID | None = None,
    ) -> ProcessingReport:
        """
        Process one submission.

        Raises:
            ParseError: bytes could not be decoded; nothing was written.
            StructuralError: header and body disagree; nothing was written.
        """
        actor = actor_id or SYSTEM_ACTOR_ID
        submission_id = uuid4()
        started_at = self._clock.now()

        with LogContext.bind(
            correlation_id=str(submission_id),
            producer="ingestion",
            actor_id=str(actor),
        ):
            logger.info(
                "submission_received",
                extra={"source_format": str(source_format), "size_bytes": len(raw)},
            )
            try:
                submission = parse_submission(
                    raw,
                    source_format,
                    delimiter=self._config.processing.flat_delimiter,
                )
            except ParseError as exc:
                logger.error(
                    "submission_parse_failed",
                    extra={"line": exc.line, "element": exc.element, "error_msg": str(exc)},
                )
                raise

            statuses = {r.index: RecordStatus.PARSED for r in submission.records}
            try:
                check_structure(submission)
            except StructuralError as exc:
                logger.error(
                    "structural_check_failed",
                    extra={"discrepancies": [d.to_dict() for d in exc.discrepancies]},
                )
                raise
            for index, status in statuses.items():
                statuses[index] = validate_transition(
                    index, status, RecordStatus.STRUCTURALLY_ACCEPTED
                )

            logger.info(
                "submission_accepted",
                extra={
                    "record_count": len(submission.records),
                    "transmitter_id": submission.header.transmitter_id,
                    "processing_year": submission.header.processing_year,
                },
            )

            engine = ReconciliationEngine(
                self._session_factory,
                self._resolver,
                clock=self._clock,
                config=self._config.processing,
                actor_id=actor,
                sleep=self._sleep,
            )
            groups = identity_groups(submission.records, self._config.matching)
            outcomes: list[RecordOutcome] = []
            with ThreadPoolExecutor(
                max_workers=self._config.processing.max_workers,
                thread_name_prefix="enrollment",
            ) as pool:
                futures = [
                    pool.submit(self._run_group, group, engine, submission_id, actor)
                    for group in groups
                ]
                for future in futures:
                    outcomes.extend(future.result())

            report = ProcessingReport(
                submission_id=submission_id,
                source_format=submission.source_format,
                header=submission.header,
                outcomes=tuple(sorted(outcomes, key=lambda o: o.index)),
                started_at=started_at,
                completed_at=self._clock.now(),
            )
            logger.info(
                "submission_completed",
                extra={
                    "committed": report.committed_count,
                    "quarantined": report.quarantined_count,
                    "failed": report.failed_count,
                    "ambiguous": report.ambiguous_count,
                    "group_count": len(groups),
                },
            )
            return report

    def _run_group(
        self,
        group: list[EnrollmentRecord],
        engine: ReconciliationEngine,
        submission_id: UUID,
        actor: UUID,
    ) -> list[RecordOutcome]:
        # Context variables are not inherited by pool threads.
        with LogContext.bind(
            correlation_id=str(submission_id),
            producer="ingestion",
            actor_id=str(actor),
        ):
            outcomes = []
            for record in group:
                with LogContext.bind(record_index=str(record.index), efin=record.efin or None):
                    outcomes.append(self._run_record(record, engine))
            return outcomes

    def _run_record(
        self,
        record: EnrollmentRecord,
        engine: ReconciliationEngine,
    ) -> RecordOutcome:
        status = RecordStatus.STRUCTURALLY_ACCEPTED

        violations = validate_record(record)
        if violations:
            status = validate_transition(record.index, status, RecordStatus.QUARANTINED)
            logger.warning(
                "record_quarantined",
                extra={
                    "record_index": record.index,
                    "violations": [v.to_dict() for v in violations],
                },
            )
            return RecordOutcome(
                index=record.index,
                efin=record.efin,
                status=status,
                violations=tuple(violations),
            )
        status = validate_transition(record.index, status, RecordStatus.CLEAN)

        try:
            result = engine.reconcile(record)
        except Exception as exc:
            logger.exception(
                "record_failed",
                extra={"record_index": record.index, "error_msg": str(exc)},
            )
            status = validate_transition(record.index, status, RecordStatus.FAILED)
            return RecordOutcome(
                index=record.index,
                efin=record.efin,
                status=status,
                error=f"{type(exc).__name__}: {exc}",
            )

        if result.resolved:
            status = validate_transition(record.index, status, RecordStatus.RESOLVED)
        status = validate_transition(record.index, status, result.status)
        return RecordOutcome(
            index=record.index,
            efin=record.efin,
            status=status,
            ambiguities=result.ambiguities,
            error=str(result.error) if result.error else None,
            office_id=result.office_id,
        )
