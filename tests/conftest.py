"""
Pytest fixtures for the enrollment test suite.

Provides:
- A file-backed SQLite database per test (shared by worker threads)
- Session factory, sessions, resolver, engine and service fixtures
- Builders for enrollment records and flat/XML submission payloads
- Captured structured logs

Environment Variables:
- DATABASE_URL: optional SQLAlchemy URL for the tests marked ``postgres``.
"""

import json
import logging
from dataclasses import replace
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4
from xml.sax.saxutils import escape

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from enrollment_config.schema import EnrollmentConfig, MatchingConfig, ProcessingConfig
from enrollment_kernel.db.engine import build_engine, create_tables
from enrollment_kernel.domain.clock import DeterministicClock
from enrollment_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from enrollment_ingestion.domain.types import (
    OFFICE_FIELDS,
    OWNER_FIELDS,
    EnrollmentRecord,
    OfficeInfo,
    OwnerInfo,
    PriorYearInfo,
)
from enrollment_ingestion.matching.resolver import IdentityResolver
from enrollment_ingestion.services.reconciliation_service import ReconciliationEngine
from enrollment_ingestion.services.submission_service import SubmissionService


# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture enrollment logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, submission_service):
            submission_service.process(raw, "flat")
            logs = captured_logs()
            assert any(r["message"] == "record_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("enrollment")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine(tmp_path) -> Generator[Engine, None, None]:
    """SQLite database file in tmp_path with all enrollment tables."""
    engine = build_engine(f"sqlite:///{tmp_path / 'enrollment.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker[Session]:
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """A session for arranging and inspecting data. Tests commit explicitly."""
    sess = session_factory()
    yield sess
    sess.close()


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


# Clock fixtures


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def matching_config() -> MatchingConfig:
    return MatchingConfig()


@pytest.fixture
def processing_config() -> ProcessingConfig:
    return ProcessingConfig(retry_backoff_seconds=0.0)


@pytest.fixture
def enrollment_config(matching_config, processing_config) -> EnrollmentConfig:
    return EnrollmentConfig(matching=matching_config, processing=processing_config)


@pytest.fixture
def resolver(matching_config) -> IdentityResolver:
    return IdentityResolver(matching_config)


@pytest.fixture
def sleeps() -> list[float]:
    """Records backoff delays instead of sleeping."""
    return []


@pytest.fixture
def reconciliation_engine(
    session_factory, resolver, deterministic_clock, processing_config, test_actor_id, sleeps
) -> ReconciliationEngine:
    return ReconciliationEngine(
        session_factory,
        resolver,
        clock=deterministic_clock,
        config=processing_config,
        actor_id=test_actor_id,
        sleep=sleeps.append,
    )


@pytest.fixture
def submission_service(
    session_factory, enrollment_config, deterministic_clock, sleeps
) -> SubmissionService:
    return SubmissionService(
        session_factory,
        config=enrollment_config,
        clock=deterministic_clock,
        sleep=sleeps.append,
    )


# =============================================================================
# Record and payload builders
# =============================================================================

DEFAULT_OFFICE = OfficeInfo(
    name="Acme Tax Service",
    contact_first_name="Jane",
    contact_last_name="Doe",
    phone="5551234567",
    fax="5551234568",
    email="office@acmetax.com",
    address1="123 Main St",
    address2="Suite 4",
    city="Springfield",
    state="IL",
    zip="62701",
)

DEFAULT_OWNER = OwnerInfo(
    first_name="John",
    last_name="Smith",
    phone="5559876543",
    email="john@acmetax.com",
    address1="12 Oak Ave",
    city="Springfield",
    state="IL",
    zip="62702",
    ssn="123-45-6789",
    date_of_birth="1970-01-01",
)

DEFAULT_EFIN_OWNER = OwnerInfo(
    first_name="Mary",
    last_name="Major",
    phone="5550001111",
    email="mary@acmetax.com",
    address1="88 Pine Rd",
    city="Springfield",
    state="IL",
    zip="62703",
    ssn="987-65-4321",
    date_of_birth="1975-05-05",
)


def build_record(
    index: int = 1,
    office: dict | None = None,
    owner: dict | None = None,
    efin_owner: dict | None = None,
    **top,
) -> EnrollmentRecord:
    values = {
        "master_efin": "100000",
        "efin": "123456",
        "transmitter_id": "654321",
        "processing_year": "2024",
        "transaction_date": "2024-01-15T10:30:00",
        "prior_year": PriorYearInfo(bank="First Bank", client_last_year=True),
    }
    values.update(top)
    return EnrollmentRecord(
        index=index,
        office=replace(DEFAULT_OFFICE, **(office or {})),
        owner=replace(DEFAULT_OWNER, **(owner or {})),
        efin_owner=replace(DEFAULT_EFIN_OWNER, **(efin_owner or {})),
        **values,
    )


def render_flat(
    records: list[EnrollmentRecord],
    record_count: str | None = None,
    transmitter_id: str = "654321",
    processing_year: str = "2024",
    delimiter: str = "|",
) -> bytes:
    count = str(len(records)) if record_count is None else record_count
    lines = [delimiter.join(["H", transmitter_id, processing_year, count])]
    for r in records:
        cells = ["D", r.master_efin, r.efin, r.transmitter_id, r.processing_year]
        cells += [getattr(r.office, attr) for _, attr in OFFICE_FIELDS]
        cells += [getattr(r.owner, attr) for _, attr in OWNER_FIELDS]
        cells += [getattr(r.efin_owner, attr) for _, attr in OWNER_FIELDS]
        cells += [
            r.prior_year.bank,
            "true" if r.prior_year.client_last_year else "false",
            r.transaction_date,
        ]
        lines.append(delimiter.join(cells))
    return ("\n".join(lines) + "\n").encode("utf-8")


def _xml_section(tag: str, info, spec) -> str:
    inner = "".join(
        f"<{name}>{escape(getattr(info, attr))}</{name}>" for name, attr in spec
    )
    return f"<{tag}>{inner}</{tag}>"


def render_xml(
    records: list[EnrollmentRecord],
    record_count: str | None = None,
    transmitter_id: str | None = "654321",
    processing_year: str | None = "2024",
    include_header: bool = True,
) -> bytes:
    parts = ['<?xml version="1.0" encoding="UTF-8"?>', "<EnrollmentCollection>"]
    if include_header:
        header = ""
        count = str(len(records)) if record_count is None else record_count
        if count:
            header += f"<RecordCount>{count}</RecordCount>"
        if transmitter_id is not None:
            header += f"<TransmitterId>{transmitter_id}</TransmitterId>"
        if processing_year is not None:
            header += f"<ProcessingYear>{processing_year}</ProcessingYear>"
        parts.append(f"<Header>{header}</Header>")
    for r in records:
        parts.append(
            "<Enrollment>"
            f"<MasterEfin>{r.master_efin}</MasterEfin>"
            f"<EFIN>{r.efin}</EFIN>"
            f"<TransmitterId>{r.transmitter_id}</TransmitterId>"
            f"<ProcessingYear>{r.processing_year}</ProcessingYear>"
            + _xml_section("OfficeInfo", r.office, OFFICE_FIELDS)
            + _xml_section("OwnerInformation", r.owner, OWNER_FIELDS)
            + _xml_section("EFINOwnerInfo", r.efin_owner, OWNER_FIELDS)
            + "<PriorYearInfo>"
            f"<Bank>{escape(r.prior_year.bank)}</Bank>"
            f"<ClientOfYoursLastYear>{'true' if r.prior_year.client_last_year else 'false'}</ClientOfYoursLastYear>"
            "</PriorYearInfo>"
            f"<TransactionDate>{r.transaction_date}</TransactionDate>"
            "</Enrollment>"
        )
    parts.append("</EnrollmentCollection>")
    return "\n".join(parts).encode("utf-8")


@pytest.fixture
def make_record():
    """Build an EnrollmentRecord from defaults plus overrides."""
    return build_record


@pytest.fixture
def flat_payload():
    """Render records as flat-file submission bytes."""
    return render_flat


@pytest.fixture
def xml_payload():
    """Render records as XML submission bytes."""
    return render_xml
