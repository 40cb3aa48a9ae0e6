"""Ingestion services: reconciliation engine and submission orchestration."""

from enrollment_ingestion.services.reconciliation_service import (
    ReconciliationEngine,
    ReconciliationResult,
    is_transient,
)
from enrollment_ingestion.services.submission_service import (
    SubmissionService,
    identity_groups,
)

__all__ = [
    "ReconciliationEngine",
    "ReconciliationResult",
    "SubmissionService",
    "identity_groups",
    "is_transient",
]
