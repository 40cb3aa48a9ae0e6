"""
Typed Exception Hierarchy for the Enrollment Kernel.

Every error has a typed exception class (catch by type, not by message), a
``code`` class attribute (machine-readable), and structured attributes that
survive logging and serialization.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    EnrollmentError (base)
    |
    +-- SubmissionError                 (fatal to the whole submission)
    |   +-- ParseError
    |   +-- StructuralError
    |
    +-- PersistenceError                (record-level, after retries)
    |
    +-- InvalidTransitionError          (record state machine misuse)
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Submission      | PARSE_ERROR                 | Bytes cannot be decoded into the layout
                | STRUCTURAL_ERROR            | Header/body mismatch (all discrepancies)
----------------|-----------------------------|-----------------------------------------
Persistence     | PERSISTENCE_ERROR           | Record transaction failed (rolled back)
----------------|-----------------------------|-----------------------------------------
Record state    | INVALID_RECORD_TRANSITION   | Illegal per-record status change
----------------|-----------------------------|-----------------------------------------
Config          | CONFIGURATION_ERROR         | Config file fails validation

Field violations and resolution ambiguities are record-level VALUES
(``FieldViolation``, ``ResolutionAmbiguity``), not exceptions: they never
abort anything and are carried into the processing report.

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        report = service.process(raw, "xml")
    except StructuralError as e:
        for d in e.discrepancies:
            log.warning(d.code, extra={"field": d.field, "details": d.details})
    except ParseError as e:
        log.error(e.code, extra={"line": e.line, "element": e.element})

SubmissionError subclasses are raised before any persistence call, so
catching one never requires cleanup.
"""

from __future__ import annotations

from typing import Any


class EnrollmentError(Exception):
    """
    Base exception for all enrollment errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "ENROLLMENT_ERROR"


# Submission-level (fatal) exceptions


class SubmissionError(EnrollmentError):
    """Base exception for errors that reject the whole submission."""

    code: str = "SUBMISSION_ERROR"


class ParseError(SubmissionError):
    """Raw submission bytes could not be decoded into the declared layout."""

    code: str = "PARSE_ERROR"

    def __init__(
        self,
        message: str,
        source_format: str | None = None,
        line: int | None = None,
        element: str | None = None,
    ):
        self.source_format = source_format
        self.line = line
        self.element = element
        location = ""
        if line is not None:
            location = f" (line {line})"
        elif element is not None:
            location = f" (element {element})"
        super().__init__(f"{message}{location}")


class StructuralError(SubmissionError):
    """
    Header metadata disagrees with the parsed body.

    Carries every discrepancy found, not just the first.
    """

    code: str = "STRUCTURAL_ERROR"

    def __init__(self, discrepancies: tuple[Any, ...]):
        self.discrepancies = tuple(discrepancies)
        codes = ", ".join(sorted({d.code for d in self.discrepancies}))
        super().__init__(
            f"Submission failed structural validation: "
            f"{len(self.discrepancies)} discrepancy(ies) [{codes}]"
        )


# Record-level exceptions


class PersistenceError(EnrollmentError):
    """
    A record's reconciliation transaction could not be committed.

    ``transient`` tells whether the final failure was of a retryable kind
    (the retry budget ran out) or permanent.
    """

    code: str = "PERSISTENCE_ERROR"

    def __init__(
        self,
        record_index: int,
        cause: str,
        transient: bool,
        attempts: int,
    ):
        self.record_index = record_index
        self.cause = cause
        self.transient = transient
        self.attempts = attempts
        kind = "transient" if transient else "permanent"
        super().__init__(
            f"Record {record_index} failed after {attempts} attempt(s) "
            f"({kind}): {cause}"
        )


class InvalidTransitionError(EnrollmentError):
    """A record was moved between states the lifecycle does not allow."""

    code: str = "INVALID_RECORD_TRANSITION"

    def __init__(self, record_index: int, current: str, target: str):
        self.record_index = record_index
        self.current = current
        self.target = target
        super().__init__(
            f"Record {record_index} cannot move from {current} to {target}"
        )


class ConfigurationError(EnrollmentError):
    """Configuration file is malformed or failed validation."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, errors: list[str], source: str | None = None):
        self.errors = list(errors)
        self.source = source
        super().__init__(
            f"Invalid configuration{f' in {source}' if source else ''}: "
            + "; ".join(self.errors)
        )
