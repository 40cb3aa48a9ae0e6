"""
Enrollment configuration schema.

Frozen dataclasses parsed from YAML by the loader.  Each section is handed
to exactly the component that needs it: ``MatchingConfig`` to the identity
resolver, ``ProcessingConfig`` to the reconciliation engine and submission
service, ``DatabaseConfig`` to the engine factory.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for the persistence gateway."""

    url: str = "sqlite:///enrollment.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 10
    pool_timeout: int = 30


@dataclass(frozen=True)
class MatchingConfig:
    """Identity-resolution tunables.

    Thresholds are compared against similarity scores in [0, 1].
    ``name_weight`` is the share of the office score taken by the name;
    the remainder goes to the address.
    """

    office_threshold: float = 0.85
    owner_threshold: float = 0.85
    ssn_boost: float = 0.25
    name_weight: float = 0.6


@dataclass(frozen=True)
class ProcessingConfig:
    """Worker pool, retry and flat-file settings."""

    max_workers: int = 4
    retry_attempts: int = 3
    retry_backoff_seconds: float = 0.1
    flat_delimiter: str = "|"


@dataclass(frozen=True)
class EnrollmentConfig:
    """The complete runtime configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    debug: bool = False
    checksum: str = ""
