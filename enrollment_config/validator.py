"""
Configuration Validator (``enrollment_config.validator``).

Range checks that the type-level parsing in the loader cannot express.
A config with errors MUST NOT be handed to any component.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from enrollment_config.schema import EnrollmentConfig


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)


def validate_config(config: EnrollmentConfig) -> ConfigValidationResult:
    """Validate every section of ``config`` and collect all errors."""
    result = ConfigValidationResult()

    matching = config.matching
    for name in ("office_threshold", "owner_threshold"):
        value = getattr(matching, name)
        if not 0.0 < value <= 1.0:
            result.add_error(f"matching.{name} must be in (0, 1], got {value}")
    if not 0.0 <= matching.name_weight <= 1.0:
        result.add_error(
            f"matching.name_weight must be in [0, 1], got {matching.name_weight}"
        )
    if not 0.0 <= matching.ssn_boost <= 1.0:
        result.add_error(
            f"matching.ssn_boost must be in [0, 1], got {matching.ssn_boost}"
        )

    processing = config.processing
    if processing.max_workers < 1:
        result.add_error(
            f"processing.max_workers must be >= 1, got {processing.max_workers}"
        )
    if processing.retry_attempts < 1:
        result.add_error(
            f"processing.retry_attempts must be >= 1, got {processing.retry_attempts}"
        )
    if processing.retry_backoff_seconds < 0:
        result.add_error("processing.retry_backoff_seconds must be >= 0")
    if len(processing.flat_delimiter) != 1:
        result.add_error(
            f"processing.flat_delimiter must be a single character, "
            f"got {processing.flat_delimiter!r}"
        )

    if not config.database.url:
        result.add_error("database.url must not be empty")
    if config.database.pool_size < 1:
        result.add_error("database.pool_size must be >= 1")

    return result
