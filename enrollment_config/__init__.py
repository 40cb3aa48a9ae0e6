"""
enrollment_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly; components receive the section they
    need through their constructors.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - A returned config has passed ``validate_config``.

Failure modes:
    - ``FileNotFoundError`` -- an explicit ``config_path`` does not exist.
    - ``ConfigurationError`` -- malformed YAML, parse or range validation
      failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``ENROLLMENT_CONFIG_TRACE`` log entry with the checksum and the matching
    tunables, tying each processing run to the exact configuration used.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from enrollment_config.loader import load_yaml_file, parse_config
from enrollment_config.schema import (
    DatabaseConfig,
    EnrollmentConfig,
    MatchingConfig,
    ProcessingConfig,
)
from enrollment_config.validator import validate_config
from enrollment_kernel.exceptions import ConfigurationError
from enrollment_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration file, relative to the working directory
_DEFAULT_CONFIG_PATH = Path("config") / "config.yaml"


def get_active_config(config_path: Path | str | None = None) -> EnrollmentConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to ``config/config.yaml``;
            when the default file is absent, built-in defaults are used.

    Returns:
        A validated, frozen ``EnrollmentConfig``.

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist.
        ConfigurationError: If the file is not valid YAML, or fails parsing
            or validation.
    """
    path = _DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)
    try:
        if config_path is None and not path.exists():
            data = {}
        else:
            data = load_yaml_file(path)
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigurationError([str(exc)], source=str(path)) from exc

    try:
        config = parse_config(data)
    except ValueError as exc:
        raise ConfigurationError([str(exc)], source=str(path)) from exc

    validation = validate_config(config)
    if not validation.is_valid:
        raise ConfigurationError(validation.errors, source=str(path))

    _logger.info(
        "ENROLLMENT_CONFIG_TRACE",
        extra={
            "trace_type": "ENROLLMENT_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": config.checksum,
            "office_threshold": config.matching.office_threshold,
            "owner_threshold": config.matching.owner_threshold,
            "max_workers": config.processing.max_workers,
            "retry_attempts": config.processing.retry_attempts,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "validate_config",
    "DatabaseConfig",
    "EnrollmentConfig",
    "MatchingConfig",
    "ProcessingConfig",
]
