"""
Configuration Loader (``enrollment_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into typed
``enrollment_config.schema`` dataclass instances.  Runtime callers go
through ``enrollment_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Absent sections and keys fall back to the dataclass defaults; unknown
  keys are rejected so that typos do not silently fall back.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from enrollment_config.schema import (
    DatabaseConfig,
    EnrollmentConfig,
    MatchingConfig,
    ProcessingConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Postconditions:
        - Returns a ``dict`` (possibly empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _section_kwargs(cls: type, section: str, data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Section '{section}' must be a mapping")
    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        default = getattr(cls(), key)
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ValueError(f"{section}.{key} must be a boolean")
        elif isinstance(default, float):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{section}.{key} must be a number")
            value = float(value)
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{section}.{key} must be an integer")
        elif isinstance(default, str):
            if not isinstance(value, str):
                raise ValueError(f"{section}.{key} must be a string")
        kwargs[key] = value
    return kwargs


def parse_database(data: Any) -> DatabaseConfig:
    """Parse the ``database`` section."""
    return DatabaseConfig(**_section_kwargs(DatabaseConfig, "database", data))


def parse_matching(data: Any) -> MatchingConfig:
    """Parse the ``matching`` section."""
    return MatchingConfig(**_section_kwargs(MatchingConfig, "matching", data))


def parse_processing(data: Any) -> ProcessingConfig:
    """Parse the ``processing`` section."""
    return ProcessingConfig(**_section_kwargs(ProcessingConfig, "processing", data))


def parse_config(data: dict[str, Any]) -> EnrollmentConfig:
    """
    Parse a whole configuration document.

    Postconditions:
        - ``checksum`` is the SHA-256 of ``data``.
    """
    unknown = sorted(set(data) - {"database", "matching", "processing", "debug"})
    if unknown:
        raise ValueError(f"Unknown top-level keys: {', '.join(unknown)}")
    debug = data.get("debug", False)
    if not isinstance(debug, bool):
        raise ValueError("debug must be a boolean")
    return EnrollmentConfig(
        database=parse_database(data.get("database")),
        matching=parse_matching(data.get("matching")),
        processing=parse_processing(data.get("processing")),
        debug=debug,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
