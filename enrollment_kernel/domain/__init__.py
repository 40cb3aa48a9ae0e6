"""
Pure domain layer.

Data transfer objects and the clock abstraction, with NO dependencies on
the ORM, the database, or I/O.
"""

from enrollment_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from enrollment_kernel.domain.dtos import (
    SYSTEM_ACTOR_ID,
    OfficeSnapshot,
    OwnerSnapshot,
    ValidationError,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "SYSTEM_ACTOR_ID",
    "OfficeSnapshot",
    "OwnerSnapshot",
    "ValidationError",
]
