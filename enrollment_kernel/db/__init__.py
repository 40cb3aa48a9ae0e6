"""Database layer - engine and base classes."""

from enrollment_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from enrollment_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session_factory,
)

__all__ = [
    "build_engine",
    "get_engine",
    "get_session_factory",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
