"""
Enrollment Kernel

Persistence and cross-cutting infrastructure for ERO enrollment ingestion:
- ORM models for offices, EFIN enrollments, owners and owner/EFIN links
- Engine and session management
- Structured logging
- Typed exception hierarchy
- Injectable clock
"""

__version__ = "0.1.0"
