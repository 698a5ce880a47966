"""
Database layer for the staffing back office.

This module provides:
- SQLAlchemy ORM models for clients, positions, jobseekers,
  assignments, timesheets, bulk timesheets and activity history
- Async database engine with connection pooling
- FastAPI session dependency
"""

from .models import (
    Base,
    Client,
    ClientDraft,
    Position,
    PositionDraft,
    JobseekerProfile,
    JobseekerProfileDraft,
    PositionAssignment,
    Timesheet,
    BulkTimesheet,
    RecentActivity,
    AssignmentStatus,
    VerificationStatus,
    SEAT_HOLDING_STATUSES,
)

__all__ = [
    "Base",
    "Client",
    "ClientDraft",
    "Position",
    "PositionDraft",
    "JobseekerProfile",
    "JobseekerProfileDraft",
    "PositionAssignment",
    "Timesheet",
    "BulkTimesheet",
    "RecentActivity",
    "AssignmentStatus",
    "VerificationStatus",
    "SEAT_HOLDING_STATUSES",
]
