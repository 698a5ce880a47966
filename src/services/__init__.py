"""
Services Module - Business logic services for the Staffing Back Office.

Application Services (one per aggregate, each bound to an AsyncSession):
- ClientService: Client companies and client drafts
- PositionService: Positions, position drafts, seat assignments
- JobseekerService: Jobseeker profiles and verification
- MatchingService: Ranking verified jobseekers against a position
- TimesheetService: Single-jobseeker weekly timesheets
- BulkTimesheetService: Multi-jobseeker weekly timesheets
- ReportService: Tabular reports (JSON or CSV)

Errors raised by services live in services.exceptions.
"""

from .bulk_timesheet_service import BulkTimesheetService
from .client_service import ClientService
from .draft_service import DraftService
from .exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StaffingError,
    ValidationFailedError,
)
from .jobseeker_service import JobseekerService
from .matching_service import CandidateFilters, MatchingService
from .position_service import PositionService
from .report_service import ReportService, rows_to_csv
from .timesheet_service import TimesheetService

__all__ = [
    "BulkTimesheetService",
    "CandidateFilters",
    "ClientService",
    "ConflictError",
    "DraftService",
    "JobseekerService",
    "MatchingService",
    "NotFoundError",
    "PermissionDeniedError",
    "PositionService",
    "ReportService",
    "StaffingError",
    "TimesheetService",
    "ValidationFailedError",
    "rows_to_csv",
]
