"""
FastAPI Dependency Injection for Services.

Each service is built per request around the request's AsyncSession.

Usage in endpoints:
    @router.get("/api/clients")
    async def list_clients(
        service: ClientService = Depends(get_client_service)
    ):
        ...
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from audit.activity_logger import ActivityLogger
from database.connection import get_session_async
from notifications.email_triggers import StaffingEmailTriggers, get_email_triggers
from services import (
    BulkTimesheetService,
    ClientService,
    JobseekerService,
    MatchingService,
    PositionService,
    ReportService,
    TimesheetService,
)


def get_triggers() -> StaffingEmailTriggers:
    """Email triggers singleton (overridable in tests)."""
    return get_email_triggers()


async def get_client_service(
    session: AsyncSession = Depends(get_session_async),
) -> ClientService:
    return ClientService(session)


async def get_position_service(
    session: AsyncSession = Depends(get_session_async),
    triggers: StaffingEmailTriggers = Depends(get_triggers),
) -> PositionService:
    return PositionService(session, email_triggers=triggers)


async def get_jobseeker_service(
    session: AsyncSession = Depends(get_session_async),
) -> JobseekerService:
    return JobseekerService(session)


async def get_matching_service(
    session: AsyncSession = Depends(get_session_async),
) -> MatchingService:
    return MatchingService(session)


async def get_timesheet_service(
    session: AsyncSession = Depends(get_session_async),
    triggers: StaffingEmailTriggers = Depends(get_triggers),
) -> TimesheetService:
    return TimesheetService(session, email_triggers=triggers)


async def get_bulk_timesheet_service(
    session: AsyncSession = Depends(get_session_async),
    triggers: StaffingEmailTriggers = Depends(get_triggers),
) -> BulkTimesheetService:
    return BulkTimesheetService(session, email_triggers=triggers)


async def get_report_service(
    session: AsyncSession = Depends(get_session_async),
) -> ReportService:
    return ReportService(session)


async def get_activity_logger(
    session: AsyncSession = Depends(get_session_async),
) -> ActivityLogger:
    return ActivityLogger(session)
