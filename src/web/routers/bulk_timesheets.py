"""
Bulk Timesheet Routes - one week of hours for several jobseekers on a position.

Recruiters see and change the bulk timesheets they created; admins see all.

Routes:
- GET /api/bulk-timesheets/generate-invoice-number - Lowest free number
- GET /api/bulk-timesheets - List
- POST /api/bulk-timesheets - Create
- GET|PUT|DELETE /api/bulk-timesheets/{bulk_id}
"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from security.auth import UserContext, require_staff
from services import BulkTimesheetService
from web.dependencies import get_bulk_timesheet_service
from web.helpers.pagination import paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bulk-timesheets", tags=["Bulk Timesheets"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class HoursEntry(BaseModel):
    date: date
    hours: float = 0


class JobseekerRow(BaseModel):
    jobseeker_profile_id: UUID
    entries: List[HoursEntry] = Field(default_factory=list)
    bonus_amount: Optional[float] = None
    deduction_amount: Optional[float] = None


class BulkTimesheetCreate(BaseModel):
    client_id: UUID
    position_id: UUID
    week_start_date: date
    week_end_date: Optional[date] = None
    invoice_number: Optional[str] = Field(None, max_length=20)
    email_sent: bool = False
    jobseeker_timesheets: List[JobseekerRow]


class BulkTimesheetUpdate(BaseModel):
    week_start_date: Optional[date] = None
    week_end_date: Optional[date] = None
    invoice_number: Optional[str] = Field(None, max_length=20)
    email_sent: Optional[bool] = None
    jobseeker_timesheets: Optional[List[JobseekerRow]] = None


# =============================================================================
# ROUTES
# =============================================================================

@router.get("/generate-invoice-number")
async def generate_invoice_number(
    user: UserContext = Depends(require_staff),
    service: BulkTimesheetService = Depends(get_bulk_timesheet_service),
):
    return {"invoice_number": await service.generate_invoice_number()}


@router.get("")
async def list_bulk_timesheets(
    search: Optional[str] = Query(None),
    client_id: Optional[UUID] = Query(None),
    position_id: Optional[UUID] = Query(None),
    invoice_number: Optional[str] = Query(None),
    week_start: Optional[date] = Query(None),
    week_end: Optional[date] = Query(None),
    email_sent: Optional[bool] = Query(None),
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(require_staff),
    service: BulkTimesheetService = Depends(get_bulk_timesheet_service),
):
    items, total = await service.list_bulk_timesheets(
        user,
        search=search,
        client_id=client_id,
        position_id=position_id,
        invoice_number=invoice_number,
        week_start=week_start,
        week_end_date=week_end,
        email_sent=email_sent,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginate(items, total, page["limit"], page["offset"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_bulk_timesheet(
    body: BulkTimesheetCreate,
    user: UserContext = Depends(require_staff),
    service: BulkTimesheetService = Depends(get_bulk_timesheet_service),
):
    """Totals are computed per jobseeker and aggregated on the server."""
    return await service.create_bulk_timesheet(body.model_dump(exclude_unset=True), user)


@router.get("/{bulk_id}")
async def get_bulk_timesheet(
    bulk_id: UUID,
    user: UserContext = Depends(require_staff),
    service: BulkTimesheetService = Depends(get_bulk_timesheet_service),
):
    return await service.get_bulk_timesheet_dict(bulk_id, user)


@router.put("/{bulk_id}")
async def update_bulk_timesheet(
    bulk_id: UUID,
    body: BulkTimesheetUpdate,
    user: UserContext = Depends(require_staff),
    service: BulkTimesheetService = Depends(get_bulk_timesheet_service),
):
    return await service.update_bulk_timesheet(bulk_id, body.model_dump(exclude_unset=True), user)


@router.delete("/{bulk_id}")
async def delete_bulk_timesheet(
    bulk_id: UUID,
    user: UserContext = Depends(require_staff),
    service: BulkTimesheetService = Depends(get_bulk_timesheet_service),
):
    await service.delete_bulk_timesheet(bulk_id, user)
    return {"success": True, "message": "Bulk timesheet deleted"}
