"""
Timesheet Routes - weekly timesheets of one jobseeker on one assignment.

Totals are always computed on the server from the daily hours and the
position's rates; client-sent totals are not accepted.

Routes:
- GET /api/timesheets/generate-invoice-number
- GET /api/timesheets - List (a jobseeker sees only their own)
- POST /api/timesheets - Create
- GET /api/timesheets/jobseeker/{jobseeker_user_id}
- GET|PUT /api/timesheets/{timesheet_id}
- DELETE /api/timesheets/{timesheet_id} - Staff only
- PATCH /api/timesheets/{timesheet_id}/document
"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from security.auth import UserContext, get_current_user, require_staff
from services import TimesheetService
from web.dependencies import get_timesheet_service
from web.helpers.pagination import paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/timesheets", tags=["Timesheets"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class DailyEntry(BaseModel):
    date: date
    hours: float = 0


class TimesheetAdjustments(BaseModel):
    """Rate overrides and pay adjustments (position rates apply when omitted)."""
    regular_pay_rate: Optional[float] = None
    overtime_pay_rate: Optional[float] = None
    regular_bill_rate: Optional[float] = None
    overtime_bill_rate: Optional[float] = None
    overtime_enabled: Optional[bool] = None
    markup: Optional[float] = None
    bonus_amount: Optional[float] = None
    deduction_amount: Optional[float] = None
    notes: Optional[str] = None
    document: Optional[str] = None
    email_sent: Optional[bool] = None


class TimesheetCreate(TimesheetAdjustments):
    assignment_id: UUID
    week_start_date: date
    week_end_date: Optional[date] = None
    daily_hours: List[DailyEntry] = Field(default_factory=list)
    invoice_number: Optional[str] = Field(None, max_length=20)


class TimesheetUpdate(TimesheetAdjustments):
    week_start_date: Optional[date] = None
    week_end_date: Optional[date] = None
    daily_hours: Optional[List[DailyEntry]] = None


class DocumentUpdate(BaseModel):
    document: Optional[str] = None


# =============================================================================
# STATIC ROUTES
# =============================================================================

@router.get("/generate-invoice-number")
async def generate_invoice_number(
    user: UserContext = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return {"invoice_number": await service.generate_invoice_number()}


@router.get("/jobseeker/{jobseeker_user_id}")
async def list_jobseeker_timesheets(
    jobseeker_user_id: UUID,
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    items, total = await service.list_jobseeker_timesheets(
        jobseeker_user_id, user, limit=page["limit"], offset=page["offset"]
    )
    return paginate(items, total, page["limit"], page["offset"])


# =============================================================================
# TIMESHEET ROUTES
# =============================================================================

@router.get("")
async def list_timesheets(
    search: Optional[str] = Query(None),
    jobseeker_user_id: Optional[UUID] = Query(None),
    position_id: Optional[UUID] = Query(None),
    client_id: Optional[UUID] = Query(None),
    week_start: Optional[date] = Query(None),
    week_end: Optional[date] = Query(None),
    invoice_number: Optional[str] = Query(None),
    email_sent: Optional[bool] = Query(None),
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    items, total = await service.list_timesheets(
        user,
        search=search,
        jobseeker_user_id=jobseeker_user_id,
        position_id=position_id,
        client_id=client_id,
        week_start=week_start,
        week_end_date=week_end,
        invoice_number=invoice_number,
        email_sent=email_sent,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginate(items, total, page["limit"], page["offset"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_timesheet(
    body: TimesheetCreate,
    user: UserContext = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    """
    Create a timesheet for an assignment's week.

    The invoice number in the body is kept when free; otherwise the next
    sequential number is assigned.
    """
    return await service.create_timesheet(body.model_dump(exclude_unset=True), user)


@router.get("/{timesheet_id}")
async def get_timesheet(
    timesheet_id: UUID,
    user: UserContext = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return await service.get_timesheet_for(timesheet_id, user)


@router.put("/{timesheet_id}")
async def update_timesheet(
    timesheet_id: UUID,
    body: TimesheetUpdate,
    user: UserContext = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return await service.update_timesheet(timesheet_id, body.model_dump(exclude_unset=True), user)


@router.delete("/{timesheet_id}")
async def delete_timesheet(
    timesheet_id: UUID,
    user: UserContext = Depends(require_staff),
    service: TimesheetService = Depends(get_timesheet_service),
):
    await service.delete_timesheet(timesheet_id, user)
    return {"success": True, "message": "Timesheet deleted"}


@router.patch("/{timesheet_id}/document")
async def set_timesheet_document(
    timesheet_id: UUID,
    body: DocumentUpdate,
    user: UserContext = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return await service.set_document(timesheet_id, body.document, user)
