"""
Report Routes - back-office reports as JSON or CSV downloads.

Every endpoint takes ``format`` = json (default) or csv. CSV responses are
streamed as attachments named ``<report>-report-<date>.csv``.

Routes (all POST, staff only):
- /api/reports/timesheet
- /api/reports/margin
- /api/reports/deduction
- /api/reports/rate-list
- /api/reports/clients
- /api/reports/sales
"""

import logging
from datetime import date
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from security.auth import UserContext, require_staff
from services import ReportService
from web.dependencies import get_report_service
from web.helpers.csv_response import csv_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["Reports"])

ReportFormat = Literal["json", "csv"]


# =============================================================================
# REQUEST MODELS
# =============================================================================

class WeekPeriod(BaseModel):
    start: date
    end: date


class TimesheetReportRequest(BaseModel):
    jobseeker_id: UUID
    week_periods: List[WeekPeriod] = Field(..., min_length=1)
    client_ids: Optional[List[UUID]] = None
    pay_cycle: Optional[str] = None
    list_name: Optional[str] = None
    format: ReportFormat = "json"


class DateRangeReportRequest(BaseModel):
    start_date: date
    end_date: date
    format: ReportFormat = "json"


class RateListReportRequest(BaseModel):
    client_ids: Optional[List[UUID]] = None
    format: ReportFormat = "json"


class ClientsReportRequest(BaseModel):
    client_manager_ids: Optional[List[str]] = None
    payment_methods: Optional[List[str]] = None
    terms: Optional[List[str]] = None
    format: ReportFormat = "json"


class SalesReportRequest(BaseModel):
    client_ids: List[UUID] = Field(..., min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    jobseeker_ids: Optional[List[UUID]] = None
    sales_persons: Optional[List[str]] = None
    format: ReportFormat = "json"


def _respond(rows: List[Dict[str, Any]], report_name: str, fmt: str, user: UserContext):
    logger.info(f"{report_name} report generated by {user.email}: {len(rows)} rows, format={fmt}")
    if fmt == "csv":
        return csv_response(rows, report_name)
    return {"data": rows, "total": len(rows)}


# =============================================================================
# ROUTES
# =============================================================================

@router.post("/timesheet")
async def timesheet_report(
    body: TimesheetReportRequest,
    user: UserContext = Depends(require_staff),
    service: ReportService = Depends(get_report_service),
):
    rows = await service.timesheet_report(
        body.jobseeker_id,
        body.week_periods,
        client_ids=body.client_ids,
        pay_cycle=body.pay_cycle,
        list_name=body.list_name,
    )
    return _respond(rows, "timesheet", body.format, user)


@router.post("/margin")
async def margin_report(
    body: DateRangeReportRequest,
    user: UserContext = Depends(require_staff),
    service: ReportService = Depends(get_report_service),
):
    """Billed, paid and margin per invoice number."""
    rows = await service.margin_report(body.start_date, body.end_date)
    return _respond(rows, "margin", body.format, user)


@router.post("/deduction")
async def deduction_report(
    body: DateRangeReportRequest,
    user: UserContext = Depends(require_staff),
    service: ReportService = Depends(get_report_service),
):
    rows = await service.deduction_report(body.start_date, body.end_date)
    return _respond(rows, "deduction", body.format, user)


@router.post("/rate-list")
async def rate_list_report(
    body: RateListReportRequest,
    user: UserContext = Depends(require_staff),
    service: ReportService = Depends(get_report_service),
):
    rows = await service.rate_list_report(client_ids=body.client_ids)
    return _respond(rows, "rate-list", body.format, user)


@router.post("/clients")
async def clients_report(
    body: ClientsReportRequest,
    user: UserContext = Depends(require_staff),
    service: ReportService = Depends(get_report_service),
):
    rows = await service.clients_report(
        client_managers=body.client_manager_ids,
        payment_methods=body.payment_methods,
        terms=body.terms,
    )
    return _respond(rows, "clients", body.format, user)


@router.post("/sales")
async def sales_report(
    body: SalesReportRequest,
    user: UserContext = Depends(require_staff),
    service: ReportService = Depends(get_report_service),
):
    rows = await service.sales_report(
        body.client_ids,
        start_date=body.start_date,
        end_date=body.end_date,
        jobseeker_ids=body.jobseeker_ids,
        sales_persons=body.sales_persons,
    )
    return _respond(rows, "sales", body.format, user)
