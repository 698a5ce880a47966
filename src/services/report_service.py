"""
Report Service - tabular reports over timesheets, positions and clients.

Every report returns a list of flat dicts (one per row) so it can be
served as JSON or written out as CSV with rows_to_csv().
"""

import csv
import io
import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calculator.decimal_math import ZERO, money, percent_of, sum_money, to_decimal
from database.encrypted_fields import mask_identifier
from database.models import BulkTimesheet, Client, JobseekerProfile, Position, Timesheet

from .exceptions import ValidationFailedError
from .serializers import as_uuid, to_json_value

logger = logging.getLogger(__name__)


def rows_to_csv(rows: Sequence[Dict[str, Any]], columns: Optional[Sequence[str]] = None) -> str:
    """Render report rows as CSV text with a header row."""
    if columns is None:
        columns = list(rows[0].keys()) if rows else []
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(columns)
    for row in rows:
        writer.writerow(["" if row.get(col) is None else row.get(col) for col in columns])
    content = output.getvalue()
    output.close()
    return content


def _amount(value: Decimal) -> str:
    return f"{money(value):.2f}"


def _uuid_list(values: Optional[Iterable[Any]], field: str) -> List[Any]:
    try:
        return [as_uuid(v) for v in values or [] if v]
    except ValueError:
        raise ValidationFailedError(f"{field} must contain valid ids", {"field": field})


def _require_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if not start_date or not end_date:
        raise ValidationFailedError("Start date and end date are required")
    if end_date < start_date:
        raise ValidationFailedError("end_date cannot be before start_date")


def combined_address(client: Client) -> str:
    """Address 1, then addresses 2 and 3 when they have a street line."""
    parts = [p for p in (client.street_address1, client.city1, client.province1, client.postal_code1) if p]
    for n in (2, 3):
        if getattr(client, f"street_address{n}"):
            parts.extend(
                p for p in (
                    getattr(client, f"street_address{n}"),
                    getattr(client, f"city{n}"),
                    getattr(client, f"province{n}"),
                    getattr(client, f"postal_code{n}"),
                ) if p
            )
    return ", ".join(parts)


class ReportService:
    """Builds the back-office reports."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # TIMESHEET REPORT
    # =========================================================================

    async def timesheet_report(
        self,
        jobseeker_id,
        week_periods: Sequence[Dict[str, Any]],
        client_ids: Optional[Sequence[Any]] = None,
        pay_cycle: Optional[str] = None,
        list_name: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        One row per timesheet of a jobseeker falling inside any week period.

        A timesheet matches a period when week_start >= start and
        week_end <= end.
        """
        periods = []
        for period in week_periods or []:
            if hasattr(period, "model_dump"):
                period = period.model_dump()
            if period.get("start") and period.get("end"):
                periods.append((period["start"], period["end"]))
        if not jobseeker_id or not periods:
            raise ValidationFailedError("jobseeker_id and at least one week period are required")

        conditions = [Timesheet.jobseeker_profile_id == as_uuid(jobseeker_id)]
        client_ids = _uuid_list(client_ids, "client_ids")
        if client_ids:
            conditions.append(Client.id.in_(client_ids))
        if pay_cycle:
            conditions.append(Client.pay_cycle == pay_cycle)
        if list_name:
            conditions.append(Client.list_name == list_name)

        result = await self.db.execute(
            select(Timesheet, JobseekerProfile, Position, Client)
            .join(JobseekerProfile, JobseekerProfile.id == Timesheet.jobseeker_profile_id)
            .join(Position, Position.id == Timesheet.position_id)
            .join(Client, Client.id == Position.client_id)
            .where(*conditions)
            .order_by(Timesheet.week_start_date.asc())
        )

        rows = []
        for ts, profile, position, client in result.all():
            if not any(ts.week_start_date >= start and ts.week_end_date <= end for start, end in periods):
                continue
            rows.append({
                "employee_id": profile.employee_id,
                "license_number": mask_identifier(profile.license_number),
                "passport_number": mask_identifier(profile.passport_number),
                "name": profile.full_name,
                "mobile": profile.mobile,
                "email": profile.email,
                "company_name": client.company_name,
                "list_name": client.list_name,
                "title": position.title,
                "position_code": position.position_code,
                "position_category": position.position_category,
                "client_manager": position.client_manager,
                "week_start_date": to_json_value(ts.week_start_date),
                "week_end_date": to_json_value(ts.week_end_date),
                "total_regular_hours": to_json_value(ts.total_regular_hours),
                "total_overtime_hours": to_json_value(ts.total_overtime_hours),
                "regular_pay_rate": to_json_value(ts.regular_pay_rate),
                "overtime_pay_rate": to_json_value(ts.overtime_pay_rate),
                "total_jobseeker_pay": to_json_value(ts.total_jobseeker_pay),
                "bonus_amount": to_json_value(ts.bonus_amount),
                "deduction_amount": to_json_value(ts.deduction_amount),
                "hst_gst": profile.hst_gst,
                "currency": client.currency,
                "payment_method": profile.payment_method,
                "pay_cycle": client.pay_cycle,
                "notes": position.notes,
                "timesheet_created_at": to_json_value(ts.created_at),
                "invoice_number": ts.invoice_number,
            })
        return rows

    # =========================================================================
    # INVOICE-LEVEL REPORTS
    # =========================================================================

    async def _invoice_lines(self, start_date: date, end_date: date) -> "OrderedDict[Tuple[str, str], Dict[str, Any]]":
        """
        Timesheets and bulk timesheets in the range, grouped per invoice.

        Single and bulk timesheets are numbered independently, so groups are
        keyed by ``(invoice_type, invoice_number)``: a single #000001 and a
        bulk #000001 are two invoices.

        Each group: client, invoice date (week start), billed, paid and
        the per-jobseeker lines (name, pay, bill, deduction).
        """
        groups: "OrderedDict[Tuple[str, str], Dict[str, Any]]" = OrderedDict()

        def group_for(
            invoice_type: str, invoice_number: str, client: Optional[Client], invoice_date: date
        ) -> Dict[str, Any]:
            key = (invoice_type, invoice_number)
            if key not in groups:
                groups[key] = {
                    "client": client,
                    "invoice_date": invoice_date,
                    "lines": [],
                }
            return groups[key]

        singles = await self.db.execute(
            select(Timesheet, JobseekerProfile, Client)
            .join(JobseekerProfile, JobseekerProfile.id == Timesheet.jobseeker_profile_id)
            .outerjoin(Position, Position.id == Timesheet.position_id)
            .outerjoin(Client, Client.id == Position.client_id)
            .where(Timesheet.week_start_date >= start_date, Timesheet.week_start_date <= end_date)
            .order_by(Timesheet.week_start_date.desc())
        )
        for ts, profile, client in singles.all():
            group_for("timesheet", ts.invoice_number, client, ts.week_start_date)["lines"].append({
                "name": profile.full_name,
                "paid": to_decimal(ts.total_jobseeker_pay),
                "billed": to_decimal(ts.total_client_bill),
                "deduction": to_decimal(ts.deduction_amount),
            })

        bulks = await self.db.execute(
            select(BulkTimesheet, Client)
            .join(Client, Client.id == BulkTimesheet.client_id)
            .where(BulkTimesheet.week_start_date >= start_date, BulkTimesheet.week_start_date <= end_date)
            .order_by(BulkTimesheet.week_start_date.desc())
        )
        for bulk, client in bulks.all():
            group = group_for("bulk", bulk.invoice_number, client, bulk.week_start_date)
            for row in bulk.jobseeker_timesheets or []:
                group["lines"].append({
                    "name": row.get("jobseeker_name") or "N/A",
                    "paid": to_decimal(row.get("total_jobseeker_pay")),
                    "billed": to_decimal(row.get("total_client_bill")),
                    "deduction": to_decimal(row.get("deduction_amount")),
                })

        return groups

    async def margin_report(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """Billed vs paid per invoice number."""
        _require_range(start_date, end_date)
        rows = []
        for (invoice_type, invoice_number), group in (await self._invoice_lines(start_date, end_date)).items():
            client = group["client"]
            billed = sum_money(line["billed"] for line in group["lines"])
            paid = sum_money(line["paid"] for line in group["lines"])
            margin = billed - paid
            margin_pct = percent_of(margin, billed) if billed > ZERO else ZERO
            rows.append({
                "invoice_number": invoice_number,
                "invoice_type": invoice_type,
                "client_name": client.company_name if client else "N/A",
                "accounting_person": (client.accounting_person if client else None) or "N/A",
                "total_billed_amount": _amount(billed),
                "paid_amount": _amount(paid),
                "margin_amount": _amount(margin),
                "margin_percentage": f"{money(margin_pct):.2f}%",
                "invoice_date": to_json_value(group["invoice_date"]),
            })
        return rows

    async def deduction_report(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """Invoices carrying deductions, with a per-jobseeker breakdown."""
        _require_range(start_date, end_date)
        rows = []
        for (invoice_type, invoice_number), group in (await self._invoice_lines(start_date, end_date)).items():
            deducted = [line for line in group["lines"] if line["deduction"] > ZERO]
            if not deducted:
                continue
            client = group["client"]
            rows.append({
                "invoice_number": invoice_number,
                "invoice_type": invoice_type,
                "client_name": client.company_name if client else "N/A",
                "accounting_person": (client.accounting_person if client else None) or "N/A",
                "total_amount": _amount(sum_money(line["billed"] for line in group["lines"])),
                "jobseeker_deductions": ", ".join(
                    f"{line['name']} (-${_amount(line['deduction'])})" for line in deducted
                ),
                "total_deductions_amount": _amount(sum_money(line["deduction"] for line in deducted)),
                "invoice_date": to_json_value(group["invoice_date"]),
            })
        return rows

    # =========================================================================
    # MASTER-DATA REPORTS
    # =========================================================================

    async def rate_list_report(self, client_ids: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        query = select(Position).order_by(Position.client_name.asc(), Position.position_code.asc())
        ids = _uuid_list(client_ids, "client_ids")
        if ids:
            query = query.where(Position.client_id.in_(ids))

        def value(v):
            return "N/A" if v is None else to_json_value(v)

        rows = []
        for position in (await self.db.execute(query)).scalars().all():
            rows.append({
                "client_name": position.client_name or "N/A",
                "position_details": (
                    f"{position.title or 'N/A'} "
                    f"[{position.position_code or 'N/A'} - {position.position_number or 'N/A'}]"
                ),
                "position_category": position.position_category or "N/A",
                "bill_rate": value(position.bill_rate),
                "pay_rate": value(position.regular_pay_rate),
                "overtime_hours": value(position.overtime_hours),
                "overtime_bill_rate": value(position.overtime_bill_rate),
                "overtime_pay_rate": value(position.overtime_pay_rate),
            })
        return rows

    async def clients_report(
        self,
        client_managers: Optional[Sequence[str]] = None,
        payment_methods: Optional[Sequence[str]] = None,
        terms: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        query = select(Client).order_by(Client.company_name.asc())
        if client_managers:
            query = query.where(Client.client_manager.in_(list(client_managers)))
        if payment_methods:
            query = query.where(Client.preferred_payment_method.in_(list(payment_methods)))
        if terms:
            query = query.where(Client.terms.in_(list(terms)))

        rows = []
        for client in (await self.db.execute(query)).scalars().all():
            rows.append({
                "company_name": client.company_name or "",
                "billing_name": client.billing_name or "",
                "short_code": client.short_code or "",
                "list_name": client.list_name or "",
                "accounting_person": client.accounting_person or "",
                "sales_person": client.sales_person or "",
                "client_manager": client.client_manager or "",
                "contact_person_name1": client.contact_person_name1 or "",
                "email_address1": client.email_address1 or "",
                "mobile1": client.mobile1 or "",
                "address": combined_address(client),
                "preferred_payment_method": client.preferred_payment_method or "",
                "pay_cycle": client.pay_cycle or "",
                "terms": client.terms or "",
                "notes": client.notes or "",
            })
        return rows

    # =========================================================================
    # SALES REPORT
    # =========================================================================

    async def sales_report(
        self,
        client_ids: Sequence[Any],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        jobseeker_ids: Optional[Sequence[Any]] = None,
        sales_persons: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        One row per jobseeker-week billed to the selected clients, from
        single timesheets and bulk timesheet rows alike.
        """
        ids = _uuid_list(client_ids, "client_ids")
        if not ids:
            raise ValidationFailedError("At least one client is required", {"field": "client_ids"})
        jobseeker_filter = {str(j) for j in _uuid_list(jobseeker_ids, "jobseeker_ids")}
        sales_filter = set(sales_persons or [])

        def in_range(week_start: date) -> bool:
            if start_date and week_start < start_date:
                return False
            if end_date and week_start > end_date:
                return False
            return True

        def keep(client: Client, profile_id: str) -> bool:
            if jobseeker_filter and profile_id not in jobseeker_filter:
                return False
            if sales_filter and client.sales_person not in sales_filter:
                return False
            return True

        def sales_row(client, position, invoice_number, week_start, week_end, employee_id, name,
                      regular_hours, overtime_hours, bill_rate, amount) -> Dict[str, Any]:
            return {
                "client_name": client.company_name or "N/A",
                "contact_person_name": client.contact_person_name1 or "N/A",
                "sales_person": client.sales_person or "N/A",
                "invoice_number": invoice_number or "N/A",
                "from_date": to_json_value(week_start),
                "to_date": to_json_value(week_end),
                "terms": client.terms or "N/A",
                "item_position": f"{position.title} [{position.position_number or ''}]",
                "position_category": position.position_category or "N/A",
                "jobseeker_number": employee_id or "N/A",
                "jobseeker_name": name or "N/A",
                "description": position.notes or "N/A",
                "hours": f"{to_decimal(regular_hours) + to_decimal(overtime_hours):f}",
                "bill_rate": _amount(to_decimal(bill_rate)),
                "amount": _amount(to_decimal(amount)),
                "currency": client.currency or "N/A",
            }

        rows = []
        singles = await self.db.execute(
            select(Timesheet, JobseekerProfile, Position, Client)
            .join(JobseekerProfile, JobseekerProfile.id == Timesheet.jobseeker_profile_id)
            .join(Position, Position.id == Timesheet.position_id)
            .join(Client, Client.id == Position.client_id)
            .where(Client.id.in_(ids))
            .order_by(Timesheet.week_start_date.desc())
        )
        for ts, profile, position, client in singles.all():
            if not in_range(ts.week_start_date) or not keep(client, str(profile.id)):
                continue
            rows.append(sales_row(
                client, position, ts.invoice_number, ts.week_start_date, ts.week_end_date,
                profile.employee_id, profile.full_name, ts.total_regular_hours,
                ts.total_overtime_hours, ts.regular_bill_rate, ts.total_client_bill,
            ))

        bulks = await self.db.execute(
            select(BulkTimesheet, Position, Client)
            .join(Position, Position.id == BulkTimesheet.position_id)
            .join(Client, Client.id == BulkTimesheet.client_id)
            .where(Client.id.in_(ids))
            .order_by(BulkTimesheet.week_start_date.desc())
        )
        for bulk, position, client in bulks.all():
            if not in_range(bulk.week_start_date):
                continue
            for row in bulk.jobseeker_timesheets or []:
                if not keep(client, str(row.get("jobseeker_profile_id"))):
                    continue
                rows.append(sales_row(
                    client, position, bulk.invoice_number, bulk.week_start_date, bulk.week_end_date,
                    row.get("employee_id"), row.get("jobseeker_name"), row.get("regular_hours"),
                    row.get("overtime_hours"), row.get("regular_bill_rate"), row.get("total_client_bill"),
                ))

        logger.info(f"Sales report: {len(rows)} row(s) for {len(ids)} client(s)")
        return rows
