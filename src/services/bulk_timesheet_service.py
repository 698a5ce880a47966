"""
Bulk Timesheet Service - one weekly timesheet covering several jobseekers
on the same position.

Each jobseeker row is calculated with the position's rate card; grand
totals come from aggregate_bulk and are never taken from the request.
Recruiters work with the bulk timesheets they created; admins see all.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from audit.activity_logger import ActivityActionType, ActivityLogger
from calculator import aggregate_bulk, calculate_timesheet, format_week_period
from config.settings import get_settings
from database.models import (
    AssignmentStatus,
    BulkTimesheet,
    Client,
    JobseekerProfile,
    Position,
    PositionAssignment,
)
from notifications.email_triggers import StaffingEmailTriggers, get_email_triggers

from .exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from .invoice_numbers import is_taken, lowest_free
from .serializers import as_uuid, row_to_dict
from .timesheet_service import (
    daily_hours_json,
    history_entry,
    parse_daily_hours,
    position_rate_card,
    resolve_week,
)

logger = logging.getLogger(__name__)


class BulkTimesheetService:
    """Service for bulk timesheets."""

    def __init__(
        self,
        db: AsyncSession,
        email_triggers: Optional[StaffingEmailTriggers] = None,
    ):
        self.db = db
        self.activity = ActivityLogger(db)
        self.email_triggers = email_triggers or get_email_triggers()

    # =========================================================================
    # INVOICE NUMBERS
    # =========================================================================

    async def _existing_invoice_numbers(self, exclude_id=None) -> List[str]:
        query = select(BulkTimesheet.invoice_number)
        if exclude_id is not None:
            query = query.where(BulkTimesheet.id != exclude_id)
        return list((await self.db.execute(query)).scalars().all())

    async def generate_invoice_number(self) -> str:
        """Lowest positive number no bulk timesheet uses, zero padded."""
        return lowest_free(
            await self._existing_invoice_numbers(), get_settings().invoice_number_width
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_bulk_timesheets(
        self,
        user,
        search: Optional[str] = None,
        client_id=None,
        position_id=None,
        invoice_number: Optional[str] = None,
        week_start: Optional[date] = None,
        week_end_date: Optional[date] = None,
        email_sent: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        conditions = []
        if not user.is_admin:
            conditions.append(BulkTimesheet.created_by_user_id == user.user_id)
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(
                BulkTimesheet.invoice_number.ilike(pattern),
                Client.company_name.ilike(pattern),
                Position.title.ilike(pattern),
                Position.position_code.ilike(pattern),
            ))
        if client_id:
            conditions.append(BulkTimesheet.client_id == as_uuid(client_id))
        if position_id:
            conditions.append(BulkTimesheet.position_id == as_uuid(position_id))
        if invoice_number:
            conditions.append(BulkTimesheet.invoice_number.ilike(f"%{invoice_number.strip()}%"))
        if week_start:
            conditions.append(BulkTimesheet.week_start_date >= week_start)
        if week_end_date:
            conditions.append(BulkTimesheet.week_end_date <= week_end_date)
        if email_sent is not None:
            conditions.append(BulkTimesheet.email_sent == email_sent)

        count_query = (
            select(func.count(BulkTimesheet.id))
            .select_from(BulkTimesheet)
            .join(Client, Client.id == BulkTimesheet.client_id)
            .join(Position, Position.id == BulkTimesheet.position_id)
            .where(*conditions)
        )
        query = (
            select(BulkTimesheet, Client, Position)
            .join(Client, Client.id == BulkTimesheet.client_id)
            .join(Position, Position.id == BulkTimesheet.position_id)
            .where(*conditions)
            .order_by(BulkTimesheet.created_at.desc())
            .offset(offset)
            .limit(limit)
        )

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(query)
        return [self._bulk_to_dict(b, c, p) for b, c, p in result.all()], total

    async def get_bulk_timesheet(self, bulk_id, user) -> BulkTimesheet:
        bulk = await self.db.get(BulkTimesheet, as_uuid(bulk_id))
        if bulk is None:
            raise NotFoundError("Bulk timesheet", bulk_id)
        if not user.is_admin and bulk.created_by_user_id != user.user_id:
            raise PermissionDeniedError("You can only access bulk timesheets you created")
        return bulk

    async def get_bulk_timesheet_dict(self, bulk_id, user) -> Dict[str, Any]:
        bulk = await self.get_bulk_timesheet(bulk_id, user)
        client = await self.db.get(Client, bulk.client_id)
        position = await self.db.get(Position, bulk.position_id)
        return self._bulk_to_dict(bulk, client, position)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create_bulk_timesheet(self, data: Dict[str, Any], user) -> Dict[str, Any]:
        """
        Create a bulk timesheet.

        Raises:
            NotFoundError: Unknown client, position or jobseeker
            ValidationFailedError: Position/client mismatch, no or duplicate
                jobseekers, jobseeker never assigned, bad dates
            ConflictError: Invoice number already in use
            CalculationError: Hours/adjustments out of range
        """
        client, position = await self._load_client_position(data.get("client_id"), data.get("position_id"))
        start, end = resolve_week(data.get("week_start_date"), data.get("week_end_date"))

        rows, calculations, jobseekers = await self._calculate_rows(
            position, start, data.get("jobseeker_timesheets") or []
        )
        totals = aggregate_bulk(calculations)

        existing = await self._existing_invoice_numbers()
        requested = (data.get("invoice_number") or "").strip()
        if requested:
            if is_taken(requested, existing):
                raise ConflictError(f"Invoice number {requested} is already in use")
            invoice_number = requested
        else:
            invoice_number = lowest_free(existing, get_settings().invoice_number_width)

        bulk = BulkTimesheet(
            client_id=client.id,
            position_id=position.id,
            invoice_number=invoice_number,
            week_start_date=start,
            week_end_date=end,
            week_period=format_week_period(start),
            email_sent=bool(data.get("email_sent")),
            jobseeker_timesheets=rows,
            version=1,
            version_history=[history_entry(1, "created", user)],
            created_by_user_id=user.user_id,
            updated_by_user_id=user.user_id,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self._apply_totals(bulk, totals)
        self.db.add(bulk)
        await self.db.flush()

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.CREATE_BULK_TIMESHEET,
            primary_entity=("bulk_timesheet", bulk.id, f"Invoice #{invoice_number}"),
            secondary_entity=("position", position.id, position.title),
            tertiary_entity=("client", client.id, client.company_name),
            display_message=(
                f"{user.full_name} created bulk timesheet #{invoice_number} for {client.company_name}"
                f" ({totals.number_of_jobseekers} jobseekers, {bulk.week_period})"
            ),
            metadata={
                "invoice_number": invoice_number,
                "number_of_jobseekers": totals.number_of_jobseekers,
                "total_client_bill": float(totals.total_client_bill),
            },
        )
        await self.db.commit()
        logger.info(f"Bulk timesheet {invoice_number} created ({totals.number_of_jobseekers} jobseekers)")

        if bulk.email_sent:
            await self._send_summaries(bulk, position, rows, jobseekers, calculations, is_updated=False)

        return self._bulk_to_dict(bulk, client, position)

    async def update_bulk_timesheet(self, bulk_id, data: Dict[str, Any], user) -> Dict[str, Any]:
        """Replace rows and/or week, recompute totals, bump the version."""
        bulk = await self.get_bulk_timesheet(bulk_id, user)
        client = await self.db.get(Client, bulk.client_id)
        position = await self.db.get(Position, bulk.position_id)

        changes: Dict[str, Any] = {}
        start, end = bulk.week_start_date, bulk.week_end_date
        if data.get("week_start_date") is not None:
            start, end = resolve_week(data["week_start_date"], data.get("week_end_date"))
            if start != bulk.week_start_date:
                changes["week_start_date"] = start.isoformat()

        requested = (data.get("invoice_number") or "").strip()
        if requested and requested != bulk.invoice_number:
            if is_taken(requested, await self._existing_invoice_numbers(exclude_id=bulk.id)):
                raise ConflictError(f"Invoice number {requested} is already in use")
            changes["invoice_number"] = {"from": bulk.invoice_number, "to": requested}
            bulk.invoice_number = requested

        raw_rows = data.get("jobseeker_timesheets")
        if raw_rows is None:
            raw_rows = bulk.jobseeker_timesheets
        else:
            changes["jobseeker_timesheets"] = "updated"
        rows, calculations, jobseekers = await self._calculate_rows(position, start, raw_rows)
        totals = aggregate_bulk(calculations)

        if float(bulk.total_client_bill or 0) != float(totals.total_client_bill):
            changes["total_client_bill"] = {
                "from": float(bulk.total_client_bill or 0),
                "to": float(totals.total_client_bill),
            }

        bulk.week_start_date, bulk.week_end_date = start, end
        bulk.week_period = format_week_period(start)
        bulk.jobseeker_timesheets = rows
        self._apply_totals(bulk, totals)

        send_email = bool(data.get("email_sent"))
        if send_email:
            bulk.email_sent = True

        bulk.version = (bulk.version or 1) + 1
        bulk.version_history = list(bulk.version_history or []) + [
            history_entry(bulk.version, "updated", user, changes)
        ]
        bulk.updated_by_user_id = user.user_id
        bulk.updated_at = datetime.utcnow()

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.UPDATE_BULK_TIMESHEET,
            primary_entity=("bulk_timesheet", bulk.id, f"Invoice #{bulk.invoice_number}"),
            secondary_entity=("position", position.id, position.title),
            tertiary_entity=("client", client.id, client.company_name),
            display_message=f"{user.full_name} updated bulk timesheet #{bulk.invoice_number} (v{bulk.version})",
            metadata={"version": bulk.version, "changes": changes},
        )
        await self.db.commit()
        logger.info(f"Bulk timesheet {bulk.invoice_number} updated to version {bulk.version}")

        if send_email:
            await self._send_summaries(bulk, position, rows, jobseekers, calculations, is_updated=True)

        return self._bulk_to_dict(bulk, client, position)

    async def delete_bulk_timesheet(self, bulk_id, user) -> None:
        """Admins, or the recruiter who created it."""
        bulk = await self.get_bulk_timesheet(bulk_id, user)
        invoice_number = bulk.invoice_number
        client_id = bulk.client_id

        await self.db.delete(bulk)
        self.activity.log(
            actor=user,
            action_type=ActivityActionType.DELETE_BULK_TIMESHEET,
            primary_entity=("bulk_timesheet", bulk_id, f"Invoice #{invoice_number}"),
            secondary_entity=("client", client_id, None),
            display_message=f"{user.full_name} deleted bulk timesheet #{invoice_number}",
        )
        await self.db.commit()
        logger.info(f"Bulk timesheet {invoice_number} deleted")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _load_client_position(self, client_id, position_id) -> Tuple[Client, Position]:
        client = await self.db.get(Client, as_uuid(client_id))
        if client is None:
            raise NotFoundError("Client", client_id)
        position = await self.db.get(Position, as_uuid(position_id))
        if position is None:
            raise NotFoundError("Position", position_id)
        if position.client_id != client.id:
            raise ValidationFailedError("Position does not belong to the selected client")
        return client, position

    async def _calculate_rows(
        self,
        position: Position,
        week_start: date,
        raw_rows: Sequence[Any],
    ):
        """
        Validate and calculate each jobseeker row.

        Returns:
            (stored rows, calculations, jobseeker profiles), index aligned
        """
        raw_rows = [r.model_dump() if hasattr(r, "model_dump") else dict(r) for r in raw_rows]
        if not raw_rows:
            raise ValidationFailedError("At least one jobseeker is required", {"field": "jobseeker_timesheets"})

        profile_ids = [as_uuid(r.get("jobseeker_profile_id")) for r in raw_rows]
        if None in profile_ids:
            raise ValidationFailedError("Every row needs a jobseeker_profile_id", {"field": "jobseeker_timesheets"})
        if len(set(profile_ids)) != len(profile_ids):
            raise ValidationFailedError("Each jobseeker can appear only once", {"field": "jobseeker_timesheets"})

        result = await self.db.execute(
            select(JobseekerProfile).where(JobseekerProfile.id.in_(profile_ids))
        )
        profiles = {p.id: p for p in result.scalars().all()}
        missing = [str(pid) for pid in profile_ids if pid not in profiles]
        if missing:
            raise NotFoundError("Jobseeker profile", ", ".join(missing))

        assigned = set((await self.db.execute(
            select(PositionAssignment.candidate_id).where(
                PositionAssignment.position_id == position.id,
                PositionAssignment.status != AssignmentStatus.CANCELLED.value,
            )
        )).scalars().all())
        unassigned = [profiles[pid].full_name for pid in profile_ids if profiles[pid].user_id not in assigned]
        if unassigned:
            raise ValidationFailedError(
                f"Not assigned to this position: {', '.join(unassigned)}",
                {"jobseekers": unassigned},
            )

        rates = position_rate_card(position)
        rows, calculations, jobseekers = [], [], []
        for raw, pid in zip(raw_rows, profile_ids):
            profile = profiles[pid]
            days = parse_daily_hours(raw.get("entries"), week_start)
            calc = calculate_timesheet(
                days, rates, raw.get("bonus_amount") or 0, raw.get("deduction_amount") or 0
            )
            row = {
                "jobseeker_profile_id": str(profile.id),
                "jobseeker_user_id": str(profile.user_id),
                "jobseeker_name": profile.full_name,
                "email": profile.email,
                "employee_id": profile.employee_id,
                "entries": daily_hours_json(days),
            }
            row.update(calc.to_dict())
            rows.append(row)
            calculations.append(calc)
            jobseekers.append(profile)
        return rows, calculations, jobseekers

    @staticmethod
    def _apply_totals(bulk: BulkTimesheet, totals) -> None:
        for name in totals.__dataclass_fields__:
            setattr(bulk, name, getattr(totals, name))

    async def _send_summaries(self, bulk, position, rows, jobseekers, calculations, is_updated: bool) -> None:
        for row, jobseeker, calc in zip(rows, jobseekers, calculations):
            await self.email_triggers.send_timesheet_summary(
                recipient_email=jobseeker.email,
                jobseeker_name=jobseeker.full_name,
                position_title=position.title,
                invoice_number=bulk.invoice_number,
                week_start=bulk.week_start_date,
                week_end=bulk.week_end_date,
                daily_hours=row["entries"],
                totals=calc.to_dict(),
                is_updated=is_updated,
            )

    @staticmethod
    def _bulk_to_dict(
        bulk: BulkTimesheet,
        client: Optional[Client] = None,
        position: Optional[Position] = None,
    ) -> Dict[str, Any]:
        data = row_to_dict(bulk)
        data["jobseeker_timesheets"] = list(bulk.jobseeker_timesheets or [])
        data["version_history"] = list(bulk.version_history or [])
        if client is not None:
            data["client_name"] = client.company_name
        if position is not None:
            data["position_title"] = position.title
            data["position_code"] = position.position_code
        return data
