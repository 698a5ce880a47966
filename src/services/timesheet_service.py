"""
Timesheet Service - weekly timesheets for a single jobseeker.

Handles:
- Invoice number generation (sequential, zero padded)
- Server-side pay/bill calculation from the position's rate card
- Versioning: every update bumps the version and appends to history
- Summary emails to the jobseeker

Jobseekers may read and update only their own timesheets.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import or_, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from audit.activity_logger import ActivityActionType, ActivityLogger
from calculator import (
    DailyHours,
    RateCard,
    TimesheetCalculation,
    calculate_timesheet,
    validate_daily_dates,
    validate_week,
    week_end,
)
from config.settings import get_settings
from database.models import (
    JobseekerProfile,
    Position,
    PositionAssignment,
    SEAT_HOLDING_STATUSES,
    Timesheet,
)
from notifications.email_triggers import StaffingEmailTriggers, get_email_triggers

from .exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from .invoice_numbers import is_taken, next_sequential
from .serializers import as_uuid, coerce_column_value, row_to_dict

logger = logging.getLogger(__name__)

RATE_OVERRIDE_FIELDS = (
    "regular_pay_rate",
    "overtime_pay_rate",
    "regular_bill_rate",
    "overtime_bill_rate",
    "overtime_enabled",
    "markup",
)

# Pay-affecting inputs a jobseeker may not send; they submit hours only.
STAFF_ONLY_FIELDS = RATE_OVERRIDE_FIELDS + ("bonus_amount", "deduction_amount")


# =============================================================================
# HELPERS SHARED WITH BULK TIMESHEETS
# =============================================================================

def parse_date(value: Any, field: str) -> date:
    try:
        parsed = coerce_column_value(Timesheet, "week_start_date", value)
    except (TypeError, ValueError):
        parsed = None
    if parsed is None:
        raise ValidationFailedError(f"Invalid date for {field}: {value}", {"field": field})
    return parsed


def parse_daily_hours(entries: Sequence[Any], week_start: date) -> List[DailyHours]:
    """
    Turn [{"date": ..., "hours": ...}] into DailyHours, checking the dates.

    Raises:
        ValidationFailedError: Malformed entries or dates outside the week
    """
    days = []
    for entry in entries or []:
        if hasattr(entry, "model_dump"):
            entry = entry.model_dump()
        if not isinstance(entry, dict) or "date" not in entry:
            raise ValidationFailedError("Each daily entry needs a date and hours", {"field": "daily_hours"})
        try:
            days.append(DailyHours.create(parse_date(entry["date"], "daily_hours"), entry.get("hours", 0)))
        except ArithmeticError:
            raise ValidationFailedError(f"Invalid hours: {entry.get('hours')}", {"field": "daily_hours"})

    try:
        validate_daily_dates(week_start, [d.date for d in days])
    except ValueError as e:
        raise ValidationFailedError(str(e), {"field": "daily_hours"})
    return sorted(days, key=lambda d: d.date)


def resolve_week(start_value: Any, end_value: Any = None) -> Tuple[date, date]:
    """Week start/end; the end is derived when not given and checked when given."""
    start = parse_date(start_value, "week_start_date")
    if end_value in (None, ""):
        return start, week_end(start)
    end = parse_date(end_value, "week_end_date")
    try:
        validate_week(start, end)
    except ValueError as e:
        raise ValidationFailedError(str(e), {"field": "week_end_date"})
    return start, end


def position_rate_card(position: Position, overrides: Optional[Dict[str, Any]] = None) -> RateCard:
    """Rate card from a position's rates, with optional per-timesheet overrides."""
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
    threshold = position.overtime_hours
    if threshold is None:
        threshold = get_settings().default_overtime_threshold
    return RateCard.create(
        regular_pay_rate=overrides.get("regular_pay_rate", position.regular_pay_rate),
        regular_bill_rate=overrides.get("regular_bill_rate", position.bill_rate),
        overtime_pay_rate=overrides.get("overtime_pay_rate", position.overtime_pay_rate),
        overtime_bill_rate=overrides.get("overtime_bill_rate", position.overtime_bill_rate),
        overtime_enabled=overrides.get("overtime_enabled", position.overtime_enabled),
        overtime_threshold=threshold,
    )


def daily_hours_json(days: Sequence[DailyHours]) -> List[Dict[str, Any]]:
    return [{"date": d.date.isoformat(), "hours": float(d.hours)} for d in days]


def history_entry(version: int, action: str, user, changes: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    entry = {
        "version": version,
        "action": action,
        "user_id": str(user.user_id),
        "user_name": user.full_name,
        "timestamp": datetime.utcnow().isoformat(),
    }
    if changes:
        entry["changes"] = changes
    return entry


class TimesheetService:
    """Service for single-jobseeker timesheets."""

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

    async def _existing_invoice_numbers(self) -> List[str]:
        result = await self.db.execute(select(Timesheet.invoice_number))
        return list(result.scalars().all())

    async def generate_invoice_number(self) -> str:
        """Highest numeric invoice number + 1, zero padded."""
        return next_sequential(
            await self._existing_invoice_numbers(), get_settings().invoice_number_width
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_timesheets(
        self,
        user,
        search: Optional[str] = None,
        jobseeker_user_id=None,
        position_id=None,
        client_id=None,
        week_start: Optional[date] = None,
        week_end_date: Optional[date] = None,
        invoice_number: Optional[str] = None,
        email_sent: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        conditions = []
        if user.is_jobseeker:
            conditions.append(Timesheet.jobseeker_user_id == user.user_id)
        elif jobseeker_user_id:
            conditions.append(Timesheet.jobseeker_user_id == as_uuid(jobseeker_user_id))

        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(
                JobseekerProfile.first_name.ilike(pattern),
                JobseekerProfile.last_name.ilike(pattern),
                JobseekerProfile.email.ilike(pattern),
                Timesheet.invoice_number.ilike(pattern),
            ))
        if position_id:
            conditions.append(Timesheet.position_id == as_uuid(position_id))
        if client_id:
            conditions.append(Position.client_id == as_uuid(client_id))
        if week_start:
            conditions.append(Timesheet.week_start_date >= week_start)
        if week_end_date:
            conditions.append(Timesheet.week_end_date <= week_end_date)
        if invoice_number:
            conditions.append(Timesheet.invoice_number == invoice_number.strip())
        if email_sent is not None:
            conditions.append(Timesheet.email_sent == email_sent)

        base = (
            select(Timesheet, JobseekerProfile, Position)
            .join(JobseekerProfile, JobseekerProfile.id == Timesheet.jobseeker_profile_id)
            .outerjoin(Position, Position.id == Timesheet.position_id)
            .where(*conditions)
        )
        count_query = (
            select(func.count(Timesheet.id))
            .select_from(Timesheet)
            .join(JobseekerProfile, JobseekerProfile.id == Timesheet.jobseeker_profile_id)
            .outerjoin(Position, Position.id == Timesheet.position_id)
            .where(*conditions)
        )

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            base.order_by(Timesheet.week_start_date.desc(), Timesheet.created_at.desc())
            .offset(offset).limit(limit)
        )
        items = [
            self._timesheet_to_dict(ts, jobseeker, position)
            for ts, jobseeker, position in result.all()
        ]
        return items, total

    async def get_timesheet(self, timesheet_id) -> Timesheet:
        timesheet = await self.db.get(Timesheet, as_uuid(timesheet_id))
        if timesheet is None:
            raise NotFoundError("Timesheet", timesheet_id)
        return timesheet

    async def get_timesheet_for(self, timesheet_id, user) -> Dict[str, Any]:
        timesheet = await self.get_timesheet(timesheet_id)
        self._check_owner(timesheet, user)
        jobseeker = await self.db.get(JobseekerProfile, timesheet.jobseeker_profile_id)
        position = await self.db.get(Position, timesheet.position_id) if timesheet.position_id else None
        return self._timesheet_to_dict(timesheet, jobseeker, position)

    async def list_jobseeker_timesheets(self, jobseeker_user_id, user, limit: int = 50, offset: int = 0):
        if user.is_jobseeker and as_uuid(jobseeker_user_id) != user.user_id:
            raise PermissionDeniedError("You can only view your own timesheets")
        return await self.list_timesheets(
            user, jobseeker_user_id=jobseeker_user_id, limit=limit, offset=offset
        )

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create_timesheet(self, data: Dict[str, Any], user) -> Dict[str, Any]:
        """
        Create a timesheet for an assignment's week.

        Raises:
            NotFoundError: Unknown assignment or jobseeker
            ValidationFailedError: Assignment holds no seat, bad week or dates
            ConflictError: A timesheet already exists for that week
            CalculationError: Hours/rates/adjustments out of range
        """
        assignment = await self.db.get(PositionAssignment, as_uuid(data.get("assignment_id")))
        if assignment is None:
            raise NotFoundError("Assignment", data.get("assignment_id"))
        if assignment.status not in SEAT_HOLDING_STATUSES:
            raise ValidationFailedError(
                f"Assignment is {assignment.status}; timesheets need an active or upcoming assignment"
            )
        if user.is_jobseeker and assignment.candidate_id != user.user_id:
            raise PermissionDeniedError("You can only submit timesheets for your own assignments")
        self._check_staff_fields(data, user)

        position = await self.db.get(Position, assignment.position_id)
        jobseeker = (await self.db.execute(
            select(JobseekerProfile).where(JobseekerProfile.user_id == assignment.candidate_id)
        )).scalar_one_or_none()
        if jobseeker is None:
            raise NotFoundError("Jobseeker", assignment.candidate_id)

        start, end = resolve_week(data.get("week_start_date"), data.get("week_end_date"))
        days = parse_daily_hours(data.get("daily_hours"), start)

        duplicate = (await self.db.execute(
            select(Timesheet.id).where(
                Timesheet.assignment_id == assignment.id,
                Timesheet.week_start_date == start,
            )
        )).first()
        if duplicate:
            raise ConflictError("A timesheet already exists for this assignment and week")

        rates = position_rate_card(position, {k: data.get(k) for k in RATE_OVERRIDE_FIELDS})
        calc = calculate_timesheet(days, rates, data.get("bonus_amount") or 0, data.get("deduction_amount") or 0)

        existing = await self._existing_invoice_numbers()
        requested = (data.get("invoice_number") or "").strip()
        if requested and not is_taken(requested, existing):
            invoice_number = requested
        else:
            invoice_number = next_sequential(existing, get_settings().invoice_number_width)

        markup = data.get("markup") if data.get("markup") is not None else position.markup
        timesheet = Timesheet(
            jobseeker_profile_id=jobseeker.id,
            jobseeker_user_id=jobseeker.user_id,
            assignment_id=assignment.id,
            position_id=position.id,
            week_start_date=start,
            week_end_date=end,
            daily_hours=daily_hours_json(days),
            markup=coerce_column_value(Timesheet, "markup", markup),
            document=data.get("document"),
            notes=data.get("notes"),
            invoice_number=invoice_number,
            email_sent=bool(data.get("email_sent")),
            version=1,
            version_history=[history_entry(1, "created", user)],
            created_by_user_id=user.user_id,
            updated_by_user_id=user.user_id,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self._apply_calculation(timesheet, calc)
        self.db.add(timesheet)
        await self.db.flush()

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.CREATE_TIMESHEET,
            primary_entity=("timesheet", timesheet.id, f"Timesheet #{invoice_number}"),
            secondary_entity=("jobseeker", jobseeker.user_id, jobseeker.full_name),
            tertiary_entity=("position", position.id, position.title),
            display_message=(
                f"{user.full_name} created timesheet #{invoice_number} for {jobseeker.full_name}"
                f" ({start.isoformat()} to {end.isoformat()})"
            ),
            metadata={
                "invoice_number": invoice_number,
                "total_jobseeker_pay": float(calc.jobseeker_pay),
                "total_client_bill": float(calc.client_bill),
            },
        )
        await self.db.commit()
        logger.info(f"Timesheet {invoice_number} created for jobseeker {jobseeker.user_id}")

        if timesheet.email_sent:
            await self._send_summary(timesheet, jobseeker, position, calc, is_updated=False)

        return self._timesheet_to_dict(timesheet, jobseeker, position)

    async def update_timesheet(self, timesheet_id, data: Dict[str, Any], user) -> Dict[str, Any]:
        """Recompute with changed hours/rates/adjustments and bump the version."""
        timesheet = await self.get_timesheet(timesheet_id)
        self._check_owner(timesheet, user)
        self._check_staff_fields(data, user)

        position = await self.db.get(Position, timesheet.position_id) if timesheet.position_id else None
        if position is None:
            raise ValidationFailedError("The timesheet's position no longer exists")
        jobseeker = await self.db.get(JobseekerProfile, timesheet.jobseeker_profile_id)

        changes: Dict[str, Any] = {}

        start, end = timesheet.week_start_date, timesheet.week_end_date
        if data.get("week_start_date") is not None:
            start, end = resolve_week(data["week_start_date"], data.get("week_end_date"))
            if start != timesheet.week_start_date:
                duplicate = (await self.db.execute(
                    select(Timesheet.id).where(
                        Timesheet.assignment_id == timesheet.assignment_id,
                        Timesheet.week_start_date == start,
                        Timesheet.id != timesheet.id,
                    )
                )).first()
                if duplicate:
                    raise ConflictError("A timesheet already exists for this assignment and week")
                changes["week_start_date"] = start.isoformat()

        entries = data.get("daily_hours")
        if entries is None:
            entries = timesheet.daily_hours
        days = parse_daily_hours(entries, start)

        overrides = {
            "regular_pay_rate": timesheet.regular_pay_rate,
            "overtime_pay_rate": timesheet.overtime_pay_rate,
            "regular_bill_rate": timesheet.regular_bill_rate,
            "overtime_bill_rate": timesheet.overtime_bill_rate,
            "overtime_enabled": timesheet.overtime_enabled,
        }
        for key in RATE_OVERRIDE_FIELDS:
            if data.get(key) is not None and key != "markup":
                overrides[key] = data[key]
        rates = position_rate_card(position, overrides)

        bonus = data["bonus_amount"] if data.get("bonus_amount") is not None else timesheet.bonus_amount
        deduction = (
            data["deduction_amount"] if data.get("deduction_amount") is not None else timesheet.deduction_amount
        )
        calc = calculate_timesheet(days, rates, bonus, deduction)

        before = {
            "total_jobseeker_pay": float(timesheet.total_jobseeker_pay or 0),
            "total_client_bill": float(timesheet.total_client_bill or 0),
        }
        timesheet.week_start_date, timesheet.week_end_date = start, end
        timesheet.daily_hours = daily_hours_json(days)
        self._apply_calculation(timesheet, calc)
        if before["total_jobseeker_pay"] != float(calc.jobseeker_pay):
            changes["total_jobseeker_pay"] = {"from": before["total_jobseeker_pay"], "to": float(calc.jobseeker_pay)}
        if before["total_client_bill"] != float(calc.client_bill):
            changes["total_client_bill"] = {"from": before["total_client_bill"], "to": float(calc.client_bill)}

        for key in ("notes", "document", "markup"):
            if key in data and data[key] is not None:
                setattr(timesheet, key, coerce_column_value(Timesheet, key, data[key]))
                changes[key] = "updated"
        send_email = bool(data.get("email_sent"))
        if send_email:
            timesheet.email_sent = True

        timesheet.version = (timesheet.version or 1) + 1
        timesheet.version_history = list(timesheet.version_history or []) + [
            history_entry(timesheet.version, "updated", user, changes)
        ]
        timesheet.updated_by_user_id = user.user_id
        timesheet.updated_at = datetime.utcnow()

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.UPDATE_TIMESHEET,
            primary_entity=("timesheet", timesheet.id, f"Timesheet #{timesheet.invoice_number}"),
            secondary_entity=("jobseeker", timesheet.jobseeker_user_id, jobseeker.full_name if jobseeker else None),
            display_message=f"{user.full_name} updated timesheet #{timesheet.invoice_number} (v{timesheet.version})",
            metadata={"version": timesheet.version, "changes": changes},
        )
        await self.db.commit()
        logger.info(f"Timesheet {timesheet.invoice_number} updated to version {timesheet.version}")

        if send_email and jobseeker is not None:
            await self._send_summary(timesheet, jobseeker, position, calc, is_updated=True)

        return self._timesheet_to_dict(timesheet, jobseeker, position)

    async def delete_timesheet(self, timesheet_id, user) -> None:
        timesheet = await self.get_timesheet(timesheet_id)
        invoice_number = timesheet.invoice_number
        jobseeker_user_id = timesheet.jobseeker_user_id

        await self.db.delete(timesheet)
        self.activity.log(
            actor=user,
            action_type=ActivityActionType.DELETE_TIMESHEET,
            primary_entity=("timesheet", timesheet_id, f"Timesheet #{invoice_number}"),
            secondary_entity=("jobseeker", jobseeker_user_id, None),
            display_message=f"{user.full_name} deleted timesheet #{invoice_number}",
        )
        await self.db.commit()
        logger.info(f"Timesheet {invoice_number} deleted")

    async def set_document(self, timesheet_id, document: Optional[str], user) -> Dict[str, Any]:
        """Attach (or clear) the rendered document path/URL."""
        timesheet = await self.get_timesheet(timesheet_id)
        self._check_owner(timesheet, user)
        timesheet.document = document or None
        timesheet.updated_by_user_id = user.user_id
        timesheet.updated_at = datetime.utcnow()
        await self.db.commit()
        return self._timesheet_to_dict(timesheet)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _check_owner(timesheet: Timesheet, user) -> None:
        if user.is_jobseeker and timesheet.jobseeker_user_id != user.user_id:
            raise PermissionDeniedError("You can only access your own timesheets")

    @staticmethod
    def _check_staff_fields(data: Dict[str, Any], user) -> None:
        if not user.is_jobseeker:
            return
        sent = [k for k in STAFF_ONLY_FIELDS if data.get(k) is not None]
        if sent:
            raise PermissionDeniedError("Only staff can set rates, markup or adjustments", {"fields": sent})

    @staticmethod
    def _apply_calculation(timesheet: Timesheet, calc: TimesheetCalculation) -> None:
        timesheet.total_regular_hours = calc.regular_hours
        timesheet.total_overtime_hours = calc.overtime_hours
        timesheet.regular_pay_rate = calc.rates.regular_pay_rate
        timesheet.overtime_pay_rate = calc.rates.effective_overtime_pay_rate
        timesheet.regular_bill_rate = calc.rates.regular_bill_rate
        timesheet.overtime_bill_rate = calc.rates.effective_overtime_bill_rate
        timesheet.overtime_enabled = calc.rates.overtime_enabled
        timesheet.bonus_amount = calc.bonus
        timesheet.deduction_amount = calc.deduction
        timesheet.total_jobseeker_pay = calc.jobseeker_pay
        timesheet.total_client_bill = calc.client_bill

    async def _send_summary(self, timesheet, jobseeker, position, calc, is_updated: bool) -> None:
        await self.email_triggers.send_timesheet_summary(
            recipient_email=jobseeker.email,
            jobseeker_name=jobseeker.full_name,
            position_title=position.title if position else "",
            invoice_number=timesheet.invoice_number,
            week_start=timesheet.week_start_date,
            week_end=timesheet.week_end_date,
            daily_hours=timesheet.daily_hours,
            totals=calc.to_dict(),
            is_updated=is_updated,
        )

    @staticmethod
    def _timesheet_to_dict(
        timesheet: Timesheet,
        jobseeker: Optional[JobseekerProfile] = None,
        position: Optional[Position] = None,
    ) -> Dict[str, Any]:
        data = row_to_dict(timesheet)
        data["daily_hours"] = list(timesheet.daily_hours or [])
        data["version_history"] = list(timesheet.version_history or [])
        if jobseeker is not None:
            data["jobseeker_name"] = jobseeker.full_name
            data["jobseeker_email"] = jobseeker.email
        if position is not None:
            data["position_title"] = position.title
            data["position_code"] = position.position_code
            data["client_id"] = str(position.client_id)
            data["client_name"] = position.client_name
        return data
