"""
Email Notification Triggers

Emails sent to jobseekers by the back office:
- Assignment to a position
- Removal from a position
- Weekly timesheet summary (single and bulk timesheets)

Every trigger renders a plain-text and an HTML body and hands them to the
active email provider. Delivery problems are logged and reported in the
returned DeliveryResult; they never propagate to the caller.
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from html import escape
from typing import Any, Deque, Dict, List, Optional, Sequence
from uuid import UUID, uuid4

from calculator.decimal_math import format_money, money, multiply, to_decimal
from config.settings import get_settings

from .email_provider import DeliveryResult, DeliveryStatus, send_email

logger = logging.getLogger(__name__)

RECENT_NOTIFICATIONS = 1000


class EmailTriggerType(str, Enum):
    """Types of email triggers."""
    JOBSEEKER_ASSIGNED = "jobseeker_assigned"
    JOBSEEKER_REMOVED = "jobseeker_removed"
    TIMESHEET_SUMMARY = "timesheet_summary"


@dataclass
class EmailNotification:
    """Email notification record."""
    id: UUID
    trigger_type: EmailTriggerType
    recipient_email: str
    subject: str
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    sent_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    message_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)


def _fmt_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime("%b %d, %Y")
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10]).strftime("%b %d, %Y")
        except ValueError:
            return value
    return ""


def _fmt_hours(value: Any) -> str:
    return f"{to_decimal(value).normalize():f}"


def _position_lines(position) -> List[tuple]:
    """(label, value) pairs describing a position; empty optional values are skipped."""
    lines = [
        ("Position Title", position.title or ""),
        ("Location", f"{position.city or ''}, {position.province or ''}"),
        ("Employment Type", f"{position.employment_type or ''} / {position.employment_term or ''}"),
        ("Start Date", _fmt_date(position.start_date)),
    ]
    optional = [
        ("End Date", _fmt_date(position.end_date)),
        ("Category", position.position_category),
        ("Experience Required", position.experience),
        ("Number of Positions", position.number_of_positions),
    ]
    lines.extend((label, value) for label, value in optional if value)
    return lines


def _html_table(rows: Sequence[tuple]) -> str:
    cells = "".join(
        f'<tr><td style="padding: 6px 0; font-weight: bold;">{escape(str(label))}:</td>'
        f'<td>{escape(str(value))}</td></tr>'
        for label, value in rows
    )
    return f'<table style="width: 100%;">{cells}</table>'


class StaffingEmailTriggers:
    """
    Renders and sends jobseeker notifications.

    The last RECENT_NOTIFICATIONS deliveries are kept in memory for
    get_notification_stats().
    """

    def __init__(self, from_name: Optional[str] = None):
        self._recent: Deque[EmailNotification] = deque(maxlen=RECENT_NOTIFICATIONS)
        self._from_name = from_name or get_settings().email_from_name

    # =========================================================================
    # ASSIGNMENT TRIGGERS
    # =========================================================================

    async def send_jobseeker_assignment(self, jobseeker, position) -> DeliveryResult:
        """Tell a jobseeker they were matched with a position."""
        subject = "Congratulations! You've Been Matched with a New Position"
        details = _position_lines(position)
        detail_text = "\n".join(f"{label}: {value}" for label, value in details)

        body_text = f"""
Hi {jobseeker.first_name or ''},

We are excited to inform you that you have been matched to a new position opportunity:

{detail_text}

Our team will reach out to you soon with further details and next steps.

If you have any questions, feel free to reply to this email.

Best regards,
{self._from_name}

---

If you believe this message was sent in error or you are no longer interested in this opportunity, please let us know by replying to this email.
        """.strip()

        body_html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #10b981;">Congratulations!</h2>
    <p>Hi {escape(jobseeker.first_name or '')},</p>
    <p>We are excited to inform you that you have been matched to a new position opportunity:</p>
    <div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">
        {_html_table(details)}
    </div>
    <p>Our team will reach out to you soon with further details and next steps.</p>
    <p>Best regards,<br>{escape(self._from_name)}</p>
    <p style="color: #6b7280; font-size: 12px;">If you believe this message was sent in error, please reply to this email.</p>
</div>
        """

        return await self._send_email(
            EmailTriggerType.JOBSEEKER_ASSIGNED,
            jobseeker.email,
            subject,
            body_html,
            body_text,
            entity_id=str(position.id),
            entity_type="position",
        )

    async def send_jobseeker_removal(self, jobseeker, position) -> DeliveryResult:
        """Tell a jobseeker their assignment was removed."""
        subject = "Update Regarding Your Position Assignment"
        details = _position_lines(position)
        detail_text = "\n".join(f"{label}: {value}" for label, value in details)

        body_text = f"""
Hi {jobseeker.first_name or ''},

We wanted to let you know that you have been removed from the following position assignment:

{detail_text}

If you have any questions or would like to discuss other opportunities, please reply to this email.

Best regards,
{self._from_name}
        """.strip()

        body_html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #f59e0b;">Assignment Update</h2>
    <p>Hi {escape(jobseeker.first_name or '')},</p>
    <p>We wanted to let you know that you have been removed from the following position assignment:</p>
    <div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">
        {_html_table(details)}
    </div>
    <p>If you have any questions or would like to discuss other opportunities, please reply to this email.</p>
    <p>Best regards,<br>{escape(self._from_name)}</p>
</div>
        """

        return await self._send_email(
            EmailTriggerType.JOBSEEKER_REMOVED,
            jobseeker.email,
            subject,
            body_html,
            body_text,
            entity_id=str(position.id),
            entity_type="position",
        )

    # =========================================================================
    # TIMESHEET TRIGGERS
    # =========================================================================

    async def send_timesheet_summary(
        self,
        recipient_email: str,
        jobseeker_name: str,
        position_title: str,
        invoice_number: str,
        week_start: date,
        week_end: date,
        daily_hours: Sequence[Dict[str, Any]],
        totals: Dict[str, Any],
        is_updated: bool = False,
    ) -> DeliveryResult:
        """
        Send a weekly timesheet summary.

        Args:
            recipient_email: Jobseeker email
            jobseeker_name: Display name
            position_title: Position worked
            invoice_number: Timesheet number shown in the subject
            week_start: First day of the week
            week_end: Last day of the week
            daily_hours: [{"date": ..., "hours": ...}, ...]
            totals: Calculated figures (regular/overtime hours and rates,
                bonus_amount, deduction_amount, total_jobseeker_pay)
            is_updated: Prefix the subject with "Updated"
        """
        prefix = "Updated " if is_updated else ""
        subject = f"{prefix}Timesheet Summary - Timesheet #{invoice_number}"

        regular_hours = totals.get("regular_hours", totals.get("total_regular_hours", 0))
        overtime_hours = totals.get("overtime_hours", totals.get("total_overtime_hours", 0))
        regular_rate = totals.get("regular_pay_rate", 0)
        overtime_rate = totals.get("overtime_pay_rate", 0)
        bonus = to_decimal(totals.get("bonus_amount", 0))
        deduction = to_decimal(totals.get("deduction_amount", 0))

        pay_rows = [
            ("Regular Hours", f"{_fmt_hours(regular_hours)} hours"),
            ("Regular Pay Rate", f"{format_money(regular_rate)}/hour"),
            ("Regular Pay", format_money(money(multiply(regular_hours, regular_rate)))),
        ]
        if to_decimal(overtime_hours) > 0:
            pay_rows.extend([
                ("Overtime Hours", f"{_fmt_hours(overtime_hours)} hours"),
                ("Overtime Pay Rate", f"{format_money(overtime_rate)}/hour"),
                ("Overtime Pay", format_money(money(multiply(overtime_hours, overtime_rate)))),
            ])
        if bonus > 0:
            pay_rows.append(("Bonus Amount", format_money(bonus)))
        if deduction > 0:
            pay_rows.append(("Deductions", format_money(-deduction)))
        total_pay = format_money(totals.get("total_jobseeker_pay", 0))

        day_rows = [
            (_fmt_date(day.get("date")), f"{_fmt_hours(day.get('hours', 0))} hours")
            for day in daily_hours
        ]
        days_text = "\n".join(f"{d}: {h}" for d, h in day_rows) or "No daily hours recorded"
        pay_text = "\n".join(f"{label}: {value}" for label, value in pay_rows)
        heading = f"{prefix.upper()}TIMESHEET SUMMARY"

        body_text = f"""
{heading}
{'=' * len(heading)}

Timesheet Number: {invoice_number}

Name: {jobseeker_name}
Email: {recipient_email}
Position: {position_title}

Week: {_fmt_date(week_start)} - {_fmt_date(week_end)}

DAILY HOURS
-----------
{days_text}

PAYMENT SUMMARY
---------------
{pay_text}

TOTAL JOBSEEKER PAY: {total_pay}

---
If you have any questions about this timesheet, please contact your recruitment team.
        """.strip()

        body_html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #2563eb;">{prefix}Timesheet Summary</h2>
    <p>Timesheet #{escape(str(invoice_number))} for <strong>{escape(jobseeker_name or '')}</strong>
    ({escape(position_title or '')})</p>
    <p>Week: {_fmt_date(week_start)} - {_fmt_date(week_end)}</p>
    <h3>Daily Hours</h3>
    {_html_table(day_rows)}
    <h3>Payment Summary</h3>
    {_html_table(pay_rows)}
    <p style="font-size: 18px; font-weight: bold;">Total Jobseeker Pay: {total_pay}</p>
    <p style="color: #6b7280; font-size: 14px;">If you have any questions about this timesheet, please contact your recruitment team.</p>
</div>
        """

        return await self._send_email(
            EmailTriggerType.TIMESHEET_SUMMARY,
            recipient_email,
            subject,
            body_html,
            body_text,
            entity_id=invoice_number,
            entity_type="timesheet",
        )

    # =========================================================================
    # DELIVERY
    # =========================================================================

    async def _send_email(
        self,
        trigger_type: EmailTriggerType,
        recipient_email: str,
        subject: str,
        body_html: str,
        body_text: str,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
    ) -> DeliveryResult:
        if not get_settings().send_emails:
            logger.info(f"[EMAIL] {trigger_type.value} to {recipient_email} skipped: APP_SEND_EMAILS is off")
            return DeliveryResult(success=False, status=DeliveryStatus.SKIPPED)

        notification = EmailNotification(
            id=uuid4(),
            trigger_type=trigger_type,
            recipient_email=recipient_email,
            subject=subject,
            entity_id=entity_id,
            entity_type=entity_type,
        )
        self._recent.append(notification)

        try:
            result = send_email(
                to=recipient_email,
                subject=subject,
                body_html=body_html,
                body_text=body_text,
                from_name=self._from_name,
                tags=[f"trigger:{trigger_type.value}"],
                metadata={"entity_type": entity_type, "entity_id": entity_id},
            )
        except Exception as e:
            # the record that triggered the email is already committed
            logger.exception(f"[EMAIL] {trigger_type.value} to {recipient_email} raised: {e}")
            result = DeliveryResult(success=False, status=DeliveryStatus.FAILED, error_message=str(e))

        if result.success:
            notification.sent_at = datetime.utcnow()
            notification.message_id = result.message_id
            logger.info(f"[EMAIL] {trigger_type.value} sent to {recipient_email} ({result.message_id})")
        else:
            notification.failed_at = datetime.utcnow()
            notification.error_message = result.error_message
            logger.warning(
                f"[EMAIL] {trigger_type.value} to {recipient_email} failed: {result.error_message}"
            )
        return result

    def get_notification_stats(self) -> Dict[str, Any]:
        """Delivery counts over the most recent notifications."""
        sent = sum(1 for n in self._recent if n.sent_at)
        failed = sum(1 for n in self._recent if n.failed_at)
        total = len(self._recent)
        return {
            "total": total,
            "sent": sent,
            "failed": failed,
            "success_rate": round(sent / total * 100, 2) if total else 0,
            "by_trigger": dict(Counter(n.trigger_type.value for n in self._recent)),
        }


_email_triggers: Optional[StaffingEmailTriggers] = None


def get_email_triggers() -> StaffingEmailTriggers:
    """Shared trigger service (FastAPI dependency)."""
    global _email_triggers
    if _email_triggers is None:
        _email_triggers = StaffingEmailTriggers()
    return _email_triggers
