"""
Tests for jobseeker email triggers.

Tests:
- Assignment and removal emails
- Timesheet summary content
- Disabled email and provider failures
"""

from datetime import date
from types import SimpleNamespace

import pytest
from unittest.mock import patch

from notifications.email_provider import DeliveryStatus
from notifications.email_triggers import StaffingEmailTriggers


@pytest.fixture
def triggers():
    return StaffingEmailTriggers(from_name="Northwind Staffing")


@pytest.fixture
def jobseeker():
    return SimpleNamespace(first_name="Sam", email="sam.worker@mail.test")


@pytest.fixture
def position():
    return SimpleNamespace(
        id="7d8c2a52-8f4e-4c1e-9c56-1f0b0e7f2a10",
        title="Forklift Operator",
        city="Toronto",
        province="ON",
        employment_type="Full-Time",
        employment_term="Permanent",
        start_date=date(2025, 3, 3),
        end_date=None,
        position_category="Warehouse",
        experience=None,
        number_of_positions=2,
    )


def summary_totals(**overrides):
    totals = {
        "regular_hours": 40.0,
        "overtime_hours": 5.0,
        "regular_pay_rate": 20.0,
        "overtime_pay_rate": 30.0,
        "bonus_amount": 0.0,
        "deduction_amount": 0.0,
        "total_jobseeker_pay": 950.0,
    }
    totals.update(overrides)
    return totals


class TestAssignmentEmails:
    async def test_assignment(self, triggers, jobseeker, position, email_provider):
        result = await triggers.send_jobseeker_assignment(jobseeker, position)

        assert result.success
        message = email_provider.sent[0]
        assert message.to == "sam.worker@mail.test"
        assert message.subject == "Congratulations! You've Been Matched with a New Position"
        assert "Hi Sam," in message.body_text
        assert "Start Date: Mar 03, 2025" in message.body_text
        assert "Number of Positions: 2" in message.body_text
        # empty optional fields are left out
        assert "End Date" not in message.body_text
        assert "Experience Required" not in message.body_text
        assert message.tags == ["trigger:jobseeker_assigned"]

    async def test_removal(self, triggers, jobseeker, position, email_provider):
        await triggers.send_jobseeker_removal(jobseeker, position)

        message = email_provider.sent[0]
        assert message.subject == "Update Regarding Your Position Assignment"
        assert "removed from the following position assignment" in message.body_text
        assert "Northwind Staffing" in message.body_text

    async def test_html_escapes_user_values(self, triggers, position, email_provider):
        jobseeker = SimpleNamespace(first_name="<b>Sam</b>", email="sam.worker@mail.test")
        position.title = "Loader & <script>alert(1)</script>"
        await triggers.send_jobseeker_assignment(jobseeker, position)

        message = email_provider.sent[0]
        assert "Hi &lt;b&gt;Sam&lt;/b&gt;," in message.body_html
        assert "Loader &amp; &lt;script&gt;alert(1)&lt;/script&gt;" in message.body_html
        assert "<script>" not in message.body_html
        # plain text keeps the raw values
        assert "Hi <b>Sam</b>," in message.body_text


class TestTimesheetSummary:
    async def _send(self, triggers, **kwargs):
        options = dict(
            recipient_email="sam.worker@mail.test",
            jobseeker_name="Sam Worker",
            position_title="Forklift Operator",
            invoice_number="000042",
            week_start=date(2025, 3, 3),
            week_end=date(2025, 3, 9),
            daily_hours=[{"date": "2025-03-03", "hours": 9.5}],
            totals=summary_totals(),
        )
        options.update(kwargs)
        return await triggers.send_timesheet_summary(**options)

    async def test_summary_content(self, triggers, email_provider):
        await self._send(triggers)

        message = email_provider.sent[0]
        assert message.subject == "Timesheet Summary - Timesheet #000042"
        assert "Mar 03, 2025: 9.5 hours" in message.body_text
        assert "Overtime Hours: 5 hours" in message.body_text
        assert "Overtime Pay: $150.00" in message.body_text
        assert "TOTAL JOBSEEKER PAY: $950.00" in message.body_text
        assert "Bonus Amount" not in message.body_text

    async def test_updated_summary_with_adjustments(self, triggers, email_provider):
        await self._send(
            triggers,
            is_updated=True,
            totals=summary_totals(overtime_hours=0, bonus_amount=25, deduction_amount=10),
        )

        message = email_provider.sent[0]
        assert message.subject == "Updated Timesheet Summary - Timesheet #000042"
        assert message.body_text.startswith("UPDATED TIMESHEET SUMMARY")
        assert "Overtime Hours" not in message.body_text
        assert "Bonus Amount: $25.00" in message.body_text
        assert "Deductions: -$10.00" in message.body_text

    async def test_summary_html_escapes_names(self, triggers, email_provider):
        await self._send(triggers, jobseeker_name="Sam <img src=x>", position_title="R&D Tech")

        message = email_provider.sent[0]
        assert "<strong>Sam &lt;img src=x&gt;</strong>" in message.body_html
        assert "(R&amp;D Tech)" in message.body_html


class TestDelivery:
    async def test_disabled_emails_are_skipped(self, triggers, jobseeker, position, email_provider, monkeypatch):
        from config.settings import get_settings

        monkeypatch.setenv("APP_SEND_EMAILS", "false")
        get_settings.cache_clear()

        result = await triggers.send_jobseeker_assignment(jobseeker, position)

        assert result.status == DeliveryStatus.SKIPPED
        assert email_provider.sent == []

    async def test_provider_error_does_not_raise(self, triggers, jobseeker, position):
        with patch("notifications.email_triggers.send_email", side_effect=OSError("relay down")):
            result = await triggers.send_jobseeker_assignment(jobseeker, position)

        assert not result.success
        assert result.status == DeliveryStatus.FAILED
        assert triggers.get_notification_stats()["failed"] == 1

    async def test_stats(self, triggers, jobseeker, position):
        await triggers.send_jobseeker_assignment(jobseeker, position)
        await triggers.send_jobseeker_removal(jobseeker, position)

        stats = triggers.get_notification_stats()
        assert stats["sent"] == 2
        assert stats["success_rate"] == 100.0
        assert stats["by_trigger"] == {"jobseeker_assigned": 1, "jobseeker_removed": 1}
