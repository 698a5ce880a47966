"""Tests for single-jobseeker timesheets."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from calculator import CalculationError
from services import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    PositionService,
    TimesheetService,
    ValidationFailedError,
)

WEEK_START = date(2025, 3, 3)


def week_hours(*hours):
    return [
        {"date": (WEEK_START + timedelta(days=i)).isoformat(), "hours": h}
        for i, h in enumerate(hours)
    ]


@pytest.fixture
def assigned(session, admin_user, factory):
    """Create client, position and a jobseeker holding a seat on it."""
    async def build(user_id=None):
        client = await factory.client()
        position = await factory.position(client["id"])
        profile = await factory.jobseeker(user_id=user_id)
        result = await PositionService(session).assign_jobseeker(
            position["id"], profile["user_id"], admin_user
        )
        return position, profile, result["assignment"]
    return build


class TestTimesheetService:
    async def test_create_calculates_and_numbers(self, session, admin_user, assigned):
        position, profile, assignment = await assigned()

        timesheet = await TimesheetService(session).create_timesheet(
            {
                "assignment_id": assignment["id"],
                "week_start_date": WEEK_START,
                "daily_hours": week_hours(9, 9, 9, 9, 9),
            },
            admin_user,
        )

        assert timesheet["invoice_number"] == "000001"
        assert timesheet["week_end_date"] == "2025-03-09"
        assert timesheet["total_regular_hours"] == 40.0
        assert timesheet["total_overtime_hours"] == 5.0
        assert timesheet["total_jobseeker_pay"] == 950.0
        assert timesheet["total_client_bill"] == 1425.0
        assert timesheet["version"] == 1
        assert timesheet["jobseeker_email"] == profile["email"]
        assert timesheet["position_code"] == position["position_code"]

    async def test_sequential_numbers_and_taken_request(self, session, admin_user, assigned):
        _, _, assignment = await assigned()
        service = TimesheetService(session)
        first = await service.create_timesheet(
            {"assignment_id": assignment["id"], "week_start_date": WEEK_START, "daily_hours": week_hours(8)},
            admin_user,
        )
        # a taken number falls back to the next in sequence
        second = await service.create_timesheet(
            {
                "assignment_id": assignment["id"],
                "week_start_date": WEEK_START + timedelta(days=7),
                "daily_hours": [{"date": (WEEK_START + timedelta(days=7)).isoformat(), "hours": 8}],
                "invoice_number": first["invoice_number"],
            },
            admin_user,
        )

        assert second["invoice_number"] == "000002"
        assert await service.generate_invoice_number() == "000003"

    async def test_duplicate_week(self, session, admin_user, assigned):
        _, _, assignment = await assigned()
        service = TimesheetService(session)
        data = {"assignment_id": assignment["id"], "week_start_date": WEEK_START, "daily_hours": week_hours(8)}
        await service.create_timesheet(dict(data), admin_user)

        with pytest.raises(ConflictError):
            await service.create_timesheet(dict(data), admin_user)

    async def test_cancelled_assignment_rejected(self, session, admin_user, assigned):
        position, profile, assignment = await assigned()
        await PositionService(session).remove_jobseeker(position["id"], profile["user_id"], admin_user)

        with pytest.raises(ValidationFailedError):
            await TimesheetService(session).create_timesheet(
                {"assignment_id": assignment["id"], "week_start_date": WEEK_START, "daily_hours": week_hours(8)},
                admin_user,
            )

    async def test_unknown_assignment(self, session, admin_user):
        with pytest.raises(NotFoundError):
            await TimesheetService(session).create_timesheet(
                {"assignment_id": str(uuid4()), "week_start_date": WEEK_START, "daily_hours": week_hours(8)},
                admin_user,
            )

    async def test_date_outside_week(self, session, admin_user, assigned):
        _, _, assignment = await assigned()
        with pytest.raises(ValidationFailedError):
            await TimesheetService(session).create_timesheet(
                {
                    "assignment_id": assignment["id"],
                    "week_start_date": WEEK_START,
                    "daily_hours": [{"date": "2025-03-20", "hours": 8}],
                },
                admin_user,
            )

    async def test_deduction_over_pay(self, session, admin_user, assigned):
        _, _, assignment = await assigned()
        with pytest.raises(CalculationError):
            await TimesheetService(session).create_timesheet(
                {
                    "assignment_id": assignment["id"],
                    "week_start_date": WEEK_START,
                    "daily_hours": week_hours(1),
                    "deduction_amount": 500,
                },
                admin_user,
            )

    async def test_email_sent_on_request(self, session, admin_user, assigned, email_provider):
        _, profile, assignment = await assigned()
        email_provider.sent.clear()

        await TimesheetService(session).create_timesheet(
            {
                "assignment_id": assignment["id"],
                "week_start_date": WEEK_START,
                "daily_hours": week_hours(8),
                "email_sent": True,
            },
            admin_user,
        )

        assert [m.subject for m in email_provider.sent] == ["Timesheet Summary - Timesheet #000001"]
        assert email_provider.sent[0].to == profile["email"]

    async def test_update_bumps_version(self, session, admin_user, recruiter_user, assigned, email_provider):
        _, _, assignment = await assigned()
        service = TimesheetService(session)
        created = await service.create_timesheet(
            {"assignment_id": assignment["id"], "week_start_date": WEEK_START, "daily_hours": week_hours(8)},
            admin_user,
        )
        email_provider.sent.clear()

        updated = await service.update_timesheet(
            created["id"],
            {"daily_hours": week_hours(8, 8), "bonus_amount": 25, "email_sent": True},
            recruiter_user,
        )

        assert updated["version"] == 2
        assert updated["total_jobseeker_pay"] == 345.0
        history = updated["version_history"]
        assert [h["action"] for h in history] == ["created", "updated"]
        assert history[1]["changes"]["total_jobseeker_pay"] == {"from": 160.0, "to": 345.0}
        assert email_provider.sent[0].subject.startswith("Updated Timesheet Summary")

    async def test_jobseeker_scoping(self, session, admin_user, jobseeker_user, assigned):
        _, _, own_assignment = await assigned(user_id=jobseeker_user.user_id)
        service = TimesheetService(session)
        own = await service.create_timesheet(
            {"assignment_id": own_assignment["id"], "week_start_date": WEEK_START, "daily_hours": week_hours(8)},
            jobseeker_user,
        )

        items, total = await service.list_timesheets(jobseeker_user)
        assert total == 1
        assert items[0]["id"] == own["id"]

        with pytest.raises(PermissionDeniedError):
            await service.list_jobseeker_timesheets(uuid4(), jobseeker_user)

    async def test_jobseeker_cannot_set_rates_on_create(self, session, jobseeker_user, assigned):
        _, _, assignment = await assigned(user_id=jobseeker_user.user_id)
        service = TimesheetService(session)

        with pytest.raises(PermissionDeniedError) as exc:
            await service.create_timesheet(
                {
                    "assignment_id": assignment["id"],
                    "week_start_date": WEEK_START,
                    "daily_hours": week_hours(8),
                    "regular_pay_rate": 500,
                },
                jobseeker_user,
            )
        assert exc.value.details["fields"] == ["regular_pay_rate"]

        items, total = await service.list_timesheets(jobseeker_user)
        assert total == 0

    async def test_jobseeker_cannot_set_rates_on_update(self, session, jobseeker_user, assigned):
        _, _, assignment = await assigned(user_id=jobseeker_user.user_id)
        service = TimesheetService(session)
        own = await service.create_timesheet(
            {"assignment_id": assignment["id"], "week_start_date": WEEK_START, "daily_hours": week_hours(8)},
            jobseeker_user,
        )
        assert own["total_jobseeker_pay"] == 160.0

        for override in ({"regular_pay_rate": 500}, {"markup": 90}, {"bonus_amount": 1000}):
            with pytest.raises(PermissionDeniedError):
                await service.update_timesheet(own["id"], {"daily_hours": week_hours(8), **override}, jobseeker_user)

        # hours-only edits are still allowed
        updated = await service.update_timesheet(own["id"], {"daily_hours": week_hours(8, 2)}, jobseeker_user)
        assert updated["total_jobseeker_pay"] == 200.0

    async def test_staff_can_set_rates(self, session, admin_user, assigned):
        _, _, assignment = await assigned()
        timesheet = await TimesheetService(session).create_timesheet(
            {
                "assignment_id": assignment["id"],
                "week_start_date": WEEK_START,
                "daily_hours": week_hours(8),
                "regular_pay_rate": 25,
            },
            admin_user,
        )
        assert timesheet["total_jobseeker_pay"] == 200.0

    async def test_delete(self, session, admin_user, assigned):
        _, _, assignment = await assigned()
        service = TimesheetService(session)
        created = await service.create_timesheet(
            {"assignment_id": assignment["id"], "week_start_date": WEEK_START, "daily_hours": week_hours(8)},
            admin_user,
        )

        await service.delete_timesheet(created["id"], admin_user)
        with pytest.raises(NotFoundError):
            await service.get_timesheet(created["id"])


class TestTimesheetsApi:
    """HTTP tests for /api/timesheets."""

    def _assignment(self, client, headers, payloads):
        client_id = client.post("/api/clients", json=payloads.client(), headers=headers).json()["id"]
        position_id = client.post(
            "/api/positions", json=payloads.position(client_id), headers=headers
        ).json()["id"]
        profile = client.post("/api/jobseekers", json=payloads.jobseeker(uuid4()), headers=headers).json()
        client.put(f"/api/jobseekers/{profile['id']}/status", json={"status": "verified"}, headers=headers)
        response = client.post(
            f"/api/positions/{position_id}/assign",
            json={"candidate_id": profile["user_id"]},
            headers=headers,
        )
        return response.json()["assignment"]["id"]

    def test_create_and_get(self, client, recruiter_headers, payloads):
        assignment_id = self._assignment(client, recruiter_headers, payloads)
        response = client.post(
            "/api/timesheets",
            json={
                "assignment_id": assignment_id,
                "week_start_date": WEEK_START.isoformat(),
                "daily_hours": week_hours(8, 8),
            },
            headers=recruiter_headers,
        )
        assert response.status_code == 201
        timesheet = response.json()

        detail = client.get(f"/api/timesheets/{timesheet['id']}", headers=recruiter_headers)
        assert detail.json()["total_client_bill"] == 480.0

        listing = client.get("/api/timesheets", params={"invoice_number": "000001"}, headers=recruiter_headers)
        assert listing.json()["pagination"]["total_count"] == 1

    def test_excess_hours_is_400(self, client, recruiter_headers, payloads):
        assignment_id = self._assignment(client, recruiter_headers, payloads)
        response = client.post(
            "/api/timesheets",
            json={
                "assignment_id": assignment_id,
                "week_start_date": WEEK_START.isoformat(),
                "daily_hours": week_hours(25),
            },
            headers=recruiter_headers,
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "CALCULATION_ERROR"

    def test_wrong_week_span_is_400(self, client, recruiter_headers, payloads):
        assignment_id = self._assignment(client, recruiter_headers, payloads)
        response = client.post(
            "/api/timesheets",
            json={
                "assignment_id": assignment_id,
                "week_start_date": WEEK_START.isoformat(),
                "week_end_date": (WEEK_START + timedelta(days=5)).isoformat(),
                "daily_hours": week_hours(8),
            },
            headers=recruiter_headers,
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "week_end_date"

    def test_delete_requires_staff(self, client, jobseeker_headers):
        response = client.delete(
            "/api/timesheets/00000000-0000-0000-0000-000000000001", headers=jobseeker_headers
        )
        assert response.status_code == 403

    def test_generate_invoice_number(self, client, recruiter_headers):
        response = client.get("/api/timesheets/generate-invoice-number", headers=recruiter_headers)
        assert response.json() == {"invoice_number": "000001"}
