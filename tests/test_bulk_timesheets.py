"""Tests for bulk timesheets."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from services import (
    BulkTimesheetService,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    PositionService,
    ValidationFailedError,
)

WEEK_START = date(2025, 3, 3)


def entries(*hours):
    return [
        {"date": (WEEK_START + timedelta(days=i)).isoformat(), "hours": h}
        for i, h in enumerate(hours)
    ]


@pytest.fixture
def crew(session, admin_user, factory):
    """A position with two assigned jobseekers and one unassigned."""
    async def build():
        client = await factory.client()
        position = await factory.position(client["id"])
        first = await factory.jobseeker(email="first@mail.test", first_name="Ari")
        second = await factory.jobseeker(email="second@mail.test", first_name="Bo")
        outsider = await factory.jobseeker(email="outsider@mail.test", first_name="Cy")
        positions = PositionService(session)
        await positions.assign_jobseeker(position["id"], first["user_id"], admin_user)
        await positions.assign_jobseeker(position["id"], second["user_id"], admin_user)
        return client, position, first, second, outsider
    return build


def bulk_payload(client, position, *rows, **overrides):
    data = {
        "client_id": client["id"],
        "position_id": position["id"],
        "week_start_date": WEEK_START,
        "jobseeker_timesheets": list(rows),
    }
    data.update(overrides)
    return data


class TestBulkTimesheetService:
    async def test_create_totals(self, session, admin_user, crew):
        client, position, first, second, _ = await crew()

        bulk = await BulkTimesheetService(session).create_bulk_timesheet(
            bulk_payload(
                client,
                position,
                {"jobseeker_profile_id": first["id"], "entries": entries(9, 9, 9, 9, 9)},
                {"jobseeker_profile_id": second["id"], "entries": entries(8, 8), "bonus_amount": 10},
            ),
            admin_user,
        )

        assert bulk["invoice_number"] == "000001"
        assert bulk["week_period"] == "Mar 03, 2025 - Mar 09, 2025"
        assert bulk["number_of_jobseekers"] == 2
        assert bulk["total_hours"] == 61.0
        assert bulk["total_overtime_hours"] == 5.0
        # 950 + (16 * 20 + 10)
        assert bulk["total_jobseeker_pay"] == 1280.0
        assert bulk["net_pay"] == 1280.0
        assert bulk["average_hours_per_jobseeker"] == 30.5
        assert bulk["client_name"] == "Northwind Logistics"
        rows = bulk["jobseeker_timesheets"]
        assert rows[0]["employee_id"] == first["employee_id"]
        assert rows[1]["total_jobseeker_pay"] == 330.0

    async def test_invoice_numbers_fill_gaps(self, session, admin_user, crew):
        client, position, first, _, _ = await crew()
        service = BulkTimesheetService(session)
        row = {"jobseeker_profile_id": first["id"], "entries": entries(8)}

        explicit = await service.create_bulk_timesheet(
            bulk_payload(client, position, row, invoice_number="000002"), admin_user
        )
        auto = await service.create_bulk_timesheet(bulk_payload(client, position, row), admin_user)

        assert explicit["invoice_number"] == "000002"
        assert auto["invoice_number"] == "000001"
        assert await service.generate_invoice_number() == "000003"

        with pytest.raises(ConflictError):
            await service.create_bulk_timesheet(
                bulk_payload(client, position, row, invoice_number="INV-2"), admin_user
            )

    async def test_unassigned_jobseeker_rejected(self, session, admin_user, crew):
        client, position, _, _, outsider = await crew()
        with pytest.raises(ValidationFailedError) as exc_info:
            await BulkTimesheetService(session).create_bulk_timesheet(
                bulk_payload(client, position, {"jobseeker_profile_id": outsider["id"], "entries": entries(8)}),
                admin_user,
            )
        assert exc_info.value.details["jobseekers"] == ["Cy Worker"]

    async def test_duplicate_row_rejected(self, session, admin_user, crew):
        client, position, first, _, _ = await crew()
        row = {"jobseeker_profile_id": first["id"], "entries": entries(8)}
        with pytest.raises(ValidationFailedError):
            await BulkTimesheetService(session).create_bulk_timesheet(
                bulk_payload(client, position, row, row), admin_user
            )

    async def test_empty_rows_rejected(self, session, admin_user, crew):
        client, position, _, _, _ = await crew()
        with pytest.raises(ValidationFailedError):
            await BulkTimesheetService(session).create_bulk_timesheet(
                bulk_payload(client, position), admin_user
            )

    async def test_position_of_other_client(self, session, admin_user, crew, factory):
        _, position, first, _, _ = await crew()
        other = await factory.client(company_name="Acme Freight", short_code="ACM")
        with pytest.raises(ValidationFailedError):
            await BulkTimesheetService(session).create_bulk_timesheet(
                bulk_payload(other, position, {"jobseeker_profile_id": first["id"], "entries": entries(8)}),
                admin_user,
            )

    async def test_update_recomputes_and_versions(self, session, admin_user, crew, email_provider):
        client, position, first, second, _ = await crew()
        service = BulkTimesheetService(session)
        bulk = await service.create_bulk_timesheet(
            bulk_payload(client, position, {"jobseeker_profile_id": first["id"], "entries": entries(8)}),
            admin_user,
        )
        email_provider.sent.clear()

        updated = await service.update_bulk_timesheet(
            bulk["id"],
            {
                "jobseeker_timesheets": [
                    {"jobseeker_profile_id": first["id"], "entries": entries(8)},
                    {"jobseeker_profile_id": second["id"], "entries": entries(4)},
                ],
                "email_sent": True,
            },
            admin_user,
        )

        assert updated["version"] == 2
        assert updated["number_of_jobseekers"] == 2
        assert updated["total_client_bill"] == 360.0
        assert updated["version_history"][1]["changes"]["total_client_bill"] == {"from": 240.0, "to": 360.0}
        assert sorted(m.to for m in email_provider.sent) == ["first@mail.test", "second@mail.test"]
        assert all(m.subject.startswith("Updated ") for m in email_provider.sent)

    async def test_recruiter_sees_only_own(self, session, admin_user, recruiter_user, crew):
        client, position, first, _, _ = await crew()
        service = BulkTimesheetService(session)
        row = {"jobseeker_profile_id": first["id"], "entries": entries(8)}
        by_admin = await service.create_bulk_timesheet(bulk_payload(client, position, row), admin_user)
        by_recruiter = await service.create_bulk_timesheet(bulk_payload(client, position, row), recruiter_user)

        items, total = await service.list_bulk_timesheets(recruiter_user)
        assert total == 1
        assert items[0]["id"] == by_recruiter["id"]

        _, total = await service.list_bulk_timesheets(admin_user)
        assert total == 2

        with pytest.raises(PermissionDeniedError):
            await service.get_bulk_timesheet(by_admin["id"], recruiter_user)

    async def test_delete(self, session, admin_user, crew):
        client, position, first, _, _ = await crew()
        service = BulkTimesheetService(session)
        bulk = await service.create_bulk_timesheet(
            bulk_payload(client, position, {"jobseeker_profile_id": first["id"], "entries": entries(8)}),
            admin_user,
        )

        await service.delete_bulk_timesheet(bulk["id"], admin_user)
        with pytest.raises(NotFoundError):
            await service.get_bulk_timesheet(bulk["id"], admin_user)


class TestBulkTimesheetsApi:
    def test_jobseeker_forbidden(self, client, jobseeker_headers):
        assert client.get("/api/bulk-timesheets", headers=jobseeker_headers).status_code == 403

    def test_generate_invoice_number(self, client, recruiter_headers):
        response = client.get("/api/bulk-timesheets/generate-invoice-number", headers=recruiter_headers)
        assert response.json() == {"invoice_number": "000001"}

    def test_unknown_client_is_404(self, client, recruiter_headers):
        response = client.post(
            "/api/bulk-timesheets",
            json={
                "client_id": str(uuid4()),
                "position_id": str(uuid4()),
                "week_start_date": WEEK_START.isoformat(),
                "jobseeker_timesheets": [{"jobseeker_profile_id": str(uuid4()), "entries": entries(8)}],
            },
            headers=recruiter_headers,
        )
        assert response.status_code == 404
