"""Tests for jobseeker profiles and verification."""

from uuid import uuid4

import pytest

from services import (
    ConflictError,
    JobseekerService,
    PermissionDeniedError,
    PositionService,
    ValidationFailedError,
)


class TestJobseekerService:
    """Service-level profile tests."""

    async def test_create_is_pending(self, factory):
        profile = await factory.jobseeker(verified=False, email="Sam.Worker@Mail.Test")

        assert profile["verification_status"] == "pending"
        assert profile["email"] == "sam.worker@mail.test"
        assert profile["employee_id"] is None
        assert profile["full_name"] == "Sam Worker"

    async def test_jobseeker_creates_own_profile(self, session, jobseeker_user, payloads):
        profile = await JobseekerService(session).create_profile(
            payloads.jobseeker(uuid4()), jobseeker_user
        )
        assert profile["user_id"] == str(jobseeker_user.user_id)

    async def test_duplicate_email(self, factory):
        await factory.jobseeker()
        with pytest.raises(ConflictError):
            await factory.jobseeker()

    async def test_verify_assigns_employee_ids_in_order(self, factory):
        first = await factory.jobseeker()
        second = await factory.jobseeker(email="second@mail.test")

        assert first["employee_id"] == "EMP000001"
        assert second["employee_id"] == "EMP000002"
        assert first["verification_status"] == "verified"

    async def test_reverify_keeps_employee_id(self, session, admin_user, factory):
        profile = await factory.jobseeker()
        service = JobseekerService(session)

        await service.update_status(profile["id"], "pending", admin_user)
        again = await service.update_status(profile["id"], "verified", admin_user)

        assert again["employee_id"] == "EMP000001"

    async def test_reject_requires_reason(self, session, admin_user, factory):
        profile = await factory.jobseeker(verified=False)
        service = JobseekerService(session)

        with pytest.raises(ValidationFailedError):
            await service.update_status(profile["id"], "rejected", admin_user, rejection_reason="  ")

        rejected = await service.update_status(
            profile["id"], "rejected", admin_user, rejection_reason="Expired licence"
        )
        assert rejected["rejection_reason"] == "Expired licence"

    async def test_invalid_status(self, session, admin_user, factory):
        profile = await factory.jobseeker(verified=False)
        with pytest.raises(ValidationFailedError):
            await JobseekerService(session).update_status(profile["id"], "archived", admin_user)

    async def test_jobseeker_cannot_read_other_profile(self, session, jobseeker_user, factory):
        profile = await factory.jobseeker()
        with pytest.raises(PermissionDeniedError):
            await JobseekerService(session).get_profile_for(profile["id"], jobseeker_user)

    async def test_list_hides_sensitive_fields(self, session, factory):
        await factory.jobseeker(sin_number="123456789")
        items, total = await JobseekerService(session).list_jobseekers(status="verified")

        assert total == 1
        assert "sin_number" not in items[0]

    async def test_identity_numbers_masked_for_recruiters(self, session, admin_user, recruiter_user, factory):
        profile = await factory.jobseeker(sin_number="123456789", license_number="D1234-56789-01234")
        service = JobseekerService(session)

        seen_by_recruiter = await service.get_profile_for(profile["id"], recruiter_user)
        assert seen_by_recruiter["sin_number"] == "******789"
        assert seen_by_recruiter["license_number"] == "************234"
        assert seen_by_recruiter["passport_number"] is None

        seen_by_admin = await service.get_profile_for(profile["id"], admin_user)
        assert seen_by_admin["sin_number"] == "123456789"

    async def test_owner_sees_own_identity_numbers(self, session, recruiter_user, jobseeker_user, factory):
        profile = await factory.jobseeker(user_id=jobseeker_user.user_id, sin_number="123456789")
        service = JobseekerService(session)

        own = await service.get_profile_for(profile["id"], jobseeker_user)
        assert own["sin_number"] == "123456789"

        updated = await service.update_profile(profile["id"], {"sin_number": "111222333"}, recruiter_user)
        assert updated["sin_number"] == "******333"

    async def test_delete_blocked_by_seat(self, session, admin_user, factory):
        client = await factory.client()
        position = await factory.position(client["id"])
        profile = await factory.jobseeker()
        await PositionService(session).assign_jobseeker(position["id"], profile["user_id"], admin_user)

        with pytest.raises(ConflictError):
            await JobseekerService(session).delete_profile(profile["id"], admin_user)


class TestProfileDrafts:
    async def test_identity_numbers_not_kept(self, session, recruiter_user):
        service = JobseekerService(session)
        draft = await service.drafts.save_draft(
            {
                "form_data": {"first_name": "Sam", "email": "Sam.Worker@Mail.Test", "sin_number": "123456789"},
                "current_step": 2,
            },
            recruiter_user,
        )

        assert draft["form_data"] == {"first_name": "Sam", "email": "Sam.Worker@Mail.Test"}
        assert draft["email"] == "sam.worker@mail.test"
        assert draft["current_step"] == 2
        assert draft["user_id"] == str(recruiter_user.user_id)

    async def test_recruiter_keeps_several(self, session, recruiter_user, jobseeker_user):
        service = JobseekerService(session)
        await service.drafts.save_draft({"form_data": {"first_name": "Ari"}}, recruiter_user)
        await service.drafts.save_draft({"form_data": {"first_name": "Bo"}}, recruiter_user)
        await service.drafts.save_draft({"form_data": {"first_name": "Sam"}}, jobseeker_user)

        assert len(await service.drafts.list_drafts(recruiter_user)) == 2
        assert len(await service.drafts.list_drafts(jobseeker_user)) == 1

    async def test_update_replaces_form(self, session, jobseeker_user):
        service = JobseekerService(session)
        draft = await service.drafts.save_draft({"form_data": {"first_name": "Sam"}}, jobseeker_user)
        updated = await service.drafts.save_draft(
            {"form_data": {"first_name": "Sam", "city": "Toronto"}, "current_step": 3},
            jobseeker_user,
            draft_id=draft["id"],
        )

        assert updated["id"] == draft["id"]
        assert updated["form_data"]["city"] == "Toronto"
        assert updated["current_step"] == 3

    async def test_bad_form_data(self, session, jobseeker_user):
        with pytest.raises(ValidationFailedError):
            await JobseekerService(session).drafts.save_draft({"form_data": ["nope"]}, jobseeker_user)

    async def test_other_users_draft_forbidden(self, session, recruiter_user, jobseeker_user):
        service = JobseekerService(session)
        draft = await service.drafts.save_draft({"form_data": {"first_name": "Ari"}}, recruiter_user)
        with pytest.raises(PermissionDeniedError):
            await service.drafts.get_draft(draft["id"], jobseeker_user)

    async def test_consumed_on_create(self, session, recruiter_user, payloads):
        service = JobseekerService(session)
        draft = await service.drafts.save_draft({"form_data": {"first_name": "Sam"}}, recruiter_user)

        await service.create_profile(payloads.jobseeker(uuid4()), recruiter_user, draft_id=draft["id"])

        assert await service.drafts.list_drafts(recruiter_user) == []


class TestJobseekersApi:
    """HTTP tests for /api/jobseekers."""

    def test_jobseeker_onboards_self(self, client, jobseeker_headers, jobseeker_user, payloads):
        response = client.post(
            "/api/jobseekers", json=payloads.jobseeker(uuid4()), headers=jobseeker_headers
        )
        assert response.status_code == 201
        profile = response.json()
        assert profile["user_id"] == str(jobseeker_user.user_id)

        own = client.get(f"/api/jobseekers/{profile['id']}", headers=jobseeker_headers)
        assert own.status_code == 200

    def test_jobseeker_cannot_list_or_verify(self, client, jobseeker_headers, payloads):
        profile = client.post(
            "/api/jobseekers", json=payloads.jobseeker(uuid4()), headers=jobseeker_headers
        ).json()

        assert client.get("/api/jobseekers", headers=jobseeker_headers).status_code == 403
        response = client.put(
            f"/api/jobseekers/{profile['id']}/status", json={"status": "verified"}, headers=jobseeker_headers
        )
        assert response.status_code == 403

    def test_reject_without_reason_is_400(self, client, recruiter_headers, payloads):
        profile = client.post(
            "/api/jobseekers", json=payloads.jobseeker(uuid4()), headers=recruiter_headers
        ).json()
        response = client.put(
            f"/api/jobseekers/{profile['id']}/status", json={"status": "rejected"}, headers=recruiter_headers
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "rejection_reason"

    def test_other_jobseeker_profile_is_403(self, client, recruiter_headers, jobseeker_headers, payloads):
        profile = client.post(
            "/api/jobseekers", json=payloads.jobseeker(uuid4(), email="else@mail.test"), headers=recruiter_headers
        ).json()
        response = client.get(f"/api/jobseekers/{profile['id']}", headers=jobseeker_headers)
        assert response.status_code == 403

    def test_profile_draft_endpoints(self, client, jobseeker_headers, recruiter_headers):
        saved = client.post(
            "/api/jobseekers/draft",
            json={"form_data": {"first_name": "Sam"}, "current_step": 1},
            headers=jobseeker_headers,
        )
        assert saved.status_code == 201
        draft_id = saved.json()["id"]

        drafts = client.get("/api/jobseekers/drafts", headers=jobseeker_headers).json()["drafts"]
        assert [d["id"] for d in drafts] == [draft_id]

        client.put(
            f"/api/jobseekers/draft/{draft_id}",
            json={"form_data": {"first_name": "Sam", "city": "Toronto"}, "current_step": 2},
            headers=jobseeker_headers,
        )
        draft = client.get(f"/api/jobseekers/draft/{draft_id}", headers=jobseeker_headers).json()
        assert draft["form_data"]["city"] == "Toronto"
        assert draft["current_step"] == 2

        assert client.get(f"/api/jobseekers/draft/{draft_id}", headers=recruiter_headers).status_code == 403
        assert client.delete(f"/api/jobseekers/draft/{draft_id}", headers=jobseeker_headers).status_code == 200
        assert client.get(f"/api/jobseekers/draft/{draft_id}", headers=jobseeker_headers).status_code == 404

    def test_profile_draft_put_creates(self, client, recruiter_headers):
        draft_id = str(uuid4())
        response = client.put(
            f"/api/jobseekers/draft/{draft_id}", json={"form_data": {"first_name": "Ari"}}, headers=recruiter_headers
        )
        assert response.status_code == 200
        assert response.json()["id"] == draft_id
