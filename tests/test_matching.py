"""Tests for candidate matching and ranking."""

from datetime import date
from types import SimpleNamespace

from services import CandidateFilters, MatchingService, PositionService
from services.matching_service import experience_rank, ranges_overlap, similarity_score


def make_position(**overrides):
    data = dict(
        title="Forklift Operator",
        position_category="Warehouse",
        experience="1-2 Years",
        city="Toronto",
        province="ON",
        employment_type="Full-Time",
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def make_jobseeker(**overrides):
    data = dict(
        experience="2-3 Years",
        work_preference="Warehouse",
        city="toronto",
        province="ON",
        availability="Full-Time",
        weekend_availability=True,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


class TestScoring:
    """Rule-based similarity components."""

    def test_experience_rank(self):
        assert experience_rank("0-6 Months") == 0
        assert experience_rank("5+ Years") == 6
        assert experience_rank("forever") == -1
        assert experience_rank(None) == -1

    def test_perfect_match(self):
        assert similarity_score(make_jobseeker(), make_position()) == 1.0

    def test_nothing_in_common(self):
        jobseeker = make_jobseeker(
            experience=None,
            work_preference=None,
            city="Calgary",
            province="AB",
            availability="Part-Time",
            weekend_availability=False,
        )
        assert similarity_score(jobseeker, make_position()) == 0.0

    def test_less_experience_scores_partially(self):
        junior = similarity_score(make_jobseeker(experience="0-6 Months"), make_position())
        senior = similarity_score(make_jobseeker(), make_position())
        assert 0.0 < junior < senior

    def test_title_word_half_credit(self):
        jobseeker = make_jobseeker(work_preference="forklift driving")
        position = make_position(position_category="Logistics")
        # work preference weight 0.25 halved
        assert similarity_score(jobseeker, position) == 0.875


class TestRangesOverlap:
    def test_disjoint(self):
        assert not ranges_overlap(date(2025, 1, 1), date(2025, 1, 10), date(2025, 1, 11), None)

    def test_open_ended(self):
        assert ranges_overlap(date(2025, 1, 1), None, date(2026, 1, 1), date(2026, 2, 1))

    def test_touching_days_overlap(self):
        assert ranges_overlap(date(2025, 1, 1), date(2025, 1, 10), date(2025, 1, 10), None)


class TestPositionCandidates:
    async def test_only_verified_ranked_with_status(self, session, admin_user, factory):
        client = await factory.client()
        position = await factory.position(client["id"])
        other = await factory.position(client["id"], title="Loader")

        assigned = await factory.jobseeker(email="assigned@mail.test", first_name="Avery")
        busy = await factory.jobseeker(email="busy@mail.test", first_name="Blake", city="Hamilton")
        free = await factory.jobseeker(email="free@mail.test", first_name="Casey", experience="0-6 Months")
        await factory.jobseeker(email="pending@mail.test", verified=False)

        positions = PositionService(session)
        await positions.assign_jobseeker(position["id"], assigned["user_id"], admin_user)
        await positions.assign_jobseeker(other["id"], busy["user_id"], admin_user)

        items, total = await MatchingService(session).position_candidates(position["id"])

        assert total == 3
        by_email = {i["email"]: i for i in items}
        assert by_email["assigned@mail.test"]["status"] == "assigned"
        assert by_email["busy@mail.test"]["status"] == "unavailable"
        assert by_email["free@mail.test"]["status"] == "available"
        scores = [i["similarity_score"] for i in items]
        assert scores == sorted(scores, reverse=True)

        items, total = await MatchingService(session).position_candidates(
            position["id"], CandidateFilters(only_available=True)
        )
        assert [i["email"] for i in items] == ["free@mail.test"]

    async def test_sort_by_name(self, session, factory):
        client = await factory.client()
        position = await factory.position(client["id"])
        await factory.jobseeker(email="z@mail.test", first_name="Zoe")
        await factory.jobseeker(email="a@mail.test", first_name="Al")

        items, _ = await MatchingService(session).position_candidates(
            position["id"], sort_by="name", sort_order="asc"
        )
        assert [i["first_name"] for i in items] == ["Al", "Zoe"]


class TestCandidatesApi:
    def test_unknown_sort_is_422(self, client, recruiter_headers):
        response = client.get(
            "/api/jobseekers/position-candidates/00000000-0000-0000-0000-000000000001",
            params={"sort_by": "salary"},
            headers=recruiter_headers,
        )
        assert response.status_code == 422

    def test_unknown_position_is_404(self, client, recruiter_headers):
        response = client.get(
            "/api/jobseekers/position-candidates/00000000-0000-0000-0000-000000000001",
            params={"sort_by": "name"},
            headers=recruiter_headers,
        )
        assert response.status_code == 404
