"""
Matching Service - ranks verified jobseekers against a position.

Each candidate gets a similarity score in [0, 1] built from weighted
rule-based components (experience, work preference, location,
availability, weekend availability) and an availability flag derived
from overlapping seat-holding assignments.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import (
    JobseekerProfile,
    Position,
    PositionAssignment,
    SEAT_HOLDING_STATUSES,
    VerificationStatus,
)

from .exceptions import NotFoundError, ValidationFailedError
from .serializers import as_uuid

logger = logging.getLogger(__name__)

# Ordered from least to most experienced
EXPERIENCE_BANDS = (
    "0-6 Months",
    "6-12 Months",
    "1-2 Years",
    "2-3 Years",
    "3-4 Years",
    "4-5 Years",
    "5+ Years",
)

SCORE_WEIGHTS = {
    "experience": 0.30,
    "work_preference": 0.25,
    "city": 0.15,
    "province": 0.10,
    "availability": 0.10,
    "weekend": 0.10,
}

SORT_FIELDS = ("similarity", "name", "experience")


@dataclass
class CandidateFilters:
    """Query filters for position candidates."""
    search: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    experience: Optional[str] = None
    availability: Optional[str] = None
    weekend_availability: Optional[bool] = None
    city: Optional[str] = None
    province: Optional[str] = None
    only_available: bool = False


def experience_rank(band: Optional[str]) -> int:
    """Index of an experience band, -1 when unknown."""
    if not band:
        return -1
    try:
        return EXPERIENCE_BANDS.index(band.strip())
    except ValueError:
        return -1


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a and b and a.strip().lower() == b.strip().lower())


def _experience_score(candidate: Optional[str], required: Optional[str]) -> float:
    have, need = experience_rank(candidate), experience_rank(required)
    if need < 0:
        return 1.0
    if have < 0:
        return 0.0
    if have >= need:
        return 1.0
    return max(0.0, 1.0 - (need - have) / len(EXPERIENCE_BANDS))


def _work_preference_score(preference: Optional[str], position: Position) -> float:
    if not preference:
        return 0.0
    preference = preference.lower()
    category = (position.position_category or "").lower()
    title = (position.title or "").lower()
    if category and (category in preference or preference in category):
        return 1.0
    title_words = {w for w in title.replace("/", " ").split() if len(w) > 2}
    if title_words and any(word in preference for word in title_words):
        return 0.5
    return 0.0


def similarity_score(jobseeker: JobseekerProfile, position: Position) -> float:
    """Weighted similarity of a jobseeker to a position, rounded to 4 places."""
    components = {
        "experience": _experience_score(jobseeker.experience, position.experience),
        "work_preference": _work_preference_score(jobseeker.work_preference, position),
        "city": 1.0 if _same(jobseeker.city, position.city) else 0.0,
        "province": 1.0 if _same(jobseeker.province, position.province) else 0.0,
        "availability": 1.0 if _same(jobseeker.availability, position.employment_type) else 0.0,
        "weekend": 1.0 if jobseeker.weekend_availability else 0.0,
    }
    score = sum(SCORE_WEIGHTS[key] * value for key, value in components.items())
    return round(min(1.0, max(0.0, score)), 4)


def ranges_overlap(
    start_a: date, end_a: Optional[date], start_b: date, end_b: Optional[date]
) -> bool:
    """Date ranges overlap; a missing end date means open-ended."""
    a_before_b = end_a is not None and end_a < start_b
    b_before_a = end_b is not None and end_b < start_a
    return not (a_before_b or b_before_a)


class MatchingService:
    """Finds and ranks candidates for a position."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def position_candidates(
        self,
        position_id,
        filters: Optional[CandidateFilters] = None,
        sort_by: str = "similarity",
        sort_order: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ):
        """
        Verified jobseekers scored against a position.

        Returns:
            (items, total) where each item is a jobseeker summary plus
            similarity_score, is_available and status
        """
        filters = filters or CandidateFilters()
        if sort_by not in SORT_FIELDS:
            raise ValidationFailedError(f"sort_by must be one of {', '.join(SORT_FIELDS)}")
        if sort_order not in ("asc", "desc"):
            raise ValidationFailedError("sort_order must be asc or desc")

        position = await self.db.get(Position, as_uuid(position_id))
        if position is None:
            raise NotFoundError("Position", position_id)

        jobseekers = await self._verified_jobseekers(filters)
        seats = await self._seat_holding_by_candidate([j.user_id for j in jobseekers])

        items = []
        for jobseeker in jobseekers:
            held = seats.get(jobseeker.user_id, [])
            on_this_position = any(a.position_id == position.id for a in held)
            busy = any(
                ranges_overlap(a.start_date, a.end_date, position.start_date, position.end_date)
                for a in held
                if a.position_id != position.id
            )
            is_available = not busy and not on_this_position
            if filters.only_available and not is_available:
                continue

            if on_this_position:
                status = "assigned"
            else:
                status = "available" if is_available else "unavailable"

            items.append({
                "id": str(jobseeker.id),
                "user_id": str(jobseeker.user_id),
                "first_name": jobseeker.first_name,
                "last_name": jobseeker.last_name,
                "full_name": jobseeker.full_name,
                "email": jobseeker.email,
                "mobile": jobseeker.mobile,
                "city": jobseeker.city,
                "province": jobseeker.province,
                "experience": jobseeker.experience,
                "availability": jobseeker.availability,
                "weekend_availability": bool(jobseeker.weekend_availability),
                "work_preference": jobseeker.work_preference,
                "employee_id": jobseeker.employee_id,
                "similarity_score": similarity_score(jobseeker, position),
                "is_available": is_available,
                "status": status,
            })

        reverse = sort_order == "desc"
        if sort_by == "name":
            items.sort(key=lambda i: i["full_name"].lower(), reverse=reverse)
        elif sort_by == "experience":
            items.sort(key=lambda i: experience_rank(i["experience"]), reverse=reverse)
        else:
            items.sort(key=lambda i: (i["similarity_score"], i["full_name"].lower()), reverse=reverse)

        logger.info(f"Scored {len(items)} candidate(s) for position {position.id}")
        return items[offset:offset + limit], len(items)

    async def _verified_jobseekers(self, filters: CandidateFilters) -> List[JobseekerProfile]:
        conditions = [JobseekerProfile.verification_status == VerificationStatus.VERIFIED.value]

        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            conditions.append(or_(
                JobseekerProfile.first_name.ilike(pattern),
                JobseekerProfile.last_name.ilike(pattern),
                JobseekerProfile.email.ilike(pattern),
                JobseekerProfile.mobile.ilike(pattern),
                JobseekerProfile.work_preference.ilike(pattern),
            ))
        if filters.name:
            pattern = f"%{filters.name.strip()}%"
            conditions.append(or_(
                JobseekerProfile.first_name.ilike(pattern),
                JobseekerProfile.last_name.ilike(pattern),
            ))
        if filters.email:
            conditions.append(JobseekerProfile.email.ilike(f"%{filters.email.strip()}%"))
        if filters.phone:
            conditions.append(JobseekerProfile.mobile.ilike(f"%{filters.phone.strip()}%"))
        if filters.experience:
            conditions.append(JobseekerProfile.experience == filters.experience)
        if filters.availability:
            conditions.append(JobseekerProfile.availability == filters.availability)
        if filters.weekend_availability is not None:
            conditions.append(JobseekerProfile.weekend_availability == filters.weekend_availability)
        if filters.city:
            conditions.append(JobseekerProfile.city.ilike(filters.city.strip()))
        if filters.province:
            conditions.append(JobseekerProfile.province.ilike(filters.province.strip()))

        result = await self.db.execute(select(JobseekerProfile).where(*conditions))
        return list(result.scalars().all())

    async def _seat_holding_by_candidate(self, candidate_ids) -> Dict[Any, List[PositionAssignment]]:
        if not candidate_ids:
            return {}
        result = await self.db.execute(
            select(PositionAssignment).where(
                PositionAssignment.candidate_id.in_(candidate_ids),
                PositionAssignment.status.in_(SEAT_HOLDING_STATUSES),
            )
        )
        seats: Dict[Any, List[PositionAssignment]] = {}
        for assignment in result.scalars().all():
            seats.setdefault(assignment.candidate_id, []).append(assignment)
        return seats
