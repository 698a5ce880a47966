"""
Jobseeker Service - jobseeker profiles and their verification.

Handles:
- Profile CRUD (staff onboarding, or a jobseeker creating their own)
- Verification workflow: pending -> verified / rejected
- Employee ID assignment on first verification
- Profile drafts (half-filled onboarding forms)
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from audit.activity_logger import ActivityActionType, ActivityLogger
from database.encrypted_fields import mask_identifier
from database.models import (
    JobseekerProfile,
    JobseekerProfileDraft,
    PositionAssignment,
    SEAT_HOLDING_STATUSES,
    VerificationStatus,
)

from .draft_service import DraftService
from .exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from .serializers import as_uuid, coerce_column_value, mapped_fields, row_to_dict

logger = logging.getLogger(__name__)

EMPLOYEE_ID_PREFIX = "EMP"
EMPLOYEE_ID_DIGITS = 6

PROFILE_FIELDS = mapped_fields(
    JobseekerProfile,
    exclude=(
        "id", "verification_status", "rejection_reason", "employee_id",
        "created_by_user_id", "created_at", "updated_at",
    ),
)

# Government identity numbers: encrypted at rest, left out of list views and
# masked for everyone but admins and the jobseeker themselves
SENSITIVE_FIELDS = ("sin_number", "passport_number", "license_number")


def can_see_identity_numbers(profile: JobseekerProfile, viewer) -> bool:
    if viewer is None:
        return False
    return viewer.is_admin or profile.user_id == viewer.user_id


class ProfileDraftService(DraftService):
    """
    Jobseeker profile drafts: ``form_data`` (the form as the client sent it),
    ``current_step`` and ``email``.

    Identity numbers are never kept in a draft; they are entered again on
    the final submit, where they are stored encrypted.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, JobseekerProfileDraft, "Jobseeker profile")

    async def save_draft(self, data: Dict[str, Any], user, draft_id=None) -> Dict[str, Any]:
        data = dict(data)
        if "form_data" in data:
            form = data["form_data"] or {}
            if not isinstance(form, dict):
                raise ValidationFailedError("form_data must be an object", {"field": "form_data"})
            form = {k: v for k, v in form.items() if k not in SENSITIVE_FIELDS}
            data["form_data"] = form
            if not data.get("email") and isinstance(form.get("email"), str):
                data["email"] = form["email"]
        if isinstance(data.get("email"), str):
            data["email"] = data["email"].strip().lower() or None
        if data.get("current_step") is not None and int(data["current_step"]) < 1:
            raise ValidationFailedError("current_step must be 1 or more", {"field": "current_step"})
        return await super().save_draft(data, user, draft_id=draft_id)


class JobseekerService:
    """Service for jobseeker profile operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLogger(db)
        self.drafts = ProfileDraftService(db)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_jobseekers(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        city: Optional[str] = None,
        province: Optional[str] = None,
        experience: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        conditions = []
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(
                JobseekerProfile.first_name.ilike(pattern),
                JobseekerProfile.last_name.ilike(pattern),
                JobseekerProfile.email.ilike(pattern),
                JobseekerProfile.mobile.ilike(pattern),
                JobseekerProfile.employee_id.ilike(pattern),
            ))
        if status:
            conditions.append(JobseekerProfile.verification_status == status)
        if city:
            conditions.append(JobseekerProfile.city.ilike(city))
        if province:
            conditions.append(JobseekerProfile.province.ilike(province))
        if experience:
            conditions.append(JobseekerProfile.experience == experience)

        count_query = select(func.count(JobseekerProfile.id))
        query = select(JobseekerProfile)
        if conditions:
            count_query = count_query.where(*conditions)
            query = query.where(*conditions)

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(JobseekerProfile.created_at.desc()).offset(offset).limit(limit)
        )
        return [self._profile_to_dict(p, summary=True) for p in result.scalars().all()], total

    async def get_profile(self, profile_id) -> JobseekerProfile:
        profile = await self.db.get(JobseekerProfile, as_uuid(profile_id))
        if profile is None:
            raise NotFoundError("Jobseeker profile", profile_id)
        return profile

    async def get_profile_for(self, profile_id, user) -> Dict[str, Any]:
        """Staff can read any profile; a jobseeker only their own."""
        profile = await self.get_profile(profile_id)
        if not user.is_staff and profile.user_id != user.user_id:
            raise PermissionDeniedError("You can only view your own profile")
        return self._profile_to_dict(profile, viewer=user)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create_profile(self, data: Dict[str, Any], user, draft_id=None) -> Dict[str, Any]:
        """
        Create a profile.

        A jobseeker always creates the profile for their own account; staff
        pass ``user_id`` for the account being onboarded. ``draft_id`` names
        the profile draft the form came from; it is deleted with the create.

        Raises:
            ConflictError: Email or account already has a profile
        """
        values = self._normalize(data)
        if user.is_jobseeker:
            values["user_id"] = user.user_id
        if not values.get("user_id"):
            raise ValidationFailedError("user_id is required", {"field": "user_id"})
        for field in ("first_name", "last_name", "email"):
            if not values.get(field):
                raise ValidationFailedError(f"{field} is required", {"field": field})

        values["email"] = values["email"].lower()
        await self._ensure_unique(values["email"], values["user_id"])

        profile = JobseekerProfile(
            **values,
            verification_status=VerificationStatus.PENDING.value,
            created_by_user_id=user.user_id,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self.db.add(profile)
        await self.db.flush()

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.CREATE_JOBSEEKER,
            primary_entity=("jobseeker", profile.user_id, profile.full_name),
            display_message=f"{user.full_name} created jobseeker profile for {profile.full_name}",
        )
        if draft_id:
            await self.drafts.consume_draft(draft_id, user)
        await self.db.commit()

        logger.info(f"Jobseeker profile created: {profile.id}")
        return self._profile_to_dict(profile, viewer=user)

    async def update_profile(self, profile_id, data: Dict[str, Any], user) -> Dict[str, Any]:
        """Partial update by staff or by the profile owner."""
        profile = await self.get_profile(profile_id)
        if not user.is_staff and profile.user_id != user.user_id:
            raise PermissionDeniedError("You can only update your own profile")

        values = self._normalize(data)
        values.pop("user_id", None)
        if "email" in values:
            if not values["email"]:
                raise ValidationFailedError("email cannot be empty", {"field": "email"})
            values["email"] = values["email"].lower()
            if values["email"] != profile.email:
                await self._ensure_unique(values["email"], None, exclude_id=profile.id)

        for key, value in values.items():
            setattr(profile, key, value)
        profile.updated_at = datetime.utcnow()

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.UPDATE_JOBSEEKER,
            primary_entity=("jobseeker", profile.user_id, profile.full_name),
            display_message=f"{user.full_name} updated jobseeker profile for {profile.full_name}",
            metadata={"changed_fields": sorted(values)},
        )
        await self.db.commit()
        return self._profile_to_dict(profile, viewer=user)

    async def update_status(
        self,
        profile_id,
        status: str,
        user,
        rejection_reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Change verification status.

        Verifying assigns an employee ID if the profile has none.
        Rejecting requires a reason.
        """
        try:
            new_status = VerificationStatus(status)
        except ValueError:
            raise ValidationFailedError(f"Invalid status: {status}", {"field": "status"})

        profile = await self.get_profile(profile_id)

        if new_status == VerificationStatus.REJECTED:
            if not (rejection_reason or "").strip():
                raise ValidationFailedError("A rejection reason is required", {"field": "rejection_reason"})
            profile.rejection_reason = rejection_reason.strip()
        else:
            profile.rejection_reason = None

        if new_status == VerificationStatus.VERIFIED and not profile.employee_id:
            profile.employee_id = await self._next_employee_id()

        profile.verification_status = new_status.value
        profile.updated_at = datetime.utcnow()

        if new_status != VerificationStatus.PENDING:
            action = (
                ActivityActionType.VERIFY_JOBSEEKER
                if new_status == VerificationStatus.VERIFIED
                else ActivityActionType.REJECT_JOBSEEKER
            )
            self.activity.log(
                actor=user,
                action_type=action,
                primary_entity=("jobseeker", profile.user_id, profile.full_name),
                display_message=f"{user.full_name} {new_status.value} jobseeker {profile.full_name}",
                metadata={"rejection_reason": profile.rejection_reason} if profile.rejection_reason else None,
            )
        await self.db.commit()

        logger.info(f"Jobseeker {profile.id} status -> {new_status.value}")
        return self._profile_to_dict(profile, viewer=user)

    async def delete_profile(self, profile_id, user) -> None:
        """
        Raises:
            ConflictError: The jobseeker still holds a seat on a position
        """
        profile = await self.get_profile(profile_id)

        seats = (await self.db.execute(
            select(func.count(PositionAssignment.id)).where(
                PositionAssignment.candidate_id == profile.user_id,
                PositionAssignment.status.in_(SEAT_HOLDING_STATUSES),
            )
        )).scalar() or 0
        if seats:
            raise ConflictError(
                f"Jobseeker holds {seats} active or upcoming assignment(s); remove them first",
                {"assigned": seats},
            )

        name = profile.full_name
        user_id = profile.user_id
        await self.db.delete(profile)
        self.activity.log(
            actor=user,
            action_type=ActivityActionType.DELETE_JOBSEEKER,
            primary_entity=("jobseeker", user_id, name),
            display_message=f"{user.full_name} deleted jobseeker profile for {name}",
        )
        await self.db.commit()
        logger.info(f"Jobseeker profile deleted: {profile_id}")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _ensure_unique(self, email: str, user_id, exclude_id=None) -> None:
        conditions = [func.lower(JobseekerProfile.email) == email]
        if user_id is not None:
            conditions = [or_(conditions[0], JobseekerProfile.user_id == user_id)]
        query = select(JobseekerProfile.id).where(*conditions)
        if exclude_id is not None:
            query = query.where(JobseekerProfile.id != exclude_id)
        if (await self.db.execute(query)).first() is not None:
            raise ConflictError("A jobseeker profile with this email or account already exists")

    async def _next_employee_id(self) -> str:
        """EMP + zero-padded (highest numeric employee ID + 1)."""
        result = await self.db.execute(
            select(JobseekerProfile.employee_id).where(JobseekerProfile.employee_id.is_not(None))
        )
        highest = 0
        for employee_id in result.scalars().all():
            suffix = employee_id[len(EMPLOYEE_ID_PREFIX):] if employee_id.startswith(EMPLOYEE_ID_PREFIX) else ""
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{EMPLOYEE_ID_PREFIX}{highest + 1:0{EMPLOYEE_ID_DIGITS}d}"

    @staticmethod
    def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, value in data.items():
            if key not in PROFILE_FIELDS:
                continue
            if isinstance(value, str):
                value = value.strip()
            values[key] = value
        try:
            return {k: coerce_column_value(JobseekerProfile, k, v) for k, v in values.items()}
        except (TypeError, ValueError) as e:
            raise ValidationFailedError(f"Invalid profile data: {e}")

    @staticmethod
    def _profile_to_dict(profile: JobseekerProfile, summary: bool = False, viewer=None) -> Dict[str, Any]:
        """
        Profile for an API response.

        ``summary`` drops the identity numbers entirely. Otherwise they are
        shown in full only to an admin or to the jobseeker who owns the
        profile; other viewers get them masked.
        """
        data = row_to_dict(profile, exclude=SENSITIVE_FIELDS if summary else ())
        if not summary and not can_see_identity_numbers(profile, viewer):
            for field in SENSITIVE_FIELDS:
                data[field] = mask_identifier(data[field])
        data["full_name"] = profile.full_name
        return data
