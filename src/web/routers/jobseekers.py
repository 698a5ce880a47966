"""
Jobseeker Routes - profiles, verification and candidate matching.

Routes:
- GET /api/jobseekers - List profiles (staff)
- POST /api/jobseekers - Create profile (staff onboarding, or own profile)
- GET /api/jobseekers/position-candidates/{position_id} - Ranked candidates
- GET|PUT /api/jobseekers/{profile_id} - Staff, or the jobseeker themselves
- PUT /api/jobseekers/{profile_id}/status - Verify / reject (staff)
- DELETE /api/jobseekers/{profile_id} - Delete (staff)
- GET /api/jobseekers/drafts - Caller's profile drafts
- POST /api/jobseekers/draft - Save a new profile draft
- GET|PUT|DELETE /api/jobseekers/draft/{draft_id} - Draft by id (PUT upserts)
"""

import logging
from datetime import date
from typing import Any, Dict, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, EmailStr, Field

from database.models import VerificationStatus
from security.auth import UserContext, get_current_user, require_staff
from services import CandidateFilters, JobseekerService, MatchingService
from web.dependencies import get_jobseeker_service, get_matching_service
from web.helpers.pagination import paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobseekers", tags=["Jobseekers"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class ProfileFields(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    mobile: Optional[str] = None
    dob: Optional[date] = None

    license_number: Optional[str] = Field(None, max_length=50)
    passport_number: Optional[str] = Field(None, max_length=50)
    sin_number: Optional[str] = Field(None, max_length=20)

    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None

    work_preference: Optional[str] = None
    license_type: Optional[str] = None
    experience: Optional[str] = None
    availability: Optional[str] = None
    weekend_availability: Optional[bool] = None
    payment_method: Optional[str] = None
    hst_gst: Optional[str] = None
    bio: Optional[str] = None


class ProfileCreate(ProfileFields):
    """Staff pass the account's user_id; a jobseeker's own id is used otherwise."""
    user_id: Optional[UUID] = None
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    draft_id: Optional[UUID] = None


class StatusUpdate(BaseModel):
    status: VerificationStatus
    rejection_reason: Optional[str] = None


class ProfileDraftBody(BaseModel):
    """A half-filled profile form; form_data is stored as sent."""
    form_data: Optional[Dict[str, Any]] = None
    current_step: Optional[int] = Field(None, ge=1, le=20)
    email: Optional[str] = Field(None, max_length=255)


# =============================================================================
# MATCHING
# =============================================================================

@router.get("/position-candidates/{position_id}")
async def position_candidates(
    position_id: UUID,
    search: Optional[str] = Query(None),
    name: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    phone: Optional[str] = Query(None),
    experience: Optional[str] = Query(None),
    availability: Optional[str] = Query(None),
    weekend_availability: Optional[bool] = Query(None),
    city: Optional[str] = Query(None),
    province: Optional[str] = Query(None),
    only_available: bool = Query(False),
    sort_by: Literal["similarity", "name", "experience"] = Query("similarity"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(require_staff),
    service: MatchingService = Depends(get_matching_service),
):
    """Verified jobseekers ranked by similarity to the position."""
    filters = CandidateFilters(
        search=search,
        name=name,
        email=email,
        phone=phone,
        experience=experience,
        availability=availability,
        weekend_availability=weekend_availability,
        city=city,
        province=province,
        only_available=only_available,
    )
    items, total = await service.position_candidates(
        position_id,
        filters,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginate(items, total, page["limit"], page["offset"])


# =============================================================================
# PROFILE DRAFTS (declared before /{profile_id})
# =============================================================================

@router.get("/drafts")
async def list_profile_drafts(
    user: UserContext = Depends(get_current_user),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    """The caller's profile drafts, most recently saved first."""
    return {"drafts": await service.drafts.list_drafts(user)}


@router.post("/draft", status_code=status.HTTP_201_CREATED)
async def create_profile_draft(
    body: ProfileDraftBody,
    user: UserContext = Depends(get_current_user),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    return await service.drafts.save_draft(body.model_dump(exclude_unset=True), user)


@router.get("/draft/{draft_id}")
async def get_profile_draft(
    draft_id: UUID,
    user: UserContext = Depends(get_current_user),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    return service.drafts.to_dict(await service.drafts.get_draft(draft_id, user))


@router.put("/draft/{draft_id}")
async def update_profile_draft(
    draft_id: UUID,
    body: ProfileDraftBody,
    user: UserContext = Depends(get_current_user),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    return await service.drafts.save_draft(body.model_dump(exclude_unset=True), user, draft_id=draft_id)


@router.delete("/draft/{draft_id}")
async def delete_profile_draft(
    draft_id: UUID,
    user: UserContext = Depends(get_current_user),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    await service.drafts.delete_draft(draft_id, user)
    return {"success": True, "message": "Draft deleted"}


# =============================================================================
# PROFILES
# =============================================================================

@router.get("")
async def list_jobseekers(
    search: Optional[str] = Query(None),
    status_filter: Optional[VerificationStatus] = Query(None, alias="status"),
    city: Optional[str] = Query(None),
    province: Optional[str] = Query(None),
    experience: Optional[str] = Query(None),
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(require_staff),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    items, total = await service.list_jobseekers(
        search=search,
        status=status_filter.value if status_filter else None,
        city=city,
        province=province,
        experience=experience,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginate(items, total, page["limit"], page["offset"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_jobseeker(
    body: ProfileCreate,
    user: UserContext = Depends(get_current_user),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    data = body.model_dump(exclude_unset=True, exclude={"draft_id"})
    return await service.create_profile(data, user, draft_id=body.draft_id)


@router.get("/{profile_id}")
async def get_jobseeker(
    profile_id: UUID,
    user: UserContext = Depends(get_current_user),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    return await service.get_profile_for(profile_id, user)


@router.put("/{profile_id}")
async def update_jobseeker(
    profile_id: UUID,
    body: ProfileFields,
    user: UserContext = Depends(get_current_user),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    return await service.update_profile(profile_id, body.model_dump(exclude_unset=True), user)


@router.put("/{profile_id}/status")
async def update_jobseeker_status(
    profile_id: UUID,
    body: StatusUpdate,
    user: UserContext = Depends(require_staff),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    """Verify or reject a profile; rejecting requires a reason."""
    return await service.update_status(
        profile_id,
        body.status.value,
        user,
        rejection_reason=body.rejection_reason,
    )


@router.delete("/{profile_id}")
async def delete_jobseeker(
    profile_id: UUID,
    user: UserContext = Depends(require_staff),
    service: JobseekerService = Depends(get_jobseeker_service),
):
    await service.delete_profile(profile_id, user)
    return {"success": True, "message": "Jobseeker profile deleted"}
