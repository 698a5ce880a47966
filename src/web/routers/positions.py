"""
Position Routes - job openings, seat assignments and position drafts.

Routes:
- GET /api/positions - List positions
- POST /api/positions - Create position
- GET /api/positions/generate-code/{client_id} - Next position code
- GET /api/positions/client/{client_id} - A client's positions
- GET /api/positions/candidate/{candidate_id}/assignments - A candidate's assignments
- GET|PUT|DELETE /api/positions/{position_id}
- POST /api/positions/{position_id}/assign - Give a jobseeker a seat
- DELETE /api/positions/{position_id}/assign/{candidate_id} - Cancel a seat
- GET /api/positions/{position_id}/assignments - All assignments of a position
- Drafts: /api/positions/drafts, /draft, /draft/{draft_id}
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from database.models import AssignmentStatus, EmploymentTerm, EmploymentType, PayrateType
from security.auth import UserContext, get_current_user, require_staff
from services import PositionService
from web.dependencies import get_position_service
from web.helpers.pagination import paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/positions", tags=["Positions"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class DocumentsRequired(BaseModel):
    license: bool = False
    driverAbstract: bool = False
    tdgCertificate: bool = False
    sin: bool = False
    immigrationStatus: bool = False
    passport: bool = False
    cvor: bool = False
    resume: bool = False
    articlesOfIncorporation: bool = False
    directDeposit: bool = False


class PositionFields(BaseModel):
    """Every position field, all optional (drafts and partial updates)."""
    client_id: Optional[UUID] = None
    title: Optional[str] = Field(None, max_length=255)
    position_code: Optional[str] = Field(None, max_length=10)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    show_on_job_portal: Optional[bool] = None
    client_manager: Optional[str] = None
    sales_manager: Optional[str] = None
    position_number: Optional[str] = None
    description: Optional[str] = None

    street_address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None

    employment_term: Optional[EmploymentTerm] = None
    employment_type: Optional[EmploymentType] = None
    position_category: Optional[str] = None
    experience: Optional[str] = None
    documents_required: Optional[DocumentsRequired] = None

    payrate_type: Optional[PayrateType] = None
    number_of_positions: Optional[int] = Field(None, ge=1)
    regular_pay_rate: Optional[float] = Field(None, ge=0)
    markup: Optional[float] = Field(None, ge=0)
    bill_rate: Optional[float] = Field(None, ge=0)
    overtime_enabled: Optional[bool] = None
    overtime_hours: Optional[float] = Field(None, gt=0)
    overtime_bill_rate: Optional[float] = Field(None, ge=0)
    overtime_pay_rate: Optional[float] = Field(None, ge=0)

    preferred_payment_method: Optional[str] = None
    terms: Optional[str] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    proj_comp_date: Optional[date] = None
    task_time: Optional[str] = None


class PositionCreate(PositionFields):
    """Create position request."""
    client_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    start_date: date
    employment_term: EmploymentTerm
    employment_type: EmploymentType
    position_category: str = Field(..., min_length=1)
    experience: str = Field(..., min_length=1)
    documents_required: DocumentsRequired
    payrate_type: PayrateType
    number_of_positions: int = Field(..., ge=1)
    regular_pay_rate: float = Field(..., ge=0)
    bill_rate: float = Field(..., ge=0)
    draft_id: Optional[UUID] = None


class AssignRequest(BaseModel):
    candidate_id: UUID
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# =============================================================================
# STATIC ROUTES (declared before /{position_id})
# =============================================================================

@router.get("/generate-code/{client_id}")
async def generate_position_code(
    client_id: UUID,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    return await service.generate_position_code(client_id)


@router.get("/drafts")
async def list_position_drafts(
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    return {"drafts": await service.drafts.list_drafts(user)}


@router.post("/draft", status_code=status.HTTP_201_CREATED)
async def create_position_draft(
    body: PositionFields,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    return await service.drafts.save_draft(body.model_dump(exclude_unset=True, mode="json"), user)


@router.get("/draft/{draft_id}")
async def get_position_draft(
    draft_id: UUID,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    return service.drafts.to_dict(await service.drafts.get_draft(draft_id, user))


@router.put("/draft/{draft_id}")
async def update_position_draft(
    draft_id: UUID,
    body: PositionFields,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    return await service.drafts.save_draft(
        body.model_dump(exclude_unset=True, mode="json"), user, draft_id=draft_id
    )


@router.delete("/draft/{draft_id}")
async def delete_position_draft(
    draft_id: UUID,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    await service.drafts.delete_draft(draft_id, user)
    return {"success": True, "message": "Draft deleted"}


@router.get("/client/{client_id}")
async def list_client_positions(
    client_id: UUID,
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    items, total = await service.list_client_positions(
        client_id, limit=page["limit"], offset=page["offset"]
    )
    return paginate(items, total, page["limit"], page["offset"])


@router.get("/candidate/{candidate_id}/assignments")
async def list_candidate_assignments(
    candidate_id: UUID,
    search: Optional[str] = Query(None),
    status_filter: Optional[AssignmentStatus] = Query(None, alias="status"),
    position_id: Optional[UUID] = Query(None),
    on_date: Optional[date] = Query(None, alias="date"),
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(get_current_user),
    service: PositionService = Depends(get_position_service),
):
    """
    A candidate's assignments with status counts.

    Staff may read anyone's; a jobseeker only their own.
    """
    if not user.is_staff and user.user_id != candidate_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own assignments",
        )

    items, total, status_counts = await service.list_candidate_assignments(
        candidate_id,
        search=search,
        status=status_filter.value if status_filter else None,
        position_id=position_id,
        on_date=on_date,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginate(
        items, total, page["limit"], page["offset"],
        extra={"status_counts": status_counts},
    )


# =============================================================================
# POSITION ROUTES
# =============================================================================

@router.get("")
async def list_positions(
    search: Optional[str] = Query(None),
    title: Optional[str] = Query(None),
    client_id: Optional[UUID] = Query(None),
    position_code: Optional[str] = Query(None),
    employment_type: Optional[EmploymentType] = Query(None),
    employment_term: Optional[EmploymentTerm] = Query(None),
    position_category: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    show_on_job_portal: Optional[bool] = Query(None),
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    items, total = await service.list_positions(
        search=search,
        title=title,
        client_id=client_id,
        position_code=position_code,
        employment_type=employment_type.value if employment_type else None,
        employment_term=employment_term.value if employment_term else None,
        position_category=position_category,
        start_date=start_date,
        show_on_job_portal=show_on_job_portal,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginate(items, total, page["limit"], page["offset"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_position(
    body: PositionCreate,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    data = body.model_dump(exclude_unset=True, exclude={"draft_id"})
    return await service.create_position(data, user, draft_id=body.draft_id)


@router.get("/{position_id}")
async def get_position(
    position_id: UUID,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    return await service.get_position_dict(position_id)


@router.put("/{position_id}")
async def update_position(
    position_id: UUID,
    body: PositionFields,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    return await service.update_position(position_id, body.model_dump(exclude_unset=True), user)


@router.delete("/{position_id}")
async def delete_position(
    position_id: UUID,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    await service.delete_position(position_id, user)
    return {"success": True, "message": "Position deleted"}


# =============================================================================
# ASSIGNMENTS
# =============================================================================

@router.post("/{position_id}/assign")
async def assign_jobseeker(
    position_id: UUID,
    body: AssignRequest,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    """Give a verified jobseeker a seat; 409 when the position is full."""
    return await service.assign_jobseeker(
        position_id,
        body.candidate_id,
        user,
        start_date=body.start_date,
        end_date=body.end_date,
    )


@router.delete("/{position_id}/assign/{candidate_id}")
async def remove_jobseeker(
    position_id: UUID,
    candidate_id: UUID,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    return await service.remove_jobseeker(position_id, candidate_id, user)


@router.get("/{position_id}/assignments")
async def list_position_assignments(
    position_id: UUID,
    user: UserContext = Depends(require_staff),
    service: PositionService = Depends(get_position_service),
):
    items = await service.list_position_assignments(position_id)
    return {"assignments": items, "total": len(items)}
