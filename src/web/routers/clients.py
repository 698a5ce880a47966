"""
Client Routes - client companies and client drafts.

Routes:
- GET /api/clients - List clients (filters + pagination)
- POST /api/clients - Create client
- GET /api/clients/{client_id} - Get client
- PUT /api/clients/{client_id} - Partial update
- DELETE /api/clients/{client_id} - Delete (admin only)
- GET /api/clients/drafts - Caller's drafts
- POST /api/clients/draft - Save a new draft
- GET|PUT|DELETE /api/clients/draft/{draft_id} - Draft by id (PUT upserts)

All routes require an admin or recruiter.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, EmailStr, Field

from security.auth import UserContext, require_admin, require_staff
from services import ClientService
from web.dependencies import get_client_service
from web.helpers.pagination import paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clients", tags=["Clients"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class ClientFields(BaseModel):
    """Every client field, all optional (drafts and partial updates)."""
    company_name: Optional[str] = Field(None, max_length=255)
    billing_name: Optional[str] = Field(None, max_length=255)
    short_code: Optional[str] = Field(None, max_length=3)
    list_name: Optional[str] = Field(None, max_length=255)
    website: Optional[str] = Field(None, max_length=255)
    client_manager: Optional[str] = None
    sales_person: Optional[str] = None
    accounting_person: Optional[str] = None
    merge_invoice: Optional[bool] = None
    currency: Optional[str] = Field(None, max_length=3)
    work_province: Optional[str] = None

    contact_person_name1: Optional[str] = None
    email_address1: Optional[str] = None
    mobile1: Optional[str] = None
    invoice_cc1: Optional[bool] = None
    contact_person_name2: Optional[str] = None
    email_address2: Optional[str] = None
    mobile2: Optional[str] = None
    invoice_cc2: Optional[bool] = None
    contact_person_name3: Optional[str] = None
    email_address3: Optional[str] = None
    mobile3: Optional[str] = None
    invoice_cc3: Optional[bool] = None
    dispatch_dept_email: Optional[str] = None
    accounts_dept_email: Optional[str] = None
    invoice_cc_dispatch: Optional[bool] = None
    invoice_cc_accounts: Optional[bool] = None
    invoice_language: Optional[str] = None

    street_address1: Optional[str] = None
    city1: Optional[str] = None
    province1: Optional[str] = None
    postal_code1: Optional[str] = None
    street_address2: Optional[str] = None
    city2: Optional[str] = None
    province2: Optional[str] = None
    postal_code2: Optional[str] = None
    street_address3: Optional[str] = None
    city3: Optional[str] = None
    province3: Optional[str] = None
    postal_code3: Optional[str] = None

    preferred_payment_method: Optional[str] = None
    terms: Optional[str] = None
    pay_cycle: Optional[str] = None
    credit_limit: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    wsib_code: Optional[str] = Field(None, max_length=2)


class ClientCreate(ClientFields):
    """Create client request."""
    company_name: str = Field(..., min_length=1, max_length=255)
    billing_name: str = Field(..., min_length=1, max_length=255)
    contact_person_name1: str = Field(..., min_length=1)
    email_address1: EmailStr
    mobile1: str = Field(..., min_length=1)
    street_address1: str = Field(..., min_length=1)
    city1: str = Field(..., min_length=1)
    province1: str = Field(..., min_length=1)
    postal_code1: str = Field(..., min_length=1)
    draft_id: Optional[UUID] = None


class ClientUpdate(ClientFields):
    """Partial update; only fields sent are changed."""
    email_address1: Optional[EmailStr] = None


# =============================================================================
# DRAFT ROUTES (declared before /{client_id})
# =============================================================================

@router.get("/drafts")
async def list_client_drafts(
    user: UserContext = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    """The caller's client drafts, most recently saved first."""
    return {"drafts": await service.drafts.list_drafts(user)}


@router.post("/draft", status_code=status.HTTP_201_CREATED)
async def create_client_draft(
    body: ClientFields,
    user: UserContext = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    return await service.drafts.save_draft(body.model_dump(exclude_unset=True), user)


@router.get("/draft/{draft_id}")
async def get_client_draft(
    draft_id: UUID,
    user: UserContext = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    return service.drafts.to_dict(await service.drafts.get_draft(draft_id, user))


@router.put("/draft/{draft_id}")
async def update_client_draft(
    draft_id: UUID,
    body: ClientFields,
    user: UserContext = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    return await service.drafts.save_draft(body.model_dump(exclude_unset=True), user, draft_id=draft_id)


@router.delete("/draft/{draft_id}")
async def delete_client_draft(
    draft_id: UUID,
    user: UserContext = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    await service.drafts.delete_draft(draft_id, user)
    return {"success": True, "message": "Draft deleted"}


# =============================================================================
# CLIENT ROUTES
# =============================================================================

@router.get("")
async def list_clients(
    search: Optional[str] = Query(None),
    company_name: Optional[str] = Query(None),
    short_code: Optional[str] = Query(None),
    list_name: Optional[str] = Query(None),
    manager: Optional[str] = Query(None),
    currency: Optional[str] = Query(None),
    province: Optional[str] = Query(None),
    payment_method: Optional[str] = Query(None),
    terms: Optional[str] = Query(None),
    pay_cycle: Optional[str] = Query(None),
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    items, total = await service.list_clients(
        search=search,
        company_name=company_name,
        short_code=short_code,
        list_name=list_name,
        manager=manager,
        currency=currency,
        province=province,
        payment_method=payment_method,
        terms=terms,
        pay_cycle=pay_cycle,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginate(items, total, page["limit"], page["offset"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(
    body: ClientCreate,
    user: UserContext = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    """
    Create a client.

    A draft_id in the body deletes that draft once the client exists.
    """
    data = body.model_dump(exclude_unset=True, exclude={"draft_id"})
    return await service.create_client(data, user, draft_id=body.draft_id)


@router.get("/{client_id}")
async def get_client(
    client_id: UUID,
    user: UserContext = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    return await service.get_client_dict(client_id)


@router.put("/{client_id}")
async def update_client(
    client_id: UUID,
    body: ClientUpdate,
    user: UserContext = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    return await service.update_client(client_id, body.model_dump(exclude_unset=True), user)


@router.delete("/{client_id}")
async def delete_client(
    client_id: UUID,
    user: UserContext = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    await service.delete_client(client_id, user)
    return {"success": True, "message": "Client deleted"}
