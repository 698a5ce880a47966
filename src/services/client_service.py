"""
Client Service - client company management.

Handles:
- Client CRUD with filtering and pagination
- Company name uniqueness (case-insensitive)
- Short code and WSIB code normalization
- Client drafts
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from audit.activity_logger import ActivityActionType, ActivityLogger
from database.models import Client, ClientDraft, Position

from .draft_service import DraftService
from .exceptions import ConflictError, NotFoundError, ValidationFailedError
from .serializers import as_uuid, coerce_column_value, mapped_fields, row_to_dict

logger = logging.getLogger(__name__)

WSIB_CODE_PATTERN = re.compile(r"^[A-Z][0-9]$")

REQUIRED_CLIENT_FIELDS = (
    "company_name",
    "billing_name",
    "contact_person_name1",
    "email_address1",
    "mobile1",
    "street_address1",
    "city1",
    "province1",
    "postal_code1",
)

CLIENT_FIELDS = mapped_fields(
    Client,
    exclude=("id", "created_by_user_id", "updated_by_user_id", "created_at", "updated_at"),
)


class ClientService:
    """Service for client operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLogger(db)
        self.drafts = DraftService(db, ClientDraft, "Client")

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_clients(
        self,
        search: Optional[str] = None,
        company_name: Optional[str] = None,
        short_code: Optional[str] = None,
        list_name: Optional[str] = None,
        manager: Optional[str] = None,
        currency: Optional[str] = None,
        province: Optional[str] = None,
        payment_method: Optional[str] = None,
        terms: Optional[str] = None,
        pay_cycle: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """List clients matching the filters, newest first, with the total count."""
        conditions = []

        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(
                Client.company_name.ilike(pattern),
                Client.short_code.ilike(pattern),
                Client.list_name.ilike(pattern),
                Client.contact_person_name1.ilike(pattern),
            ))
        if company_name:
            conditions.append(Client.company_name.ilike(f"%{company_name}%"))
        if short_code:
            conditions.append(Client.short_code == short_code.strip().upper())
        if list_name:
            conditions.append(Client.list_name.ilike(f"%{list_name}%"))
        if manager:
            conditions.append(Client.client_manager.ilike(f"%{manager}%"))
        if currency:
            conditions.append(Client.currency == currency.upper())
        if province:
            conditions.append(or_(
                Client.work_province.ilike(province),
                Client.province1.ilike(province),
            ))
        if payment_method:
            conditions.append(Client.preferred_payment_method == payment_method)
        if terms:
            conditions.append(Client.terms == terms)
        if pay_cycle:
            conditions.append(Client.pay_cycle == pay_cycle)

        count_query = select(func.count(Client.id))
        query = select(Client)
        if conditions:
            count_query = count_query.where(*conditions)
            query = query.where(*conditions)

        total = (await self.db.execute(count_query)).scalar() or 0

        result = await self.db.execute(
            query.order_by(Client.created_at.desc()).offset(offset).limit(limit)
        )
        return [self._client_to_dict(c) for c in result.scalars().all()], total

    async def get_client(self, client_id) -> Client:
        client = await self.db.get(Client, as_uuid(client_id))
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    async def get_client_dict(self, client_id) -> Dict[str, Any]:
        return self._client_to_dict(await self.get_client(client_id))

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create_client(
        self,
        data: Dict[str, Any],
        user,
        draft_id=None,
    ) -> Dict[str, Any]:
        """
        Create a client.

        Raises:
            ValidationFailedError: Missing required fields or bad codes
            ConflictError: Company name already in use
        """
        values = self._normalize(data)
        missing = [f for f in REQUIRED_CLIENT_FIELDS if not values.get(f)]
        if missing:
            raise ValidationFailedError(
                f"Missing required fields: {', '.join(missing)}",
                {"fields": missing},
            )

        await self._ensure_unique_name(values["company_name"])

        client = Client(
            **values,
            created_by_user_id=user.user_id,
            updated_by_user_id=user.user_id,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self.db.add(client)
        await self.db.flush()

        if draft_id:
            await self.drafts.consume_draft(draft_id, user)

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.CREATE_CLIENT,
            primary_entity=("client", client.id, client.company_name),
            display_message=f"{user.full_name} created client {client.company_name}",
            metadata={"short_code": client.short_code},
        )
        await self.db.commit()

        logger.info(f"Client created: {client.company_name} ({client.id})")
        return self._client_to_dict(client)

    async def update_client(self, client_id, data: Dict[str, Any], user) -> Dict[str, Any]:
        """Partial update; only keys present in ``data`` change."""
        client = await self.get_client(client_id)
        values = self._normalize(data)

        for field in REQUIRED_CLIENT_FIELDS:
            if field in values and not values[field]:
                raise ValidationFailedError(f"{field} cannot be empty", {"field": field})

        new_name = values.get("company_name")
        if new_name and new_name.lower() != (client.company_name or "").lower():
            await self._ensure_unique_name(new_name, exclude_id=client.id)

        changed = []
        for key, value in values.items():
            if getattr(client, key) != value:
                setattr(client, key, value)
                changed.append(key)

        client.updated_by_user_id = user.user_id
        client.updated_at = datetime.utcnow()

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.UPDATE_CLIENT,
            primary_entity=("client", client.id, client.company_name),
            display_message=f"{user.full_name} updated client {client.company_name}",
            metadata={"changed_fields": changed},
        )
        await self.db.commit()

        logger.info(f"Client updated: {client.id} ({len(changed)} fields)")
        return self._client_to_dict(client)

    async def delete_client(self, client_id, user) -> None:
        """
        Delete a client that no position references.

        Raises:
            ConflictError: Positions still reference the client
        """
        client = await self.get_client(client_id)

        position_count = (await self.db.execute(
            select(func.count(Position.id)).where(Position.client_id == client.id)
        )).scalar() or 0
        if position_count:
            raise ConflictError(
                f"Cannot delete client with {position_count} position(s); delete them first",
                {"position_count": position_count},
            )

        name = client.company_name
        await self.db.delete(client)

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.DELETE_CLIENT,
            primary_entity=("client", client_id, name),
            display_message=f"{user.full_name} deleted client {name}",
        )
        await self.db.commit()
        logger.info(f"Client deleted: {name} ({client_id})")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _ensure_unique_name(self, company_name: str, exclude_id=None) -> None:
        query = select(Client.id).where(
            func.lower(Client.company_name) == company_name.strip().lower()
        )
        if exclude_id is not None:
            query = query.where(Client.id != exclude_id)
        if (await self.db.execute(query)).first() is not None:
            raise ConflictError(f"A client named '{company_name}' already exists")

    @staticmethod
    def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        """Keep known fields, trim strings, upper-case the codes, coerce types."""
        values: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in CLIENT_FIELDS:
                continue
            if isinstance(value, str):
                value = value.strip()
            values[key] = value

        short_code = values.get("short_code")
        if short_code:
            short_code = short_code.upper()
            if not short_code.isalnum() or len(short_code) > 3:
                raise ValidationFailedError(
                    "short_code must be 1-3 letters or digits", {"field": "short_code"}
                )
            values["short_code"] = short_code

        wsib_code = values.get("wsib_code")
        if wsib_code:
            wsib_code = wsib_code.upper()
            if not WSIB_CODE_PATTERN.match(wsib_code):
                raise ValidationFailedError(
                    "wsib_code must be a letter followed by a digit (e.g. G1)",
                    {"field": "wsib_code"},
                )
            values["wsib_code"] = wsib_code

        if values.get("currency"):
            values["currency"] = values["currency"].upper()

        try:
            return {k: coerce_column_value(Client, k, v) for k, v in values.items()}
        except (TypeError, ValueError) as e:
            raise ValidationFailedError(f"Invalid client data: {e}")

    @staticmethod
    def _client_to_dict(client: Client) -> Dict[str, Any]:
        return row_to_dict(client)
