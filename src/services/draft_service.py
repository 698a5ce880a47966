"""
Draft Service - per-user partially completed forms.

Clients, positions and jobseeker profiles can be saved half-filled and
finished later. A draft belongs to the user who saved it; only that user
or an admin can read, change or delete it.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import NotFoundError, PermissionDeniedError, ValidationFailedError
from .serializers import as_uuid, coerce_column_value, mapped_fields, row_to_dict

logger = logging.getLogger(__name__)

_SYSTEM_FIELDS = ("id", "user_id", "created_at", "last_updated")


class DraftService:
    """CRUD for one draft table (ClientDraft, PositionDraft or JobseekerProfileDraft)."""

    def __init__(self, db: AsyncSession, model, label: str):
        self.db = db
        self.model = model
        self.label = label
        self.fields = mapped_fields(model, exclude=_SYSTEM_FIELDS)

    async def list_drafts(self, user) -> List[Dict[str, Any]]:
        """The caller's drafts, most recently saved first."""
        result = await self.db.execute(
            select(self.model)
            .where(self.model.user_id == user.user_id)
            .order_by(self.model.last_updated.desc())
        )
        return [self.to_dict(d) for d in result.scalars().all()]

    async def get_draft(self, draft_id, user):
        """Load a draft the caller may access."""
        draft = await self.db.get(self.model, as_uuid(draft_id))
        if draft is None:
            raise NotFoundError(f"{self.label} draft", draft_id)
        if draft.user_id != user.user_id and not user.is_admin:
            raise PermissionDeniedError(f"You can only access your own {self.label.lower()} drafts")
        return draft

    async def save_draft(
        self,
        data: Dict[str, Any],
        user,
        draft_id=None,
    ) -> Dict[str, Any]:
        """
        Upsert a draft.

        With no ``draft_id`` a new draft is created. A ``draft_id`` that
        does not exist yet creates the draft under that id, so a form can
        autosave with a client-generated id; an existing one is updated
        (owner or admin only).

        Unknown keys are ignored; values are coerced to column types.
        """
        draft = None
        if draft_id is not None:
            draft_uuid = as_uuid(draft_id)
            if draft_uuid is None:
                raise ValidationFailedError(f"Invalid draft id: {draft_id}", {"field": "draft_id"})
            draft = await self.db.get(self.model, draft_uuid)
            if draft is not None and draft.user_id != user.user_id and not user.is_admin:
                raise PermissionDeniedError(f"You can only access your own {self.label.lower()} drafts")
        if draft is None:
            draft = self.model(user_id=user.user_id, created_at=datetime.utcnow())
            if draft_id is not None:
                draft.id = draft_uuid
            self.db.add(draft)

        for key, value in data.items():
            if key not in self.fields:
                continue
            try:
                setattr(draft, key, coerce_column_value(self.model, key, value))
            except (TypeError, ValueError) as e:
                raise ValidationFailedError(f"Invalid value for {key}: {e}", {"field": key})

        draft.last_updated = datetime.utcnow()
        await self.db.commit()

        logger.info(f"{self.label} draft {draft.id} saved by {user.user_id}")
        return self.to_dict(draft)

    async def delete_draft(self, draft_id, user) -> None:
        draft = await self.get_draft(draft_id, user)
        await self.db.delete(draft)
        await self.db.commit()
        logger.info(f"{self.label} draft {draft_id} deleted by {user.user_id}")

    async def consume_draft(self, draft_id, user) -> None:
        """Delete a draft after the real record was created from it (missing is fine)."""
        draft = await self.db.get(self.model, as_uuid(draft_id))
        if draft is None:
            return
        if draft.user_id != user.user_id and not user.is_admin:
            raise PermissionDeniedError(f"You can only access your own {self.label.lower()} drafts")
        await self.db.delete(draft)

    def to_dict(self, draft) -> Dict[str, Any]:
        return row_to_dict(draft)
