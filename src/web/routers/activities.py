"""Recent activity feed (staff only)."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from audit.activity_logger import ActivityActionType, ActivityCategory, ActivityLogger
from security.auth import UserContext, require_staff
from web.dependencies import get_activity_logger
from web.helpers.pagination import paginate, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/activities", tags=["Activities"])


@router.get("")
async def list_activities(
    category: Optional[ActivityCategory] = Query(None),
    action_type: Optional[ActivityActionType] = Query(None),
    actor_id: Optional[UUID] = Query(None),
    page: dict = Depends(pagination_params()),
    user: UserContext = Depends(require_staff),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Newest first, optionally filtered by category, action type or actor."""
    items, total = await activity.list_recent(
        category=category.value if category else None,
        action_type=action_type.value if action_type else None,
        actor_id=actor_id,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginate(items, total, page["limit"], page["offset"])
