"""
Activity Logging

Human-readable "who did what" feed for the back office. Each entry names
the actor, the action, and up to three entities involved, e.g.

    Jane Recruiter assigned John Smith to Forklift Operator at Acme Logistics

Entries are written in the caller's transaction so they commit (or roll
back) together with the change they describe.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import RecentActivity

logger = logging.getLogger(__name__)


class ActivityActionType(str, Enum):
    """Actions recorded in the activity feed."""

    # Candidates
    ASSIGN_JOBSEEKER = "assign_jobseeker"
    REMOVE_JOBSEEKER = "remove_jobseeker"
    VERIFY_JOBSEEKER = "verify_jobseeker"
    REJECT_JOBSEEKER = "reject_jobseeker"
    CREATE_JOBSEEKER = "create_jobseeker"
    UPDATE_JOBSEEKER = "update_jobseeker"
    DELETE_JOBSEEKER = "delete_jobseeker"

    # Clients
    CREATE_CLIENT = "create_client"
    UPDATE_CLIENT = "update_client"
    DELETE_CLIENT = "delete_client"

    # Positions
    CREATE_POSITION = "create_position"
    UPDATE_POSITION = "update_position"
    DELETE_POSITION = "delete_position"

    # Timesheets
    CREATE_TIMESHEET = "create_timesheet"
    UPDATE_TIMESHEET = "update_timesheet"
    DELETE_TIMESHEET = "delete_timesheet"
    CREATE_BULK_TIMESHEET = "create_bulk_timesheet"
    UPDATE_BULK_TIMESHEET = "update_bulk_timesheet"
    DELETE_BULK_TIMESHEET = "delete_bulk_timesheet"


class ActivityCategory(str, Enum):
    CANDIDATE_MANAGEMENT = "candidate_management"
    CLIENT_MANAGEMENT = "client_management"
    POSITION_MANAGEMENT = "position_management"
    FINANCIAL = "financial"
    SYSTEM = "system"


class ActivityPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


_ACTION_VERBS = {
    ActivityActionType.ASSIGN_JOBSEEKER: "assigned",
    ActivityActionType.REMOVE_JOBSEEKER: "removed",
    ActivityActionType.VERIFY_JOBSEEKER: "verified",
    ActivityActionType.REJECT_JOBSEEKER: "rejected",
}

_ACTION_CATEGORIES = {
    ActivityActionType.ASSIGN_JOBSEEKER: ActivityCategory.CANDIDATE_MANAGEMENT,
    ActivityActionType.REMOVE_JOBSEEKER: ActivityCategory.CANDIDATE_MANAGEMENT,
    ActivityActionType.VERIFY_JOBSEEKER: ActivityCategory.CANDIDATE_MANAGEMENT,
    ActivityActionType.REJECT_JOBSEEKER: ActivityCategory.CANDIDATE_MANAGEMENT,
    ActivityActionType.CREATE_JOBSEEKER: ActivityCategory.CANDIDATE_MANAGEMENT,
    ActivityActionType.UPDATE_JOBSEEKER: ActivityCategory.CANDIDATE_MANAGEMENT,
    ActivityActionType.DELETE_JOBSEEKER: ActivityCategory.CANDIDATE_MANAGEMENT,
    ActivityActionType.CREATE_CLIENT: ActivityCategory.CLIENT_MANAGEMENT,
    ActivityActionType.UPDATE_CLIENT: ActivityCategory.CLIENT_MANAGEMENT,
    ActivityActionType.DELETE_CLIENT: ActivityCategory.CLIENT_MANAGEMENT,
    ActivityActionType.CREATE_POSITION: ActivityCategory.POSITION_MANAGEMENT,
    ActivityActionType.UPDATE_POSITION: ActivityCategory.POSITION_MANAGEMENT,
    ActivityActionType.DELETE_POSITION: ActivityCategory.POSITION_MANAGEMENT,
}


def action_verb(action_type: ActivityActionType) -> str:
    """Past-tense verb for an action ("create_client" -> "created")."""
    if action_type in _ACTION_VERBS:
        return _ACTION_VERBS[action_type]
    verb = action_type.value.split("_", 1)[0]
    return f"{verb}d" if verb.endswith("e") else f"{verb}ed"


def action_category(action_type: ActivityActionType) -> ActivityCategory:
    """Feed category for an action; all timesheet actions are financial."""
    return _ACTION_CATEGORIES.get(action_type, ActivityCategory.FINANCIAL)


class ActivityLogger:
    """
    Writes RecentActivity rows into the caller's session.

    Usage:
        activity = ActivityLogger(db)
        activity.log(
            actor=user,
            action_type=ActivityActionType.CREATE_CLIENT,
            primary_entity=("client", client.id, client.company_name),
            display_message=f"{user.full_name} created client {client.company_name}",
        )
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def log(
        self,
        actor,
        action_type: ActivityActionType,
        primary_entity: Tuple[str, Any, Optional[str]],
        display_message: str,
        secondary_entity: Optional[Tuple[str, Any, Optional[str]]] = None,
        tertiary_entity: Optional[Tuple[str, Any, Optional[str]]] = None,
        category: Optional[ActivityCategory] = None,
        priority: ActivityPriority = ActivityPriority.NORMAL,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[RecentActivity]:
        """
        Record an activity.

        Args:
            actor: UserContext of the caller
            action_type: What happened
            primary_entity: (type, id, name) of the main entity
            display_message: Sentence shown in the feed
            secondary_entity: Optional (type, id, name)
            tertiary_entity: Optional (type, id, name)
            category: Defaults to the action's category
            priority: Feed priority
            metadata: Free-form JSON details

        Returns:
            The pending RecentActivity, or None when it could not be built.
            Errors are logged, never raised.
        """
        try:
            entry = RecentActivity(
                actor_id=actor.user_id,
                actor_name=actor.full_name,
                actor_type=actor.user_type.value,
                action_type=action_type.value,
                action_verb=action_verb(action_type),
                display_message=display_message,
                category=(category or action_category(action_type)).value,
                priority=priority.value,
                status="completed",
                activity_metadata=metadata or {},
                created_at=datetime.utcnow(),
            )
            self._set_entity(entry, "primary", primary_entity)
            self._set_entity(entry, "secondary", secondary_entity)
            self._set_entity(entry, "tertiary", tertiary_entity)
            self.db.add(entry)
        except Exception as e:
            logger.error(f"Failed to record activity {getattr(action_type, 'value', action_type)}: {e}")
            return None

        logger.debug(f"Activity recorded: {display_message}")
        return entry

    @staticmethod
    def _set_entity(entry: RecentActivity, slot: str, entity) -> None:
        if entity is None:
            return
        entity_type, entity_id, entity_name = entity
        setattr(entry, f"{slot}_entity_type", entity_type)
        setattr(entry, f"{slot}_entity_id", str(entity_id) if entity_id is not None else None)
        setattr(entry, f"{slot}_entity_name", entity_name)

    async def list_recent(
        self,
        category: Optional[str] = None,
        action_type: Optional[str] = None,
        actor_id=None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Newest activities first, with the total matching count."""
        query = select(RecentActivity)
        count_query = select(func.count(RecentActivity.id))

        conditions = []
        if category:
            conditions.append(RecentActivity.category == category)
        if action_type:
            conditions.append(RecentActivity.action_type == action_type)
        if actor_id:
            conditions.append(RecentActivity.actor_id == actor_id)

        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(RecentActivity.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return [self._activity_to_dict(a) for a in result.scalars().all()], total

    @staticmethod
    def _activity_to_dict(activity: RecentActivity) -> Dict[str, Any]:
        def entity(slot: str) -> Optional[Dict[str, Any]]:
            entity_type = getattr(activity, f"{slot}_entity_type")
            if not entity_type:
                return None
            return {
                "type": entity_type,
                "id": getattr(activity, f"{slot}_entity_id"),
                "name": getattr(activity, f"{slot}_entity_name"),
            }

        return {
            "id": str(activity.id),
            "actor_id": str(activity.actor_id),
            "actor_name": activity.actor_name,
            "actor_type": activity.actor_type,
            "action_type": activity.action_type,
            "action_verb": activity.action_verb,
            "primary_entity": entity("primary"),
            "secondary_entity": entity("secondary"),
            "tertiary_entity": entity("tertiary"),
            "display_message": activity.display_message,
            "category": activity.category,
            "priority": activity.priority,
            "status": activity.status,
            "metadata": activity.activity_metadata or {},
            "created_at": activity.created_at.isoformat() if activity.created_at else None,
        }
