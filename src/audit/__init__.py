"""
Activity history for the staffing back office.

    from audit import ActivityLogger, ActivityActionType

    ActivityLogger(db).log(
        actor=user,
        action_type=ActivityActionType.CREATE_CLIENT,
        primary_entity=("client", client.id, client.company_name),
        display_message=f"{user.full_name} created client {client.company_name}",
    )
"""

from audit.activity_logger import (
    ActivityActionType,
    ActivityCategory,
    ActivityLogger,
    ActivityPriority,
    action_category,
    action_verb,
)

__all__ = [
    "ActivityActionType",
    "ActivityCategory",
    "ActivityLogger",
    "ActivityPriority",
    "action_category",
    "action_verb",
]
