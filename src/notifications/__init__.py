"""
Notifications module.

Email delivery (SMTP or a logging null provider) and the jobseeker email
triggers used by the position and timesheet services.
"""

from .email_provider import (
    DeliveryResult,
    DeliveryStatus,
    EmailMessage,
    EmailProvider,
    NullEmailProvider,
    get_email_provider,
    send_email,
    set_email_provider,
)
from .email_triggers import (
    EmailTriggerType,
    StaffingEmailTriggers,
    get_email_triggers,
)

__all__ = [
    "DeliveryResult",
    "DeliveryStatus",
    "EmailMessage",
    "EmailProvider",
    "NullEmailProvider",
    "get_email_provider",
    "send_email",
    "set_email_provider",
    "EmailTriggerType",
    "StaffingEmailTriggers",
    "get_email_triggers",
]
