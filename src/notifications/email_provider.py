"""
Email Provider Abstraction

Jobseeker notifications go through one active provider:
- SMTP, selected when SMTP_HOST is set
- Null provider otherwise: logs the message and keeps it in memory, which
  is what development machines and the test suite use
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from config.settings import get_smtp_settings

logger = logging.getLogger(__name__)


class DeliveryStatus(str, Enum):
    SENT = "sent"
    BOUNCED = "bounced"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class EmailMessage:
    """An outbound email; at least one of the two bodies is required."""
    to: str
    subject: str
    body_html: Optional[str] = None
    body_text: Optional[str] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    reply_to: Optional[str] = None
    cc: Optional[List[str]] = None
    tags: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> bool:
        """
        Raises:
            ValueError: Missing recipient, subject or body
        """
        if not self.to:
            raise ValueError("Recipient email (to) is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not (self.body_html or self.body_text):
            raise ValueError("Either body_html or body_text is required")
        return True


@dataclass
class DeliveryResult:
    success: bool
    status: DeliveryStatus
    message_id: Optional[str] = None
    provider: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status.value,
            "message_id": self.message_id,
            "provider": self.provider,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "timestamp": self.timestamp.isoformat(),
        }


class EmailProvider(ABC):
    """Delivers an EmailMessage and reports the outcome without raising."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    def send(self, message: EmailMessage) -> DeliveryResult:
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        ...


class NullEmailProvider(EmailProvider):
    """Logs instead of sending. Messages are kept in ``sent``."""

    def __init__(self):
        self.sent: List[EmailMessage] = []

    @property
    def provider_name(self) -> str:
        return "null"

    def send(self, message: EmailMessage) -> DeliveryResult:
        message.validate()
        self.sent.append(message)
        logger.info(f"[NULL PROVIDER] Would send email to {message.to}: {message.subject}")
        return DeliveryResult(
            success=True,
            status=DeliveryStatus.SENT,
            message_id=f"null-{len(self.sent)}",
            provider=self.provider_name,
        )

    def is_configured(self) -> bool:
        return True


_email_provider: Optional[EmailProvider] = None


def get_email_provider() -> EmailProvider:
    """The active provider: SMTP when SMTP_HOST is set, else the null provider."""
    global _email_provider
    if _email_provider is not None:
        return _email_provider

    smtp = get_smtp_settings()
    if smtp.is_configured:
        from .smtp_provider import SMTPProvider
        _email_provider = SMTPProvider.from_settings(smtp)
        logger.info(f"Email provider: SMTP ({smtp.host}:{smtp.port})")
    else:
        logger.warning("SMTP_HOST is not set; jobseeker emails will be logged, not sent")
        _email_provider = NullEmailProvider()
    return _email_provider


def set_email_provider(provider: Optional[EmailProvider]) -> None:
    """Install a provider (tests); ``None`` makes the next call re-select."""
    global _email_provider
    _email_provider = provider
    if provider is not None:
        logger.info(f"Email provider set to: {provider.provider_name}")


def send_email(
    to: str,
    subject: str,
    body_html: Optional[str] = None,
    body_text: Optional[str] = None,
    from_name: Optional[str] = None,
    tags: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> DeliveryResult:
    message = EmailMessage(
        to=to,
        subject=subject,
        body_html=body_html,
        body_text=body_text,
        from_name=from_name,
        tags=tags or [],
        metadata=metadata or {},
    )
    return get_email_provider().send(message)
