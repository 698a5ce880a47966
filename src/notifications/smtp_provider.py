"""
SMTP delivery for jobseeker notifications.

Built from SmtpSettings (SMTP_HOST, SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD,
SMTP_USE_TLS, SMTP_FROM_EMAIL, SMTP_REPLY_TO). One connection is opened per
message; notification volume is a handful per timesheet.
"""

import logging
import smtplib
import ssl
import uuid
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from config.settings import SmtpSettings, get_settings

from .email_provider import (
    DeliveryResult,
    DeliveryStatus,
    EmailMessage,
    EmailProvider,
)

logger = logging.getLogger(__name__)


class SMTPProvider(EmailProvider):
    """Sends multipart (text + HTML) mail through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        from_email: str = "noreply@example.com",
        from_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email
        self.from_name = from_name or get_settings().email_from_name
        self.reply_to = reply_to

    @classmethod
    def from_settings(cls, settings: SmtpSettings) -> "SMTPProvider":
        return cls(
            host=settings.host,
            port=settings.port,
            username=settings.username or None,
            password=settings.password or None,
            use_tls=settings.use_tls,
            from_email=settings.from_email,
            reply_to=settings.reply_to or None,
        )

    @property
    def provider_name(self) -> str:
        return "smtp"

    def is_configured(self) -> bool:
        return bool(self.host)

    def _build(self, message: EmailMessage) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((message.from_name or self.from_name, message.from_email or self.from_email))
        msg["To"] = message.to
        msg["Subject"] = message.subject
        reply_to = message.reply_to or self.reply_to
        if reply_to:
            msg["Reply-To"] = reply_to
        if message.cc:
            msg["Cc"] = ", ".join(message.cc)

        if message.body_text:
            msg.attach(MIMEText(message.body_text, "plain", "utf-8"))
        if message.body_html:
            msg.attach(MIMEText(message.body_html, "html", "utf-8"))
        return msg

    def _failed(self, code: str, error: str, status: DeliveryStatus = DeliveryStatus.FAILED) -> DeliveryResult:
        logger.error(f"SMTP {code} ({self.host}:{self.port}): {error}")
        return DeliveryResult(
            success=False,
            status=status,
            provider=self.provider_name,
            error_message=error,
            error_code=code,
        )

    def send(self, message: EmailMessage) -> DeliveryResult:
        if not self.is_configured():
            return self._failed("NOT_CONFIGURED", "SMTP_HOST is not set")

        message.validate()
        sender = message.from_email or self.from_email
        recipients = [message.to, *(message.cc or [])]

        try:
            raw = self._build(message).as_string()
            with smtplib.SMTP(self.host, self.port) as server:
                if self.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.sendmail(sender, recipients, raw)
        except smtplib.SMTPAuthenticationError as e:
            return self._failed("AUTH_ERROR", f"Relay rejected SMTP_USERNAME/SMTP_PASSWORD: {e}")
        except smtplib.SMTPRecipientsRefused as e:
            # the jobseeker address on file is bad; retrying will not help
            return self._failed("RECIPIENTS_REFUSED", f"Recipients refused: {e}", DeliveryStatus.BOUNCED)
        except (smtplib.SMTPException, OSError) as e:
            return self._failed("SMTP_ERROR", str(e))

        logger.info(f"SMTP: '{message.subject}' sent to {message.to}")
        return DeliveryResult(
            success=True,
            status=DeliveryStatus.SENT,
            message_id=f"smtp-{uuid.uuid4()}",
            provider=self.provider_name,
        )
