"""
Tests for email provider functionality.

Tests:
- Provider selection
- Message validation
- SMTP send and error handling
"""

import smtplib

import pytest
from unittest.mock import MagicMock, patch

from notifications.email_provider import (
    DeliveryStatus,
    EmailMessage,
    NullEmailProvider,
    get_email_provider,
    send_email,
    set_email_provider,
)
from notifications.smtp_provider import SMTPProvider


class TestProviderSelection:
    """Tests for email provider selection."""

    def test_null_provider_without_smtp_host(self):
        set_email_provider(None)
        provider = get_email_provider()
        assert isinstance(provider, NullEmailProvider)
        assert provider is get_email_provider()

    def test_smtp_selected_when_host_set(self, monkeypatch):
        from config.settings import get_smtp_settings

        monkeypatch.setenv("SMTP_HOST", "smtp.agency.test")
        monkeypatch.setenv("SMTP_PORT", "2525")
        get_smtp_settings.cache_clear()
        set_email_provider(None)

        provider = get_email_provider()
        assert provider.provider_name == "smtp"
        assert provider.port == 2525


class TestMessageValidation:
    """Tests for email message validation."""

    def test_requires_recipient(self):
        with pytest.raises(ValueError):
            EmailMessage(to="", subject="Hi", body_text="x").validate()

    def test_requires_body(self):
        with pytest.raises(ValueError):
            EmailMessage(to="a@b.test", subject="Hi").validate()

    def test_valid_message(self):
        assert EmailMessage(to="a@b.test", subject="Hi", body_html="<p>x</p>").validate()


class TestNullProvider:
    def test_send_email_captured(self, email_provider):
        result = send_email(to="a@b.test", subject="Hello", body_text="Body", tags=["t"])

        assert result.success
        assert result.status == DeliveryStatus.SENT
        assert result.to_dict()["provider"] == "null"
        assert [m.subject for m in email_provider.sent] == ["Hello"]


class TestSMTPProvider:
    def _provider(self, **overrides):
        options = dict(host="smtp.agency.test", username="user", password="secret", from_email="jobs@agency.test")
        options.update(overrides)
        return SMTPProvider(**options)

    def test_sends_multipart_with_tls_and_login(self):
        message = EmailMessage(to="a@b.test", subject="Hello", body_text="Body", body_html="<p>Body</p>")

        with patch("notifications.smtp_provider.smtplib.SMTP") as smtp_cls:
            server = MagicMock()
            smtp_cls.return_value.__enter__.return_value = server
            result = self._provider().send(message)

        assert result.success
        assert result.message_id.startswith("smtp-")
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "secret")
        sender, recipients, raw = server.sendmail.call_args[0]
        assert sender == "jobs@agency.test"
        assert recipients == ["a@b.test"]
        assert "Subject: Hello" in raw

    def test_unconfigured(self):
        result = self._provider(host="").send(EmailMessage(to="a@b.test", subject="x", body_text="y"))
        assert not result.success
        assert result.error_code == "NOT_CONFIGURED"

    def test_auth_error_reported(self):
        message = EmailMessage(to="a@b.test", subject="Hello", body_text="Body")

        with patch("notifications.smtp_provider.smtplib.SMTP") as smtp_cls:
            server = MagicMock()
            server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            smtp_cls.return_value.__enter__.return_value = server
            result = self._provider().send(message)

        assert not result.success
        assert result.status == DeliveryStatus.FAILED
        assert result.error_code == "AUTH_ERROR"

    def test_reply_to_defaults_to_recruiting_inbox(self):
        provider = self._provider(reply_to="recruiting@agency.test")
        built = provider._build(EmailMessage(to="a@b.test", subject="Hello", body_text="Body"))
        assert built["Reply-To"] == "recruiting@agency.test"
