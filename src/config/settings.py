"""Back-office settings (APP_ and SMTP_ prefixes, read from the environment or .env).

Token signing is configured separately through JWT_SECRET (see security.auth);
database settings live in config.database.
"""

import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class SmtpSettings(BaseSettings):
    """Mail relay for jobseeker notifications. No host means emails are only logged."""

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        extra="ignore",
    )

    host: str = Field(default="", description="Relay host; empty disables SMTP")
    port: int = Field(default=587)
    username: str = Field(default="")
    password: str = Field(default="")
    use_tls: bool = Field(default=True, description="Issue STARTTLS before login")
    from_email: str = Field(default="noreply@example.com", description="Envelope and From address")
    reply_to: str = Field(default="", description="Reply-To for jobseeker emails (the recruiting inbox)")

    @property
    def is_configured(self) -> bool:
        return bool(self.host)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    name: str = Field(default="Staffing Back Office")
    version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development", description="development, test, staging or production")

    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Origins of the recruiter and jobseeker front ends",
    )

    # Payroll
    default_overtime_threshold: float = Field(
        default=40.0,
        ge=0,
        description="Weekly hours after which overtime applies when a position omits it",
    )
    invoice_number_width: int = Field(
        default=6,
        ge=1,
        le=12,
        description="Zero-padded width of generated invoice numbers",
    )

    # Notifications
    email_from_name: str = Field(default="Staffing Team", description="Display name on jobseeker email")
    send_emails: bool = Field(default=True, description="false records every email as skipped")

    @field_validator("environment")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        return v.strip().lower()

    @model_validator(mode="after")
    def warn_debug_in_production(self) -> "Settings":
        if self.is_production and self.debug:
            logger.warning("APP_DEBUG is on in a production environment")
        return self

    @property
    def is_production(self) -> bool:
        # staging holds real client data too
        return self.environment in ("production", "prod", "staging")

    @property
    def is_test(self) -> bool:
        return self.environment in ("test", "testing")


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_smtp_settings() -> SmtpSettings:
    return SmtpSettings()
