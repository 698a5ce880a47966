"""Configuration module for the staffing back office."""

from .database import DatabaseSettings, get_database_settings
from .settings import Settings, SmtpSettings, get_settings, get_smtp_settings

__all__ = [
    "DatabaseSettings",
    "get_database_settings",
    "Settings",
    "SmtpSettings",
    "get_settings",
    "get_smtp_settings",
]
