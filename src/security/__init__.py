"""
Security module for the staffing back office.

Provides JWT bearer authentication and role-based route guards.
"""

from .auth import (
    UserContext,
    create_access_token,
    decode_token,
    get_current_user,
    get_jwt_secret,
    require_admin,
    require_roles,
    require_staff,
    reset_jwt_secret,
    validate_access_token,
)

__all__ = [
    "UserContext",
    "create_access_token",
    "decode_token",
    "get_current_user",
    "get_jwt_secret",
    "require_admin",
    "require_roles",
    "require_staff",
    "reset_jwt_secret",
    "validate_access_token",
]
