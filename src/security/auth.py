"""
JWT bearer authentication and role guards.

Access tokens are issued by the identity provider and carry:
    sub        user id (UUID)
    email      user email
    name       display name
    user_type  admin | recruiter | jobseeker
    type       "access"
    exp/iat    expiry / issued-at

Routes depend on ``get_current_user`` for authentication and on
``require_roles(...)`` / ``require_staff`` for authorization.
"""

import logging
import os
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header, HTTPException, status
from pydantic import BaseModel, ConfigDict

from database.models import UserType

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
# one recruiter shift
ACCESS_TOKEN_LIFETIME = timedelta(hours=8)
MIN_SECRET_LENGTH = 32

_jwt_secret: Optional[str] = None


def _load_jwt_secret() -> str:
    """
    JWT_SECRET from the environment, shared with the identity provider.

    Outside production a random per-process secret is used when it is
    unset; tokens signed with it stop validating after a restart.
    """
    secret = os.environ.get("JWT_SECRET")
    if secret:
        if len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters")
        return secret

    environment = os.environ.get("APP_ENVIRONMENT", "development").lower()
    if environment in ("production", "prod", "staging"):
        raise RuntimeError(f"JWT_SECRET is required when APP_ENVIRONMENT={environment}")

    logger.warning("JWT_SECRET is not set; signing with a throwaway development secret")
    return f"DEV-ONLY-{secrets.token_hex(32)}"


def get_jwt_secret() -> str:
    global _jwt_secret
    if _jwt_secret is None:
        _jwt_secret = _load_jwt_secret()
    return _jwt_secret


def reset_jwt_secret() -> None:
    """Forget the cached secret so the next call re-reads the environment."""
    global _jwt_secret
    _jwt_secret = None


# =============================================================================
# TOKENS
# =============================================================================

def create_access_token(
    user_id: UUID,
    email: str,
    name: str,
    user_type: UserType,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Sign an access token for a back-office user (used by tests and local tooling)."""
    now = datetime.utcnow()
    payload = {
        "sub": str(user_id),
        "email": email,
        "name": name,
        "user_type": UserType(user_type).value,
        "iat": now,
        "exp": now + (expires_delta or ACCESS_TOKEN_LIFETIME),
        "type": "access",
    }
    return jwt.encode(payload, get_jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Raises:
        jwt.InvalidTokenError: bad signature, malformed or expired
    """
    return jwt.decode(token, get_jwt_secret(), algorithms=[JWT_ALGORITHM])


def validate_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid access token, or None."""
    try:
        payload = decode_token(token)
    except jwt.InvalidTokenError:
        return None
    return payload if payload.get("type") == "access" else None


# =============================================================================
# REQUEST CONTEXT
# =============================================================================

class UserContext(BaseModel):
    """Authenticated caller, built from the access token."""
    model_config = ConfigDict(frozen=True)

    user_id: UUID
    email: str
    full_name: str
    user_type: UserType

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.user_type in (UserType.ADMIN, UserType.RECRUITER)

    @property
    def is_jobseeker(self) -> bool:
        return self.user_type == UserType.JOBSEEKER

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UserContext":
        return cls(
            user_id=UUID(payload["sub"]),
            email=payload.get("email", ""),
            full_name=payload.get("name") or payload.get("email", ""),
            user_type=UserType(payload["user_type"]),
        )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> UserContext:
    """The caller behind ``Authorization: Bearer <token>``; 401 otherwise."""
    if not authorization:
        raise _unauthorized("Sign in to continue")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Authorization header must be 'Bearer <token>'")

    payload = validate_access_token(token.strip())
    if not payload:
        raise _unauthorized("Session expired or token invalid")

    try:
        return UserContext.from_payload(payload)
    except (KeyError, ValueError):
        logger.warning(f"Access token with unusable claims (user_type={payload.get('user_type')!r})")
        raise _unauthorized("Invalid token claims")


def require_roles(*roles: UserType) -> Callable:
    """
    Dependency factory restricting a route to the given user types.

    Usage:
        @router.delete("/{id}")
        async def delete(user: UserContext = Depends(require_roles(UserType.ADMIN))):
            ...
    """
    allowed = {UserType(r) for r in roles}

    async def checker(user: UserContext = Depends(get_current_user)) -> UserContext:
        if user.user_type not in allowed:
            logger.info(f"Access denied for {user.user_type.value} (requires {sorted(r.value for r in allowed)})")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{user.user_type.value.capitalize()} accounts cannot perform this action"
            )
        return user

    return checker


require_staff = require_roles(UserType.ADMIN, UserType.RECRUITER)
require_admin = require_roles(UserType.ADMIN)
