"""Tests for JWT authentication and role guards."""

from datetime import timedelta
from uuid import uuid4

import jwt
import pytest
from fastapi import HTTPException

from database.models import UserType
from security.auth import (
    JWT_ALGORITHM,
    UserContext,
    create_access_token,
    decode_token,
    get_current_user,
    get_jwt_secret,
    require_admin,
    require_staff,
    reset_jwt_secret,
    validate_access_token,
)


class TestJwtSecret:
    """Tests for JWT secret loading."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "x" * 40)
        reset_jwt_secret()
        assert get_jwt_secret() == "x" * 40

    def test_short_secret_rejected(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "too-short")
        reset_jwt_secret()
        with pytest.raises(ValueError):
            get_jwt_secret()

    def test_missing_secret_in_production(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        monkeypatch.setenv("APP_ENVIRONMENT", "production")
        reset_jwt_secret()
        with pytest.raises(RuntimeError):
            get_jwt_secret()

    def test_missing_secret_in_development(self, monkeypatch):
        """Development falls back to a generated secret."""
        monkeypatch.delenv("JWT_SECRET", raising=False)
        monkeypatch.setenv("APP_ENVIRONMENT", "development")
        reset_jwt_secret()
        assert get_jwt_secret().startswith("DEV-ONLY-")


class TestTokens:
    def test_round_trip_claims(self):
        user_id = uuid4()
        token = create_access_token(user_id, "a@b.test", "Ann Bee", UserType.RECRUITER)
        payload = decode_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["user_type"] == "recruiter"
        assert payload["type"] == "access"

    def test_expired_token_is_invalid(self):
        token = create_access_token(uuid4(), "a@b.test", "Ann", UserType.ADMIN, expires_delta=timedelta(seconds=-5))
        assert validate_access_token(token) is None

    def test_wrong_token_type_is_invalid(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "user_type": "admin", "type": "refresh"},
            get_jwt_secret(),
            algorithm=JWT_ALGORITHM,
        )
        assert validate_access_token(token) is None

    def test_foreign_signature_is_invalid(self):
        token = jwt.encode({"sub": str(uuid4()), "type": "access"}, "y" * 40, algorithm=JWT_ALGORITHM)
        assert validate_access_token(token) is None


class TestGetCurrentUser:
    """Tests for the bearer dependency."""

    async def test_missing_header(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None)
        assert exc_info.value.status_code == 401

    async def test_malformed_header(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("Token abc")
        assert exc_info.value.status_code == 401

    async def test_valid_token(self, recruiter_user):
        token = create_access_token(
            recruiter_user.user_id, recruiter_user.email, recruiter_user.full_name, recruiter_user.user_type
        )
        user = await get_current_user(f"Bearer {token}")

        assert user == recruiter_user
        assert user.is_staff
        assert not user.is_admin

    async def test_unknown_user_type(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "user_type": "superuser", "type": "access"},
            get_jwt_secret(),
            algorithm=JWT_ALGORITHM,
        )
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(f"Bearer {token}")
        assert exc_info.value.status_code == 401


class TestRoleGuards:
    async def test_staff_guard_allows_recruiter(self, recruiter_user):
        assert await require_staff(recruiter_user) is recruiter_user

    async def test_staff_guard_blocks_jobseeker(self, jobseeker_user):
        with pytest.raises(HTTPException) as exc_info:
            await require_staff(jobseeker_user)
        assert exc_info.value.status_code == 403

    async def test_admin_guard_blocks_recruiter(self, recruiter_user):
        with pytest.raises(HTTPException):
            await require_admin(recruiter_user)

    def test_user_context_from_payload_defaults_name(self):
        user = UserContext.from_payload(
            {"sub": str(uuid4()), "email": "j@s.test", "user_type": "jobseeker"}
        )
        assert user.full_name == "j@s.test"
        assert user.is_jobseeker
