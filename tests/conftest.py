"""Pytest configuration and fixtures for test suite."""

import os
import sys
from datetime import date, timedelta
from pathlib import Path
from uuid import uuid4

import pytest

# Set test environment BEFORE any other imports
os.environ["APP_ENVIRONMENT"] = "test"
os.environ.setdefault("JWT_SECRET", "test-secret-for-staffing-backoffice-0123456789")
os.environ.setdefault("ENCRYPTION_MASTER_KEY", "5f" * 32)
os.environ.setdefault("DB_DRIVER", "sqlite+aiosqlite")
os.environ.pop("DB_URL", None)
os.environ.pop("SMTP_HOST", None)

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


def _reset_db_modules():
    """Reset database module globals to ensure clean state."""
    import database.async_engine as module
    module._async_engine = None
    module._async_session_factory = None


def _clear_caches():
    from config.database import get_database_settings
    from config.settings import get_settings, get_smtp_settings
    from database.encrypted_fields import reset_master_key
    from security.auth import reset_jwt_secret

    get_database_settings.cache_clear()
    get_settings.cache_clear()
    get_smtp_settings.cache_clear()
    reset_jwt_secret()
    reset_master_key()


@pytest.fixture(autouse=True)
def isolated_database(tmp_path, monkeypatch):
    """Point every test at its own SQLite file and reset engine globals."""
    monkeypatch.setenv("DB_SQLITE_PATH", str(tmp_path / "staffing-test.db"))
    _clear_caches()
    _reset_db_modules()
    yield tmp_path / "staffing-test.db"
    _reset_db_modules()
    _clear_caches()


@pytest.fixture(autouse=True)
def email_provider():
    """Capture outbound email instead of sending it."""
    from notifications.email_provider import NullEmailProvider, set_email_provider

    provider = NullEmailProvider()
    set_email_provider(provider)
    yield provider
    set_email_provider(None)


# =============================================================================
# USERS & TOKENS
# =============================================================================

@pytest.fixture
def admin_user():
    from database.models import UserType
    from security.auth import UserContext
    return UserContext(user_id=uuid4(), email="admin@agency.test", full_name="Alex Admin", user_type=UserType.ADMIN)


@pytest.fixture
def recruiter_user():
    from database.models import UserType
    from security.auth import UserContext
    return UserContext(user_id=uuid4(), email="recruiter@agency.test", full_name="Riley Recruiter", user_type=UserType.RECRUITER)


@pytest.fixture
def jobseeker_user():
    from database.models import UserType
    from security.auth import UserContext
    return UserContext(user_id=uuid4(), email="sam.worker@mail.test", full_name="Sam Worker", user_type=UserType.JOBSEEKER)


def _headers(user):
    from security.auth import create_access_token
    token = create_access_token(user.user_id, user.email, user.full_name, user.user_type)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a UserContext."""
    return _headers


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def recruiter_headers(recruiter_user):
    return _headers(recruiter_user)


@pytest.fixture
def jobseeker_headers(jobseeker_user):
    return _headers(jobseeker_user)


# =============================================================================
# DATABASE SESSION (service tests)
# =============================================================================

@pytest.fixture
async def session():
    """AsyncSession on a fresh schema."""
    from database.async_engine import close_database, get_async_session_factory, init_database

    await init_database()
    factory = get_async_session_factory()
    async with factory() as db:
        yield db
    await close_database()


# =============================================================================
# APP (API tests)
# =============================================================================

@pytest.fixture
def app():
    from notifications.email_triggers import StaffingEmailTriggers
    from web.app import create_app
    from web.dependencies import get_triggers

    application = create_app()
    triggers = StaffingEmailTriggers(from_name="Test Agency")
    application.dependency_overrides[get_triggers] = lambda: triggers
    return application


@pytest.fixture
def client(app):
    """TestClient with lifespan (creates the schema)."""
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# PAYLOADS
# =============================================================================

def client_payload(**overrides):
    data = {
        "company_name": "Northwind Logistics",
        "billing_name": "Northwind Logistics Inc.",
        "short_code": "nwl",
        "list_name": "Priority",
        "client_manager": "Morgan Lee",
        "sales_person": "Jordan Kim",
        "accounting_person": "Casey Diaz",
        "currency": "CAD",
        "work_province": "ON",
        "contact_person_name1": "Pat Doe",
        "email_address1": "pat@northwind.test",
        "mobile1": "416-555-0100",
        "street_address1": "100 King St W",
        "city1": "Toronto",
        "province1": "ON",
        "postal_code1": "M5X 1A9",
        "preferred_payment_method": "Direct Deposit",
        "terms": "Net 30",
        "pay_cycle": "Weekly",
        "wsib_code": "G1",
    }
    data.update(overrides)
    return data


def position_payload(client_id, **overrides):
    data = {
        "client_id": str(client_id),
        "title": "Forklift Operator",
        "start_date": (date.today() + timedelta(days=1)).isoformat(),
        "city": "Toronto",
        "province": "ON",
        "employment_term": "Permanent",
        "employment_type": "Full-Time",
        "position_category": "Warehouse",
        "experience": "1-2 Years",
        "documents_required": {"license": True, "sin": True},
        "payrate_type": "Hourly",
        "number_of_positions": 2,
        "regular_pay_rate": 20,
        "bill_rate": 30,
        "overtime_enabled": True,
        "overtime_hours": 40,
        "overtime_pay_rate": 30,
        "overtime_bill_rate": 45,
    }
    data.update(overrides)
    return data


def jobseeker_payload(user_id, **overrides):
    data = {
        "user_id": str(user_id),
        "first_name": "Sam",
        "last_name": "Worker",
        "email": "sam.worker@mail.test",
        "mobile": "647-555-0199",
        "city": "Toronto",
        "province": "ON",
        "work_preference": "Warehouse",
        "experience": "1-2 Years",
        "availability": "Full-Time",
        "weekend_availability": True,
    }
    data.update(overrides)
    return data


@pytest.fixture
def payloads():
    """Request body builders: client, position and jobseeker."""
    class Payloads:
        client = staticmethod(client_payload)
        position = staticmethod(position_payload)
        jobseeker = staticmethod(jobseeker_payload)
    return Payloads


# =============================================================================
# SERVICE-LEVEL FACTORIES
# =============================================================================

@pytest.fixture
def factory(session, admin_user):
    """Create committed rows through the services."""
    from services import ClientService, JobseekerService, PositionService

    class Factory:
        async def client(self, **overrides):
            return await ClientService(session).create_client(client_payload(**overrides), admin_user)

        async def position(self, client_id, **overrides):
            return await PositionService(session).create_position(
                position_payload(client_id, **overrides), admin_user
            )

        async def jobseeker(self, user_id=None, verified=True, **overrides):
            service = JobseekerService(session)
            profile = await service.create_profile(
                jobseeker_payload(user_id or uuid4(), **overrides), admin_user
            )
            if verified:
                profile = await service.update_status(profile["id"], "verified", admin_user)
            return profile

    return Factory()
