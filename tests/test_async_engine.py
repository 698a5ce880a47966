"""Tests for async database engine module."""

import pytest
from unittest.mock import patch, MagicMock

from sqlalchemy import select

from config.database import DatabaseSettings


class TestCreateEngine:
    """Tests for create_engine function."""

    def test_sqlite_uses_null_pool(self):
        """SQLite should use NullPool."""
        with patch('database.async_engine.create_async_engine') as mock_create:
            with patch('database.async_engine._setup_engine_events'):
                mock_create.return_value = MagicMock()

                from database.async_engine import create_engine
                from sqlalchemy.pool import NullPool

                create_engine(DatabaseSettings())

                call_kwargs = mock_create.call_args[1]
                assert call_kwargs['poolclass'] is NullPool
                assert "sqlite+aiosqlite" in mock_create.call_args[0][0]

    def test_postgres_uses_queue_pool(self):
        """PostgreSQL should use QueuePool with the configured sizes."""
        with patch('database.async_engine.create_async_engine') as mock_create:
            with patch('database.async_engine._setup_engine_events'):
                mock_create.return_value = MagicMock()

                from database.async_engine import create_engine
                from sqlalchemy.pool import QueuePool

                settings = DatabaseSettings(
                    driver="postgresql+asyncpg",
                    host="db.internal",
                    port=5432,
                    name="staffing",
                    user="staffing",
                    password="pw",
                    pool_size=7,
                )
                create_engine(settings)

                call_kwargs = mock_create.call_args[1]
                assert call_kwargs['poolclass'] is QueuePool
                assert call_kwargs['pool_size'] == 7
                assert mock_create.call_args[0][0] == "postgresql+asyncpg://staffing:pw@db.internal:5432/staffing"

    def test_url_override(self):
        settings = DatabaseSettings(url="postgresql+asyncpg://u@h/db")
        assert settings.async_url == "postgresql+asyncpg://u@h/db"
        assert settings.is_postgres

    def test_postgres_sessions_carry_lock_timeout(self):
        settings = DatabaseSettings(driver="postgresql+asyncpg", lock_timeout_ms=2500)
        server_settings = settings.get_connect_args()["server_settings"]

        assert server_settings["lock_timeout"] == "2500"
        assert server_settings["application_name"] == "staffing-backoffice"


class TestGetAsyncEngine:
    def test_returns_same_instance(self):
        from database.async_engine import get_async_engine

        assert get_async_engine() is get_async_engine()


class TestSessionLifecycle:
    """Tests against a real SQLite file."""

    async def test_init_creates_tables(self):
        from database.async_engine import close_database, get_async_session, init_database
        from database.models import Client

        await init_database()
        async with get_async_session() as session:
            result = await session.execute(select(Client))
            assert result.scalars().all() == []
        await close_database()

    async def test_rollback_on_exception(self):
        from database.async_engine import close_database, get_async_session, init_database
        from database.models import Client

        await init_database()
        with pytest.raises(RuntimeError):
            async with get_async_session() as session:
                session.add(Client(company_name="Rolled Back", short_code="rb"))
                raise RuntimeError("boom")

        async with get_async_session() as session:
            result = await session.execute(select(Client))
            assert result.scalars().all() == []
        await close_database()

    async def test_check_database_connection(self):
        from database.async_engine import check_database_connection, close_database

        assert await check_database_connection() is True
        await close_database()

    async def test_check_database_connection_failure(self):
        from database.async_engine import check_database_connection

        with patch('database.async_engine.get_async_engine', side_effect=RuntimeError("down")):
            assert await check_database_connection() is False
