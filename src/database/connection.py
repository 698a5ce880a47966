"""
Request-scoped sessions for the routers.

Each request gets one session; the service calls made with it commit
together when the handler returns and roll back together when it raises.
Startup, shutdown and background jobs use ``get_async_session`` directly.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from database.async_engine import (
    check_database_connection,
    close_database,
    get_async_engine,
    get_async_session,
    init_database,
)

logger = logging.getLogger(__name__)

__all__ = [
    "check_database_connection",
    "close_database",
    "get_async_engine",
    "get_async_session",
    "get_session_async",
    "init_database",
]


async def get_session_async() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency.

    Usage:
        @router.post("/positions/{position_id}/assign")
        async def assign(position_id: UUID, session: AsyncSession = Depends(get_session_async)):
            ...
    """
    async with get_async_session() as session:
        yield session
