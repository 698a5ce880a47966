"""
FastAPI application for the staffing back office.

Routes:
- /api/clients          : client companies and drafts
- /api/positions        : positions, seat assignments and drafts
- /api/jobseekers       : jobseeker profiles and candidate matching
- /api/timesheets       : single-jobseeker timesheets
- /api/bulk-timesheets  : multi-jobseeker timesheets
- /api/reports          : JSON / CSV reports
- /api/activities       : recent activity feed
- /health               : health checks
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from calculator import CalculationError
from config.settings import get_settings
from database.async_engine import close_database, get_async_session, init_database
from middleware.request_id import RequestIdMiddleware, get_request_id
from services.exceptions import StaffingError
from services.position_service import PositionService
from web.helpers.error_responses import (
    HTTP_STATUS_CODES,
    ErrorCode,
    create_error_response,
    handle_validation_error,
    server_error,
    staffing_error_response,
)
from web.routers import (
    activities_router,
    bulk_timesheets_router,
    clients_router,
    health_router,
    jobseekers_router,
    positions_router,
    reports_router,
    timesheets_router,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create missing tables, move assignment statuses along by date
    and repair assigned_jobseekers. Shutdown: dispose the engine.
    """
    await init_database()
    async with get_async_session() as session:
        await PositionService(session).reconcile_all()
    logger.info("Staffing back office started")
    yield
    await close_database()


def _request_id(request: Request):
    return getattr(request.state, "request_id", None) or get_request_id()


def register_exception_handlers(app: FastAPI) -> None:
    """Translate service, calculator and framework errors into standard error bodies."""

    @app.exception_handler(StaffingError)
    async def staffing_error_handler(request: Request, exc: StaffingError):
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return staffing_error_response(exc, request_id=_request_id(request))

    @app.exception_handler(CalculationError)
    async def calculation_error_handler(request: Request, exc: CalculationError):
        logger.warning(f"Calculation rejected on {request.url.path}: {exc}")
        return create_error_response(
            ErrorCode.CALCULATION_ERROR,
            message=str(exc),
            request_id=_request_id(request),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return handle_validation_error(exc.errors(), request_id=_request_id(request))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        error_code = HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INVALID_INPUT)
        return create_error_response(
            error_code,
            message=str(exc.detail) if exc.detail else None,
            request_id=_request_id(request),
            headers=getattr(exc, "headers", None),
            status_code=exc.status_code,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return server_error(request_id=_request_id(request), log_exception=False)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Last added = first executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(clients_router)
    app.include_router(positions_router)
    app.include_router(jobseekers_router)
    app.include_router(timesheets_router)
    app.include_router(bulk_timesheets_router)
    app.include_router(reports_router)
    app.include_router(activities_router)

    logger.info(f"{settings.name} v{settings.version} configured ({settings.environment})")
    return app


app = create_app()
