"""
Health endpoints for the load balancer and container probes.

/health checks the staffing database, the token secret and the mail relay.
Only a failing database or a missing production secret makes it return 503;
everything else is reported as degraded.
"""

import os
import time
import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from calculator.decimal_math import money
from config.settings import get_settings, get_smtp_settings
from database.async_engine import check_database_connection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_started_at = datetime.utcnow()

# worst status wins
_SEVERITY = {"healthy": 0, "warning": 1, "unhealthy": 2}
_OVERALL = {0: ("healthy", 200), 1: ("degraded", 200), 2: ("unhealthy", 503)}


async def _check_database() -> Dict[str, Any]:
    started = time.perf_counter()
    if not await check_database_connection():
        return {"status": "unhealthy", "error": "Database unreachable"}
    return {"status": "healthy", "latency_ms": float(money((time.perf_counter() - started) * 1000))}


def _check_jwt_secret() -> Dict[str, Any]:
    secret = os.environ.get("JWT_SECRET")
    if not secret:
        if get_settings().is_production:
            logger.error("JWT_SECRET is not configured")
            return {"status": "unhealthy", "error": "Token signing secret is missing"}
        return {"status": "warning", "message": "Using a generated development secret"}
    if len(secret) < 32:
        logger.warning("JWT_SECRET is shorter than 32 characters")
        return {"status": "warning", "message": "Token signing secret is too short"}
    return {"status": "healthy"}


def _check_email() -> Dict[str, Any]:
    settings = get_settings()
    if not settings.send_emails:
        return {"status": "healthy", "provider": "disabled"}
    if get_smtp_settings().is_configured:
        return {"status": "healthy", "provider": "smtp"}
    if settings.is_production:
        return {"status": "warning", "provider": "null", "message": "SMTP_HOST is not set; emails are only logged"}
    return {"status": "healthy", "provider": "null"}


@router.get("/health")
async def health_check() -> JSONResponse:
    settings = get_settings()
    checks = {
        "database": await _check_database(),
        "security": _check_jwt_secret(),
        "email": _check_email(),
    }

    worst = max(_SEVERITY.get(c["status"], 1) for c in checks.values())
    overall, status_code = _OVERALL[worst]

    return JSONResponse(
        status_code=status_code,
        content={
            "status": overall,
            "version": settings.version,
            "environment": settings.environment,
            "uptime": str(datetime.utcnow() - _started_at).split(".")[0],
            "timestamp": datetime.utcnow().isoformat(),
            "checks": checks,
        },
    )


@router.get("/health/live")
async def liveness_probe():
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe() -> JSONResponse:
    """Ready once the database answers."""
    if await check_database_connection():
        return JSONResponse(status_code=200, content={"status": "ready"})
    return JSONResponse(status_code=503, content={"status": "not_ready", "reason": "database"})
