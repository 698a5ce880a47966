"""Middleware components for the staffing back office.

Provides:
- Request ID tracking
- Logging context enrichment
"""

from .request_id import (
    RequestIdFilter,
    RequestIdMiddleware,
    configure_logging,
    get_request_id,
)

__all__ = [
    "RequestIdFilter",
    "RequestIdMiddleware",
    "configure_logging",
    "get_request_id",
]
