"""Request ID middleware and logging filter.

Every request gets an ID, taken from the incoming ``X-Request-ID`` header
or generated. The ID is stored in a context variable so log records emitted
while the request is handled carry it, and it is echoed back in the
response headers.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Request ID of the current context, or None outside a request."""
    return _request_id_ctx.get()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Attach a request ID to the context, ``request.state`` and the response,
    and log one access line per request.

    Incoming IDs longer than MAX_REQUEST_ID_LENGTH are replaced.
    """

    def __init__(self, app, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        incoming = request.headers.get(self.header_name, "")
        request_id = incoming if 0 < len(incoming) <= MAX_REQUEST_ID_LENGTH else uuid.uuid4().hex
        token = _request_id_ctx.set(request_id)
        started = time.perf_counter()
        try:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
            return response
        finally:
            _request_id_ctx.reset(token)


class RequestIdFilter(logging.Filter):
    """Adds ``request_id`` to every log record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def configure_logging(level: int = logging.INFO, log_format: Optional[str] = None) -> None:
    """
    Install a stream handler on the root logger that includes request IDs.

    Calling it twice does not add a second handler.
    """
    if log_format is None:
        log_format = "%(asctime)s [%(request_id)s] %(levelname)s %(name)s: %(message)s"

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if any(isinstance(f, RequestIdFilter) for f in handler.filters):
            root_logger.setLevel(level)
            return

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(log_format))
    handler.setLevel(level)

    root_logger.addHandler(handler)
    root_logger.setLevel(level)
