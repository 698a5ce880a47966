"""
Standardized Error Responses.

Every API error, whether raised by a service, by request validation or
by an auth guard, is returned as:

    {
        "success": false,
        "error_code": "CONFLICT",
        "message": "Position is full",
        "details": [{"field": ..., "message": ..., "code": ...}],   # optional
        "context": {"assigned": 2, "capacity": 2},                 # optional
        "request_id": "...",
        "timestamp": "..."
    }
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from services.exceptions import StaffingError

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    CALCULATION_ERROR = "CALCULATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


# code -> (HTTP status, default message)
_ERROR_TABLE = {
    ErrorCode.VALIDATION_ERROR: (status.HTTP_400_BAD_REQUEST, "The provided data is invalid. Please check your input."),
    ErrorCode.INVALID_INPUT: (status.HTTP_400_BAD_REQUEST, "Invalid input provided."),
    ErrorCode.UNAUTHORIZED: (status.HTTP_401_UNAUTHORIZED, "Sign in to access the back office."),
    ErrorCode.FORBIDDEN: (status.HTTP_403_FORBIDDEN, "Your account type cannot perform this action."),
    ErrorCode.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "The requested record was not found."),
    ErrorCode.CONFLICT: (status.HTTP_409_CONFLICT, "The change conflicts with existing records."),
    ErrorCode.CALCULATION_ERROR: (
        status.HTTP_400_BAD_REQUEST,
        "Failed to calculate timesheet totals. Please verify the hours and rates.",
    ),
    ErrorCode.INTERNAL_ERROR: (status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred. Please try again later."),
    ErrorCode.DATABASE_ERROR: (status.HTTP_500_INTERNAL_SERVER_ERROR, "A database error occurred. Please try again."),
}

# For plain HTTPExceptions (auth guards, unknown routes)
HTTP_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.INVALID_INPUT,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorCode.CONFLICT,
}


class ErrorDetail(BaseModel):
    field: Optional[str] = None
    message: str
    code: Optional[str] = None


class StandardErrorResponse(BaseModel):
    """Body of every error response."""
    success: bool = False
    error_code: str
    message: str
    details: Optional[List[ErrorDetail]] = None
    context: Optional[Dict[str, Any]] = Field(None, description="Counts, ids and limits behind the failure")
    request_id: Optional[str] = None
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


def create_error_response(
    error_code: ErrorCode,
    message: Optional[str] = None,
    details: Optional[List[Dict[str, Any]]] = None,
    request_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    status_code: Optional[int] = None,
) -> JSONResponse:
    """
    Build an error JSONResponse.

    The status comes from the error code unless ``status_code`` is given;
    the message falls back to the code's default.

    Example:
        >>> create_error_response(ErrorCode.NOT_FOUND, "Position not found", request_id="REQ-123")
    """
    default_status, default_message = _ERROR_TABLE.get(
        error_code, (status.HTTP_500_INTERNAL_SERVER_ERROR, "An error occurred.")
    )

    body = StandardErrorResponse(
        error_code=error_code.value,
        message=message or default_message,
        details=[
            ErrorDetail(field=d.get("field"), message=d.get("message", ""), code=d.get("code"))
            for d in details
        ] if details else None,
        context=context or None,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code or default_status,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def staffing_error_response(exc: StaffingError, request_id: Optional[str] = None) -> JSONResponse:
    """
    Response for a service exception.

    A ``field`` entry in the exception details becomes a field-level
    detail; the rest is returned as context.
    """
    try:
        error_code = ErrorCode(exc.code)
    except ValueError:
        error_code = ErrorCode.INVALID_INPUT

    context = dict(exc.details or {})
    details = None
    if "field" in context:
        details = [{"field": context.pop("field"), "message": exc.message, "code": exc.code}]

    return create_error_response(
        error_code,
        message=exc.message,
        details=details,
        request_id=request_id,
        context=context,
    )


def handle_validation_error(errors: List[Dict[str, Any]], request_id: Optional[str] = None) -> JSONResponse:
    """422 response listing each invalid request field as ``loc`` joined by dots."""
    details = [
        {
            "field": ".".join(str(loc) for loc in error.get("loc", [])),
            "message": error.get("msg", "Invalid value"),
            "code": error.get("type", "validation_error"),
        }
        for error in errors
    ]
    return create_error_response(
        ErrorCode.VALIDATION_ERROR,
        message="Please check your input and try again.",
        details=details,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        request_id=request_id,
    )


def server_error(
    message: str = "An unexpected error occurred.",
    request_id: Optional[str] = None,
    log_exception: bool = True,
) -> JSONResponse:
    if log_exception:
        logger.exception(f"Server error: {message}")
    return create_error_response(ErrorCode.INTERNAL_ERROR, message=message, request_id=request_id)
