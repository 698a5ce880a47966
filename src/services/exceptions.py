"""
Domain exceptions raised by the service layer.

Routes let these propagate; the application's exception handlers turn
them into standardized error responses (see web.helpers.error_responses).
"""

from typing import Any, Dict, Optional


class StaffingError(Exception):
    """Base exception for staffing back office errors."""

    code = "STAFFING_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if code:
            self.code = code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(StaffingError):
    """The requested entity does not exist."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any = None):
        if resource_id is not None:
            message = f"{resource} not found: {resource_id}"
        else:
            message = f"{resource} not found"
        super().__init__(message, {"resource": resource})
        self.resource = resource


class ConflictError(StaffingError):
    """The request conflicts with current state (duplicates, capacity, references)."""

    code = "CONFLICT"


class ValidationFailedError(StaffingError):
    """Business-rule validation failed for otherwise well-formed input."""

    code = "VALIDATION_ERROR"


class PermissionDeniedError(StaffingError):
    """The caller is authenticated but may not act on this entity."""

    code = "FORBIDDEN"
