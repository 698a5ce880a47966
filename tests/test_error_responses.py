"""Tests for standardized error responses and pagination helpers."""

import json

from services.exceptions import ConflictError, NotFoundError, ValidationFailedError
from web.helpers.error_responses import (
    ErrorCode,
    create_error_response,
    handle_validation_error,
    server_error,
    staffing_error_response,
)
from web.helpers.pagination import paginate


def body(response):
    return json.loads(response.body)


class TestCreateErrorResponse:
    def test_default_message_and_status(self):
        response = create_error_response(ErrorCode.NOT_FOUND, request_id="REQ-1")
        data = body(response)

        assert response.status_code == 404
        assert data["success"] is False
        assert data["error_code"] == "NOT_FOUND"
        assert data["request_id"] == "REQ-1"
        assert "details" not in data

    def test_status_override(self):
        response = create_error_response(ErrorCode.VALIDATION_ERROR, status_code=422)
        assert response.status_code == 422


class TestStaffingErrorResponse:
    """Service exceptions map onto error codes."""

    def test_not_found(self):
        response = staffing_error_response(NotFoundError("Client", "abc"))
        data = body(response)

        assert response.status_code == 404
        assert data["message"] == "Client not found: abc"
        assert data["context"] == {"resource": "Client"}

    def test_conflict_keeps_context(self):
        exc = ConflictError("Position is full", {"assigned": 2, "capacity": 2})
        data = body(staffing_error_response(exc))

        assert data["error_code"] == "CONFLICT"
        assert data["context"]["capacity"] == 2

    def test_field_becomes_detail(self):
        exc = ValidationFailedError("Rejection reason is required", {"field": "rejection_reason"})
        response = staffing_error_response(exc)
        data = body(response)

        assert response.status_code == 400
        assert data["details"][0]["field"] == "rejection_reason"

    def test_unknown_code_falls_back(self):
        from services.exceptions import StaffingError

        data = body(staffing_error_response(StaffingError("odd", code="SOMETHING_NEW")))
        assert data["error_code"] == "INVALID_INPUT"


class TestValidationAndServerErrors:
    def test_validation_error_fields(self):
        response = handle_validation_error([
            {"loc": ("body", "email"), "msg": "value is not a valid email address", "type": "value_error"},
        ])
        data = body(response)

        assert response.status_code == 422
        assert data["details"][0]["field"] == "body.email"

    def test_server_error(self):
        response = server_error(log_exception=False)
        assert response.status_code == 500
        assert body(response)["error_code"] == "INTERNAL_ERROR"


class TestPaginate:
    def test_metadata(self):
        result = paginate([{"id": 1}], total_count=95, limit=10, offset=20)
        meta = result["pagination"]

        assert meta["page"] == 3
        assert meta["total_pages"] == 10
        assert meta["has_next"] is True
        assert meta["has_previous"] is True

    def test_extra_keys(self):
        result = paginate([], total_count=0, limit=10, offset=0, extra={"status_counts": {"total": 0}})

        assert result["data"] == []
        assert result["status_counts"] == {"total": 0}
        assert result["pagination"]["has_next"] is False
