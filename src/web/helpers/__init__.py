"""
Web Helpers - Reusable utilities for API endpoints.

Contains:
- Pagination helpers
- Standardized error responses
- CSV report responses
"""

from .pagination import PaginationMeta, paginate, pagination_params
from .error_responses import (
    ErrorCode,
    StandardErrorResponse,
    create_error_response,
    handle_validation_error,
    server_error,
    staffing_error_response,
)
from .csv_response import csv_response

__all__ = [
    "PaginationMeta",
    "paginate",
    "pagination_params",
    "ErrorCode",
    "StandardErrorResponse",
    "create_error_response",
    "handle_validation_error",
    "server_error",
    "staffing_error_response",
    "csv_response",
]
