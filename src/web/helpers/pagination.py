"""
Pagination Helpers - one response shape for every list endpoint.

List endpoints return ``{"data": [...], "pagination": {...}}`` plus any
endpoint-specific summary keys, e.g. the status_counts of a candidate's
assignments.

Callers may page by ``limit``/``offset`` or by ``limit``/``page``; a page
number wins over an offset.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Query
from pydantic import BaseModel, Field


class PaginationMeta(BaseModel):
    """Pagination block of a list response."""
    limit: int
    offset: int
    total_count: int = Field(..., description="Rows matching the filters")
    has_next: bool
    has_previous: bool
    page: int = Field(..., description="1-based page number")
    total_pages: int


def paginate(
    items: List[Any],
    total_count: int,
    limit: int,
    offset: int,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Wrap one page of rows with pagination metadata.

    Example:
        >>> paginate([{"id": 1}], total_count=95, limit=10, offset=20)["pagination"]["page"]
        3
    """
    if limit > 0:
        page = offset // limit + 1
        total_pages = -(-total_count // limit)
    else:
        page, total_pages = 1, 1

    meta = PaginationMeta(
        limit=limit,
        offset=offset,
        total_count=total_count,
        has_next=offset + limit < total_count,
        has_previous=offset > 0,
        page=page,
        total_pages=total_pages,
    )
    response: Dict[str, Any] = {"data": items, "pagination": meta.model_dump()}
    if extra:
        response.update(extra)
    return response


def pagination_params(default_limit: int = 50, max_limit: int = 200):
    """
    Dependency factory for ``limit``, ``offset`` and ``page`` query params.

    Usage:
        @router.get("")
        async def list_clients(page: dict = Depends(pagination_params())):
            items, total = await service.list_clients(limit=page["limit"], offset=page["offset"])
    """
    def get_params(
        limit: int = Query(default_limit, ge=1, le=max_limit, description="Rows per page"),
        offset: int = Query(0, ge=0, description="Rows to skip"),
        page: Optional[int] = Query(None, ge=1, description="1-based page; overrides offset"),
    ) -> Dict[str, int]:
        if page is not None:
            offset = (page - 1) * limit
        return {"limit": limit, "offset": offset}

    return get_params
