# stockroom/schemas/common.py
import math
from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

SortOrder = Literal["ASC", "DESC"]


# Base configuration for records coming back from the API
class ApiModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, extra="ignore")


# Base class for the closed per-entity query structures
class QueryFilters(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    def to_params(self) -> dict:
        """Serialize set filters to query parameters, dropping empty values."""
        params = {}
        for key, value in self.model_dump(mode="json", exclude_none=True).items():
            if value == "":
                continue
            params[key] = value
        return params


# Pagination block of the paginated envelope
class Pagination(BaseModel):
    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = Field(0, alias="totalPages")
    has_next: bool = Field(False, alias="hasNext")
    has_prev: bool = Field(False, alias="hasPrev")

    model_config = ConfigDict(populate_by_name=True)


# One page of a remote collection, whatever envelope it arrived in
class Page(BaseModel, Generic[T]):
    items: List[T]
    pagination: Pagination


def total_pages_for(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def normalize_page(body: Any, page: int = 1, limit: int = 10) -> tuple:
    """
    Normalize a list response into ``(rows, Pagination)``.

    Accepted shapes:
      - ``{success, data: [...], pagination: {...}}``
      - ``{success, data: [...], meta: {pagination: {...}}}``
      - ``{success, data: [...]}`` (flat, single page)
      - ``{items: [...], total, page, page_size}``
      - a bare JSON list
    """
    if isinstance(body, list):
        rows, raw = body, None
    elif isinstance(body, dict) and "items" in body and "data" not in body:
        rows = body.get("items") or []
        size = body.get("page_size") or limit
        raw = {"page": body.get("page", page), "limit": size, "total": body.get("total", len(rows))}
    elif isinstance(body, dict):
        rows = body.get("data") or []
        raw = body.get("pagination") or (body.get("meta") or {}).get("pagination")
    else:
        rows, raw = [], None

    # Older list endpoints nest the rows one level deeper, e.g. {"data": {"users": [...], "pagination": {...}}}
    if isinstance(rows, dict):
        raw = raw or rows.get("pagination")
        rows = next((v for v in rows.values() if isinstance(v, list)), [])

    if raw is None:
        total = len(rows)
        return rows, Pagination(
            page=page, limit=limit, total=total, total_pages=total_pages_for(total, limit),
            has_next=False, has_prev=False,
        )

    current = int(raw.get("page", page))
    size = int(raw.get("limit", limit))
    total = int(raw.get("total", len(rows)))
    pages = raw.get("totalPages", raw.get("total_pages"))
    pages = int(pages) if pages is not None else total_pages_for(total, size)
    return rows, Pagination(
        page=current, limit=size, total=total, total_pages=pages,
        has_next=bool(raw.get("hasNext", raw.get("hasNextPage", current < pages))),
        has_prev=bool(raw.get("hasPrev", raw.get("hasPrevPage", current > 1))),
    )
