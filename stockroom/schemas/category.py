# stockroom/schemas/category.py
from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field, computed_field, field_validator

from stockroom.schemas.common import ApiModel, QueryFilters, SortOrder


def recompute_low_stock(category: "Category") -> bool:
    """Low-stock flag of a category: stock at or below its reorder point."""
    return category.current_stock <= category.reorder_point


def _norm_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    c = code.strip().upper()
    return c if c else None


# Stock-tracked unit type as returned by the API
class Category(ApiModel):
    id: int
    code: str
    name: str
    has_stock: bool = True
    current_stock: int = 0
    min_stock: int = 0
    max_stock: int = 0
    reorder_point: int = 0
    unit: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Derived on every read, any value sent by the server is ignored
    @computed_field
    @property
    def is_low_stock(self) -> bool:
        return recompute_low_stock(self)


# Shared writable attributes
class CategoryBase(ApiModel):
    name: str = Field(min_length=1)
    code: str
    has_stock: bool = True
    min_stock: int = Field(0, ge=0)
    max_stock: int = Field(0, ge=0)
    reorder_point: int = Field(0, ge=0)
    unit: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("code", mode="before")
    @classmethod
    def _normalize_code(cls, value):
        return _norm_code(value) if isinstance(value, str) else value

    @field_validator("code")
    @classmethod
    def _three_chars(cls, value: str) -> str:
        if len(value) != 3:
            raise ValueError("code must be exactly 3 characters")
        return value


# Schema for creating a category; the opening stock is the only direct stock write
class CategoryCreate(CategoryBase):
    current_stock: int = Field(0, ge=0)


# Schema for partial updates; current_stock only moves through the ledger
class CategoryUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    code: Optional[str] = None
    has_stock: Optional[bool] = None
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: Optional[str]) -> Optional[str]:
        value = _norm_code(value)
        if value is not None and len(value) != 3:
            raise ValueError("code must be exactly 3 characters")
        return value


class CategoryFilters(QueryFilters):
    search: Optional[str] = None
    has_stock: Optional[bool] = None
    is_low_stock: Optional[bool] = None
    code: Optional[str] = None
    sort: Optional[str] = None
    order: Optional[SortOrder] = None


# Low-stock alert row for the dashboard
class StockAlert(ApiModel):
    id: int
    name: str
    code: str
    unit: Optional[str] = None
    current_stock: int
    min_stock: int
    reorder_point: int
    urgency: str
    shortage: int

