# stockroom/schemas/product.py
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from stockroom.schemas.common import ApiModel
from stockroom.schemas.purchasing import ItemCondition


# Unit-level record generated from a receipt line
class Product(ApiModel):
    id: Optional[int] = None
    product_id: Optional[str] = None
    category_id: int
    supplier_id: Optional[int] = None
    po_number: Optional[str] = None
    receipt_id: Optional[int] = None
    receipt_item_id: Optional[int] = None
    serial_number: Optional[str] = None
    status: str = "Available"
    condition: ItemCondition = "New"
    purchase_date: Optional[date] = None
    purchase_price: Optional[Decimal] = None
    created_at: Optional[datetime] = None


# Schema for creating one generated unit; product_id is assigned by the server
class ProductCreate(ApiModel):
    category_id: int
    supplier_id: int
    po_number: str
    receipt_id: int
    receipt_item_id: int
    serial_number: Optional[str] = None
    condition: ItemCondition = "New"
    purchase_date: date
    purchase_price: Decimal = Field(ge=0)
