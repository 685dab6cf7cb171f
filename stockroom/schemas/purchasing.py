# stockroom/schemas/purchasing.py
import enum
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from stockroom.schemas.common import ApiModel, QueryFilters, SortOrder


# Lifecycle of a purchase receipt
class ReceiptStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ItemCondition = Literal["New", "Good", "Fair", "Poor", "Damaged"]


class Supplier(ApiModel):
    id: int
    name: str
    code: Optional[str] = None


# One category/quantity/price line of a persisted receipt
class PurchaseReceiptItem(ApiModel):
    id: Optional[int] = None
    receipt_id: Optional[int] = None
    category_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal = Decimal("0")
    serial_numbers: Optional[str] = None
    condition: ItemCondition = "New"
    notes: Optional[str] = None
    generate_products: bool = False

    @model_validator(mode="after")
    def _line_total(self):
        self.total_price = self.unit_price * self.quantity
        return self

    def serials(self) -> List[str]:
        """Serial numbers listed on the line, comma or newline separated."""
        raw = (self.serial_numbers or "").replace("\n", ",")
        return [s.strip() for s in raw.split(",") if s.strip()]


class PurchaseReceipt(ApiModel):
    id: int
    receipt_number: Optional[str] = None
    po_number: str
    supplier_id: int
    receipt_date: Optional[date] = None
    status: ReceiptStatus
    total_amount: Decimal = Decimal("0")
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    supplier: Optional[Supplier] = None
    # List endpoints may omit the lines
    items: Optional[List[PurchaseReceiptItem]] = None

    @model_validator(mode="after")
    def _receipt_total(self):
        if self.items is not None:
            self.total_amount = sum((item.total_price for item in self.items), Decimal("0"))
        return self


# Input line of a new receipt
class PurchaseReceiptItemCreate(ApiModel):
    category_id: int = Field(gt=0)
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    serial_numbers: Optional[str] = None
    condition: ItemCondition = "New"
    notes: Optional[str] = None
    generate_products: bool = False

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity


# Header plus lines, sent to the API in one call
class PurchaseReceiptCreate(ApiModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    receipt_number: Optional[str] = None
    po_number: str = Field(min_length=1)
    supplier_id: int = Field(gt=0)
    receipt_date: date = Field(default_factory=date.today)
    status: ReceiptStatus = ReceiptStatus.COMPLETED
    notes: Optional[str] = None
    items: List[PurchaseReceiptItemCreate] = Field(min_length=1)

    @field_validator("status")
    @classmethod
    def _initial_status(cls, value: ReceiptStatus) -> ReceiptStatus:
        if value == ReceiptStatus.CANCELLED:
            raise ValueError("a receipt can only be created as pending or completed")
        return value

    @property
    def total_amount(self) -> Decimal:
        return sum((item.total_price for item in self.items), Decimal("0"))


# Header-only edit of a pending receipt; status moves through complete/cancel
class PurchaseReceiptUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    receipt_number: Optional[str] = None
    po_number: Optional[str] = Field(None, min_length=1)
    supplier_id: Optional[int] = Field(None, gt=0)
    receipt_date: Optional[date] = None
    notes: Optional[str] = None


class ReceiptFilters(QueryFilters):
    search: Optional[str] = None
    supplier_id: Optional[int] = None
    status: Optional[ReceiptStatus] = None
    receipt_date: Optional[date] = None
    receipt_date_from: Optional[date] = None
    receipt_date_to: Optional[date] = None
    sort: Optional[str] = None
    order: Optional[SortOrder] = None
