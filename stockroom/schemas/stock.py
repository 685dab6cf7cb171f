# stockroom/schemas/stock.py
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from stockroom.schemas.common import ApiModel, QueryFilters

# Allowed directions for a ledger entry
MovementType = Literal["in", "out"]

# What caused a movement
REFERENCE_ADJUSTMENT = "adjustment"
REFERENCE_RECEIPT = "purchase_receipt"
REFERENCE_TRANSACTION = "transaction"


# One append-only ledger entry
class StockMovement(ApiModel):
    id: Optional[int] = None
    category_id: int
    movement_type: MovementType
    quantity: int = Field(ge=0)
    reference_type: str = REFERENCE_ADJUSTMENT
    reference_id: Optional[int] = None
    before_stock: int
    after_stock: int
    created_by: Optional[Union[int, str]] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="movement_date")

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.movement_type == "in" else -self.quantity


# Payload of the category stock adjustment endpoint
class StockAdjustmentRequest(BaseModel):
    quantity: int
    movement_type: MovementType
    notes: Optional[str] = None
    reference_type: str = REFERENCE_ADJUSTMENT
    reference_id: Optional[int] = None


# One entry of a bulk adjustment batch
class StockAdjustment(BaseModel):
    category_id: int
    quantity: int
    notes: Optional[str] = None


# Per-entry outcome reported by the bulk adjustment endpoint
class BulkAdjustmentResult(ApiModel):
    category_id: int
    success: bool
    before_stock: Optional[int] = None
    after_stock: Optional[int] = None
    change: Optional[int] = None
    movement_id: Optional[int] = None
    error: Optional[str] = None


class BulkAdjustmentResponse(ApiModel):
    results: List[BulkAdjustmentResult]


class StockMovementFilters(QueryFilters):
    category_id: Optional[int] = None
    movement_type: Optional[MovementType] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    search: Optional[str] = None
