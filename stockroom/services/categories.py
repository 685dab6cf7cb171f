# stockroom/services/categories.py
from typing import Iterable, List, Optional

from stockroom.schemas.category import Category, CategoryCreate, CategoryUpdate
from stockroom.schemas.common import Page
from stockroom.schemas.stock import (
    BulkAdjustmentResponse,
    StockAdjustment,
    StockAdjustmentRequest,
    StockMovement,
    StockMovementFilters,
)
from stockroom.services.base import CrudService


class CategoryService(CrudService[Category]):
    path = "/categories"
    model = Category
    create_schema = CategoryCreate
    update_schema = CategoryUpdate

    async def low_stock(self) -> List[Category]:
        data = await self.api.get(f"{self.path}/low-stock")
        return [self._parse(row) for row in data or []]

    async def adjust_stock(self, category_id: int, request: StockAdjustmentRequest) -> tuple:
        """Apply one signed adjustment remotely; returns ``(category, movement)``."""
        data = await self.api.post(
            f"{self.path}/{category_id}/stock", json=request.model_dump(mode="json", exclude_none=True)
        )
        category = self._parse((data or {}).get("category"))
        return category, self._movement_from(data, category, request)

    def _movement_from(self, data: dict, category: Category, request: StockAdjustmentRequest) -> StockMovement:
        if data.get("movement") is not None:
            return self._parse(data["movement"], StockMovement)

        # Older servers only report {oldStock, newStock, change}
        legacy = data.get("stockMovement") or {}
        before = legacy.get("oldStock", category.current_stock - request.quantity)
        after = legacy.get("newStock", category.current_stock)
        change = legacy.get("change", after - before)
        return StockMovement(
            category_id=category.id,
            movement_type="in" if change >= 0 else "out",
            quantity=abs(change),
            reference_type=request.reference_type,
            reference_id=request.reference_id,
            before_stock=before,
            after_stock=after,
            notes=request.notes,
        )

    async def bulk_adjust(self, adjustments: Iterable[StockAdjustment]) -> BulkAdjustmentResponse:
        payload = {"adjustments": [a.model_dump(mode="json", exclude_none=True) for a in adjustments]}
        data = await self.api.post("/stocks/bulk-adjustment", json=payload)
        return self._parse(data, BulkAdjustmentResponse)

    async def movements(
        self, filters: Optional[StockMovementFilters] = None, page: int = 1, limit: int = 100
    ) -> Page:
        params = filters.to_params() if filters is not None else {}
        rows, pagination = await self.api.get_page("/stocks", params=params, page=page, limit=limit)
        return Page(items=[self._parse(row, StockMovement) for row in rows], pagination=pagination)
