# stockroom/stores/categories.py
from typing import List

from stockroom.errors import StockroomError
from stockroom.schemas.category import Category, CategoryFilters
from stockroom.stores.base import ResourceStore


class CategoryStore(ResourceStore[Category, int]):
    filters_schema = CategoryFilters
    name = "category"

    async def fetch_low_stock(self) -> List[Category]:
        ticket, generation = self._begin("low_stock")
        try:
            rows = await self.gateway.low_stock()
        except StockroomError as exc:
            self._fail(ticket, exc)
            return self.low_stock
        if not self._stale(generation):
            self.low_stock = rows
            self._succeed(ticket)
        return rows

    def apply(self, category: Category) -> None:
        """Reflect a ledger result in the page, the detail copy and the low-stock list."""
        super().apply(category)
        others = [c for c in self.low_stock if c.id != category.id]
        self.low_stock = others + [category] if category.is_low_stock else others

    def _reset_state(self) -> None:
        super()._reset_state()
        self.low_stock = []
