# stockroom/ledger.py
"""
Stock ledger: the only sanctioned path by which ``current_stock`` changes.

Every adjustment is validated against the category as the server reports
it right before the change is sent, produces exactly one append-only
StockMovement, and is reflected back into the category cache (and the
category store, when one is attached) with the low-stock flag recomputed
from the new value.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from stockroom.errors import (
    BusinessRuleError,
    FieldError,
    InvalidAdjustment,
    NotFoundError,
    StockroomError,
    ValidationError,
)
from stockroom.schemas.category import Category, recompute_low_stock
from stockroom.schemas.stock import (
    REFERENCE_ADJUSTMENT,
    StockAdjustment,
    StockAdjustmentRequest,
    StockMovement,
    StockMovementFilters,
)
from stockroom.services.categories import CategoryService
from stockroom.utils.audit import write_log

logger = logging.getLogger(__name__)

__all__ = ["LedgerEntry", "StockLedger", "recompute_low_stock"]


@dataclass(frozen=True)
class LedgerEntry:
    category_id: int
    delta: int
    reason: Optional[str] = None


def _as_entry(raw: Union[LedgerEntry, tuple]) -> LedgerEntry:
    if isinstance(raw, LedgerEntry):
        return raw
    return LedgerEntry(*raw)


class StockLedger:
    def __init__(self, categories: CategoryService, store=None, actor=None):
        self.categories = categories
        self.store = store
        self.actor = actor
        self._cache: Dict[int, Category] = {}
        self._movements: Dict[int, List[StockMovement]] = {}

    # ---- category reflection ----

    def snapshot(self, category_id: int) -> Optional[Category]:
        return self._cache.get(category_id)

    async def category(self, category_id: int, refresh: bool = False) -> Category:
        if refresh or category_id not in self._cache:
            self._cache[category_id] = await self.categories.get(category_id)
        return self._cache[category_id]

    # ---- history ----

    async def load_history(self, category_id: int) -> List[StockMovement]:
        """Seed the local ledger of one category from the remote movement list, oldest first."""
        filters = StockMovementFilters(category_id=category_id)
        rows: List[StockMovement] = []
        page = 1
        while True:
            result = await self.categories.movements(filters, page=page)
            rows.extend(result.items)
            if not result.pagination.has_next:
                break
            page += 1
        rows.sort(key=lambda m: (m.created_at is None, m.created_at, m.id or 0))
        self._movements[category_id] = rows
        return list(rows)

    def movements(self, category_id: int) -> List[StockMovement]:
        return list(self._movements.get(category_id, []))

    def net_change(self, category_id: int) -> int:
        """Sum of signed quantities recorded for a category."""
        return sum(m.signed_quantity for m in self._movements.get(category_id, []))

    # ---- single adjustment ----

    @staticmethod
    def _check(category: Category, delta: int) -> None:
        if not category.has_stock:
            raise InvalidAdjustment(
                f"Category {category.code} does not track stock",
                [FieldError("category_id", "category does not track stock")],
            )
        if category.current_stock + delta < 0:
            raise InvalidAdjustment(
                f"Insufficient stock for {category.code}: {category.current_stock} available, {-delta} requested",
                [FieldError("quantity", "stock cannot go below zero")],
            )

    async def adjust_stock(
        self,
        category_id: int,
        delta: int,
        reason: Optional[str] = None,
        *,
        reference_type: str = REFERENCE_ADJUSTMENT,
        reference_id: Optional[int] = None,
    ) -> StockMovement:
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValidationError([FieldError("quantity", "must be a non-zero whole number")])

        category = await self.category(category_id, refresh=True)
        meta = {"category_id": category_id, "delta": delta, "reference": f"{reference_type}:{reference_id}"}
        try:
            self._check(category, delta)
            request = StockAdjustmentRequest(
                quantity=delta,
                movement_type="in" if delta > 0 else "out",
                notes=reason,
                reference_type=reference_type,
                reference_id=reference_id,
            )
            updated, movement = await self.categories.adjust_stock(category_id, request)
        except StockroomError as exc:
            write_log(action="STOCK_ADJUSTMENT", resource="categories", status="FAILED", actor=self.actor,
                      meta={**meta, "error": exc.message})
            if self.store is not None:
                self.store.report_error(exc)
            raise

        self._record(category, updated, movement)
        write_log(action="STOCK_ADJUSTMENT", resource="categories", actor=self.actor,
                  meta={**meta, "before": movement.before_stock, "after": movement.after_stock})
        return movement

    def _record(self, previous: Category, updated: Category, movement: StockMovement) -> None:
        category_id = updated.id
        if movement.after_stock - movement.before_stock != movement.signed_quantity:
            logger.warning(
                f"Movement {movement.id} on category {category_id} does not add up: "
                f"{movement.before_stock} -> {movement.after_stock} for {movement.signed_quantity:+d}"
            )
        history = self._movements.setdefault(category_id, [])
        expected_before = history[-1].after_stock if history else previous.current_stock
        if movement.before_stock != expected_before:
            # Someone else moved this category's stock since we last looked
            logger.warning(
                f"Ledger drift on category {category_id}: expected before_stock {expected_before}, "
                f"server reported {movement.before_stock}"
            )
        if updated.current_stock != movement.after_stock:
            logger.warning(
                f"Category {category_id} reports stock {updated.current_stock}, movement ends at {movement.after_stock}"
            )
        history.append(movement)
        self._cache[category_id] = updated
        if self.store is not None:
            self.store.apply(updated)

    # ---- batch ----

    async def validate_batch(self, entries: Iterable) -> List[LedgerEntry]:
        """Check a whole batch against projected stock; every violation is reported at once."""
        batch = [_as_entry(e) for e in entries]
        if not batch:
            raise ValidationError([FieldError("entries", "at least one adjustment is required")])

        errors: List[FieldError] = []
        projected: Dict[int, int] = {}
        refreshed = set()
        for index, entry in enumerate(batch, start=1):
            field = f"entries[{index}]"
            if isinstance(entry.delta, bool) or not isinstance(entry.delta, int) or entry.delta == 0:
                errors.append(FieldError(f"{field}.delta", "must be a non-zero whole number"))
                continue
            try:
                category = await self.category(entry.category_id, refresh=entry.category_id not in refreshed)
                refreshed.add(entry.category_id)
            except NotFoundError:
                errors.append(FieldError(f"{field}.category_id", f"category {entry.category_id} not found"))
                continue
            if not category.has_stock:
                errors.append(FieldError(f"{field}.category_id", f"category {category.code} does not track stock"))
                continue
            stock = projected.get(category.id, category.current_stock) + entry.delta
            if stock < 0:
                errors.append(FieldError(f"{field}.delta", f"stock of {category.code} would drop to {stock}"))
                continue
            projected[category.id] = stock

        if errors:
            raise InvalidAdjustment(
                f"Batch rejected, {len(errors)} invalid adjustment(s): " + "; ".join(str(e) for e in errors),
                errors,
            )
        return batch

    async def bulk_adjust(self, entries: Iterable) -> List[StockMovement]:
        """Apply a batch as one logical unit; nothing is sent unless every entry is valid."""
        try:
            batch = await self.validate_batch(entries)
        except InvalidAdjustment as exc:
            write_log(action="STOCK_BULK_ADJUSTMENT", resource="categories", status="FAILED", actor=self.actor,
                      meta={"error": exc.message})
            raise

        payload = [StockAdjustment(category_id=e.category_id, quantity=e.delta, notes=e.reason) for e in batch]
        try:
            response = await self.categories.bulk_adjust(payload)
        except StockroomError as exc:
            write_log(action="STOCK_BULK_ADJUSTMENT", resource="categories", status="FAILED", actor=self.actor,
                      meta={"entries": len(batch), "error": exc.message})
            if self.store is not None:
                self.store.report_error(exc)
            raise

        applied: List[StockMovement] = []
        failures: List[Tuple[int, str]] = []
        for entry, result in zip(batch, response.results):
            if not result.success:
                failures.append((result.category_id, result.error or "rejected"))
                continue
            previous = self._cache[result.category_id]
            before = result.before_stock if result.before_stock is not None else previous.current_stock
            after = result.after_stock if result.after_stock is not None else before + entry.delta
            movement = StockMovement(
                id=result.movement_id,
                category_id=result.category_id,
                movement_type="in" if after >= before else "out",
                quantity=abs(after - before),
                reference_type=REFERENCE_ADJUSTMENT,
                before_stock=before,
                after_stock=after,
                created_by=self.actor,
                notes=entry.reason,
            )
            updated = previous.model_copy(update={"current_stock": after})
            self._record(previous, updated, movement)
            applied.append(movement)

        status = "SUCCESS" if not failures else "PARTIAL"
        write_log(action="STOCK_BULK_ADJUSTMENT", resource="categories", status=status, actor=self.actor,
                  meta={"entries": len(batch), "applied": len(applied), "failed": len(failures)})
        if failures:
            exc = BusinessRuleError(
                "Bulk adjustment rejected for " + ", ".join(f"category {cid} ({msg})" for cid, msg in failures)
            )
            if self.store is not None:
                self.store.report_error(exc)
            raise exc
        return applied
