# stockroom/intake.py
"""
Receipt intake pipeline.

Creating a receipt runs four steps strictly in order:

    validate -> persist -> products -> stock

Validation happens before any network call and reports every violation.
Once the receipt is persisted it exists no matter what happens next; a
failure while generating products or applying stock stops the pipeline,
is recorded on the returned ``IntakeResult`` and can be resumed with
``reconcile``. Per-item progress is kept so a resumed run never creates a
product or a stock movement twice.

Status lifecycle: pending -> completed, pending -> cancelled and
completed -> cancelled. Cancelling reverses the stock the receipt actually
applied (read back from the ledger entries that reference it) with new
"out" movements; the original entries are never removed.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from stockroom.errors import BusinessRuleError, InvalidTransition, StockroomError, ValidationError, coerce
from stockroom.ledger import LedgerEntry, StockLedger
from stockroom.schemas.product import Product, ProductCreate
from stockroom.schemas.purchasing import (
    PurchaseReceipt,
    PurchaseReceiptCreate,
    PurchaseReceiptItem,
    PurchaseReceiptUpdate,
    ReceiptStatus,
)
from stockroom.schemas.stock import REFERENCE_RECEIPT, StockMovement, StockMovementFilters
from stockroom.services.products import ProductService
from stockroom.services.purchasing import PurchasingService
from stockroom.utils.audit import write_log

logger = logging.getLogger(__name__)


class IntakeStep(str, enum.Enum):
    VALIDATE = "validate"
    PERSIST = "persist"
    PRODUCTS = "products"
    STOCK = "stock"


@dataclass
class StepResult:
    step: IntakeStep
    status: str  # "done" | "skipped" | "failed"
    detail: str = ""


@dataclass
class ItemProgress:
    """How far the side effects of one receipt line got."""

    position: int
    item: PurchaseReceiptItem
    products_created: int = 0
    stock_applied: bool = False
    stock_tracked: Optional[bool] = None

    @property
    def products_expected(self) -> int:
        return self.item.quantity if self.item.generate_products else 0

    @property
    def done(self) -> bool:
        return self.products_created >= self.products_expected and self.stock_applied


@dataclass
class IntakeResult:
    request: PurchaseReceiptCreate
    receipt: Optional[PurchaseReceipt] = None
    progress: List[ItemProgress] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    movements: List[StockMovement] = field(default_factory=list)
    steps: List[StepResult] = field(default_factory=list)
    failed_step: Optional[IntakeStep] = None
    error: Optional[StockroomError] = None

    @property
    def ok(self) -> bool:
        return self.failed_step is None

    @property
    def partially_applied(self) -> bool:
        return self.receipt is not None and self.failed_step is not None


@dataclass
class Cancellation:
    receipt: PurchaseReceipt
    movements: List[StockMovement]


class ReceiptIntake:
    def __init__(
        self,
        purchasing: PurchasingService,
        products: ProductService,
        ledger: StockLedger,
        store=None,
    ):
        self.purchasing = purchasing
        self.products = products
        self.ledger = ledger
        self.store = store

    @property
    def actor(self):
        return self.ledger.actor

    def _report(self, exc: StockroomError) -> None:
        if self.store is not None:
            self.store.report_error(exc)

    # ---- creation ----

    async def create_receipt(self, payload: Any) -> IntakeResult:
        """
        Validate, persist and apply a new receipt.

        Raises ``ValidationError`` (nothing sent) or the persist error (nothing
        persisted). Failures after persistence are returned on the result.
        """
        request = coerce(PurchaseReceiptCreate, payload)
        result = IntakeResult(request=request)
        result.steps.append(StepResult(IntakeStep.VALIDATE, "done", f"{len(request.items)} item(s)"))

        try:
            if self.store is not None:
                receipt = await self.store.create(request)
            else:
                receipt = await self.purchasing.create(request)
        except StockroomError as exc:
            write_log(action="RECEIPT_CREATE", resource="purchases", status="FAILED", actor=self.actor,
                      meta={"po_number": request.po_number, "error": exc.message})
            raise
        result.receipt = receipt
        result.steps.append(StepResult(IntakeStep.PERSIST, "done", f"receipt {receipt.id}"))
        write_log(action="RECEIPT_CREATE", resource="purchases", actor=self.actor,
                  meta={"id": receipt.id, "po_number": receipt.po_number, "total": receipt.total_amount})

        await self._apply_side_effects(result)
        return result

    async def reconcile(self, result: IntakeResult) -> IntakeResult:
        """Resume the side effects of a partially applied intake from where they stopped."""
        if result.receipt is None:
            raise BusinessRuleError("Receipt was never persisted; create it again instead")
        if result.ok:
            return result

        current = await self._load(result.receipt.id)
        if current.status == ReceiptStatus.CANCELLED:
            raise InvalidTransition(f"Receipt {current.receipt_number or current.id} is cancelled and cannot be reconciled")
        result.receipt = current
        logger.info(f"Reconciling receipt {current.id} from step {result.failed_step.value}")
        result.failed_step = None
        result.error = None
        await self._apply_side_effects(result)
        return result

    async def _apply_side_effects(self, result: IntakeResult) -> None:
        receipt = result.receipt
        try:
            if not result.progress:
                result.progress = await self._plan(receipt, result.request)
        except StockroomError as exc:
            self._fail(result, IntakeStep.PRODUCTS, exc)
            return

        for step, run in ((IntakeStep.PRODUCTS, self._generate_products), (IntakeStep.STOCK, self._apply_stock)):
            try:
                detail = await run(receipt, result)
            except StockroomError as exc:
                self._fail(result, step, exc)
                return
            result.steps.append(StepResult(step, "done", detail))

        write_log(action="RECEIPT_INTAKE", resource="purchases", actor=self.actor,
                  meta={"id": receipt.id, "products": len(result.products), "movements": len(result.movements)})

    def _fail(self, result: IntakeResult, step: IntakeStep, exc: StockroomError) -> None:
        logger.warning(f"Receipt {result.receipt.id} intake stopped at {step.value}: {exc.message}")
        result.failed_step = step
        result.error = exc
        result.steps.append(StepResult(step, "failed", exc.message))
        write_log(action="RECEIPT_INTAKE", resource="purchases", status="FAILED", actor=self.actor,
                  meta={"id": result.receipt.id, "step": step.value, "error": exc.message})
        self._report(exc)

    async def _plan(self, receipt: PurchaseReceipt, request: PurchaseReceiptCreate) -> List[ItemProgress]:
        items = receipt.items
        if not items:
            items = (await self.purchasing.get(receipt.id)).items or []
        if len(items) != len(request.items):
            raise BusinessRuleError(
                f"Receipt {receipt.id} came back with {len(items)} item(s), {len(request.items)} were sent"
            )
        return [ItemProgress(position=i, item=item) for i, item in enumerate(items, start=1)]

    async def _generate_products(self, receipt: PurchaseReceipt, result: IntakeResult) -> str:
        created = 0
        for progress in result.progress:
            item = progress.item
            if not item.generate_products:
                continue
            serials = item.serials()
            # One unit per call; serial numbers are handed out in listed order
            while progress.products_created < item.quantity:
                unit = progress.products_created
                try:
                    unit_payload = coerce(ProductCreate, {
                        "category_id": item.category_id,
                        "supplier_id": receipt.supplier_id,
                        "po_number": receipt.po_number,
                        "receipt_id": receipt.id,
                        "receipt_item_id": item.id,
                        "serial_number": serials[unit] if unit < len(serials) else None,
                        "condition": item.condition,
                        "purchase_date": receipt.receipt_date or date.today(),
                        "purchase_price": item.unit_price,
                    })
                except ValidationError as exc:
                    raise BusinessRuleError(
                        f"Receipt {receipt.id} item {progress.position} cannot generate products: {exc.message}"
                    ) from exc
                product = await self.products.create(unit_payload)
                progress.products_created += 1
                result.products.append(product)
                created += 1
        return f"{created} product(s) created"

    async def _apply_stock(self, receipt: PurchaseReceipt, result: IntakeResult) -> str:
        applied = 0
        label = receipt.receipt_number or receipt.po_number
        for progress in result.progress:
            if progress.stock_applied:
                continue
            item = progress.item
            category = await self.ledger.category(item.category_id, refresh=True)
            progress.stock_tracked = category.has_stock
            if not category.has_stock:
                logger.info(f"Receipt {receipt.id} item {progress.position}: category {category.code} is untracked, no stock change")
                result.steps.append(StepResult(IntakeStep.STOCK, "skipped", f"item {progress.position} untracked"))
                progress.stock_applied = True
                continue
            movement = await self.ledger.adjust_stock(
                item.category_id,
                item.quantity,
                f"Purchase receipt {label}",
                reference_type=REFERENCE_RECEIPT,
                reference_id=receipt.id,
            )
            progress.stock_applied = True
            result.movements.append(movement)
            applied += 1
        return f"{applied} stock movement(s)"

    # ---- lifecycle ----

    async def _load(self, receipt_id: int) -> PurchaseReceipt:
        try:
            return await self.purchasing.get(receipt_id)
        except StockroomError as exc:
            self._report(exc)
            raise

    async def _set_status(self, receipt: PurchaseReceipt, status: ReceiptStatus) -> PurchaseReceipt:
        try:
            updated = await self.purchasing.set_status(receipt.id, status)
        except StockroomError as exc:
            write_log(action="RECEIPT_STATUS", resource="purchases", status="FAILED", actor=self.actor,
                      meta={"id": receipt.id, "new": status.value, "error": exc.message})
            self._report(exc)
            raise
        if self.store is not None:
            self.store.apply(updated)
        write_log(action="RECEIPT_STATUS", resource="purchases", actor=self.actor,
                  meta={"id": receipt.id, "old": receipt.status.value, "new": updated.status.value})
        return updated

    async def complete_receipt(self, receipt_id: int) -> PurchaseReceipt:
        """Freeze a pending receipt. Stock was already applied at intake."""
        receipt = await self._load(receipt_id)
        if receipt.status != ReceiptStatus.PENDING:
            exc = InvalidTransition(f"Receipt {receipt.receipt_number or receipt.id} is {receipt.status.value}; only pending receipts can be completed")
            self._report(exc)
            raise exc
        return await self._set_status(receipt, ReceiptStatus.COMPLETED)

    async def applied_stock(self, receipt_id: int) -> Dict[int, int]:
        """Net stock each category received from a receipt, read from the remote ledger."""
        filters = StockMovementFilters(reference_type=REFERENCE_RECEIPT, reference_id=receipt_id)
        net: Dict[int, int] = {}
        page = 1
        while True:
            result = await self.ledger.categories.movements(filters, page=page)
            for movement in result.items:
                net[movement.category_id] = net.get(movement.category_id, 0) + movement.signed_quantity
            if not result.pagination.has_next:
                break
            page += 1
        return net

    async def cancel_receipt(self, receipt_id: int) -> Cancellation:
        receipt = await self._load(receipt_id)
        if receipt.status == ReceiptStatus.CANCELLED:
            exc = InvalidTransition(f"Receipt {receipt.receipt_number or receipt.id} is already cancelled")
            self._report(exc)
            raise exc

        label = receipt.receipt_number or receipt.po_number
        movements = []
        try:
            applied = await self.applied_stock(receipt.id)
            reversals = [
                LedgerEntry(category_id, -quantity, f"Cancel purchase receipt {label}")
                for category_id, quantity in applied.items()
                if quantity > 0
            ]
            if reversals:
                # Refuse the whole cancellation if any reversal would drive stock negative
                await self.ledger.validate_batch(reversals)

            # Reverse first: a retried cancel finds a net of zero and only flips the status
            for entry in reversals:
                movements.append(await self.ledger.adjust_stock(
                    entry.category_id,
                    entry.delta,
                    entry.reason,
                    reference_type=REFERENCE_RECEIPT,
                    reference_id=receipt.id,
                ))
        except StockroomError as exc:
            write_log(action="RECEIPT_CANCEL", resource="purchases", status="FAILED", actor=self.actor,
                      meta={"id": receipt.id, "reversed": len(movements), "error": exc.message})
            self._report(exc)
            raise
        updated = await self._set_status(receipt, ReceiptStatus.CANCELLED)
        write_log(action="RECEIPT_CANCEL", resource="purchases", actor=self.actor,
                  meta={"id": receipt.id, "reversed": len(movements)})
        return Cancellation(receipt=updated, movements=movements)

    async def update_receipt(self, receipt_id: int, patch: Any) -> PurchaseReceipt:
        """Edit header fields of a pending receipt."""
        patch = coerce(PurchaseReceiptUpdate, patch)
        receipt = await self._load(receipt_id)
        if receipt.status != ReceiptStatus.PENDING:
            exc = InvalidTransition(f"Receipt {receipt.receipt_number or receipt.id} is {receipt.status.value} and can no longer be edited")
            self._report(exc)
            raise exc
        if self.store is not None:
            return await self.store.update(receipt_id, patch)
        return await self.purchasing.update(receipt_id, patch)
