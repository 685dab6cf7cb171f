# stockroom/stores/receipts.py
from stockroom.schemas.purchasing import PurchaseReceipt, ReceiptFilters
from stockroom.stores.base import ResourceStore


class ReceiptStore(ResourceStore[PurchaseReceipt, int]):
    filters_schema = ReceiptFilters
    name = "purchase receipt"
