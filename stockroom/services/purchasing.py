# stockroom/services/purchasing.py
from stockroom.schemas.purchasing import (
    PurchaseReceipt,
    PurchaseReceiptCreate,
    PurchaseReceiptUpdate,
    ReceiptStatus,
)
from stockroom.services.base import CrudService


class PurchasingService(CrudService[PurchaseReceipt]):
    path = "/purchases"
    model = PurchaseReceipt
    create_schema = PurchaseReceiptCreate
    update_schema = PurchaseReceiptUpdate

    async def set_status(self, receipt_id: int, status: ReceiptStatus) -> PurchaseReceipt:
        data = await self.api.put(f"{self.path}/{receipt_id}", json={"status": ReceiptStatus(status).value})
        return self._parse(data)
