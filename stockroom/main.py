# stockroom/main.py
from typing import Optional

import httpx

from stockroom.config import Settings, settings as default_settings
from stockroom.dashboard import DashboardService
from stockroom.intake import ReceiptIntake
from stockroom.ledger import StockLedger
from stockroom.services.categories import CategoryService
from stockroom.services.products import ProductService
from stockroom.services.purchasing import PurchasingService
from stockroom.services.users import UserService
from stockroom.stores.categories import CategoryStore
from stockroom.stores.receipts import ReceiptStore
from stockroom.stores.users import UserStore
from stockroom.utils.api_client import ApiClient
from stockroom.utils.logging_config import setup_logging


class Backoffice:
    """
    Every component of the back-office core, wired to one API client.

    Stores are plain instances owned by this object; a screen receives the
    store it needs instead of reaching for a global.
    """

    def __init__(self, api: ApiClient, page_size: int = 10, actor=None):
        self.api = api

        # Endpoint adapters
        self.category_service = CategoryService(api)
        self.purchasing_service = PurchasingService(api)
        self.product_service = ProductService(api)
        self.user_service = UserService(api)

        # Resource stores
        self.categories = CategoryStore(self.category_service, items_per_page=page_size)
        self.receipts = ReceiptStore(self.purchasing_service, items_per_page=page_size)
        self.users = UserStore(self.user_service, items_per_page=page_size)

        self.ledger = StockLedger(self.category_service, store=self.categories, actor=actor)
        self.intake = ReceiptIntake(self.purchasing_service, self.product_service, self.ledger, store=self.receipts)
        self.dashboard = DashboardService(api, self.category_service)

    async def __aenter__(self) -> "Backoffice":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for store in (self.categories, self.receipts, self.users):
            store.reset()
        await self.api.aclose()


def create_backoffice(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    actor=None,
    configure_logging: bool = False,
) -> Backoffice:
    settings = settings or default_settings
    if configure_logging:
        setup_logging(settings.LOG_LEVEL)
    api = ApiClient(
        settings.API_URL,
        token=settings.API_TOKEN,
        timeout=settings.REQUEST_TIMEOUT,
        transport=transport,
    )
    return Backoffice(api, page_size=settings.PAGE_SIZE, actor=actor)
