# stockroom/dashboard.py
"""
Dashboard aggregation.

The ``format_*`` functions are pure: they take the raw payloads of the
statistics endpoints and never raise on missing or malformed sub-fields,
rendering a zero instead. ``DashboardService`` only fetches and combines.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from stockroom.schemas.category import Category, StockAlert
from stockroom.schemas.dashboard import Dashboard, HistogramBar, MonthlyTrend, StatCard
from stockroom.services.categories import CategoryService
from stockroom.utils.api_client import ApiClient

logger = logging.getLogger(__name__)

# Transaction types every month bucket carries, even when no row mentions them
TREND_TYPES = ("check_out", "check_in", "maintenance", "repair")

_URGENCY_RANK = {"critical": 0, "high": 1, "medium": 2}


def _dig(data: Any, *path, default=None):
    for key in path:
        if not isinstance(data, dict):
            return default
        data = data.get(key)
    return default if data is None else data


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def format_stat_cards(raw: Optional[dict]) -> List[StatCard]:
    """Fixed-order stat cards: products, categories, transactions, low stock."""
    raw = raw or {}
    by_status = _as_list(_dig(raw, "productStats", "byStatus"))
    available = next(
        (_as_int(row.get("count")) for row in by_status if isinstance(row, dict) and row.get("status") == "Available"),
        0,
    )
    recent = _as_list(_dig(raw, "transactions", "recent"))
    low_stock = len(_as_list(_dig(raw, "alerts", "lowStockProducts")))

    return [
        StatCard(
            label="Total Products",
            value=f"{_as_int(_dig(raw, 'overview', 'totalProducts', default=0)):,}",
            trend=f"{available} available",
            icon="BoxIcon",
        ),
        StatCard(
            label="Total Categories",
            value=str(_as_int(_dig(raw, "overview", "totalCategories", default=0))),
            trend=f"{_as_int(_dig(raw, 'overview', 'totalSuppliers', default=0))} suppliers",
            icon="CategoryIcon",
        ),
        StatCard(
            label="Total Transactions",
            value=f"{_as_int(_dig(raw, 'overview', 'totalTransactions', default=0)):,}",
            trend=f"{len(recent)} recent",
            icon="TransactionIcon",
        ),
        StatCard(
            label="Low Stock Items",
            value=str(low_stock),
            trend="Needs attention" if low_stock else "All good",
            is_positive=low_stock == 0,
            icon="AlertIcon",
        ),
    ]


def format_category_histogram(rows: Optional[Iterable[dict]]) -> List[HistogramBar]:
    """Group rows into name -> count; a row without a count counts once."""
    totals: Dict[str, int] = {}
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        name = str(row.get("category") or row.get("name") or "Uncategorized")
        count = row.get("count")
        totals[name] = totals.get(name, 0) + (_as_int(count) if count is not None else 1)
    return [HistogramBar(name=name, value=value) for name, value in totals.items()]


def format_monthly_trend(rows: Optional[Iterable[dict]]) -> List[MonthlyTrend]:
    """Group ``{month, transaction_type, count}`` rows into month -> {type -> count}, months in first-seen order."""
    months: Dict[str, Dict[str, int]] = {}
    for row in rows or []:
        if not isinstance(row, dict) or not row.get("month"):
            continue
        bucket = months.setdefault(str(row["month"]), {t: 0 for t in TREND_TYPES})
        kind = row.get("transaction_type")
        if kind:
            bucket[kind] = bucket.get(kind, 0) + _as_int(row.get("count"))
    return [MonthlyTrend(month=month, counts=counts) for month, counts in months.items()]


def stock_urgency(category: Category) -> str:
    if category.current_stock == 0:
        return "critical"
    if category.current_stock <= category.min_stock:
        return "high"
    return "medium"


def low_stock_alerts(categories: Iterable[Category]) -> List[StockAlert]:
    """Alert rows for tracked low-stock categories, most urgent first."""
    alerts = [
        StockAlert(
            id=c.id,
            name=c.name,
            code=c.code,
            unit=c.unit,
            current_stock=c.current_stock,
            min_stock=c.min_stock,
            reorder_point=c.reorder_point,
            urgency=stock_urgency(c),
            shortage=max(c.reorder_point - c.current_stock, 0),
        )
        for c in categories
        if c.has_stock and c.is_low_stock
    ]
    alerts.sort(key=lambda a: (_URGENCY_RANK[a.urgency], -a.shortage))
    return alerts


def _inventory_value(raw: dict) -> Optional[Decimal]:
    value = _dig(raw, "overview", "totalValue")
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning(f"Ignoring non-numeric inventory value {value!r}")
        return None


class DashboardService:
    def __init__(self, api: ApiClient, categories: Optional[CategoryService] = None):
        self.api = api
        self.categories = categories

    async def load(self, months: int = 6) -> Dashboard:
        stats = await self.api.get("/stats") or {}
        trends = await self.api.get("/trends", params={"months": months}) or []
        alerts = low_stock_alerts(await self.categories.low_stock()) if self.categories is not None else []
        return Dashboard(
            stat_cards=format_stat_cards(stats),
            category_histogram=format_category_histogram(_as_list(_dig(stats, "productStats", "byCategory"))),
            monthly_trend=format_monthly_trend(trends if isinstance(trends, list) else []),
            total_inventory_value=_inventory_value(stats),
            low_stock_alerts=alerts,
        )
