# stockroom/schemas/dashboard.py
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from stockroom.schemas.category import StockAlert


# Display tuple for one stat card
class StatCard(BaseModel):
    label: str
    value: str
    trend: str
    is_positive: bool = True
    icon: str


# One bar of the category histogram
class HistogramBar(BaseModel):
    name: str
    value: int


# Transaction counts of one month, keyed by transaction type
class MonthlyTrend(BaseModel):
    month: str
    counts: Dict[str, int]


class Dashboard(BaseModel):
    stat_cards: List[StatCard]
    category_histogram: List[HistogramBar]
    monthly_trend: List[MonthlyTrend]
    total_inventory_value: Optional[Decimal] = None
    low_stock_alerts: List[StockAlert] = Field(default_factory=list)
