"""Derived dashboard figures. Never persisted."""

from enum import Enum

from chefs_margin.core.types import Amount, round_display
from chefs_margin.models.entities import CamelModel


class MarginStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    NEGATIVE = "negative"


class ItemStat(CamelModel):
    """Per-dish unit economics and period volume."""
    menu_item_id: str
    name: str
    price: Amount
    unit_cost: Amount
    unit_margin: Amount
    margin_percent: Amount
    qty: int
    period_cost: Amount
    period_profit: Amount

    def for_display(self) -> "ItemStat":
        """Chart row: money to 2 places, margin percent to 1."""
        return self.model_copy(update={
            "unit_cost": round_display(self.unit_cost),
            "unit_margin": round_display(self.unit_margin),
            "margin_percent": round_display(self.margin_percent, 1),
            "period_cost": round_display(self.period_cost),
            "period_profit": round_display(self.period_profit),
        })


class PeriodStats(CamelModel):
    revenue: Amount
    cost: Amount
    profit: Amount
    margin_percent: Amount
    per_item_stats: list[ItemStat] = []

    def for_display(self) -> "PeriodStats":
        return self.model_copy(update={
            "revenue": round_display(self.revenue),
            "cost": round_display(self.cost),
            "profit": round_display(self.profit),
            "margin_percent": round_display(self.margin_percent, 1),
            "per_item_stats": [s.for_display() for s in self.per_item_stats],
        })


class IngredientVariance(CamelModel):
    ingredient_id: str
    name: str
    base_price: Amount
    current_market_price: Amount
    variance_percent: Amount
    trend: str  # up, down, stable


class MenuItemCosting(CamelModel):
    menu_item_id: str
    name: str
    selling_price: Amount
    unit_cost: Amount
    unit_margin: Amount
    margin_percent: Amount
    margin_status: MarginStatus
    missing_ingredients: list[str] = []


__all__ = ["MarginStatus", "ItemStat", "PeriodStats", "IngredientVariance", "MenuItemCosting"]
