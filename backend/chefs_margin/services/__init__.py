"""
Chef's Margin - Services
Costing, aggregation, persistence and the LLM gateway
"""

from chefs_margin.services.aggregator import aggregate, demand_by_item, derive_stats, top_n
from chefs_margin.services.costing import margin_percent, price_variance, unit_cost, unit_margin
from chefs_margin.services.period import filter_by_date
from chefs_margin.services.store import EntityStore, HistoryLog

__all__ = [
    "aggregate",
    "demand_by_item",
    "derive_stats",
    "top_n",
    "margin_percent",
    "price_variance",
    "unit_cost",
    "unit_margin",
    "filter_by_date",
    "EntityStore",
    "HistoryLog",
]
