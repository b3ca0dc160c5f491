"""
Chef's Margin - Dashboard API Routes
Period revenue, cost, margin and top dishes
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from chefs_margin.dependencies import get_period, get_store
from chefs_margin.models.analysis import DateRange
from chefs_margin.models.stats import PeriodStats
from chefs_margin.services.aggregator import derive_stats
from chefs_margin.services.store import EntityStore

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=PeriodStats)
async def get_stats(
    request: Request,
    period: DateRange = Depends(get_period),
    top: Optional[int] = Query(None, ge=1, le=50, description="Number of dishes to rank"),
    raw: bool = Query(False, description="Skip display rounding"),
    store: EntityStore = Depends(get_store),
) -> PeriodStats:
    """
    Operations overview for the period.

    Revenue counts frozen sale totals plus active bookings (pre-orders at
    current menu prices, estimates for bookings without one). Chart rows are
    rounded for display unless ``raw`` is set.
    """
    n = top or request.app.state.settings.TOP_N_ITEMS
    stats = derive_stats(store, period, n)
    return stats if raw else stats.for_display()
