"""
Chef's Margin - Demand & Revenue Aggregator
Period revenue, cost and per-dish demand from sales and bookings.

LOGIC:
1. Filter sales and reservations to the period (inclusive)
2. Sales: frozen totals for revenue, live recipe cost for cost
3. Active reservations: pre-orders priced at the current menu, bookings
   without a pre-order estimated from the average ticket
4. Tally demand per menu item, rank, keep the top N

GUARDRAILS:
- Dangling menu item ids contribute nothing, they never fail the pipeline
- Pure: same inputs, same output, no mutation
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Mapping

from chefs_margin.core.types import HUNDRED, ZERO, safe_divide
from chefs_margin.models.analysis import DateRange
from chefs_margin.models.entities import (
    ACTIVE_RESERVATION_STATUSES,
    Ingredient,
    MenuItem,
    Reservation,
    Sale,
)
from chefs_margin.models.stats import ItemStat, PeriodStats
from chefs_margin.services.costing import (
    ingredient_index,
    margin_percent_of,
    unit_cost,
)
from chefs_margin.services.period import filter_by_date

if TYPE_CHECKING:
    from chefs_margin.services.store import EntityStore


DEFAULT_TOP_N = 5

# Average ticket used when the menu is empty
FALLBACK_TICKET_PRICE = Decimal("30")

# Cost of a booking without pre-order, as a share of its estimated revenue.
# Fixed approximation: there is no recipe to cost.
ESTIMATED_COST_RATIO = Decimal("0.3")

# Periods kept per store version; the oldest is dropped first
STATS_CACHE_SIZE = 8


def average_ticket_price(menu: list[MenuItem]) -> Decimal:
    """Mean selling price over the menu, or 30 for an empty menu."""
    if not menu:
        return FALLBACK_TICKET_PRICE
    return sum((m.selling_price for m in menu), ZERO) / len(menu)


def is_active(reservation: Reservation) -> bool:
    return reservation.status in ACTIVE_RESERVATION_STATUSES


def demand_by_item(
    sales: Iterable[Sale],
    reservations: Iterable[Reservation] = (),
) -> dict[str, int]:
    """
    Quantity per menu item id across sale lines and active pre-orders.

    Bookings without a pre-order have no item breakdown and add nothing.
    """
    demand: dict[str, int] = defaultdict(int)
    for sale in sales:
        for line in sale.items:
            demand[line.menu_item_id] += line.qty
    for reservation in reservations:
        if not is_active(reservation):
            continue
        for line in reservation.orders:
            demand[line.menu_item_id] += line.qty
    return dict(demand)


def top_n(
    menu: list[MenuItem],
    ingredients: Iterable[Ingredient] | Mapping[str, Ingredient],
    demand: Mapping[str, int],
    n: int = DEFAULT_TOP_N,
) -> list[ItemStat]:
    """
    Per-dish period figures, highest quantity first, first ``n`` kept.

    Ties keep menu order (stable sort, no secondary key).
    """
    index = ingredient_index(ingredients)
    stats = []
    for item in menu:
        cost = unit_cost(item, index)
        margin = item.selling_price - cost
        qty = demand.get(item.id, 0)
        stats.append(ItemStat(
            menu_item_id=item.id,
            name=item.name,
            price=item.selling_price,
            unit_cost=cost,
            unit_margin=margin,
            margin_percent=margin_percent_of(margin, item.selling_price),
            qty=qty,
            period_cost=cost * qty,
            period_profit=margin * qty,
        ))
    stats.sort(key=lambda s: s.qty, reverse=True)
    return stats[:n]


def aggregate(
    ingredients: list[Ingredient],
    menu: list[MenuItem],
    reservations: list[Reservation],
    sales: list[Sale],
    start: str,
    end: str,
    n: int = DEFAULT_TOP_N,
) -> PeriodStats:
    """Revenue, cost, profit, margin and top dishes for ``[start, end]``."""
    period_sales = filter_by_date(sales, start, end)
    period_reservations = filter_by_date(reservations, start, end)

    index = ingredient_index(ingredients)
    menu_by_id = {m.id: m for m in menu}
    unit_costs = {m.id: unit_cost(m, index) for m in menu}

    revenue = ZERO
    cost = ZERO

    # 1. Sales: revenue is what was actually charged
    for sale in period_sales:
        revenue += sale.total_amount
        for line in sale.items:
            cost += unit_costs.get(line.menu_item_id, ZERO) * line.qty

    # 2. Active reservations
    avg_ticket = average_ticket_price(menu)
    for reservation in period_reservations:
        if not is_active(reservation):
            continue
        if reservation.orders:
            for line in reservation.orders:
                item = menu_by_id.get(line.menu_item_id)
                if item:
                    revenue += item.selling_price * line.qty
                    cost += unit_costs[item.id] * line.qty
        else:
            estimated = avg_ticket * reservation.pax
            revenue += estimated
            cost += estimated * ESTIMATED_COST_RATIO

    # 3. Demand and ranking
    demand = demand_by_item(period_sales, period_reservations)
    profit = revenue - cost

    return PeriodStats(
        revenue=revenue,
        cost=cost,
        profit=profit,
        margin_percent=safe_divide(profit, revenue) * HUNDRED,
        per_item_stats=top_n(menu, index, demand, n),
    )


def derive_stats(
    store: EntityStore,
    period: DateRange,
    n: int = DEFAULT_TOP_N,
) -> PeriodStats:
    """
    Dashboard pipeline (filter -> aggregate -> rank) over the store.

    Memoized on the store version, so any mutation invalidates it. At most
    ``STATS_CACHE_SIZE`` periods are kept, least recently used evicted first.
    """
    key = (store.version, period.start, period.end, n)
    with store.lock:
        cached = store.stats_cache.pop(key, None)
        if cached is not None:
            store.stats_cache[key] = cached
            return cached

    stats = aggregate(
        store.ingredients.all(),
        store.menu.all(),
        store.reservations.all(),
        store.sales.all(),
        period.start,
        period.end,
        n,
    )
    with store.lock:
        if key[0] == store.version:
            while len(store.stats_cache) >= STATS_CACHE_SIZE:
                store.stats_cache.pop(next(iter(store.stats_cache)))
            store.stats_cache[key] = stats
    return stats
