"""
Chef's Margin - Costing Engine
Per-serving cost and margin from live ingredient market prices.

LOGIC:
1. unit cost = sum(market price x recipe qty) over recipe lines
2. unit margin = selling price - unit cost
3. margin % = unit margin / selling price x 100

GUARDRAILS:
- An unknown ingredient id costs 0, it never fails the calculation
- A selling price of 0 divides by 1 instead (keeps the percentage finite)
- No rounding here; round at the display edge
"""

from decimal import Decimal
from typing import Iterable, Mapping, Union

from chefs_margin.core.types import HUNDRED, ZERO
from chefs_margin.models.entities import Ingredient, MenuItem
from chefs_margin.models.stats import IngredientVariance, MarginStatus, MenuItemCosting


IngredientIndex = Mapping[str, Ingredient]
IngredientSource = Union[IngredientIndex, Iterable[Ingredient]]

# Thresholds used by the margin analysis prompt
MARGIN_CRITICAL_PERCENT = Decimal("20")
MARGIN_WARNING_PERCENT = Decimal("35")


def ingredient_index(ingredients: IngredientSource) -> IngredientIndex:
    """Build an id -> Ingredient lookup (pass-through for an existing mapping)."""
    if isinstance(ingredients, Mapping):
        return ingredients
    return {i.id: i for i in ingredients}


def unit_cost(item: MenuItem, ingredients: IngredientSource) -> Decimal:
    """Cost of one serving at current market prices."""
    index = ingredient_index(ingredients)
    total = ZERO
    for line in item.ingredients:
        ingredient = index.get(line.ingredient_id)
        if ingredient:
            total += ingredient.current_market_price * line.qty
    return total


def unit_margin(item: MenuItem, ingredients: IngredientSource) -> Decimal:
    return item.selling_price - unit_cost(item, ingredients)


def margin_percent_of(margin: Decimal, selling_price: Decimal) -> Decimal:
    """Margin as a percentage of price; a zero price is treated as 1."""
    denominator = selling_price if selling_price != 0 else Decimal(1)
    return margin / denominator * HUNDRED


def margin_percent(item: MenuItem, ingredients: IngredientSource) -> Decimal:
    return margin_percent_of(unit_margin(item, ingredients), item.selling_price)


def margin_status(percent: Decimal) -> MarginStatus:
    if percent < 0:
        return MarginStatus.NEGATIVE
    elif percent < MARGIN_CRITICAL_PERCENT:
        return MarginStatus.CRITICAL
    elif percent < MARGIN_WARNING_PERCENT:
        return MarginStatus.WARNING
    else:
        return MarginStatus.HEALTHY


def price_variance(ingredient: Ingredient) -> Decimal:
    """Market price drift against the reference price, in percent (0 if no base)."""
    if ingredient.base_price == 0:
        return ZERO
    return (
        (ingredient.current_market_price - ingredient.base_price)
        / ingredient.base_price
        * HUNDRED
    )


def variance_report(ingredient: Ingredient) -> IngredientVariance:
    variance = price_variance(ingredient)
    if variance > 0:
        trend = "up"
    elif variance < 0:
        trend = "down"
    else:
        trend = "stable"
    return IngredientVariance(
        ingredient_id=ingredient.id,
        name=ingredient.name,
        base_price=ingredient.base_price,
        current_market_price=ingredient.current_market_price,
        variance_percent=variance,
        trend=trend,
    )


def costing_report(item: MenuItem, ingredients: IngredientSource) -> MenuItemCosting:
    """Full unit economics for one dish, listing dangling recipe references."""
    index = ingredient_index(ingredients)
    cost = unit_cost(item, index)
    margin = item.selling_price - cost
    percent = margin_percent_of(margin, item.selling_price)
    return MenuItemCosting(
        menu_item_id=item.id,
        name=item.name,
        selling_price=item.selling_price,
        unit_cost=cost,
        unit_margin=margin,
        margin_percent=percent,
        margin_status=margin_status(percent),
        missing_ingredients=[
            line.ingredient_id for line in item.ingredients
            if line.ingredient_id not in index
        ],
    )
