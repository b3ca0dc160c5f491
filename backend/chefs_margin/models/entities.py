"""
Chef's Margin - Core Entity Schemas
Ingredients, recipes, reservations and sales

JSON field names follow the persisted blob format (camelCase), Python
attributes are snake_case. Both are accepted on input.

Lines (recipe lines, order lines) are lenient on purpose: rows with an empty
reference or a non-positive quantity are dropped by the store when an entity
is committed, not rejected here.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chefs_margin.core.types import Amount, ZERO


DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^\d{2}:\d{2}$"


class CamelModel(BaseModel):
    """Base for models persisted with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReservationStatus(str, Enum):
    """Reservation lifecycle. Any status may follow any other."""
    CONFIRMED = "CONFIRMED"
    SEATED = "SEATED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Statuses whose bookings count towards revenue, cost and demand
ACTIVE_RESERVATION_STATUSES = frozenset({
    ReservationStatus.CONFIRMED,
    ReservationStatus.SEATED,
    ReservationStatus.COMPLETED,
})


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    ONLINE = "ONLINE"


# =============================================================================
# INGREDIENTS
# =============================================================================

class IngredientBase(CamelModel):
    name: str = Field(min_length=1)
    unit: str = Field(min_length=1)  # e.g. kg, piece, loaf
    base_price: Amount = Field(ge=0)
    current_stock: Amount = ZERO
    supplier_name: Optional[str] = None
    supplier_contact: Optional[str] = None


class IngredientCreate(IngredientBase):
    """Payload for creating or editing an ingredient.

    ``current_market_price`` defaults to ``base_price`` on creation and to
    the existing market price on edit.
    """
    current_market_price: Optional[Amount] = Field(default=None, ge=0)


class Ingredient(IngredientBase):
    """Ingredient with reference price and live market price."""
    id: str
    current_market_price: Amount = Field(ge=0)


class MarketPriceUpdate(CamelModel):
    current_market_price: Amount = Field(ge=0)


# =============================================================================
# MENU / RECIPES
# =============================================================================

class RecipeLine(CamelModel):
    """Amount of one ingredient consumed per serving."""
    ingredient_id: str = ""
    qty: Amount = ZERO

    @property
    def is_valid(self) -> bool:
        return bool(self.ingredient_id) and self.qty > 0


class MenuItemCreate(CamelModel):
    name: str = Field(min_length=1)
    selling_price: Amount = Field(ge=0)
    ingredients: list[RecipeLine] = []


class MenuItem(MenuItemCreate):
    """Dish on the menu. Cost and margin are always derived."""
    id: str


class PriceUpdate(CamelModel):
    selling_price: Amount = Field(ge=0)


# =============================================================================
# ORDERS
# =============================================================================

class OrderLine(CamelModel):
    """Quantity of one menu item, in a pre-order or a sale."""
    menu_item_id: str = ""
    qty: int = 1

    @property
    def is_valid(self) -> bool:
        return bool(self.menu_item_id) and self.qty > 0


class ReservationCreate(CamelModel):
    customer_name: str = Field(min_length=1)
    pax: int = Field(gt=0)
    date: str = Field(pattern=DATE_PATTERN)
    time: str = Field(pattern=TIME_PATTERN)
    status: ReservationStatus = ReservationStatus.CONFIRMED
    notes: Optional[str] = None
    orders: list[OrderLine] = []


class Reservation(ReservationCreate):
    """Table booking. An empty ``orders`` list means no pre-order."""
    id: str


class SaleCreate(CamelModel):
    """Walk-in sale. Date defaults to today; time is stamped by the store."""
    date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    items: list[OrderLine] = []
    payment_method: PaymentMethod = PaymentMethod.CASH


class Sale(CamelModel):
    """Recorded sale. ``total_amount`` is frozen at creation."""
    id: str
    date: str
    time: str
    items: list[OrderLine]
    total_amount: Amount
    payment_method: PaymentMethod

    @property
    def item_count(self) -> int:
        return sum(line.qty for line in self.items)
