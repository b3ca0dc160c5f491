"""
Default dataset loaded when nothing has been persisted yet.

Reservation and sale dates are relative to ``today`` so a fresh install
always shows activity around the current dashboard period.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from chefs_margin.models.entities import (
    Ingredient,
    MenuItem,
    OrderLine,
    PaymentMethod,
    RecipeLine,
    Reservation,
    ReservationStatus,
    Sale,
)


# id, name, unit, base price, market price, stock, supplier, contact
_INGREDIENTS = [
    ("i1", "Salmon Fillet", "kg", "18.00", "19.50", "4.5", "Pacific Seafood Co.", "+1 800-FISH-NOW"),
    ("i2", "Avocado", "piece", "2.50", "3.20", "15", "Green Grove Farms", "orders@greengrove.com"),
    ("i3", "Wagyu Beef", "kg", "75.00", "72.00", "3.5", "Heritage Meats", "Sales Dept"),
    ("i4", "Sourdough", "loaf", "4.50", "4.50", "8", "Artisan Bakery Inc.", "daily@artisan.bakery"),
    ("i5", "Burger Bun", "piece", "0.80", "0.85", "42", "Industrial Baking Group", "Order Desk"),
    ("i6", "Limes", "piece", "0.50", "0.60", "25", "Tropical Produce", "whatsapp: +52-88-..."),
    ("i7", "Romaine Lettuce", "head", "1.20", "1.50", "12", "Local Greens", "farmers@market.com"),
    ("i8", "Parmesan Cheese", "kg", "22.00", "24.00", "2", "Italian Imports", "gio@imports.com"),
    ("i9", "Chicken Breast", "kg", "9.00", "8.50", "10", "Poultry Farms", "sales@chickens.com"),
    ("i10", "Truffle Oil", "bottle", "18.00", "18.00", "4", "Gourmet Supplies", "info@gourmet.com"),
]

# id, name, selling price, [(ingredient id, qty per serving)]
_MENU = [
    ("m1", "Grilled Salmon", "32.00", [("i1", "0.25"), ("i6", "1")]),
    ("m2", "Avocado Toast", "16.00", [("i2", "1"), ("i4", "0.15"), ("i6", "0.5")]),
    ("m3", "Wagyu Burger", "29.00", [("i3", "0.18"), ("i5", "1"), ("i7", "0.1")]),
    ("m4", "Chicken Caesar Salad", "22.00", [("i7", "0.5"), ("i9", "0.2"), ("i8", "0.05"), ("i4", "0.1")]),
    ("m5", "Truffle Fries", "12.00", [("i10", "0.01"), ("i8", "0.02")]),
]

# id, customer, pax, day offset, time, status, orders, notes
_RESERVATIONS = [
    ("r1", "Alice Chen", 2, 0, "12:30", ReservationStatus.SEATED, [("m2", 2), ("m5", 1)], "Window seat preferred"),
    ("r2", "TechCorp Lunch", 6, 0, "13:00", ReservationStatus.CONFIRMED, [("m3", 4), ("m4", 2), ("m5", 3)], "Corporate account"),
    ("r3", "Mr. & Mrs. Smith", 2, 0, "19:30", ReservationStatus.CONFIRMED, [], "Anniversary"),
    ("r4", "Birthday Group (Sarah)", 10, 1, "18:00", ReservationStatus.CONFIRMED, [("m1", 5), ("m3", 5)], "Bringing cake"),
    ("r5", "James Bond", 1, 1, "20:00", ReservationStatus.CONFIRMED, [("m3", 1)], "Martini shaken not stirred"),
    ("r6", "Early Bird Club", 4, -1, "17:00", ReservationStatus.COMPLETED, [("m4", 4)], None),
    ("r7", "Lunch Meeting", 3, -2, "12:00", ReservationStatus.COMPLETED, [("m2", 3)], None),
    ("r8", "Family Dinner", 5, -3, "18:30", ReservationStatus.COMPLETED, [("m1", 2), ("m3", 3)], None),
]

# id, day offset, time, items, total, payment method
_SALES = [
    ("s5", 0, "11:30", [("m2", 2)], "32.00", PaymentMethod.ONLINE),
    ("s6", 0, "12:05", [("m4", 1), ("m5", 1)], "34.00", PaymentMethod.CASH),
    ("s7", 0, "12:20", [("m3", 1)], "29.00", PaymentMethod.CARD),
    ("s8", 0, "12:45", [("m1", 1), ("m2", 1)], "48.00", PaymentMethod.CARD),
    ("s1", -1, "12:15", [("m3", 2), ("m5", 1)], "70.00", PaymentMethod.CARD),
    ("s2", -1, "12:45", [("m2", 1), ("m4", 1)], "38.00", PaymentMethod.CASH),
    ("s3", -1, "13:30", [("m1", 1), ("m4", 2)], "76.00", PaymentMethod.CARD),
    ("s4", -1, "19:15", [("m3", 4), ("m5", 4), ("m1", 2)], "228.00", PaymentMethod.CARD),
    ("s9", -2, "19:00", [("m3", 2), ("m1", 2)], "122.00", PaymentMethod.CARD),
    ("s10", -3, "13:00", [("m4", 3), ("m5", 2)], "90.00", PaymentMethod.ONLINE),
]


def _day(today: date, offset: int) -> str:
    return (today + timedelta(days=offset)).isoformat()


def default_ingredients() -> list[Ingredient]:
    return [
        Ingredient(
            id=iid,
            name=name,
            unit=unit,
            base_price=Decimal(base),
            current_market_price=Decimal(market),
            current_stock=Decimal(stock),
            supplier_name=supplier,
            supplier_contact=contact,
        )
        for iid, name, unit, base, market, stock, supplier, contact in _INGREDIENTS
    ]


def default_menu() -> list[MenuItem]:
    return [
        MenuItem(
            id=mid,
            name=name,
            selling_price=Decimal(price),
            ingredients=[RecipeLine(ingredient_id=i, qty=Decimal(q)) for i, q in lines],
        )
        for mid, name, price, lines in _MENU
    ]


def default_reservations(today: Optional[date] = None) -> list[Reservation]:
    today = today or date.today()
    return [
        Reservation(
            id=rid,
            customer_name=customer,
            pax=pax,
            date=_day(today, offset),
            time=time,
            status=status,
            orders=[OrderLine(menu_item_id=m, qty=q) for m, q in orders],
            notes=notes,
        )
        for rid, customer, pax, offset, time, status, orders, notes in _RESERVATIONS
    ]


def default_sales(today: Optional[date] = None) -> list[Sale]:
    today = today or date.today()
    return [
        Sale(
            id=sid,
            date=_day(today, offset),
            time=time,
            items=[OrderLine(menu_item_id=m, qty=q) for m, q in items],
            total_amount=Decimal(total),
            payment_method=method,
        )
        for sid, offset, time, items, total, method in _SALES
    ]
