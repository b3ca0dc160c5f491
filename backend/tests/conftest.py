"""Shared fixtures: an empty in-memory store and entity builders."""

from decimal import Decimal

import pytest

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
from chefs_margin.services.blobstore import MemoryBlobStore
from chefs_margin.services.store import EntityStore


@pytest.fixture
def blobs():
    return MemoryBlobStore()


@pytest.fixture
def store(blobs):
    """Empty store (no seed data) on an in-memory blob store."""
    return EntityStore(blobs, seed_defaults=False).load()


@pytest.fixture
def make_ingredient():
    def _make(id="i1", base="10", market="12", stock="5", name=None, **kwargs):
        return Ingredient(
            id=id,
            name=name or f"Ingredient {id}",
            unit="kg",
            base_price=Decimal(base),
            current_market_price=Decimal(market),
            current_stock=Decimal(stock),
            **kwargs,
        )
    return _make


@pytest.fixture
def make_menu_item():
    def _make(id="m1", price="30", recipe=(("i1", "2"),), name=None):
        return MenuItem(
            id=id,
            name=name or f"Dish {id}",
            selling_price=Decimal(price),
            ingredients=[RecipeLine(ingredient_id=i, qty=Decimal(q)) for i, q in recipe],
        )
    return _make


@pytest.fixture
def make_sale():
    def _make(id="s1", date="2024-05-10", total="50", items=(("m1", 1),)):
        return Sale(
            id=id,
            date=date,
            time="12:00",
            items=[OrderLine(menu_item_id=m, qty=q) for m, q in items],
            total_amount=Decimal(total),
            payment_method=PaymentMethod.CARD,
        )
    return _make


@pytest.fixture
def make_reservation():
    def _make(
        id="r1",
        date="2024-05-10",
        pax=2,
        status=ReservationStatus.CONFIRMED,
        orders=(),
    ):
        return Reservation(
            id=id,
            customer_name=f"Guest {id}",
            pax=pax,
            date=date,
            time="19:00",
            status=status,
            orders=[OrderLine(menu_item_id=m, qty=q) for m, q in orders],
        )
    return _make
