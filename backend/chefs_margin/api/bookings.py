"""
Chef's Margin - Sales & Bookings API Routes
Reservations (with optional pre-orders) and walk-in sales
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from chefs_margin.dependencies import get_optional_period, get_store
from chefs_margin.models.analysis import DateRange
from chefs_margin.models.entities import Reservation, ReservationCreate, Sale, SaleCreate
from chefs_margin.services.period import filter_by_date
from chefs_margin.services.store import EntityStore

reservations_router = APIRouter(prefix="/reservations", tags=["Reservations"])
sales_router = APIRouter(prefix="/sales", tags=["Sales"])


# ============ Reservations ============

@reservations_router.get("", response_model=list[Reservation])
async def list_reservations(
    period: Optional[DateRange] = Depends(get_optional_period),
    store: EntityStore = Depends(get_store),
) -> list[Reservation]:
    reservations = store.reservations.all()
    if period:
        reservations = filter_by_date(reservations, period.start, period.end)
    return reservations


@reservations_router.post("", response_model=Reservation, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreate,
    store: EntityStore = Depends(get_store),
) -> Reservation:
    """Book a table. Pre-order rows without a dish or with qty <= 0 are dropped."""
    return store.add_reservation(payload)


@reservations_router.get("/{reservation_id}", response_model=Reservation)
async def get_reservation(reservation_id: str, store: EntityStore = Depends(get_store)) -> Reservation:
    reservation = store.reservations.get(reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return reservation


@reservations_router.put("/{reservation_id}", response_model=Reservation)
def update_reservation(
    reservation_id: str,
    payload: ReservationCreate,
    store: EntityStore = Depends(get_store),
) -> Reservation:
    """Replace a booking. Any status may follow any other."""
    reservation = store.update_reservation(reservation_id, payload)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return reservation


@reservations_router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reservation(reservation_id: str, store: EntityStore = Depends(get_store)) -> None:
    if not store.reservations.delete(reservation_id):
        raise HTTPException(status_code=404, detail="Reservation not found")


# ============ Sales ============

@sales_router.get("", response_model=list[Sale])
async def list_sales(
    period: Optional[DateRange] = Depends(get_optional_period),
    store: EntityStore = Depends(get_store),
) -> list[Sale]:
    sales = store.sales.all()
    if period:
        sales = filter_by_date(sales, period.start, period.end)
    return sales


@sales_router.post("", response_model=Sale, status_code=status.HTTP_201_CREATED)
def record_sale(payload: SaleCreate, store: EntityStore = Depends(get_store)) -> Sale:
    """Record a sale. The total is priced now and never recomputed."""
    return store.record_sale(payload)


@sales_router.get("/{sale_id}", response_model=Sale)
async def get_sale(sale_id: str, store: EntityStore = Depends(get_store)) -> Sale:
    sale = store.sales.get(sale_id)
    if not sale:
        raise HTTPException(status_code=404, detail="Sale not found")
    return sale
