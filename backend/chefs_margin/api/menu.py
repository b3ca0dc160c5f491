"""
Chef's Margin - Menu API Routes
Recipes and per-serving costing
"""

from fastapi import APIRouter, Depends, HTTPException, status

from chefs_margin.dependencies import get_store
from chefs_margin.models.entities import MenuItem, MenuItemCreate, PriceUpdate
from chefs_margin.models.stats import MenuItemCosting
from chefs_margin.services.costing import costing_report, ingredient_index
from chefs_margin.services.store import EntityStore

router = APIRouter(prefix="/menu", tags=["Menu"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Menu item not found")


@router.get("", response_model=list[MenuItem])
async def list_menu(store: EntityStore = Depends(get_store)) -> list[MenuItem]:
    return store.menu.all()


@router.get("/costing", response_model=list[MenuItemCosting])
async def list_costing(store: EntityStore = Depends(get_store)) -> list[MenuItemCosting]:
    """Unit cost and margin of every dish at current market prices."""
    index = ingredient_index(store.ingredients.all())
    return [costing_report(item, index) for item in store.menu.all()]


@router.post("", response_model=MenuItem, status_code=status.HTTP_201_CREATED)
def create_menu_item(
    payload: MenuItemCreate,
    store: EntityStore = Depends(get_store),
) -> MenuItem:
    """Add a dish. Recipe rows without an ingredient or with qty <= 0 are dropped."""
    return store.add_menu_item(payload)


@router.get("/{menu_item_id}", response_model=MenuItem)
async def get_menu_item(menu_item_id: str, store: EntityStore = Depends(get_store)) -> MenuItem:
    item = store.menu.get(menu_item_id)
    if not item:
        raise _not_found()
    return item


@router.get("/{menu_item_id}/costing", response_model=MenuItemCosting)
async def get_costing(menu_item_id: str, store: EntityStore = Depends(get_store)) -> MenuItemCosting:
    item = store.menu.get(menu_item_id)
    if not item:
        raise _not_found()
    return costing_report(item, store.ingredients.all())


@router.put("/{menu_item_id}", response_model=MenuItem)
def update_menu_item(
    menu_item_id: str,
    payload: MenuItemCreate,
    store: EntityStore = Depends(get_store),
) -> MenuItem:
    item = store.update_menu_item(menu_item_id, payload)
    if not item:
        raise _not_found()
    return item


@router.patch("/{menu_item_id}/price", response_model=MenuItem)
def update_price(
    menu_item_id: str,
    payload: PriceUpdate,
    store: EntityStore = Depends(get_store),
) -> MenuItem:
    item = store.set_selling_price(menu_item_id, payload.selling_price)
    if not item:
        raise _not_found()
    return item


@router.delete("/{menu_item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_menu_item(menu_item_id: str, store: EntityStore = Depends(get_store)) -> None:
    """Remove a dish. Past sales keep their frozen totals."""
    if not store.menu.delete(menu_item_id):
        raise _not_found()
