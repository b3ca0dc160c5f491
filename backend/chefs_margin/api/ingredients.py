"""
Chef's Margin - Ingredient API Routes
Inventory and market price tracking
"""

from fastapi import APIRouter, Depends, HTTPException, status

from chefs_margin.dependencies import get_store
from chefs_margin.models.entities import Ingredient, IngredientCreate, MarketPriceUpdate
from chefs_margin.models.stats import IngredientVariance
from chefs_margin.services.costing import variance_report
from chefs_margin.services.store import EntityStore

router = APIRouter(prefix="/ingredients", tags=["Ingredients"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Ingredient not found")


@router.get("", response_model=list[Ingredient])
async def list_ingredients(store: EntityStore = Depends(get_store)) -> list[Ingredient]:
    return store.ingredients.all()


@router.post("", response_model=Ingredient, status_code=status.HTTP_201_CREATED)
def create_ingredient(
    payload: IngredientCreate,
    store: EntityStore = Depends(get_store),
) -> Ingredient:
    """Add an ingredient. Market price starts at the base price unless given."""
    return store.add_ingredient(payload)


@router.get("/{ingredient_id}", response_model=Ingredient)
async def get_ingredient(ingredient_id: str, store: EntityStore = Depends(get_store)) -> Ingredient:
    ingredient = store.ingredients.get(ingredient_id)
    if not ingredient:
        raise _not_found()
    return ingredient


@router.put("/{ingredient_id}", response_model=Ingredient)
def update_ingredient(
    ingredient_id: str,
    payload: IngredientCreate,
    store: EntityStore = Depends(get_store),
) -> Ingredient:
    """Edit an ingredient. The market price is kept unless explicitly supplied."""
    ingredient = store.update_ingredient(ingredient_id, payload)
    if not ingredient:
        raise _not_found()
    return ingredient


@router.patch("/{ingredient_id}/market-price", response_model=Ingredient)
def update_market_price(
    ingredient_id: str,
    payload: MarketPriceUpdate,
    store: EntityStore = Depends(get_store),
) -> Ingredient:
    ingredient = store.update_market_price(ingredient_id, payload.current_market_price)
    if not ingredient:
        raise _not_found()
    return ingredient


@router.get("/{ingredient_id}/variance", response_model=IngredientVariance)
async def get_variance(ingredient_id: str, store: EntityStore = Depends(get_store)) -> IngredientVariance:
    """Market price drift against the base price."""
    ingredient = store.ingredients.get(ingredient_id)
    if not ingredient:
        raise _not_found()
    return variance_report(ingredient)


@router.delete("/{ingredient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ingredient(ingredient_id: str, store: EntityStore = Depends(get_store)) -> None:
    """Remove an ingredient. Recipes referencing it then cost it at 0."""
    if not store.ingredients.delete(ingredient_id):
        raise _not_found()
