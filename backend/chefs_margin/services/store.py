"""
Chef's Margin - Entity Store

Owns the four collections (ingredients, menu, reservations, sales), the
analysis history log and the current analysis result.

PERSISTENCE:
- Each collection is one JSON blob, saved whole on every mutation
- Loading falls back to the default dataset if a blob is missing or broken;
  the failure is logged, never raised

VALIDATION ("lenient draft, strict commit"):
- Recipe / order lines with an empty reference or qty <= 0 are dropped
- Required fields are enforced by the pydantic payloads
- A sale needs at least one valid line
"""

import functools
import logging
import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Generic, Iterator, Optional, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from chefs_margin.core.exceptions import EntityNotFoundError, EntityValidationError
from chefs_margin.data import seed
from chefs_margin.models.analysis import (
    AIAnalysisResponse,
    AnalysisHistoryItem,
    DateRange,
)
from chefs_margin.models.entities import (
    Ingredient,
    IngredientCreate,
    MenuItem,
    MenuItemCreate,
    OrderLine,
    RecipeLine,
    Reservation,
    ReservationCreate,
    Sale,
    SaleCreate,
)
from chefs_margin.services.blobstore import BlobStore

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


INGREDIENTS_KEY = "cm_ingredients"
MENU_KEY = "cm_menu"
RESERVATIONS_KEY = "cm_reservations"
SALES_KEY = "cm_sales"
HISTORY_KEY = "cm_analysis_history"
ANALYSIS_KEY = "cm_analysis"


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def valid_recipe_lines(lines: list[RecipeLine]) -> list[RecipeLine]:
    return [line for line in lines if line.is_valid]


def valid_order_lines(lines: list[OrderLine]) -> list[OrderLine]:
    return [line for line in lines if line.is_valid]


def _dump(adapter: TypeAdapter, value) -> str:
    return adapter.dump_json(value, by_alias=True).decode("utf-8")


def build(model: type[T], **fields) -> T:
    """Validate ``fields`` into ``model``, raising the domain error on failure."""
    try:
        return model.model_validate(fields)
    except ValidationError as e:
        raise EntityValidationError(
            f"Invalid {model.__name__} {fields.get('id', '')}: {e.errors()[0]['msg']}"
        ) from e


def revise(entity: T, **changes) -> T:
    """Copy of ``entity`` with ``changes`` applied, validated like a new entity."""
    return build(type(entity), **{**entity.model_dump(), **changes})


def synchronized(method):
    """Run a method under the instance's ``lock``."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)
    return wrapper


# =============================================================================
# COLLECTION
# =============================================================================

class Collection(Generic[T]):
    """
    Ordered list of entities keyed by ``id``, persisted as one blob.

    Mutations call ``on_change`` (version bump) and save immediately.
    """

    def __init__(
        self,
        name: str,
        key: str,
        model: type[T],
        blobs: BlobStore,
        default_factory: Callable[[], list[T]],
        on_change: Callable[[], None],
        strict_updates: bool = True,
        lock=None,
    ) -> None:
        self.name = name
        self.lock = lock or threading.RLock()
        self.key = key
        self._adapter = TypeAdapter(list[model])
        self._blobs = blobs
        self._default_factory = default_factory
        self._on_change = on_change
        self.strict_updates = strict_updates
        self._items: list[T] = []

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(self) -> None:
        raw = self._blobs.get(self.key)
        if raw is None:
            self._items = self._default_factory()
            return
        try:
            self._items = self._adapter.validate_json(raw)
        except ValueError as e:
            logger.warning(f"Failed to load persisted {self.key}, using defaults: {e}")
            self._items = self._default_factory()

    def save(self) -> None:
        self._blobs.put(self.key, _dump(self._adapter, self._items))

    def _commit(self) -> None:
        self._on_change()
        self.save()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def all(self) -> list[T]:
        return list(self._items)

    def get(self, entity_id: str) -> Optional[T]:
        for item in self._items:
            if item.id == entity_id:
                return item
        return None

    def require(self, entity_id: str) -> Optional[T]:
        """Existing entity, or the missing-id policy (raise / ``None``)."""
        item = self.get(entity_id)
        if item is None:
            if self.strict_updates:
                raise EntityNotFoundError(self.name, entity_id)
            logger.info(f"Ignoring update of unknown {self.name} id {entity_id}")
        return item

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @synchronized
    def add(self, entity: T) -> T:
        self._items.append(entity)
        self._commit()
        logger.info(f"Created {self.name} {entity.id}")
        return entity

    @synchronized
    def replace(self, entity_id: str, entity: T) -> Optional[T]:
        for pos, item in enumerate(self._items):
            if item.id == entity_id:
                self._items[pos] = entity
                self._commit()
                logger.info(f"Updated {self.name} {entity_id}")
                return entity
        return self.require(entity_id)

    @synchronized
    def delete(self, entity_id: str) -> bool:
        remaining = [item for item in self._items if item.id != entity_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._commit()
        logger.info(f"Deleted {self.name} {entity_id}")
        return True

    @synchronized
    def set_all(self, items: list[T]) -> None:
        self._items = list(items)
        self._commit()


# =============================================================================
# HISTORY LOG
# =============================================================================

class HistoryLog:
    """Past analyses, most recent first. Optional cap evicts the oldest."""

    def __init__(
        self,
        blobs: BlobStore,
        max_entries: Optional[int] = None,
        key: str = HISTORY_KEY,
        lock=None,
    ) -> None:
        self.key = key
        self.lock = lock or threading.RLock()
        self.max_entries = max_entries
        self._blobs = blobs
        self._adapter = TypeAdapter(list[AnalysisHistoryItem])
        self._items: list[AnalysisHistoryItem] = []

    def load(self) -> None:
        raw = self._blobs.get(self.key)
        if raw is None:
            self._items = []
            return
        try:
            self._items = self._adapter.validate_json(raw)
        except ValueError as e:
            logger.warning(f"Failed to load persisted {self.key}, starting empty: {e}")
            self._items = []

    def save(self) -> None:
        self._blobs.put(self.key, _dump(self._adapter, self._items))

    def all(self) -> list[AnalysisHistoryItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[AnalysisHistoryItem]:
        return next((i for i in self._items if i.id == item_id), None)

    def __len__(self) -> int:
        return len(self._items)

    @synchronized
    def record(self, result: AIAnalysisResponse, date_range: DateRange) -> AnalysisHistoryItem:
        item = AnalysisHistoryItem(
            id=new_id("analysis"),
            timestamp=datetime.now(timezone.utc),
            date_range=date_range,
            result=result,
        )
        self._items.insert(0, item)
        if self.max_entries is not None and len(self._items) > self.max_entries:
            evicted = len(self._items) - self.max_entries
            del self._items[self.max_entries:]
            logger.info(f"History capped at {self.max_entries}, evicted {evicted}")
        self.save()
        return item

    @synchronized
    def delete(self, item_id: str) -> bool:
        remaining = [i for i in self._items if i.id != item_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self.save()
        return True


# =============================================================================
# ENTITY STORE
# =============================================================================

class EntityStore:
    """
    Single in-memory dataset with write-through persistence.

    One instance per application, owned by the app and injected where needed.
    ``version`` increments on every collection mutation; derived stats are
    cached against it in ``stats_cache``.

    Write routes run on the threadpool, so every mutation holds ``lock``
    (shared by the collections and the history log).
    """

    def __init__(
        self,
        blobs: BlobStore,
        *,
        seed_defaults: bool = True,
        strict_updates: bool = True,
        history_max_entries: Optional[int] = None,
    ) -> None:
        self._blobs = blobs
        self.lock = threading.RLock()
        self.version = 0
        self.stats_cache: dict[tuple, object] = {}

        def defaults(factory: Callable[[], list]) -> Callable[[], list]:
            return factory if seed_defaults else list

        common = dict(
            blobs=blobs, on_change=self._bump, strict_updates=strict_updates, lock=self.lock,
        )
        self.ingredients: Collection[Ingredient] = Collection(
            "ingredient", INGREDIENTS_KEY, Ingredient,
            default_factory=defaults(seed.default_ingredients), **common,
        )
        self.menu: Collection[MenuItem] = Collection(
            "menu item", MENU_KEY, MenuItem,
            default_factory=defaults(seed.default_menu), **common,
        )
        self.reservations: Collection[Reservation] = Collection(
            "reservation", RESERVATIONS_KEY, Reservation,
            default_factory=defaults(seed.default_reservations), **common,
        )
        self.sales: Collection[Sale] = Collection(
            "sale", SALES_KEY, Sale,
            default_factory=defaults(seed.default_sales), **common,
        )
        self.history = HistoryLog(blobs, max_entries=history_max_entries, lock=self.lock)
        self._analysis_adapter = TypeAdapter(Optional[AIAnalysisResponse])
        self._current_analysis: Optional[AIAnalysisResponse] = None

    @property
    def collections(self) -> tuple[Collection, ...]:
        return (self.ingredients, self.menu, self.reservations, self.sales)

    def _bump(self) -> None:
        self.version += 1
        self.stats_cache.clear()

    # =========================================================================
    # LOAD / SAVE
    # =========================================================================

    @synchronized
    def load(self) -> "EntityStore":
        for collection in self.collections:
            collection.load()
        self.history.load()
        self._load_current_analysis()
        self._bump()
        logger.info(
            f"Store loaded: {len(self.ingredients)} ingredients, {len(self.menu)} menu items, "
            f"{len(self.reservations)} reservations, {len(self.sales)} sales"
        )
        return self

    @synchronized
    def save(self) -> None:
        for collection in self.collections:
            collection.save()
        self.history.save()

    def _load_current_analysis(self) -> None:
        raw = self._blobs.get(ANALYSIS_KEY)
        if raw is None:
            self._current_analysis = None
            return
        try:
            self._current_analysis = self._analysis_adapter.validate_json(raw)
        except ValueError as e:
            logger.warning(f"Failed to load persisted {ANALYSIS_KEY}: {e}")
            self._current_analysis = None

    # =========================================================================
    # CURRENT ANALYSIS
    # =========================================================================

    @property
    def current_analysis(self) -> Optional[AIAnalysisResponse]:
        return self._current_analysis

    @synchronized
    def set_current_analysis(self, result: Optional[AIAnalysisResponse]) -> None:
        self._current_analysis = result
        if result is not None:
            self._blobs.put(ANALYSIS_KEY, _dump(self._analysis_adapter, result))

    # =========================================================================
    # INGREDIENTS
    # =========================================================================

    @synchronized
    def add_ingredient(self, payload: IngredientCreate) -> Ingredient:
        data = payload.model_dump(exclude={"current_market_price"})
        market = payload.current_market_price
        ingredient = Ingredient(
            id=new_id("i"),
            current_market_price=market if market is not None else payload.base_price,
            **data,
        )
        return self.ingredients.add(ingredient)

    @synchronized
    def update_ingredient(self, ingredient_id: str, payload: IngredientCreate) -> Optional[Ingredient]:
        """Edit details; the market price is kept unless explicitly supplied."""
        existing = self.ingredients.require(ingredient_id)
        if existing is None:
            return None
        data = payload.model_dump(exclude={"current_market_price"})
        market = payload.current_market_price
        updated = Ingredient(
            id=ingredient_id,
            current_market_price=market if market is not None else existing.current_market_price,
            **data,
        )
        return self.ingredients.replace(ingredient_id, updated)

    @synchronized
    def update_market_price(self, ingredient_id: str, price: Decimal) -> Optional[Ingredient]:
        existing = self.ingredients.require(ingredient_id)
        if existing is None:
            return None
        return self.ingredients.replace(
            ingredient_id, revise(existing, current_market_price=price)
        )

    def find_ingredient_by_name(self, name: str) -> Optional[Ingredient]:
        """Case-insensitive exact name match."""
        wanted = name.lower()
        return next((i for i in self.ingredients if i.name.lower() == wanted), None)

    # =========================================================================
    # MENU
    # =========================================================================

    def _build_menu_item(self, menu_item_id: str, payload: MenuItemCreate) -> MenuItem:
        return MenuItem(
            id=menu_item_id,
            name=payload.name,
            selling_price=payload.selling_price,
            ingredients=valid_recipe_lines(payload.ingredients),
        )

    @synchronized
    def add_menu_item(self, payload: MenuItemCreate) -> MenuItem:
        return self.menu.add(self._build_menu_item(new_id("m"), payload))

    @synchronized
    def update_menu_item(self, menu_item_id: str, payload: MenuItemCreate) -> Optional[MenuItem]:
        return self.menu.replace(menu_item_id, self._build_menu_item(menu_item_id, payload))

    @synchronized
    def set_selling_price(self, menu_item_id: str, price: Decimal) -> Optional[MenuItem]:
        existing = self.menu.require(menu_item_id)
        if existing is None:
            return None
        return self.menu.replace(
            menu_item_id, revise(existing, selling_price=price)
        )

    # =========================================================================
    # RESERVATIONS
    # =========================================================================

    def _build_reservation(self, reservation_id: str, payload: ReservationCreate) -> Reservation:
        data = payload.model_dump(exclude={"orders"})
        return Reservation(
            id=reservation_id,
            orders=valid_order_lines(payload.orders),
            **data,
        )

    @synchronized
    def add_reservation(self, payload: ReservationCreate) -> Reservation:
        return self.reservations.add(self._build_reservation(new_id("r"), payload))

    @synchronized
    def update_reservation(self, reservation_id: str, payload: ReservationCreate) -> Optional[Reservation]:
        return self.reservations.replace(
            reservation_id, self._build_reservation(reservation_id, payload)
        )

    # =========================================================================
    # SALES
    # =========================================================================

    @synchronized
    def record_sale(self, payload: SaleCreate, now: Optional[datetime] = None) -> Sale:
        """
        Record a sale, pricing it at the current menu.

        The total is frozen here and never recomputed if prices change later.
        Lines for unknown menu items stay on the sale but add nothing.
        """
        lines = valid_order_lines(payload.items)
        if not lines:
            raise EntityValidationError("A sale needs at least one item with a positive quantity")

        now = now or datetime.now()
        menu_by_id = {m.id: m for m in self.menu}
        total = Decimal(0)
        for line in lines:
            item = menu_by_id.get(line.menu_item_id)
            if item:
                total += item.selling_price * line.qty

        sale = Sale(
            id=new_id("s"),
            date=payload.date or now.date().isoformat(),
            time=now.strftime("%H:%M"),
            items=lines,
            total_amount=total,
            payment_method=payload.payment_method,
        )
        return self.sales.add(sale)
