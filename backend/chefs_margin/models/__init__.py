from chefs_margin.models.entities import (
    Ingredient,
    IngredientCreate,
    MenuItem,
    MenuItemCreate,
    OrderLine,
    PaymentMethod,
    RecipeLine,
    Reservation,
    ReservationCreate,
    ReservationStatus,
    Sale,
    SaleCreate,
)
from chefs_margin.models.analysis import (
    AIAnalysisResponse,
    Alert,
    AlertType,
    AnalysisHistoryItem,
    DateRange,
    ParsedInvoice,
    ParsedInvoiceItem,
    ProcurementItem,
    QuickAction,
    QuickActionType,
    Severity,
)
from chefs_margin.models.stats import ItemStat, PeriodStats

__all__ = [
    "Ingredient",
    "IngredientCreate",
    "MenuItem",
    "MenuItemCreate",
    "OrderLine",
    "PaymentMethod",
    "RecipeLine",
    "Reservation",
    "ReservationCreate",
    "ReservationStatus",
    "Sale",
    "SaleCreate",
    "AIAnalysisResponse",
    "Alert",
    "AlertType",
    "AnalysisHistoryItem",
    "DateRange",
    "ParsedInvoice",
    "ParsedInvoiceItem",
    "ProcurementItem",
    "QuickAction",
    "QuickActionType",
    "Severity",
    "ItemStat",
    "PeriodStats",
]
