"""
Chef's Margin - Margin Analysis Schemas
Data contracts for the LLM gateway and the analysis history log

The response schema keys (analysis_summary, alerts, ...) are the exact keys
the model is instructed to return. Missing keys fail validation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from chefs_margin.core.types import Amount
from chefs_margin.models.entities import CamelModel, DATE_PATTERN


class AlertType(str, Enum):
    STOCKOUT = "STOCKOUT"
    MARGIN = "MARGIN"


class Severity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class QuickActionType(str, Enum):
    SUPPLIER_EMAIL = "SUPPLIER_EMAIL"
    PRICE_UPDATE = "PRICE_UPDATE"


# =============================================================================
# AI RESPONSE
# =============================================================================

class Alert(BaseModel):
    type: AlertType
    item_name: str
    severity: Severity
    message: str
    suggested_action: str


class ProcurementItem(BaseModel):
    ingredient: str
    required_qty: Amount
    current_qty: Amount
    to_buy: Amount


class QuickAction(BaseModel):
    """
    One-click follow-up proposed by the model.

    SUPPLIER_EMAIL uses the email_* fields, PRICE_UPDATE uses
    menu_item_name / suggested_price.
    """
    type: QuickActionType
    title: str
    reason: str

    # Email action
    email_recipient: Optional[str] = None
    email_subject: Optional[str] = None
    email_body: Optional[str] = None

    # Price action
    menu_item_name: Optional[str] = None
    suggested_price: Optional[Amount] = Field(default=None, ge=0)


class AIAnalysisResponse(BaseModel):
    """Structured result of a margin analysis."""
    analysis_summary: str
    alerts: list[Alert]
    procurement_list: list[ProcurementItem]
    quick_actions: list[QuickAction]

    class Config:
        json_schema_extra = {
            "example": {
                "analysis_summary": "Salmon prices up 8%; Grilled Salmon margin is under 35%.",
                "alerts": [
                    {
                        "type": "MARGIN",
                        "item_name": "Grilled Salmon",
                        "severity": "MEDIUM",
                        "message": "Margin fell to 31%",
                        "suggested_action": "Raise price to $34",
                    }
                ],
                "procurement_list": [],
                "quick_actions": [],
            }
        }


# =============================================================================
# HISTORY
# =============================================================================

class DateRange(BaseModel):
    """Closed ISO date interval."""
    start: str = Field(pattern=DATE_PATTERN)
    end: str = Field(pattern=DATE_PATTERN)

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    @property
    def label(self) -> str:
        return f"{self.start} to {self.end}"


class AnalysisHistoryItem(CamelModel):
    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    date_range: DateRange
    result: AIAnalysisResponse


# =============================================================================
# INVOICE SCANNING
# =============================================================================

class ParsedInvoiceItem(CamelModel):
    name: str = Field(min_length=1)
    qty: Amount
    unit: str = "unit"
    unit_price: Amount = Field(ge=0)


class ParsedInvoice(CamelModel):
    supplier_name: str = ""
    items: list[ParsedInvoiceItem]


class InvoiceMergeResult(CamelModel):
    supplier_name: str
    merged: list[str] = []   # ids of existing ingredients updated
    created: list[str] = []  # ids of new ingredients


class ActionResult(CamelModel):
    type: QuickActionType
    updated_menu_items: list[str] = []
    mailto: Optional[str] = None
