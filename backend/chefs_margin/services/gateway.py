"""Margin Defender Gateway - Gemini API for margin analysis and invoice scanning

Sends a read-only projection of the store to the LLM and validates what
comes back. Any failure (transport, HTTP status, malformed JSON, schema
violation) raises AnalysisError; nothing is applied on failure.
"""
import base64
import json
import logging
import re
from decimal import Decimal
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from chefs_margin.core.config import Settings
from chefs_margin.core.exceptions import AnalysisError, GatewayNotConfiguredError
from chefs_margin.models.analysis import AIAnalysisResponse, DateRange, ParsedInvoice
from chefs_margin.models.entities import Ingredient, MenuItem, Reservation, Sale
from chefs_margin.services.aggregator import demand_by_item

logger = logging.getLogger(__name__)


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that writes Decimal amounts as numbers."""
    def default(self, obj):
        if isinstance(obj, Decimal):
            if obj == obj.to_integral_value():
                return int(obj)
            return float(obj)
        return super().default(obj)


# =============================================================================
# REQUEST PAYLOAD
# =============================================================================

def build_analysis_payload(
    ingredients: list[Ingredient],
    menu: list[MenuItem],
    reservations: list[Reservation],
    sales: list[Sale],
    date_range: DateRange,
) -> dict[str, Any]:
    """
    Snapshot sent to the model. ``reservations`` and ``sales`` are expected
    to be already filtered to ``date_range``.
    """
    ingredients_by_id = {i.id: i for i in ingredients}
    menu_by_id = {m.id: m for m in menu}
    sold = demand_by_item(sales)

    return {
        "analysis_period": date_range.label,
        "reservations_count": sum(r.pax for r in reservations),
        "sales_volume_in_period": len(sales),
        "top_selling_items": [
            {"name": menu_by_id[item_id].name if item_id in menu_by_id else item_id, "qty": qty}
            for item_id, qty in sold.items()
        ],
        "market_updates": [
            {
                "ingredient": i.name,
                "new_price_per_unit": i.current_market_price,
                "unit": i.unit,
            }
            for i in ingredients
        ],
        "current_inventory": [
            {
                "ingredient": i.name,
                "qty": i.current_stock,
                "unit": i.unit,
                "supplier_name": i.supplier_name or "Unknown Supplier",
                "supplier_contact": i.supplier_contact or "",
            }
            for i in ingredients
        ],
        "menu_recipes": [
            {
                "dish_name": m.name,
                "selling_price": m.selling_price,
                "ingredients": [
                    {
                        "name": ingredients_by_id[line.ingredient_id].name
                        if line.ingredient_id in ingredients_by_id else "Unknown",
                        "qty": line.qty,
                    }
                    for line in m.ingredients
                ],
            }
            for m in menu
        ],
    }


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def clean_json_text(text: Optional[str]) -> str:
    """
    Pull the JSON object out of a model reply.

    1. Substring from the first '{' to the last '}'
    2. Otherwise strip ```json fences
    """
    if not text:
        return "{}"

    first_open = text.find("{")
    last_close = text.rfind("}")
    if first_open != -1 and last_close > first_open:
        return text[first_open:last_close + 1]

    clean = re.sub(r"```json\s*", "", text)
    clean = re.sub(r"```\s*$", "", clean)
    return clean.strip()


def _load_json(text: Optional[str]) -> Any:
    try:
        return json.loads(clean_json_text(text))
    except ValueError as e:
        raise AnalysisError(f"Model returned malformed JSON: {e}") from e


def parse_analysis_response(text: Optional[str]) -> AIAnalysisResponse:
    data = _load_json(text)
    try:
        return AIAnalysisResponse.model_validate(data)
    except ValidationError as e:
        raise AnalysisError(f"Analysis response failed validation: {e}") from e


def parse_invoice_response(text: Optional[str]) -> ParsedInvoice:
    if not text:
        return ParsedInvoice(supplier_name="Unknown", items=[])
    data = _load_json(text)
    try:
        return ParsedInvoice.model_validate(data)
    except ValidationError as e:
        raise AnalysisError(f"Invoice response failed validation: {e}") from e


# =============================================================================
# GATEWAY
# =============================================================================

class AIGateway:
    """Client for the Gemini generateContent endpoint."""

    ANALYSIS_INSTRUCTION = """You are the "Margin Defender" AI for a restaurant.
Your goal is to protect profit margins and prevent stockouts.
Analyze the input payload which contains Inventory, MenuRecipes, Reservations, Past Sales, and MarketPriceUpdates for a specific date range.

Tasks:
1. Forecast Inventory: Calculate total required ingredients based on the reservation count AND sales trends.
2. Re-Cost Menu: Recalculate the cost of every dish using provided prices.
3. Analyze Margins: Compare New Cost vs Selling Price.
   - CRITICAL ALERT: Margin < 20%.
   - WARNING: Margin < 35%.
4. Suggest Actions & Draft Content:
   - For STOCKOUTS: Generate a professional "SUPPLIER_EMAIL" draft. Include a 10% safety buffer in the quantity. If deficit > 50%, flag as URGENT in subject. Use the provided supplier info.
   - For LOW MARGINS: Suggest a "PRICE_UPDATE". Calculate the new price needed to reach ~35% margin.
   - For other high margin dishes that could cover the lost margin, suggest promotions or combos that increase sales while raising overall profit margin.

Return ONLY a valid JSON object matching the requested schema. Do not include Markdown formatting."""

    INVOICE_PROMPT = (
        "Extract inventory items from this invoice. For each item, find the Name, "
        "Quantity (number), Unit (e.g. kg, lbs, case, or 'unit' if unsure), and Price "
        "per Unit (numeric value only). Also find the Supplier Name. If a unit price is "
        "not explicitly stated, calculate it from Total Price / Quantity."
    )

    ANALYSIS_SCHEMA = {
        "type": "OBJECT",
        "properties": {
            "analysis_summary": {"type": "STRING"},
            "alerts": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "type": {"type": "STRING", "description": "STOCKOUT or MARGIN"},
                        "item_name": {"type": "STRING"},
                        "severity": {"type": "STRING", "description": "HIGH or MEDIUM"},
                        "message": {"type": "STRING"},
                        "suggested_action": {"type": "STRING"},
                    },
                    "required": ["type", "item_name", "severity", "message", "suggested_action"],
                },
            },
            "procurement_list": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "ingredient": {"type": "STRING"},
                        "required_qty": {"type": "NUMBER"},
                        "current_qty": {"type": "NUMBER"},
                        "to_buy": {"type": "NUMBER"},
                    },
                    "required": ["ingredient", "required_qty", "current_qty", "to_buy"],
                },
            },
            "quick_actions": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "type": {"type": "STRING", "enum": ["SUPPLIER_EMAIL", "PRICE_UPDATE"]},
                        "title": {"type": "STRING"},
                        "reason": {"type": "STRING"},
                        "email_recipient": {"type": "STRING"},
                        "email_subject": {"type": "STRING"},
                        "email_body": {"type": "STRING"},
                        "menu_item_name": {"type": "STRING"},
                        "suggested_price": {"type": "NUMBER"},
                    },
                    "required": ["type", "title", "reason"],
                },
            },
        },
        "required": ["analysis_summary", "alerts", "procurement_list", "quick_actions"],
    }

    INVOICE_SCHEMA = {
        "type": "OBJECT",
        "properties": {
            "supplierName": {
                "type": "STRING",
                "description": "Name of the supplier found on invoice header",
            },
            "items": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "name": {"type": "STRING"},
                        "qty": {"type": "NUMBER"},
                        "unit": {"type": "STRING"},
                        "unitPrice": {"type": "NUMBER"},
                    },
                    "required": ["name", "qty", "unit", "unitPrice"],
                },
            },
        },
        "required": ["supplierName", "items"],
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-3-flash-preview",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        max_output_tokens: int = 8192,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_output_tokens = max_output_tokens
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIGateway":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            model=settings.AI_MODEL,
            base_url=settings.AI_BASE_URL,
            timeout=settings.AI_TIMEOUT_SECONDS,
            max_output_tokens=settings.AI_MAX_OUTPUT_TOKENS,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def analyze(self, payload: dict[str, Any]) -> AIAnalysisResponse:
        """
        Run a margin analysis on a store snapshot.

        Args:
            payload: Output of build_analysis_payload()

        Returns:
            Validated analysis response
        """
        body = {
            "systemInstruction": {"parts": [{"text": self.ANALYSIS_INSTRUCTION}]},
            "contents": [
                {"role": "user", "parts": [{"text": json.dumps(payload, cls=DecimalEncoder)}]}
            ],
            "generationConfig": {
                "maxOutputTokens": self.max_output_tokens,
                "responseMimeType": "application/json",
                "responseSchema": self.ANALYSIS_SCHEMA,
            },
        }
        text = await self._generate(body)
        return parse_analysis_response(text)

    async def parse_invoice(self, image_data: bytes, mime_type: str = "image/jpeg") -> ParsedInvoice:
        """
        Extract supplier and line items from an invoice photo.

        Args:
            image_data: Raw image bytes
            mime_type: MIME type of the image
        """
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {
                            "inlineData": {
                                "mimeType": mime_type,
                                "data": base64.b64encode(image_data).decode("utf-8"),
                            }
                        },
                        {"text": self.INVOICE_PROMPT},
                    ],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": self.INVOICE_SCHEMA,
            },
        }
        text = await self._generate(body)
        return parse_invoice_response(text)

    async def _generate(self, body: dict[str, Any]) -> str:
        """POST a generateContent request and return the concatenated reply text."""
        if not self.configured:
            raise GatewayNotConfiguredError("GEMINI_API_KEY is not configured")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    headers={
                        "x-goog-api-key": self.api_key,
                        "Content-Type": "application/json",
                    },
                    json=body,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini API returned {e.response.status_code}")
            raise AnalysisError(f"Gemini API error: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini API request failed: {e}")
            raise AnalysisError(f"Gemini API request failed: {e}") from e
        except ValueError as e:
            raise AnalysisError(f"Gemini API returned a non-JSON body: {e}") from e

        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise AnalysisError("Gemini API response has no candidates") from e
        return "".join(part.get("text", "") for part in parts)
