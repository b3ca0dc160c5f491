"""
Chef's Margin - Canonical Numeric Types
=======================================

RULE: Money and quantities are Decimal inside the service.

Amount: Decimal (prices, stock levels, recipe quantities)
        - Arithmetic stays exact (sums of 0.1 + 0.2 stay 0.3)
        - JSON numbers from stored blobs and the LLM are accepted and
          converted through their decimal text, never through binary float
        - Serialized as a JSON number so the persisted collections keep
          their camelCase JSON shape

Rounding is a display concern only. Use round_display() at the edges.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer, WithJsonSchema


ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# AMOUNT (Decimal)
# =============================================================================

def to_decimal(v: Any) -> Decimal:
    """
    Convert a JSON-ish value to Decimal.

    Accepts:
        - Decimal: Pass through
        - int: Convert exactly
        - float: Converted via repr() so 19.5 becomes Decimal("19.5")
        - str: Parse as Decimal
        - bool: REJECTED
    """
    if isinstance(v, bool):
        raise ValueError(f"Boolean not allowed for amount. Got: {v}")

    if isinstance(v, Decimal):
        return v

    if isinstance(v, int):
        return Decimal(v)

    if isinstance(v, float):
        if v != v or v in (float("inf"), float("-inf")):
            raise ValueError(f"Amount must be finite. Got: {v}")
        return Decimal(repr(v))

    if isinstance(v, str):
        try:
            dec = Decimal(v.strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount string: {v!r}")
        if not dec.is_finite():
            raise ValueError(f"Amount must be finite. Got: {v!r}")
        return dec

    raise ValueError(f"Invalid amount type: {type(v)}")


def _serialize_amount(v: Decimal) -> float | int:
    """Serialize as a JSON number; whole values stay integers."""
    if v == v.to_integral_value():
        return int(v)
    return float(v)


Amount = Annotated[
    Decimal,
    BeforeValidator(to_decimal),
    PlainSerializer(_serialize_amount, when_used="json"),
    WithJsonSchema({"type": "number", "description": "Decimal amount"}),
]


# =============================================================================
# DISPLAY ROUNDING
# =============================================================================

def round_display(value: Decimal, places: int = 2) -> Decimal:
    """Round half-up for presentation (2 places for money, 1 for percentages)."""
    return value.quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP)


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning 0 for a zero denominator."""
    if denominator == 0:
        return ZERO
    return numerator / denominator


__all__ = [
    "Amount",
    "HUNDRED",
    "ZERO",
    "round_display",
    "safe_divide",
    "to_decimal",
]
