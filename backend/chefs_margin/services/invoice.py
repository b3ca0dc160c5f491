"""Merge a scanned supplier invoice into the ingredient inventory."""

import logging

from chefs_margin.models.analysis import InvoiceMergeResult, ParsedInvoice
from chefs_margin.models.entities import Ingredient
from chefs_margin.services.store import EntityStore, build, new_id, revise

logger = logging.getLogger(__name__)


def apply_invoice(store: EntityStore, invoice: ParsedInvoice) -> InvoiceMergeResult:
    """
    Apply every invoice line to the inventory in one write.

    Lines match existing ingredients by case-insensitive exact name:
    stock is topped up, the market price becomes the invoiced unit price and
    the supplier name is updated. Unmatched lines become new ingredients
    whose base price starts at the invoiced unit price.
    """
    result = InvoiceMergeResult(supplier_name=invoice.supplier_name)

    with store.lock:
        ingredients = store.ingredients.all()
        by_name = {i.name.lower(): pos for pos, i in enumerate(ingredients)}

        for line in invoice.items:
            pos = by_name.get(line.name.lower())
            if pos is not None:
                existing = ingredients[pos]
                ingredients[pos] = revise(
                    existing,
                    current_stock=existing.current_stock + line.qty,
                    current_market_price=line.unit_price,
                    supplier_name=invoice.supplier_name or existing.supplier_name,
                )
                if existing.id not in result.merged:
                    result.merged.append(existing.id)
            else:
                created = build(
                    Ingredient,
                    id=new_id("i-scan"),
                    name=line.name,
                    unit=line.unit or "unit",
                    base_price=line.unit_price,
                    current_market_price=line.unit_price,
                    current_stock=line.qty,
                    supplier_name=invoice.supplier_name,
                    supplier_contact="",
                )
                ingredients.append(created)
                by_name[created.name.lower()] = len(ingredients) - 1
                result.created.append(created.id)

        store.ingredients.set_all(ingredients)

    logger.info(
        f"Invoice from {invoice.supplier_name or 'unknown supplier'}: "
        f"{len(result.merged)} merged, {len(result.created)} created"
    )
    return result
