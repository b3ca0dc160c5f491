"""Execute quick actions proposed by a margin analysis."""

import logging
from urllib.parse import quote

from chefs_margin.core.exceptions import ActionError
from chefs_margin.models.analysis import ActionResult, QuickAction, QuickActionType
from chefs_margin.services.store import EntityStore

logger = logging.getLogger(__name__)


def supplier_mailto(action: QuickAction) -> str:
    subject = quote(action.email_subject or "Order Request", safe="")
    body = quote(action.email_body or "", safe="")
    return f"mailto:{action.email_recipient}?subject={subject}&body={body}"


def execute_action(store: EntityStore, action: QuickAction) -> ActionResult:
    """
    PRICE_UPDATE: reprice every menu item whose name matches (case-insensitive)
    and drop the action from the current analysis.

    SUPPLIER_EMAIL: hand-off only, returns a mailto link and changes nothing.
    """
    if action.type == QuickActionType.SUPPLIER_EMAIL:
        if not action.email_recipient:
            raise ActionError("Supplier email action has no recipient")
        return ActionResult(type=action.type, mailto=supplier_mailto(action))

    if not action.menu_item_name or action.suggested_price is None:
        raise ActionError("Price update action needs a menu item name and a suggested price")

    wanted = action.menu_item_name.lower()
    updated = []
    with store.lock:
        for item in store.menu.all():
            if item.name.lower() == wanted:
                store.set_selling_price(item.id, action.suggested_price)
                updated.append(item.id)

        current = store.current_analysis
        if current is not None:
            remaining = [a for a in current.quick_actions if a != action]
            store.set_current_analysis(current.model_copy(update={"quick_actions": remaining}))

    logger.info(
        f"Price update for {action.menu_item_name} -> {action.suggested_price}: "
        f"{len(updated)} menu items changed"
    )

    return ActionResult(type=action.type, updated_menu_items=updated)
