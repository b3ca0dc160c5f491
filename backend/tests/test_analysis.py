"""
Chef's Margin - Margin Analysis Tests
Single-flight runner, history recording, invoice merge and quick actions.
"""

import asyncio
from decimal import Decimal

import pytest
from pydantic import ValidationError

from chefs_margin.core.exceptions import (
    ActionError,
    AnalysisError,
    AnalysisInProgressError,
    EntityValidationError,
)
from chefs_margin.models.analysis import (
    AIAnalysisResponse,
    DateRange,
    ParsedInvoice,
    ParsedInvoiceItem,
    QuickAction,
    QuickActionType,
)
from chefs_margin.services.actions import execute_action, supplier_mailto
from chefs_margin.services.analysis import AnalysisService
from chefs_margin.services.invoice import apply_invoice


PERIOD = DateRange(start="2024-05-01", end="2024-05-07")


def _result(summary="ok", quick_actions=()) -> AIAnalysisResponse:
    return AIAnalysisResponse(
        analysis_summary=summary,
        alerts=[],
        procurement_list=[],
        quick_actions=list(quick_actions),
    )


class FakeGateway:
    """Stands in for AIGateway; records payloads and returns canned results."""

    configured = True

    def __init__(self, result=None, error=None, release=None):
        self.result = result or _result()
        self.error = error
        self.release = release
        self.payloads = []

    async def analyze(self, payload):
        self.payloads.append(payload)
        if self.release is not None:
            await self.release.wait()
        if self.error:
            raise self.error
        return self.result


class TestAnalysisService:
    """One analysis at a time; failures change nothing."""

    def test_success_sets_current_and_prepends_history(self, store):
        gateway = FakeGateway(result=_result("new"))
        service = AnalysisService(gateway)
        store.history.record(_result("old"), PERIOD)

        item = asyncio.run(service.run(store, PERIOD))

        assert store.current_analysis.analysis_summary == "new"
        assert [i.result.analysis_summary for i in store.history.all()] == ["new", "old"]
        assert item.date_range == PERIOD
        assert service.running is False

    def test_payload_only_covers_period(self, store, make_sale, make_reservation):
        store.sales.add(make_sale("s1", date="2024-05-02"))
        store.sales.add(make_sale("s2", date="2024-06-02"))
        store.reservations.add(make_reservation("r1", date="2024-05-03", pax=4))
        store.reservations.add(make_reservation("r2", date="2024-04-03", pax=9))
        gateway = FakeGateway()

        asyncio.run(AnalysisService(gateway).run(store, PERIOD))

        payload = gateway.payloads[0]
        assert payload["sales_volume_in_period"] == 1
        assert payload["reservations_count"] == 4

    def test_failure_leaves_store_untouched(self, store):
        previous = _result("previous")
        store.set_current_analysis(previous)
        store.history.record(previous, PERIOD)
        service = AnalysisService(FakeGateway(error=AnalysisError("model down")))

        with pytest.raises(AnalysisError):
            asyncio.run(service.run(store, PERIOD))

        assert store.current_analysis == previous
        assert len(store.history) == 1
        assert service.running is False

    def test_second_run_rejected_while_first_in_flight(self, store):
        async def scenario():
            release = asyncio.Event()
            service = AnalysisService(FakeGateway(release=release))

            first = asyncio.create_task(service.run(store, PERIOD))
            await asyncio.sleep(0)
            assert service.running is True

            with pytest.raises(AnalysisInProgressError):
                await service.run(store, PERIOD)

            release.set()
            await first
            return service

        service = asyncio.run(scenario())

        assert len(store.history) == 1
        assert service.running is False


class TestApplyInvoice:
    """Merging scanned invoice lines into inventory."""

    def test_matches_case_insensitively(self, store, make_ingredient):
        store.ingredients.add(make_ingredient(
            "i1", name="Salmon Fillet", base="18", market="19.5", stock="4.5",
            supplier_name="Old Supplier",
        ))
        invoice = ParsedInvoice(
            supplier_name="Pacific Seafood Co.",
            items=[ParsedInvoiceItem(name="salmon fillet", qty=Decimal("5"), unit="kg",
                                     unit_price=Decimal("20.25"))],
        )

        result = apply_invoice(store, invoice)

        salmon = store.ingredients.get("i1")
        assert result.merged == ["i1"]
        assert result.created == []
        assert salmon.current_stock == Decimal("9.5")
        assert salmon.current_market_price == Decimal("20.25")
        assert salmon.base_price == Decimal("18")
        assert salmon.supplier_name == "Pacific Seafood Co."

    def test_unmatched_line_creates_ingredient(self, store):
        invoice = ParsedInvoice(
            supplier_name="Green Grove Farms",
            items=[ParsedInvoiceItem(name="Dragon Fruit", qty=Decimal("12"), unit="piece",
                                     unit_price=Decimal("2.2"))],
        )

        result = apply_invoice(store, invoice)

        created = store.ingredients.get(result.created[0])
        assert created.id.startswith("i-scan-")
        assert created.base_price == created.current_market_price == Decimal("2.2")
        assert created.current_stock == Decimal("12")
        assert created.supplier_name == "Green Grove Farms"
        assert created.supplier_contact == ""

    def test_single_write(self, store, make_ingredient):
        store.ingredients.add(make_ingredient("i1", name="Limes"))
        before = store.version
        invoice = ParsedInvoice(supplier_name="X", items=[
            ParsedInvoiceItem(name="Limes", qty=Decimal("10"), unit_price=Decimal("0.5")),
            ParsedInvoiceItem(name="Mint", qty=Decimal("3"), unit_price=Decimal("1")),
            ParsedInvoiceItem(name="mint", qty=Decimal("2"), unit_price=Decimal("1.1")),
        ])

        result = apply_invoice(store, invoice)

        assert store.version == before + 1
        assert len(store.ingredients) == 2
        assert len(result.created) == 1
        mint = store.ingredients.get(result.created[0])
        assert mint.current_stock == Decimal("5")
        assert mint.current_market_price == Decimal("1.1")

    def test_blank_supplier_keeps_existing(self, store, make_ingredient):
        store.ingredients.add(make_ingredient("i1", name="Limes", supplier_name="Tropical Produce"))
        apply_invoice(store, ParsedInvoice(items=[
            ParsedInvoiceItem(name="Limes", qty=Decimal("1"), unit_price=Decimal("0.5")),
        ]))
        assert store.ingredients.get("i1").supplier_name == "Tropical Produce"

    def test_negative_unit_price_is_rejected(self):
        with pytest.raises(ValidationError):
            ParsedInvoiceItem(name="Limes", qty=Decimal("1"), unit_price=Decimal("-5"))

    def test_unvalidated_negative_price_never_reaches_inventory(self, store, make_ingredient):
        """Lines built without validation still fail when merged or created."""
        store.ingredients.add(make_ingredient("i1", name="Limes", market="0.6"))
        before = store.version
        for name in ("Limes", "Dragon Fruit"):
            line = ParsedInvoiceItem.model_construct(
                name=name, qty=Decimal("1"), unit="kg", unit_price=Decimal("-5")
            )
            invoice = ParsedInvoice.model_construct(supplier_name="X", items=[line])

            with pytest.raises(EntityValidationError):
                apply_invoice(store, invoice)

        assert store.version == before
        assert [i.id for i in store.ingredients] == ["i1"]
        assert store.ingredients.get("i1").current_market_price == Decimal("0.6")


class TestQuickActions:
    """PRICE_UPDATE mutates the menu, SUPPLIER_EMAIL only hands off."""

    def _price_action(self, name="grilled salmon", price="34.5"):
        return QuickAction(
            type=QuickActionType.PRICE_UPDATE,
            title="Raise price",
            reason="Margin under 35%",
            menu_item_name=name,
            suggested_price=Decimal(price),
        )

    def test_price_update_reprices_matching_items(self, store, make_menu_item):
        store.menu.add(make_menu_item("m1", name="Grilled Salmon", price="32"))
        store.menu.add(make_menu_item("m2", name="Avocado Toast", price="16"))

        result = execute_action(store, self._price_action())

        assert result.updated_menu_items == ["m1"]
        assert store.menu.get("m1").selling_price == Decimal("34.5")
        assert store.menu.get("m2").selling_price == Decimal("16")

    def test_price_update_removes_action_from_current_analysis(self, store, make_menu_item):
        store.menu.add(make_menu_item("m1", name="Grilled Salmon"))
        action = self._price_action()
        other = self._price_action(name="Avocado Toast", price="18")
        store.set_current_analysis(_result(quick_actions=[action, other]))

        execute_action(store, action)

        assert store.current_analysis.quick_actions == [other]

    def test_price_update_for_unknown_dish_changes_nothing(self, store, make_menu_item):
        store.menu.add(make_menu_item("m1", name="Grilled Salmon", price="32"))
        result = execute_action(store, self._price_action(name="Lobster"))
        assert result.updated_menu_items == []
        assert store.menu.get("m1").selling_price == Decimal("32")

    def test_price_update_without_price_raises(self, store):
        action = QuickAction(type=QuickActionType.PRICE_UPDATE, title="t", reason="r",
                             menu_item_name="Grilled Salmon")
        with pytest.raises(ActionError):
            execute_action(store, action)

    def test_negative_suggested_price_is_rejected(self):
        with pytest.raises(ValidationError):
            self._price_action(price="-3")

    def test_zero_suggested_price_is_applied(self, store, make_menu_item):
        store.menu.add(make_menu_item("m1", name="Grilled Salmon", price="32"))
        result = execute_action(store, self._price_action(price="0"))
        assert result.updated_menu_items == ["m1"]
        assert store.menu.get("m1").selling_price == 0

    def test_supplier_email_returns_mailto(self, store):
        action = QuickAction(
            type=QuickActionType.SUPPLIER_EMAIL,
            title="Order salmon",
            reason="Stockout",
            email_recipient="orders@pacific.example",
            email_subject="URGENT: Salmon & Limes",
            email_body="Please send 5kg.\nThanks",
        )
        before = store.version

        result = execute_action(store, action)

        assert result.mailto == (
            "mailto:orders@pacific.example"
            "?subject=URGENT%3A%20Salmon%20%26%20Limes"
            "&body=Please%20send%205kg.%0AThanks"
        )
        assert store.version == before

    def test_default_subject(self):
        action = QuickAction(type=QuickActionType.SUPPLIER_EMAIL, title="t", reason="r",
                             email_recipient="a@b.example")
        assert supplier_mailto(action) == "mailto:a@b.example?subject=Order%20Request&body="

    def test_supplier_email_without_recipient_raises(self, store):
        action = QuickAction(type=QuickActionType.SUPPLIER_EMAIL, title="t", reason="r")
        with pytest.raises(ActionError):
            execute_action(store, action)
