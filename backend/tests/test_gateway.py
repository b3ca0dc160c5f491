"""
Chef's Margin - LLM Gateway Tests
Payload projection, reply cleanup/validation and the Gemini HTTP call.
"""

import asyncio
import base64
import json
from decimal import Decimal

import httpx
import pytest

from chefs_margin.core.exceptions import AnalysisError, GatewayNotConfiguredError
from chefs_margin.models.analysis import DateRange
from chefs_margin.services.gateway import (
    AIGateway,
    DecimalEncoder,
    build_analysis_payload,
    clean_json_text,
    parse_analysis_response,
    parse_invoice_response,
)


VALID_REPLY = {
    "analysis_summary": "Salmon is short for Friday.",
    "alerts": [
        {
            "type": "STOCKOUT",
            "item_name": "Salmon Fillet",
            "severity": "HIGH",
            "message": "Need 3.5kg, have 1kg",
            "suggested_action": "Order today",
        }
    ],
    "procurement_list": [
        {"ingredient": "Salmon Fillet", "required_qty": 3.5, "current_qty": 1, "to_buy": 2.5}
    ],
    "quick_actions": [
        {
            "type": "PRICE_UPDATE",
            "title": "Raise salmon price",
            "reason": "Margin below 35%",
            "menu_item_name": "Grilled Salmon",
            "suggested_price": 34.5,
        }
    ],
}


def gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestCleanJsonText:
    """Extracting the JSON object from a model reply."""

    def test_empty_reply_is_empty_object(self):
        assert clean_json_text("") == "{}"
        assert clean_json_text(None) == "{}"

    def test_takes_first_open_to_last_close_brace(self):
        text = 'Sure! Here it is:\n{"a": {"b": 1}}\nAnything else?'
        assert clean_json_text(text) == '{"a": {"b": 1}}'

    def test_strips_code_fences_without_braces(self):
        assert clean_json_text("```json\n[1, 2]\n```") == "[1, 2]"

    def test_fenced_object(self):
        assert json.loads(clean_json_text('```json\n{"x": 1}\n```')) == {"x": 1}


class TestParseAnalysisResponse:
    """Schema validation of the analysis reply."""

    def test_valid_reply(self):
        result = parse_analysis_response(json.dumps(VALID_REPLY))

        assert result.alerts[0].severity == "HIGH"
        assert result.procurement_list[0].to_buy == Decimal("2.5")
        assert result.quick_actions[0].suggested_price == Decimal("34.5")

    def test_empty_arrays_are_valid(self):
        result = parse_analysis_response(
            '{"analysis_summary": "", "alerts": [], "procurement_list": [], "quick_actions": []}'
        )
        assert result.alerts == []

    def test_missing_key_raises(self):
        reply = dict(VALID_REPLY)
        del reply["alerts"]
        with pytest.raises(AnalysisError):
            parse_analysis_response(json.dumps(reply))

    def test_malformed_json_raises(self):
        with pytest.raises(AnalysisError):
            parse_analysis_response('{"analysis_summary": "cut off...')

    def test_empty_reply_raises(self):
        # "{}" parses but misses every required key
        with pytest.raises(AnalysisError):
            parse_analysis_response("")

    def test_unknown_alert_type_raises(self):
        reply = json.loads(json.dumps(VALID_REPLY))
        reply["alerts"][0]["type"] = "FIRE"
        with pytest.raises(AnalysisError):
            parse_analysis_response(json.dumps(reply))


class TestParseInvoiceResponse:
    def test_empty_reply_is_unknown_supplier(self):
        invoice = parse_invoice_response("")
        assert invoice.supplier_name == "Unknown"
        assert invoice.items == []

    def test_camel_case_keys(self):
        invoice = parse_invoice_response(json.dumps({
            "supplierName": "Pacific Seafood Co.",
            "items": [{"name": "Salmon Fillet", "qty": 5, "unit": "kg", "unitPrice": 20.25}],
        }))
        assert invoice.supplier_name == "Pacific Seafood Co."
        assert invoice.items[0].unit_price == Decimal("20.25")

    def test_missing_items_raises(self):
        with pytest.raises(AnalysisError):
            parse_invoice_response('{"supplierName": "X"}')


class TestBuildAnalysisPayload:
    """Read-only projection sent to the model."""

    def test_projection(self, make_ingredient, make_menu_item, make_sale, make_reservation):
        ingredients = [
            make_ingredient("i1", name="Salmon Fillet", market="19.5", stock="4.5",
                            supplier_name="Pacific Seafood Co.", supplier_contact="+1 800"),
            make_ingredient("i2", name="Limes", market="0.6"),
        ]
        menu = [make_menu_item("m1", name="Grilled Salmon", price="32",
                               recipe=[("i1", "0.25"), ("gone", "1")])]
        reservations = [make_reservation("r1", pax=2), make_reservation("r2", pax=6)]
        sales = [
            make_sale("s1", items=[("m1", 2)]),
            make_sale("s2", items=[("m1", 1), ("ghost", 4)]),
        ]

        payload = build_analysis_payload(
            ingredients, menu, reservations, sales,
            DateRange(start="2024-05-01", end="2024-05-07"),
        )

        assert payload["analysis_period"] == "2024-05-01 to 2024-05-07"
        assert payload["reservations_count"] == 8
        assert payload["sales_volume_in_period"] == 2
        assert payload["top_selling_items"] == [
            {"name": "Grilled Salmon", "qty": 3},
            {"name": "ghost", "qty": 4},
        ]
        assert payload["market_updates"][0] == {
            "ingredient": "Salmon Fillet", "new_price_per_unit": Decimal("19.5"), "unit": "kg",
        }
        assert payload["current_inventory"][1]["supplier_name"] == "Unknown Supplier"
        assert payload["current_inventory"][1]["supplier_contact"] == ""
        assert payload["menu_recipes"][0]["ingredients"] == [
            {"name": "Salmon Fillet", "qty": Decimal("0.25")},
            {"name": "Unknown", "qty": Decimal("1")},
        ]

    def test_payload_is_json_serializable(self, make_ingredient, make_menu_item):
        payload = build_analysis_payload(
            [make_ingredient("i1", market="19.5")],
            [make_menu_item("m1", recipe=[("i1", "0.25")])],
            [], [],
            DateRange(start="2024-05-01", end="2024-05-01"),
        )

        decoded = json.loads(json.dumps(payload, cls=DecimalEncoder))

        assert decoded["market_updates"][0]["new_price_per_unit"] == 19.5
        assert decoded["menu_recipes"][0]["selling_price"] == 30


class TestAIGateway:
    """HTTP round trip against a mocked Gemini endpoint."""

    def test_analyze_posts_to_generate_content(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_reply(json.dumps(VALID_REPLY)))

        gateway = AIGateway(api_key="test-key", model="gemini-test", transport=httpx.MockTransport(handler))

        result = asyncio.run(gateway.analyze({"analysis_period": "x", "price": Decimal("1.5")}))

        assert result.analysis_summary == "Salmon is short for Friday."
        assert seen["url"].endswith("/models/gemini-test:generateContent")
        assert seen["key"] == "test-key"
        assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"
        assert json.loads(seen["body"]["contents"][0]["parts"][0]["text"]) == {
            "analysis_period": "x", "price": 1.5,
        }

    def test_reply_split_across_parts(self):
        text = json.dumps(VALID_REPLY)

        def handler(request: httpx.Request) -> httpx.Response:
            parts = [{"text": text[:20]}, {"text": text[20:]}]
            return httpx.Response(200, json={"candidates": [{"content": {"parts": parts}}]})

        gateway = AIGateway(api_key="k", transport=httpx.MockTransport(handler))
        assert asyncio.run(gateway.analyze({})).alerts[0].item_name == "Salmon Fillet"

    def test_http_error_raises_analysis_error(self):
        gateway = AIGateway(
            api_key="k",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "boom"})),
        )
        with pytest.raises(AnalysisError, match="500"):
            asyncio.run(gateway.analyze({}))

    def test_transport_failure_raises_analysis_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        gateway = AIGateway(api_key="k", transport=httpx.MockTransport(handler))
        with pytest.raises(AnalysisError):
            asyncio.run(gateway.analyze({}))

    def test_no_candidates_raises(self):
        gateway = AIGateway(
            api_key="k",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"candidates": []})),
        )
        with pytest.raises(AnalysisError):
            asyncio.run(gateway.analyze({}))

    def test_not_configured(self):
        gateway = AIGateway(api_key=None)
        assert gateway.configured is False
        with pytest.raises(GatewayNotConfiguredError):
            asyncio.run(gateway.analyze({}))

    def test_parse_invoice_sends_inline_image(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            reply = {"supplierName": "Green Grove Farms",
                     "items": [{"name": "Avocado", "qty": 20, "unit": "piece", "unitPrice": 3.1}]}
            return httpx.Response(200, json=gemini_reply(json.dumps(reply)))

        gateway = AIGateway(api_key="k", transport=httpx.MockTransport(handler))

        invoice = asyncio.run(gateway.parse_invoice(b"\x89PNG", "image/png"))

        inline = seen["body"]["contents"][0]["parts"][0]["inlineData"]
        assert inline["mimeType"] == "image/png"
        assert base64.b64decode(inline["data"]) == b"\x89PNG"
        assert invoice.items[0].name == "Avocado"
        assert invoice.items[0].unit_price == Decimal("3.1")
