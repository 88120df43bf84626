"""Integration tests for the order creation endpoint.

Covers:
- Success 201: PROCESSING order, exact total, remote stock decremented.
- Pre-commit failures: unknown SKU, insufficient stock, unavailable
  services; nothing persisted, no stock touched.
- Post-commit failures: FAILED order, earlier lines stay decremented.
- Validation 400 with field paths.
"""

from __future__ import annotations

import httpx
import pytest

from modules.orders.constants import OrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


def order_payload(*lines, customer_id="customer-42"):
    return {
        "customer_id": customer_id,
        "items": [{"sku": sku, "quantity": qty} for sku, qty in lines],
    }


# ===========================================================================
# 201
# ===========================================================================


class TestCreateOrderSuccess:
    def test_creates_processing_order(self, api_client, shop):
        response = api_client.post(URL, order_payload(("A", 2), ("B", 1)), format="json")

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == OrderStatus.PROCESSING
        assert data["total_amount"] == "25.00"
        assert data["customer_id"] == "customer-42"
        assert shop.stock == {"A": 3, "B": 4}

    def test_response_items(self, api_client, shop):
        response = api_client.post(URL, order_payload(("A", 2), ("B", 1)), format="json")

        items = response.json()["items"]
        assert [
            (i["sku"], i["product_name"], i["quantity"], i["unit_price"], i["subtotal"])
            for i in items
        ] == [
            ("A", "Widget A", 2, "10.00", "20.00"),
            ("B", "Widget B", 1, "5.00", "5.00"),
        ]

    def test_response_history(self, api_client, shop):
        response = api_client.post(URL, order_payload(("A", 1)), format="json")

        history = response.json()["status_history"]
        assert [(h["old_status"], h["new_status"]) for h in history] == [
            (None, "PENDING"),
            ("PENDING", "PROCESSING"),
        ]

    def test_order_persisted(self, api_client, shop):
        response = api_client.post(URL, order_payload(("A", 2), ("B", 1)), format="json")

        order = Order.objects.get(id=response.json()["id"])
        assert order.status == OrderStatus.PROCESSING
        assert order.items.count() == 2

    def test_fractional_prices_are_exact(self, api_client, remote_services):
        remote_services.add_product("DIME", "0.1", stock=10)
        remote_services.add_product("FIFTH", "0.2", stock=10)

        response = api_client.post(
            URL, order_payload(("DIME", 3), ("FIFTH", 1)), format="json"
        )

        assert response.status_code == 201
        assert response.json()["total_amount"] == "0.50"

    def test_stored_lines_match_response(self, api_client, remote_services):
        remote_services.add_product("J", "1.01", stock=10)
        remote_services.add_product("K", "0.5", stock=10)

        created = api_client.post(
            URL, order_payload(("J", 3), ("K", 3)), format="json"
        ).json()

        order = Order.objects.get(id=created["id"])
        for item in order.items.all():
            assert item.subtotal == item.unit_price * item.quantity
        assert order.total_amount == sum(i.subtotal for i in order.items.all())
        fetched = api_client.get(f"{URL}{created['id']}/").json()
        assert fetched["items"] == created["items"]
        assert fetched["total_amount"] == created["total_amount"] == "4.53"

    def test_repeated_sku_resolved_once(self, api_client, shop):
        response = api_client.post(
            URL, order_payload(("A", 1), ("B", 1), ("A", 2)), format="json"
        )

        assert response.status_code == 201
        assert shop.catalog_route.call_count == 2
        assert shop.decrements == [("A", 1), ("B", 1), ("A", 2)]
        assert shop.stock == {"A": 2, "B": 4}

    def test_forwards_request_id_to_remote_services(self, api_client, shop):
        response = api_client.post(
            URL,
            order_payload(("A", 1)),
            format="json",
            HTTP_X_REQUEST_ID="cid-create-1",
        )

        assert response["X-Request-ID"] == "cid-create-1"
        assert shop.requests
        assert all(r.headers["X-Request-ID"] == "cid-create-1" for r in shop.requests)


# ===========================================================================
# Pre-commit failures
# ===========================================================================


class TestCreateOrderRejected:
    def test_out_of_stock_persists_nothing(self, api_client, shop):
        shop.stock["B"] = 0

        response = api_client.post(URL, order_payload(("A", 2), ("B", 1)), format="json")

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INSUFFICIENT_STOCK"
        assert data["sku"] == "B"
        assert "order_id" not in data
        assert Order.objects.count() == 0
        assert shop.stock["A"] == 5
        assert shop.decrements == []

    def test_unknown_sku(self, api_client, shop):
        response = api_client.post(URL, order_payload(("A", 1), ("ZZZ", 1)), format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "PRODUCT_NOT_FOUND"
        assert response.json()["sku"] == "ZZZ"
        assert Order.objects.count() == 0
        assert shop.decrements == []

    def test_missing_inventory_record_is_insufficient_stock(self, api_client, shop):
        del shop.stock["B"]

        response = api_client.post(URL, order_payload(("B", 1)), format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "INSUFFICIENT_STOCK"

    def test_catalog_timeout(self, api_client, shop):
        shop.catalog_failures["A"] = httpx.ReadTimeout("catalog too slow")

        response = api_client.post(URL, order_payload(("A", 1)), format="json")

        assert response.status_code == 503
        data = response.json()
        assert data["code"] == "SERVICE_UNAVAILABLE"
        assert "order_id" not in data
        assert Order.objects.count() == 0

    def test_sub_cent_catalog_price(self, api_client, remote_services):
        remote_services.add_product("J", "1.005", stock=10)

        response = api_client.post(URL, order_payload(("J", 3)), format="json")

        assert response.status_code == 503
        assert response.json()["code"] == "SERVICE_UNAVAILABLE"
        assert Order.objects.count() == 0
        assert remote_services.decrements == []

    def test_inventory_server_error(self, api_client, shop):
        shop.stock_failures["B"] = httpx.Response(500)

        response = api_client.post(URL, order_payload(("A", 1), ("B", 1)), format="json")

        assert response.status_code == 503
        assert response.json()["code"] == "SERVICE_UNAVAILABLE"
        assert Order.objects.count() == 0


# ===========================================================================
# Post-commit failures
# ===========================================================================


class TestCreateOrderFulfillmentFailed:
    def test_unavailable_decrement_leaves_failed_order(self, api_client, shop):
        shop.decrement_failures["B"] = httpx.Response(503)

        response = api_client.post(URL, order_payload(("A", 2), ("B", 1)), format="json")

        assert response.status_code == 503
        data = response.json()
        assert data["code"] == "SERVICE_UNAVAILABLE"
        assert data["order_status"] == "FAILED"
        assert data["sku"] == "B"

        order = Order.objects.get(id=data["order_id"])
        assert order.status == OrderStatus.FAILED
        assert shop.stock == {"A": 3, "B": 5}

    def test_conflict_at_middle_line(self, api_client, shop):
        shop.add_product("C", "1.00", stock=5)
        shop.decrement_failures["B"] = httpx.Response(
            400, text="Insufficient stock for SKU: B"
        )

        response = api_client.post(
            URL, order_payload(("A", 1), ("B", 1), ("C", 1)), format="json"
        )

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INSUFFICIENT_STOCK"
        assert data["order_status"] == "FAILED"
        assert shop.decrements == [("A", 1), ("B", 1)]
        assert shop.stock == {"A": 4, "B": 5, "C": 5}

    def test_stock_taken_between_check_and_decrement(self, api_client, shop):
        def drain_then_check(request, sku):
            response = shop._stock_level(request, sku)
            if sku == "B":
                shop.stock["B"] = 0
            return response

        shop.stock_route.mock(side_effect=drain_then_check)

        response = api_client.post(URL, order_payload(("A", 1), ("B", 1)), format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "INSUFFICIENT_STOCK"
        assert Order.objects.get().status == OrderStatus.FAILED
        assert shop.stock == {"A": 4, "B": 0}

    def test_decrement_timeout(self, api_client, shop):
        shop.decrement_failures["A"] = httpx.ReadTimeout("no answer")

        response = api_client.post(URL, order_payload(("A", 1)), format="json")

        assert response.status_code == 503
        assert Order.objects.get().status == OrderStatus.FAILED

    def test_unexpected_decrement_error_names_the_order(self, api_client, shop):
        shop.decrement_failures["B"] = ValueError("inventory client bug")

        response = api_client.post(URL, order_payload(("A", 1), ("B", 1)), format="json")

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "INTERNAL_ERROR"
        assert data["order_status"] == "FAILED"
        assert data["sku"] == "B"
        assert Order.objects.get(id=data["order_id"]).status == OrderStatus.FAILED
        assert shop.stock == {"A": 4, "B": 5}

    def test_failed_order_is_readable(self, api_client, shop):
        shop.decrement_failures["B"] = httpx.Response(503)
        order_id = api_client.post(
            URL, order_payload(("A", 2), ("B", 1)), format="json"
        ).json()["order_id"]

        response = api_client.get(f"{URL}{order_id}/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "FAILED"
        assert data["total_amount"] == "25.00"
        assert "SKU B" in data["status_history"][-1]["notes"]


# ===========================================================================
# 400 validation
# ===========================================================================


class TestCreateOrderValidation:
    def test_empty_items(self, api_client, shop):
        response = api_client.post(URL, {"customer_id": "c", "items": []}, format="json")

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_FAILED"
        assert data["field"] == "items"
        assert shop.requests == []

    def test_zero_quantity_names_the_line(self, api_client, shop):
        response = api_client.post(
            URL, order_payload(("A", 1), ("B", 0)), format="json"
        )

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_FAILED"
        assert data["field"] == "items[1].quantity"
        assert "errors" in data

    def test_missing_customer(self, api_client, shop):
        response = api_client.post(
            URL, {"items": [{"sku": "A", "quantity": 1}]}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["field"] == "customer_id"

    def test_malformed_json(self, api_client, shop):
        response = api_client.post(URL, data="{", content_type="application/json")

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"
        assert Order.objects.count() == 0
