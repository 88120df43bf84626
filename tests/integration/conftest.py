"""Stateful HTTP doubles of the catalog and inventory services.

Requests made by the real ``CatalogServiceClient`` / ``InventoryServiceClient``
are answered by ``RemoteServices`` through respx, so stock levels can be
inspected after partial failures.
"""

from __future__ import annotations

import json
import re
from typing import Dict, List, Tuple, Union
from urllib.parse import unquote

import httpx
import pytest
import respx

CATALOG = "http://catalog.test/api/v1/products"
INVENTORY = "http://inventory.test/api/v1/inventory"

Failure = Union[httpx.Response, Exception]


class RemoteServices:
    """Catalog and inventory state behind the respx routes.

    ``catalog_failures``, ``stock_failures`` and ``decrement_failures`` map a
    SKU to a canned response or an exception raised from the transport.
    """

    def __init__(self, router: respx.MockRouter) -> None:
        self.products: Dict[str, Dict[str, str]] = {}
        self.stock: Dict[str, int] = {}
        self.catalog_failures: Dict[str, Failure] = {}
        self.stock_failures: Dict[str, Failure] = {}
        self.decrement_failures: Dict[str, Failure] = {}
        self.decrements: List[Tuple[str, int]] = []
        self.requests: List[httpx.Request] = []

        sku = r"(?P<sku>[^/]+)"
        self.catalog_route = router.get(
            url__regex=rf"^{re.escape(CATALOG)}/sku/{sku}$"
        ).mock(side_effect=self._product)
        self.stock_route = router.get(
            url__regex=rf"^{re.escape(INVENTORY)}/sku/{sku}$"
        ).mock(side_effect=self._stock_level)
        self.decrement_route = router.patch(
            url__regex=rf"^{re.escape(INVENTORY)}/sku/{sku}/decrement$"
        ).mock(side_effect=self._decrement)

    def add_product(self, sku: str, price: str, stock: int, name: str = "") -> None:
        self.products[sku] = {"name": name or f"Product {sku}", "price": price}
        self.stock[sku] = stock

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _product(self, request: httpx.Request, sku: str) -> httpx.Response:
        self.requests.append(request)
        sku = unquote(sku)
        if sku in self.catalog_failures:
            return self._fail(self.catalog_failures[sku])
        if sku not in self.products:
            return httpx.Response(404, json={"message": f"Product not found: {sku}"})
        product = self.products[sku]
        # Prices go over the wire as JSON numbers.
        body = '{"id": %d, "sku": %s, "name": %s, "price": %s}' % (
            list(self.products).index(sku) + 1,
            json.dumps(sku),
            json.dumps(product["name"]),
            product["price"],
        )
        return httpx.Response(
            200, content=body.encode(), headers={"Content-Type": "application/json"}
        )

    def _stock_level(self, request: httpx.Request, sku: str) -> httpx.Response:
        self.requests.append(request)
        sku = unquote(sku)
        if sku in self.stock_failures:
            return self._fail(self.stock_failures[sku])
        if sku not in self.stock:
            return httpx.Response(404, json={"message": f"Inventory not found: {sku}"})
        return httpx.Response(200, json={"sku": sku, "quantity": self.stock[sku]})

    def _decrement(self, request: httpx.Request, sku: str) -> httpx.Response:
        self.requests.append(request)
        sku = unquote(sku)
        amount = json.loads(request.content)["amount"]
        self.decrements.append((sku, amount))
        if sku in self.decrement_failures:
            return self._fail(self.decrement_failures[sku])
        if sku not in self.stock:
            return httpx.Response(404, json={"message": f"Inventory not found: {sku}"})
        if self.stock[sku] < amount:
            return httpx.Response(409, text=f"Insufficient stock for SKU: {sku}")
        self.stock[sku] -= amount
        return httpx.Response(200, json={"sku": sku, "quantity": self.stock[sku]})

    @staticmethod
    def _fail(failure: Failure) -> httpx.Response:
        if isinstance(failure, Exception):
            raise failure
        return failure


@pytest.fixture()
def remote_services():
    with respx.mock(assert_all_called=False) as router:
        yield RemoteServices(router)


@pytest.fixture()
def shop(remote_services):
    """A=10.00 and B=5.00 with five units each."""
    remote_services.add_product("A", "10.00", stock=5, name="Widget A")
    remote_services.add_product("B", "5.00", stock=5, name="Widget B")
    return remote_services
