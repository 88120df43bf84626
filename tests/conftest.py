from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

import pytest

from rest_framework.test import APIClient

from modules.catalog.dtos import ProductDTO
from modules.catalog.interfaces import ICatalogGateway
from modules.core.remote import RemoteNotFound, RemoteUnavailable
from modules.inventory.exceptions import StockConflict
from modules.inventory.interfaces import IInventoryGateway
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# In-memory gateways
# ---------------------------------------------------------------------------


@dataclass
class FakeCatalog(ICatalogGateway):
    """Catalog double: unknown SKUs are not found, ``down`` SKUs unavailable."""

    products: Dict[str, ProductDTO] = field(default_factory=dict)
    down: Set[str] = field(default_factory=set)
    calls: List[str] = field(default_factory=list)
    closed: bool = False

    def add(self, sku: str, price: str, name: Optional[str] = None) -> ProductDTO:
        product = ProductDTO(
            id=len(self.products) + 1,
            sku=sku,
            name=name or f"Product {sku}",
            price=Decimal(price),
        )
        self.products[sku] = product
        return product

    def resolve(self, sku: str) -> ProductDTO:
        self.calls.append(sku)
        if sku in self.down:
            raise RemoteUnavailable("catalog down", service="catalog")
        if sku not in self.products:
            raise RemoteNotFound(f"no product {sku}", service="catalog", status_code=404)
        return self.products[sku]

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeInventory(IInventoryGateway):
    """Inventory double with real decrement semantics.

    ``decrement_errors`` maps a SKU to the exception its decrement raises;
    ``check_errors`` does the same for stock reads.
    """

    stock: Dict[str, int] = field(default_factory=dict)
    check_errors: Dict[str, Exception] = field(default_factory=dict)
    decrement_errors: Dict[str, Exception] = field(default_factory=dict)
    checks: List[str] = field(default_factory=list)
    decrements: List[Tuple[str, int]] = field(default_factory=list)
    closed: bool = False

    def check_available(self, sku: str) -> int:
        self.checks.append(sku)
        if sku in self.check_errors:
            raise self.check_errors[sku]
        if sku not in self.stock:
            raise RemoteNotFound(f"no stock record {sku}", service="inventory", status_code=404)
        return self.stock[sku]

    def decrement(self, sku: str, amount: int) -> None:
        self.decrements.append((sku, amount))
        if sku in self.decrement_errors:
            raise self.decrement_errors[sku]
        if sku not in self.stock:
            raise RemoteNotFound(f"no stock record {sku}", service="inventory", status_code=404)
        if self.stock[sku] < amount:
            raise StockConflict("insufficient stock", service="inventory", status_code=409)
        self.stock[sku] -= amount

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture()
def inventory() -> FakeInventory:
    return FakeInventory()


@pytest.fixture()
def order_service(catalog, inventory) -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        catalog=catalog,
        inventory=inventory,
    )
