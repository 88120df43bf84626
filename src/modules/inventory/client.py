"""HTTP client for the inventory service."""

from __future__ import annotations

from typing import Optional

import httpx
from django.conf import settings

from modules.core.remote import ServiceClient, sku_path
from modules.inventory.dtos import InventoryDTO, StockAdjustmentDTO
from modules.inventory.exceptions import StockConflict
from modules.inventory.interfaces import IInventoryGateway

INSUFFICIENT_STOCK_MARKER = "insufficient stock"


class InventoryServiceClient(ServiceClient, IInventoryGateway):
    """Reads and decrements stock on ``{INVENTORY_SERVICE_URL}/sku/{sku}``.

    A decrement refused with 400 or 409 and a body mentioning insufficient
    stock surfaces as ``StockConflict``.  Any other 4xx (including a 409
    for a duplicate inventory record) means the call did not complete and
    surfaces as ``RemoteUnavailable``.
    """

    service_name = "inventory"

    @classmethod
    def from_settings(cls, client: Optional[httpx.Client] = None) -> InventoryServiceClient:
        return cls(
            base_url=settings.INVENTORY_SERVICE_URL,
            timeout=settings.REMOTE_SERVICE_TIMEOUT,
            connect_timeout=settings.REMOTE_SERVICE_CONNECT_TIMEOUT,
            client=client,
        )

    def check_available(self, sku: str) -> int:
        response = self._ensure_success(
            self._request("GET", sku_path(sku), headers={"Accept": "application/json"})
        )
        inventory = self._decode(response, InventoryDTO)
        self._log.info("inventory.checked", sku=sku, quantity=inventory.quantity)
        return inventory.quantity

    def decrement(self, sku: str, amount: int) -> None:
        body = StockAdjustmentDTO(amount=amount)
        self._log.info("inventory.decrement", sku=sku, amount=amount)
        response = self._request(
            "PATCH",
            sku_path(sku, "/decrement"),
            json=body.model_dump(),
        )
        if self._is_stock_conflict(response):
            self._log.warning(
                "inventory.decrement_refused",
                sku=sku,
                amount=amount,
                status_code=response.status_code,
            )
            raise StockConflict(
                f"Insufficient stock for SKU {sku}: could not decrement by {amount}.",
                service=self.service_name,
                status_code=response.status_code,
            )
        self._ensure_success(response)
        self._log.info("inventory.decremented", sku=sku, amount=amount)

    @staticmethod
    def _is_stock_conflict(response: httpx.Response) -> bool:
        return (
            response.status_code in (400, 409)
            and INSUFFICIENT_STOCK_MARKER in response.text.lower()
        )
