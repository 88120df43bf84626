"""HTTP client for the product catalog service."""

from __future__ import annotations

from typing import Optional

import httpx
from django.conf import settings

from modules.catalog.dtos import ProductDTO
from modules.catalog.interfaces import ICatalogGateway
from modules.core.remote import ServiceClient, sku_path


class CatalogServiceClient(ServiceClient, ICatalogGateway):
    """Resolves SKUs through ``GET {CATALOG_SERVICE_URL}/sku/{sku}``."""

    service_name = "catalog"

    @classmethod
    def from_settings(cls, client: Optional[httpx.Client] = None) -> CatalogServiceClient:
        return cls(
            base_url=settings.CATALOG_SERVICE_URL,
            timeout=settings.REMOTE_SERVICE_TIMEOUT,
            connect_timeout=settings.REMOTE_SERVICE_CONNECT_TIMEOUT,
            client=client,
        )

    def resolve(self, sku: str) -> ProductDTO:
        path = sku_path(sku)
        self._log.info("catalog.resolve", sku=sku)
        response = self._ensure_success(
            self._request("GET", path, headers={"Accept": "application/json"})
        )
        product = self._decode(response, ProductDTO)
        self._log.info("catalog.resolved", sku=sku, price=str(product.price))
        return product
