"""Catalog gateway interface.

The order service depends on this contract only; the HTTP client in
``modules.catalog.client`` is the production implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modules.catalog.dtos import ProductDTO


class ICatalogGateway(ABC):
    """Read-only access to the product catalog."""

    @abstractmethod
    def resolve(self, sku: str) -> ProductDTO:
        """Resolve a SKU to product identity and unit price.

        Raises:
            RemoteNotFound: the SKU is unknown upstream.
            RemoteUnavailable: the call could not complete.
        """

    def close(self) -> None:
        """Release any held resources."""
