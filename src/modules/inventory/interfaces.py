"""Inventory gateway interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class IInventoryGateway(ABC):
    """Stock reads and atomic conditional decrements by SKU."""

    @abstractmethod
    def check_available(self, sku: str) -> int:
        """Return the available quantity for ``sku``.

        Raises:
            RemoteNotFound: no inventory record exists (distinct from 0).
            RemoteUnavailable: the call could not complete.
        """

    @abstractmethod
    def decrement(self, sku: str, amount: int) -> None:
        """Atomically decrement stock by ``amount``.

        Not idempotent: calling twice decrements twice.

        Raises:
            StockConflict: remaining quantity < ``amount``.
            RemoteNotFound: no inventory record exists.
            RemoteUnavailable: the call could not complete.
        """

    def close(self) -> None:
        """Release any held resources."""
