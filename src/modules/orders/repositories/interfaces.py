"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the order orchestration
needs: atomic creation of the aggregate in PENDING status, locked status
writes, per-customer listing and history tracking.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, List, Optional, Sequence
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.dtos import PricedLineDTO
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, customer_id: str, lines: Sequence[PricedLineDTO]) -> Order:
        """Persist a PENDING order with its items in one transaction.

        Items keep the order of ``lines``.  ``total_amount`` is the sum of
        the line subtotals and is written by the same insert.
        """

    @abstractmethod
    def update_status(self, order_id: UUID, new_status: str, notes: str = "") -> Order:
        """Move an order to ``new_status`` and record the change.

        Raises ``OrderNotFound`` for a missing order and
        ``InvalidOrderStatus`` when the transition is not allowed.
        """

    @abstractmethod
    def list_by_customer(self, customer_id: str) -> List[Order]:
        """Orders of ``customer_id``, newest first."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
