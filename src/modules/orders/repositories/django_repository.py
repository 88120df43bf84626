"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
Each write operation is its own ``transaction.atomic()`` block: the PENDING
insert commits on return, independently of whatever the caller does next.

Concurrency control on status updates uses ``select_for_update()``
to prevent lost updates (no ``version`` field exists on the model).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.orders.constants import OrderStatus
from modules.orders.dtos import PricedLineDTO
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, customer_id: str, lines: Sequence[PricedLineDTO]) -> Order:
        """Create a PENDING order with its items atomically."""
        total = sum((line.subtotal for line in lines), Decimal("0.00"))

        order = Order(
            customer_id=customer_id,
            status=OrderStatus.PENDING,
            total_amount=total,
        )
        order.save()

        for position, line in enumerate(lines):
            OrderItem(
                order=order,
                sku=line.sku,
                position=position,
                quantity=line.quantity,
                unit_price=line.unit_price,
            ).save()

        self.add_history(order.id, OrderStatus.PENDING, old_status=None)

        logger.info(
            "order.created",
            order_id=str(order.id),
            item_count=len(lines),
            total_amount=str(total),
        )
        return order

    # ------------------------------------------------------------------
    # Status writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_status(self, order_id: UUID, new_status: str, notes: str = "") -> Order:
        """Apply a validated status transition under a row lock."""
        order = self.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.", order_id=str(order_id))

        old_status = order.status
        if not order.can_transition_to(new_status):
            logger.warning(
                "order.invalid_transition",
                order_id=str(order_id),
                old_status=old_status,
                new_status=new_status,
            )
            raise InvalidOrderStatus(
                f"Cannot transition order from {old_status} to {new_status}.",
                order_id=str(order_id),
            )

        order.status = new_status
        order.save(update_fields=["status"])
        self.add_history(order.id, new_status, notes=notes, old_status=old_status)

        logger.info(
            "order.status_updated",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
        )
        return order

    @transaction.atomic
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
        )
        history.save()

        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order with prefetched items and status history.

        Returns ``None`` for non-existent or malformed IDs.
        """
        try:
            return (
                Order.objects.prefetch_related("items", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders, newest first, with optional field filters."""
        queryset = Order.objects.prefetch_related("items", "status_history")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset.order_by("-created_at", "-id"))

    def list_by_customer(self, customer_id: str) -> List[Order]:
        return self.list({"customer_id": customer_id})
