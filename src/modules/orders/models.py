"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- Products live in a remote catalog: items reference them by ``sku`` only.
- OrderItem snapshots the catalog price at creation time (``unit_price``).
- OrderItem subtotal is always ``quantity * unit_price`` (calculated on save).
- Items keep the client submission order through ``position``.
- Invalid status transitions are rejected (enforced at the repository).
- Each status write generates an append-only history record.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import (
    CUSTOMER_ID_MAX_LENGTH,
    MONEY_DECIMAL_PLACES,
    MONEY_MAX_DIGITS,
    SKU_MAX_LENGTH,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)


class Order(BaseModel):
    """Order aggregate root.

    ``customer_id`` is an opaque reference to the ordering party and is not
    validated against any local table.  ``total_amount`` is written on the
    same insert that persists the items, never derived from client input.
    """

    customer_id: models.CharField = models.CharField(
        max_length=CUSTOMER_ID_MAX_LENGTH,
        db_index=True,
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        default=Decimal("0.00"),
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(
                fields=["customer_id", "-created_at"],
                name="orders_customer_created_idx",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    def __str__(self) -> str:
        return f"Order {self.id} ({self.status})"


class OrderItem(BaseModel):
    """Line item of an Order.

    ``unit_price`` is a snapshot of the catalog price at the time of
    purchase; it is never re-read from the catalog.  ``subtotal`` is always
    ``quantity * unit_price``, recalculated on every save.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    sku: models.CharField = models.CharField(max_length=SKU_MAX_LENGTH)
    position: models.PositiveIntegerField = models.PositiveIntegerField()
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["position"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
            models.UniqueConstraint(
                fields=["order", "position"],
                name="order_items_order_position_uniq",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.unit_price is None:
            raise ValidationError({"unit_price": "Unit price is required."})
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} x{self.quantity} (${self.subtotal})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status writes.

    ``old_status`` is ``None`` for the creation record.  ``notes`` names
    the failing SKU and cause when an order ends up FAILED.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.old_status} -> {self.new_status}"
