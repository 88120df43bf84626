"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``PricedLineDTO``: a line after catalog pricing, ready to persist.
- ``OrderItemOutputDTO``: output for a single line item.
- ``StatusHistoryDTO``: output for a status history record.
- ``OrderOutputDTO``: output with items and history.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.orders.constants import CUSTOMER_ID_MAX_LENGTH, SKU_MAX_LENGTH

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order line in a creation request.

    The client sends ``sku`` and ``quantity``.  ``unit_price`` is resolved
    by the Service Layer from the product catalog, never taken from input.
    """

    model_config = ConfigDict(frozen=True)

    sku: str = Field(min_length=1, max_length=SKU_MAX_LENGTH)
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    The same SKU may appear on several lines; each line is priced,
    checked and decremented on its own.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: str = Field(min_length=1, max_length=CUSTOMER_ID_MAX_LENGTH)
    items: List[CreateOrderItemDTO]

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v


class PricedLineDTO(BaseModel):
    """A validated line with its price-at-purchase snapshot."""

    model_config = ConfigDict(frozen=True)

    sku: str
    quantity: int
    unit_price: Decimal
    product_name: str

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderItemOutputDTO(BaseModel):
    """Immutable DTO for order item API responses."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    sku: str
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class StatusHistoryDTO(BaseModel):
    """Immutable DTO for order status history API responses."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    old_status: Optional[str]
    new_status: str
    notes: str
    created_at: datetime

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> StatusHistoryDTO:
        return cls(
            id=history.id,
            old_status=history.old_status,
            new_status=history.new_status,
            notes=history.notes,
            created_at=history.created_at,
        )


class OrderOutputDTO(BaseModel):
    """Immutable DTO for order API responses."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    customer_id: str
    status: str
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOutputDTO]
    status_history: List[StatusHistoryDTO]

    @classmethod
    def from_entity(cls, order: Order, name_for: Callable[[str], str]) -> OrderOutputDTO:
        """Build an output DTO from an Order model instance.

        ``name_for`` maps a SKU to the display name of its product.
        Assumes ``items`` and ``status_history`` are prefetched.
        """
        items = [
            OrderItemOutputDTO(
                id=item.id,
                sku=item.sku,
                product_name=name_for(item.sku),
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
            )
            for item in order.items.all()
        ]
        history = [StatusHistoryDTO.from_entity(h) for h in order.status_history.all()]
        return cls(
            id=order.id,
            customer_id=order.customer_id,
            status=order.status,
            total_amount=order.total_amount,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=items,
            status_history=history,
        )
