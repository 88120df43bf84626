"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives and returns
Pydantic DTOs from ``dtos.py``.  Output serializers render
``OrderOutputDTO.model_dump()`` dictionaries.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import (
    CUSTOMER_ID_MAX_LENGTH,
    MONEY_DECIMAL_PLACES,
    MONEY_MAX_DIGITS,
    SKU_MAX_LENGTH,
    OrderStatus,
)

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single line in an order creation request."""

    sku = serializers.CharField(max_length=SKU_MAX_LENGTH)
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    customer_id = serializers.CharField(max_length=CUSTOMER_ID_MAX_LENGTH)
    items = CreateOrderItemSerializer(many=True, allow_empty=False)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.Serializer):
    """Read serializer for order items with price snapshot."""

    id = serializers.UUIDField(read_only=True)
    sku = serializers.CharField(read_only=True)
    product_name = serializers.CharField(read_only=True)
    quantity = serializers.IntegerField(read_only=True)
    unit_price = serializers.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        read_only=True,
    )
    subtotal = serializers.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        read_only=True,
    )


class StatusHistorySerializer(serializers.Serializer):
    """Read serializer for order status history records."""

    id = serializers.UUIDField(read_only=True)
    old_status = serializers.ChoiceField(
        choices=OrderStatus.choices, allow_null=True, read_only=True
    )
    new_status = serializers.ChoiceField(choices=OrderStatus.choices, read_only=True)
    notes = serializers.CharField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)


class OrderSerializer(serializers.Serializer):
    """Read serializer for orders with nested items and history."""

    id = serializers.UUIDField(read_only=True)
    customer_id = serializers.CharField(read_only=True)
    status = serializers.ChoiceField(choices=OrderStatus.choices, read_only=True)
    total_amount = serializers.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        read_only=True,
    )
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)


class ErrorSerializer(serializers.Serializer):
    """Error envelope shared by every failing response."""

    code = serializers.CharField()
    message = serializers.CharField()
    field = serializers.CharField(required=False)
    sku = serializers.CharField(required=False)
    order_id = serializers.UUIDField(required=False)
    order_status = serializers.CharField(required=False)
    errors = serializers.DictField(required=False)
