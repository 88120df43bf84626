"""Order domain constants.

Defines status choices, the valid status transitions of an order, and the
stages an order-creation call moves through.
"""

from enum import Enum

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    FAILED = "FAILED", "Failed"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {
        OrderStatus.PROCESSING,
        OrderStatus.FAILED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.FAILED: set(),
}

TERMINAL_STATES: set[str] = {
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.FAILED,
}


class CreationStage(str, Enum):
    """Stages of a single create-order call.

    ``PROCESSING`` and ``FAILED`` are the two outcomes; every stage from
    ``PERSISTED_PENDING`` on has a durable order behind it.
    """

    VALIDATING = "VALIDATING"
    PRICED = "PRICED"
    PERSISTED_PENDING = "PERSISTED_PENDING"
    PROCESSING = "PROCESSING"
    FAILED = "FAILED"


PRODUCT_NAME_UNAVAILABLE = "N/A - Product Info Unavailable"

MONEY_MAX_DIGITS = 12
MONEY_DECIMAL_PLACES = 2
SKU_MAX_LENGTH = 64
CUSTOMER_ID_MAX_LENGTH = 64
