"""Order domain exceptions.

Raised by the Service Layer when an order cannot be created or read.
Each exception knows its stable error ``code`` and HTTP status so the API
layer (Views) can render it without a lookup table.

Pre-commit failures (``ProductNotFound``, ``InsufficientStock``,
``ServiceUnavailable`` raised before the PENDING write) carry no
``order_id``: nothing was persisted and the caller may retry freely.
``OrderFulfillmentFailed`` is the post-commit failure: an order exists in
FAILED status and its id is part of the payload.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from modules.core.exceptions import first_error


class OrderError(Exception):
    """Base class for order failures surfaced to API callers."""

    code = "ORDER_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        sku: Optional[str] = None,
        field: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.sku = sku
        self.field = field
        self.order_id = order_id

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.field is not None:
            payload["field"] = self.field
        if self.sku is not None:
            payload["sku"] = self.sku
        if self.order_id is not None:
            payload["order_id"] = self.order_id
        return payload


class ProductNotFound(OrderError):
    """A SKU in the request is unknown to the product catalog."""

    code = "PRODUCT_NOT_FOUND"


class InsufficientStock(OrderError):
    """Stock could not be reserved for a line (pre-check or decrement)."""

    code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        message: str,
        *,
        requested: Optional[int] = None,
        available: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.requested = requested
        self.available = available


class ServiceUnavailable(OrderError):
    """A remote collaborator could not be reached or answered 5xx."""

    code = "SERVICE_UNAVAILABLE"
    status_code = 503


class OrderNotFound(OrderError):
    """The requested order does not exist."""

    code = "ORDER_NOT_FOUND"
    status_code = 404


class ValidationFailed(OrderError):
    """The order request body is malformed.

    ``field`` names the first offending path (``items[1].quantity``) and
    ``errors`` keeps the full per-field detail.
    """

    code = "VALIDATION_FAILED"

    def __init__(self, message: str, *, errors: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.errors = errors

    @classmethod
    def from_serializer_errors(cls, errors: Any) -> ValidationFailed:
        field, message = first_error(errors)
        return cls(message, field=field or None, errors=errors)

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.errors is not None:
            payload["errors"] = self.errors
        return payload


class InvalidOrderStatus(OrderError):
    """An invalid status transition was attempted."""

    code = "INVALID_ORDER_STATUS"
    status_code = 409


class UnexpectedFulfillmentError(OrderError):
    """A decrement failed in a way the remote classification does not cover."""

    code = "INTERNAL_ERROR"
    status_code = 500


class OrderFulfillmentFailed(OrderError):
    """The order was persisted as PENDING but a stock decrement failed.

    The order is left in FAILED status.  Lines before the failing one stay
    decremented upstream; no compensation is attempted.  ``code`` and
    ``status_code`` follow the underlying cause so callers see the same
    error kind as for a pre-commit failure, plus the order id.
    """

    def __init__(self, message: str, *, cause: OrderError, order_id: str, sku: str) -> None:
        super().__init__(message, sku=sku, order_id=order_id)
        self.cause = cause
        self.code = cause.code
        self.status_code = cause.status_code

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["order_status"] = "FAILED"
        return payload
