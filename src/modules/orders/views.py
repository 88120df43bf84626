"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions (``OrderError``) are caught and rendered with their own
code and HTTP status; the view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.catalog.client import CatalogServiceClient
from modules.inventory.client import InventoryServiceClient
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import OrderError, ValidationFailed
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    ErrorSerializer,
    OrderSerializer,
)
from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)


def build_order_service() -> OrderService:
    """Wire an ``OrderService`` to the ORM and the configured remote services."""
    return OrderService(
        order_repository=OrderDjangoRepository(),
        catalog=CatalogServiceClient.from_settings(),
        inventory=InventoryServiceClient.from_settings(),
    )


def error_response(exc: OrderError) -> Response:
    return Response(exc.to_payload(), status=exc.status_code)


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repository and gateways (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.  The service is built on first use and
    its HTTP clients are closed once the response is finalized.
    """

    serializer_class = OrderSerializer
    _service: Optional[OrderService] = None

    @property
    def service(self) -> OrderService:
        if self._service is None:
            self._service = build_order_service()
        return self._service

    def finalize_response(
        self, request: Request, response: Response, *args: Any, **kwargs: Any
    ) -> Response:
        try:
            return super().finalize_response(request, response, *args, **kwargs)
        finally:
            if self._service is not None:
                self._service.close()
                self._service = None

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @extend_schema(
        request=CreateOrderSerializer,
        responses={
            201: OrderSerializer,
            400: ErrorSerializer,
            500: ErrorSerializer,
            503: ErrorSerializer,
        },
    )
    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        create_serializer = CreateOrderSerializer(data=request.data)
        if not create_serializer.is_valid():
            exc = ValidationFailed.from_serializer_errors(create_serializer.errors)
            logger.info("order.validation_failed", field=exc.field, message=exc.message)
            return error_response(exc)

        data = create_serializer.validated_data
        dto = CreateOrderDTO(
            customer_id=data["customer_id"],
            items=[
                CreateOrderItemDTO(sku=item["sku"], quantity=item["quantity"])
                for item in data["items"]
            ],
        )

        try:
            order = self.service.create_order(dto)
        except OrderError as exc:
            return error_response(exc)

        out = OrderSerializer(order.model_dump())
        return Response(out.data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @extend_schema(responses={200: OrderSerializer, 404: ErrorSerializer})
    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self.service.get_order(str(pk))
        except OrderError as exc:
            return error_response(exc)
        return Response(OrderSerializer(order.model_dump()).data)

    @extend_schema(responses={200: OrderSerializer(many=True)})
    @action(
        detail=False,
        methods=["get"],
        url_path=r"customer/(?P<customer_id>[^/]+)",
        url_name="by-customer",
    )
    def by_customer(self, request: Request, customer_id: str) -> Response:
        """GET /api/v1/orders/customer/{customer_id}/

        Newest first; an unknown customer yields ``[]``.
        """
        orders = self.service.list_customer_orders(customer_id)
        serializer = OrderSerializer([order.model_dump() for order in orders], many=True)
        return Response(serializer.data)
