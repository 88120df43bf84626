"""Order service layer (Use Cases).

Orchestrates order creation against the remote product catalog and the
remote inventory, plus the order read path.

Order creation moves through ``CreationStage``:

    VALIDATING -> PRICED -> PERSISTED_PENDING -> {PROCESSING | FAILED}

Nothing is persisted before PERSISTED_PENDING, so every failure up to
that point leaves the store unchanged.  The PENDING write is the commit
point: it is never rolled back, and the service does not wrap the whole
orchestration in a database transaction.  Once it exists, stock is
decremented remotely line by line, and the order always ends in a
terminal status write.  Lines decremented before a failing line stay
decremented; FAILED orders are reconciled manually.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Callable, Dict, List, Sequence

import structlog

from modules.core.remote import RemoteNotFound, RemoteUnavailable
from modules.inventory.exceptions import StockConflict
from modules.orders.constants import PRODUCT_NAME_UNAVAILABLE, CreationStage, OrderStatus
from modules.orders.dtos import OrderOutputDTO, PricedLineDTO
from modules.orders.exceptions import (
    InsufficientStock,
    OrderError,
    OrderFulfillmentFailed,
    OrderNotFound,
    ProductNotFound,
    ServiceUnavailable,
    UnexpectedFulfillmentError,
)

if TYPE_CHECKING:
    from modules.catalog.dtos import ProductDTO
    from modules.catalog.interfaces import ICatalogGateway
    from modules.inventory.interfaces import IInventoryGateway
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives the repository and both remote gateways via constructor
    injection (DIP).  One instance serves one request.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        catalog: ICatalogGateway,
        inventory: IInventoryGateway,
    ) -> None:
        self._order_repo = order_repository
        self._catalog = catalog
        self._inventory = inventory

    def close(self) -> None:
        """Release the remote gateways' connections."""
        self._catalog.close()
        self._inventory.close()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO) -> OrderOutputDTO:
        """Validate, price, persist and fulfil an order.

        Raises:
            ProductNotFound: a SKU is unknown to the catalog (nothing persisted).
            InsufficientStock: the stock pre-check failed (nothing persisted).
            ServiceUnavailable: a remote service failed before the order
                was persisted (nothing persisted).
            OrderFulfillmentFailed: a decrement failed after the PENDING
                write; the order is left FAILED.
        """
        log = logger.bind(customer_id=dto.customer_id)
        log.info(
            "order.creation_started",
            stage=CreationStage.VALIDATING.value,
            line_count=len(dto.items),
        )

        products: Dict[str, ProductDTO] = {}
        lines = self._price_lines(dto, products, log)
        log.info(
            "order.priced",
            stage=CreationStage.PRICED.value,
            total_amount=str(sum(line.subtotal for line in lines)),
        )

        order = self._order_repo.create(dto.customer_id, lines)
        log = log.bind(order_id=str(order.id))
        log.info("order.persisted_pending", stage=CreationStage.PERSISTED_PENDING.value)

        self._fulfil(order, lines, log)

        self._order_repo.update_status(order.id, OrderStatus.PROCESSING)
        log.info("order.processing", stage=CreationStage.PROCESSING.value)

        stored = self._order_repo.get_by_id(str(order.id)) or order
        return OrderOutputDTO.from_entity(stored, lambda sku: products[sku].name)

    def _price_lines(
        self,
        dto: CreateOrderDTO,
        products: Dict[str, ProductDTO],
        log: structlog.stdlib.BoundLogger,
    ) -> List[PricedLineDTO]:
        """Resolve and pre-check each line in submission order.

        ``products`` is filled as a per-request memo: each distinct SKU is
        resolved once.  Stock is checked on every line against the
        quantity requested so far for that SKU.
        """
        requested: Dict[str, int] = defaultdict(int)
        lines: List[PricedLineDTO] = []

        for item in dto.items:
            product = products.get(item.sku)
            if product is None:
                product = self._resolve_product(item.sku, log)
                products[item.sku] = product

            requested[item.sku] += item.quantity
            available = self._available_stock(item.sku, log)
            if requested[item.sku] > available:
                log.info(
                    "order.insufficient_stock",
                    stage=CreationStage.VALIDATING.value,
                    sku=item.sku,
                    requested=requested[item.sku],
                    available=available,
                )
                raise InsufficientStock(
                    f"Insufficient stock for SKU {item.sku}: requested "
                    f"{requested[item.sku]}, available {available}.",
                    sku=item.sku,
                    requested=requested[item.sku],
                    available=available,
                )

            lines.append(
                PricedLineDTO(
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price=product.price,
                    product_name=product.name,
                )
            )
        return lines

    def _resolve_product(self, sku: str, log: structlog.stdlib.BoundLogger) -> ProductDTO:
        try:
            return self._catalog.resolve(sku)
        except RemoteNotFound as exc:
            log.info("order.product_not_found", stage=CreationStage.VALIDATING.value, sku=sku)
            raise ProductNotFound(f"Product with SKU {sku} not found.", sku=sku) from exc
        except RemoteUnavailable as exc:
            log.warning(
                "catalog.request_failed",
                stage=CreationStage.VALIDATING.value,
                sku=sku,
                error=str(exc),
            )
            raise ServiceUnavailable(
                f"Product catalog unavailable while resolving SKU {sku}.", sku=sku
            ) from exc

    def _available_stock(self, sku: str, log: structlog.stdlib.BoundLogger) -> int:
        try:
            return self._inventory.check_available(sku)
        except RemoteNotFound:
            log.info("order.inventory_record_missing", sku=sku)
            return 0
        except RemoteUnavailable as exc:
            log.warning(
                "inventory.request_failed",
                stage=CreationStage.VALIDATING.value,
                sku=sku,
                error=str(exc),
            )
            raise ServiceUnavailable(
                f"Inventory service unavailable while checking SKU {sku}.", sku=sku
            ) from exc

    def _fulfil(
        self,
        order: Order,
        lines: Sequence[PricedLineDTO],
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        """Decrement stock once per line, stopping at the first failure.

        On failure the order is written FAILED before the error leaves
        this method.
        """
        for position, line in enumerate(lines):
            try:
                self._inventory.decrement(line.sku, line.quantity)
            except (StockConflict, RemoteNotFound) as exc:
                cause: OrderError = InsufficientStock(
                    f"Insufficient stock for SKU {line.sku}: could not "
                    f"decrement by {line.quantity}.",
                    sku=line.sku,
                    requested=line.quantity,
                )
                self._mark_failed(order, line, position, cause.code, str(exc), log)
                raise OrderFulfillmentFailed(
                    f"Order {order.id} failed: {cause.message}",
                    cause=cause,
                    order_id=str(order.id),
                    sku=line.sku,
                ) from exc
            except RemoteUnavailable as exc:
                cause = ServiceUnavailable(
                    f"Inventory service unavailable while decrementing SKU {line.sku}.",
                    sku=line.sku,
                )
                self._mark_failed(order, line, position, cause.code, str(exc), log)
                raise OrderFulfillmentFailed(
                    f"Order {order.id} failed: {cause.message}",
                    cause=cause,
                    order_id=str(order.id),
                    sku=line.sku,
                ) from exc
            except Exception as exc:
                cause = UnexpectedFulfillmentError(
                    f"Unexpected error while decrementing SKU {line.sku}.",
                    sku=line.sku,
                )
                self._mark_failed(order, line, position, cause.code, repr(exc), log)
                raise OrderFulfillmentFailed(
                    f"Order {order.id} failed: {cause.message}",
                    cause=cause,
                    order_id=str(order.id),
                    sku=line.sku,
                ) from exc

            log.info(
                "order.stock_decremented",
                stage=CreationStage.PERSISTED_PENDING.value,
                sku=line.sku,
                quantity=line.quantity,
                position=position,
            )

    def _mark_failed(
        self,
        order: Order,
        line: PricedLineDTO,
        position: int,
        code: str,
        detail: str,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        notes = (
            f"Stock decrement failed at line {position} (SKU {line.sku}, "
            f"quantity {line.quantity}): {code}: {detail}. Lines before it "
            f"remain decremented upstream."
        )
        self._order_repo.update_status(order.id, OrderStatus.FAILED, notes=notes)
        log.critical(
            "order.failed",
            stage=CreationStage.FAILED.value,
            sku=line.sku,
            position=position,
            decremented_lines=position,
            cause=code,
            error=detail,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> OrderOutputDTO:
        """Retrieve a single order by ID with product names resolved.

        Raises:
            OrderNotFound: if the order does not exist or the id is malformed.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return OrderOutputDTO.from_entity(order, self._name_resolver())

    def list_customer_orders(self, customer_id: str) -> List[OrderOutputDTO]:
        """Return the customer's orders, newest first."""
        orders = self._order_repo.list_by_customer(customer_id)
        name_for = self._name_resolver()
        return [OrderOutputDTO.from_entity(order, name_for) for order in orders]

    def _name_resolver(self) -> Callable[[str], str]:
        """Memoized SKU -> product name lookup for a single read.

        A failing catalog lookup yields ``PRODUCT_NAME_UNAVAILABLE``
        instead of failing the read.
        """
        names: Dict[str, str] = {}

        def name_for(sku: str) -> str:
            if sku not in names:
                try:
                    names[sku] = self._catalog.resolve(sku).name
                except (RemoteNotFound, RemoteUnavailable) as exc:
                    logger.warning("catalog.name_unavailable", sku=sku, error=str(exc))
                    names[sku] = PRODUCT_NAME_UNAVAILABLE
            return names[sku]

        return name_for
