from __future__ import annotations

import copy
import itertools
import math
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Protocol

from pydantic import ValidationError

from storefront_core.api_client import ApiClient
from storefront_core.catalog import InMemoryCatalog
from storefront_core.errors import NotFoundError, ServiceError, TransportError
from storefront_core.journal import Journal
from storefront_core.lifecycle import can_customer_cancel, is_legal
from storefront_core.models import (
    CreateOrderRequest,
    Order,
    OrderFilter,
    OrderLine,
    OrderStatus,
    Page,
    PaymentStatus,
)
from storefront_core.schemas import (
    CreateOrderRequestSchema,
    OrderPageSchema,
    OrderSchema,
    UpdateOrderStatusSchema,
)
from storefront_core.session import SessionGate, is_privileged


class OrderService(Protocol):
    def create_order(self, request: CreateOrderRequest) -> Order: ...

    def get_order(self, order_id: int) -> Order: ...

    def list_orders(self, order_filter: OrderFilter) -> Page[Order]: ...

    def cancel_order(self, order_id: int) -> None: ...

    def set_order_status(self, order_id: int, status: OrderStatus) -> None: ...


class InMemoryOrderService:
    """
    Server-side order rules held in memory.

    Stock lives in the shared InMemoryCatalog: creation checks and takes it,
    cancellation gives it back. Returned orders are copies, so a client can
    never change server state by editing what it received.
    """

    def __init__(
        self,
        catalog: InMemoryCatalog,
        journal: Journal,
        session: Optional[SessionGate] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.catalog = catalog
        self.journal = journal
        self.session = session
        self.clock = clock
        self.orders: Dict[int, Order] = {}
        self._ids = itertools.count(1)
        self.create_calls = 0
        # Set to an exception instance to make the next create_order fail before touching stock.
        self.fail_next_create: Exception | None = None

    def acting_as(self, session: SessionGate) -> "InMemoryOrderService":
        """Same backend state, seen by another signed-in user."""
        view = copy.copy(self)
        view.session = session
        return view

    def _username(self) -> Optional[str]:
        if self.session is None or self.session.current_user is None:
            return None
        return self.session.current_user.username

    def _require_privileged(self) -> None:
        if self.session is not None and not is_privileged(self.session):
            raise ServiceError("Access denied", status_code=403)

    def _find(self, order_id: int) -> Order:
        order = self.orders.get(order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        return order

    def create_order(self, request: CreateOrderRequest) -> Order:
        self.create_calls += 1
        if self.fail_next_create is not None:
            error, self.fail_next_create = self.fail_next_create, None
            raise error
        if not request.items:
            raise ServiceError("Order must have at least one item", status_code=400)
        if not request.shipping_address.strip():
            raise ServiceError("Shipping address is required", status_code=400)
        if not request.phone_number.strip():
            raise ServiceError("Phone number is required", status_code=400)

        # Check every line before taking any stock, so a rejected order leaves the catalog as it was.
        lines: List[OrderLine] = []
        for item in request.items:
            product = self.catalog.products.get(item.product_id)
            if not product:
                raise NotFoundError("Product", item.product_id)
            if not product.available:
                raise ServiceError(f"Product is currently unavailable: {product.name}", status_code=409)
            if product.stock_quantity < item.quantity:
                raise ServiceError(
                    f"Insufficient stock for product: {product.name}. Available: {product.stock_quantity}",
                    status_code=409,
                )
            subtotal = (product.price * Decimal(item.quantity)).quantize(Decimal("0.01"))
            lines.append(
                OrderLine(
                    product_id=product.product_id,
                    product_name=product.name,
                    quantity=item.quantity,
                    price_at_order=product.price,
                    subtotal=subtotal,
                )
            )

        order_id = next(self._ids)
        for line in lines:
            product = self.catalog.products[line.product_id]
            product.stock_quantity -= line.quantity
            self.journal.log(
                f"[order={order_id}] stock taken: {product.product_id} qty={line.quantity} (on_hand={product.stock_quantity})"
            )

        order = Order(
            id=order_id,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            items=lines,
            total_amount=sum((line.subtotal for line in lines), Decimal("0.00")),
            shipping_address=request.shipping_address,
            billing_address=request.billing_address or request.shipping_address,
            phone_number=request.phone_number,
            notes=request.notes,
            order_date=self.clock(),
            payment_method=request.payment_method,
            username=self._username(),
        )
        self.orders[order_id] = order
        self.journal.log(f"[order={order_id}] created total={order.total_amount}")
        return copy.deepcopy(order)

    def get_order(self, order_id: int) -> Order:
        return copy.deepcopy(self._find(order_id))

    def list_orders(self, order_filter: OrderFilter) -> Page[Order]:
        if order_filter.all_users:
            self._require_privileged()
            selected = list(self.orders.values())
        else:
            username = self._username()
            selected = [o for o in self.orders.values() if o.username == username]
        if order_filter.status is not None:
            selected = [o for o in selected if o.status == order_filter.status]
        # Newest first; ids break ties between orders placed in the same instant.
        selected.sort(key=lambda o: (o.order_date or datetime.min, o.id), reverse=True)

        size = max(1, order_filter.size)
        start = order_filter.page * size
        return Page(
            content=[copy.deepcopy(o) for o in selected[start:start + size]],
            page=order_filter.page,
            size=size,
            total_elements=len(selected),
            total_pages=math.ceil(len(selected) / size),
        )

    def cancel_order(self, order_id: int) -> None:
        order = self._find(order_id)
        username = self._username()
        if self.session is not None and order.username != username:
            raise ServiceError("You don't have permission to cancel this order", status_code=403)
        if not can_customer_cancel(order.status):
            raise ServiceError(f"Order cannot be cancelled. Current status: {order.status.value}", status_code=400)

        for line in order.items:
            product = self.catalog.products.get(line.product_id)
            if product:
                product.stock_quantity += line.quantity
                self.journal.log(
                    f"[order={order_id}] stock restored: {product.product_id} qty={line.quantity} (on_hand={product.stock_quantity})"
                )
        order.status = OrderStatus.CANCELLED
        if order.payment_status == PaymentStatus.PAID:
            order.payment_status = PaymentStatus.REFUNDED
        self.journal.log(f"[order={order_id}] cancelled")

    def set_order_status(self, order_id: int, status: OrderStatus) -> None:
        self._require_privileged()
        order = self._find(order_id)
        if not is_legal(order.status, status):
            raise ServiceError(
                f"Invalid status transition from {order.status.value} to {status.value}", status_code=409
            )
        if status == OrderStatus.CANCELLED:
            for line in order.items:
                product = self.catalog.products.get(line.product_id)
                if product:
                    product.stock_quantity += line.quantity
                    self.journal.log(
                        f"[order={order_id}] stock restored: {product.product_id} qty={line.quantity} (on_hand={product.stock_quantity})"
                    )
            if order.payment_status == PaymentStatus.PAID:
                order.payment_status = PaymentStatus.REFUNDED
        order.status = status
        if status == OrderStatus.DELIVERED:
            order.payment_status = PaymentStatus.PAID
            order.delivery_date = order.delivery_date or self.clock()
        self.journal.log(f"[order={order_id}] status -> {status.value}")


class HttpOrderService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    def _order(self, body: object, operation: str) -> Order:
        try:
            return OrderSchema.model_validate(body).to_domain()
        except ValidationError as e:
            raise TransportError(operation, f"malformed order ({e.error_count()} errors)") from e

    def create_order(self, request: CreateOrderRequest) -> Order:
        payload = CreateOrderRequestSchema.from_domain(request).model_dump(mode="json", by_alias=True, exclude_none=True)
        body = self.api.request("POST", "/orders", "create order", json=payload)
        return self._order(body, "create order")

    def get_order(self, order_id: int) -> Order:
        body = self.api.request("GET", f"/orders/{order_id}", "get order")
        return self._order(body, "get order")

    def list_orders(self, order_filter: OrderFilter) -> Page[Order]:
        params: Dict[str, object] = {"page": order_filter.page, "size": order_filter.size}
        if order_filter.all_users:
            path = "/orders/admin/all"
            if order_filter.status is not None:
                params["status"] = order_filter.status.value
        else:
            path = "/orders"
            params["sortBy"] = order_filter.sort_by
        body = self.api.request("GET", path, "list orders", params=params)
        try:
            page = OrderPageSchema.model_validate(body).to_domain()
        except ValidationError as e:
            raise TransportError("list orders", f"malformed order page ({e.error_count()} errors)") from e
        if order_filter.status is not None and not order_filter.all_users:
            # The customer endpoint has no status filter; narrow the page locally.
            page.content = [o for o in page.content if o.status == order_filter.status]
        return page

    def cancel_order(self, order_id: int) -> None:
        self.api.request("PUT", f"/orders/{order_id}/cancel", "cancel order")

    def set_order_status(self, order_id: int, status: OrderStatus) -> None:
        payload = UpdateOrderStatusSchema(status=status).model_dump(mode="json", by_alias=True, exclude_none=True)
        self.api.request("PUT", f"/orders/admin/{order_id}/status", "update order status", json=payload)
