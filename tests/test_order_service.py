"""Tests for the in-memory order backend's own rules."""
from datetime import datetime, timedelta

import pytest

from storefront_core.errors import NotFoundError, ServiceError
from storefront_core.models import CreateOrderRequest, OrderFilter, OrderItemRequest, OrderStatus
from storefront_core.orders import InMemoryOrderService
from storefront_core.session import signed_in


def _request(*lines, shipping="1 Main St", phone="5551234567"):
    return CreateOrderRequest(
        items=[OrderItemRequest(product_id=pid, quantity=qty) for pid, qty in lines],
        shipping_address=shipping,
        phone_number=phone,
    )


class Ticker:
    """Clock that moves one minute per call so orders sort deterministically."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0)

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


@pytest.fixture
def ticking_orders(catalog, journal, customer):
    return InMemoryOrderService(catalog, journal, session=customer, clock=Ticker())


def test_create_takes_stock_and_prices_lines(orders, catalog):
    order = orders.create_order(_request((1, 2), (2, 1)))

    assert order.status == OrderStatus.PENDING
    assert order.username == "alice"
    assert [line.subtotal for line in order.items] == [catalog.products[1].price * 2, catalog.products[2].price]
    assert catalog.products[1].stock_quantity == 8
    assert catalog.products[2].stock_quantity == 4


def test_rejected_order_takes_no_stock(orders, catalog):
    with pytest.raises(ServiceError) as rejected:
        orders.create_order(_request((1, 1), (4, 3)))

    assert rejected.value.status_code == 409
    assert str(rejected.value) == "Insufficient stock for product: Lamp. Available: 2"
    assert catalog.products[1].stock_quantity == 10


def test_unknown_product_is_not_found(orders):
    with pytest.raises(NotFoundError):
        orders.create_order(_request((42, 1)))


def test_unavailable_product_is_refused(orders):
    with pytest.raises(ServiceError) as rejected:
        orders.create_order(_request((3, 1)))

    assert rejected.value.status_code == 409


@pytest.mark.parametrize(
    "request_, message",
    [
        (CreateOrderRequest(items=[], shipping_address="x", phone_number="5551234567"), "at least one item"),
        (_request((1, 1), shipping="  "), "Shipping address"),
        (_request((1, 1), phone=""), "Phone number"),
    ],
)
def test_malformed_request_is_rejected(orders, request_, message):
    with pytest.raises(ServiceError) as rejected:
        orders.create_order(request_)

    assert message in str(rejected.value)
    assert rejected.value.status_code == 400


def test_returned_order_is_a_copy(orders):
    order = orders.create_order(_request((1, 1)))
    order.status = OrderStatus.DELIVERED

    assert orders.get_order(order.id).status == OrderStatus.PENDING


def test_missing_order_is_not_found(orders):
    with pytest.raises(NotFoundError) as missing:
        orders.get_order(404)

    assert missing.value.status_code == 404


def test_customer_listing_is_scoped_and_newest_first(ticking_orders):
    first = ticking_orders.create_order(_request((1, 1)))
    bob = ticking_orders.acting_as(signed_in("bob"))
    bob.create_order(_request((2, 1)))
    second = ticking_orders.create_order(_request((1, 1)))

    page = ticking_orders.list_orders(OrderFilter())

    assert [o.id for o in page.content] == [second.id, first.id]
    assert page.total_elements == 2


def test_listing_paginates(ticking_orders):
    placed = [ticking_orders.create_order(_request((1, 1))) for _ in range(5)]

    page = ticking_orders.list_orders(OrderFilter(page=1, size=2))

    assert [o.id for o in page.content] == [placed[2].id, placed[1].id]
    assert page.total_pages == 3


def test_all_users_listing_requires_privilege(orders, admin_orders):
    orders.create_order(_request((1, 1)))
    orders.acting_as(signed_in("bob")).create_order(_request((2, 1)))

    with pytest.raises(ServiceError) as denied:
        orders.list_orders(OrderFilter(all_users=True))
    assert denied.value.status_code == 403

    assert admin_orders.list_orders(OrderFilter(all_users=True)).total_elements == 2


def test_status_filter(orders, admin_orders):
    kept = orders.create_order(_request((1, 1)))
    moved = orders.create_order(_request((2, 1)))
    admin_orders.set_order_status(moved.id, OrderStatus.CONFIRMED)

    page = admin_orders.list_orders(OrderFilter(status=OrderStatus.PENDING, all_users=True))

    assert [o.id for o in page.content] == [kept.id]


def test_only_owner_may_cancel(orders, catalog):
    order = orders.create_order(_request((4, 2)))

    with pytest.raises(ServiceError) as denied:
        orders.acting_as(signed_in("mallory")).cancel_order(order.id)

    assert denied.value.status_code == 403
    assert catalog.products[4].stock_quantity == 0


def test_delivered_order_cannot_be_cancelled(orders, admin_orders):
    order = orders.create_order(_request((1, 1)))
    for status in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
        admin_orders.set_order_status(order.id, status)

    with pytest.raises(ServiceError) as rejected:
        orders.cancel_order(order.id)

    assert str(rejected.value) == "Order cannot be cancelled. Current status: DELIVERED"


def test_customer_cannot_set_status(orders):
    order = orders.create_order(_request((1, 1)))

    with pytest.raises(ServiceError) as denied:
        orders.set_order_status(order.id, OrderStatus.CONFIRMED)

    assert denied.value.status_code == 403
