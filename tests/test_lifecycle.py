"""Tests for the order status lifecycle."""
import pytest

from storefront_core.errors import IllegalTransitionError, ServiceError, TransportError
from storefront_core.lifecycle import (
    TERMINAL_STATES,
    TRANSITIONS,
    OrderLifecycle,
    can_customer_cancel,
    is_terminal,
    next_states,
)
from storefront_core.models import CreateOrderRequest, OrderItemRequest, OrderStatus, PaymentStatus
from storefront_core.results import ErrorKind
from storefront_core.session import anonymous, signed_in

S = OrderStatus


@pytest.fixture
def order(orders):
    """A PENDING order for two headphones placed by the customer."""
    return orders.create_order(
        CreateOrderRequest(
            items=[OrderItemRequest(product_id=1, quantity=2)],
            shipping_address="1 Main St",
            phone_number="5551234567",
        )
    )


def _advance(lifecycle, order, *targets):
    for target in targets:
        result = lifecycle.request_transition(order.id, order.status, target)
        assert result.ok, result
        order = result.value
    return order


def test_next_states_table():
    """Each status offers exactly the transitions of the table."""
    assert next_states(S.PENDING) == [S.CONFIRMED, S.CANCELLED]
    assert next_states(S.CONFIRMED) == [S.PROCESSING, S.CANCELLED]
    assert next_states(S.PROCESSING) == [S.SHIPPED]
    assert next_states(S.SHIPPED) == [S.DELIVERED]
    assert next_states(S.DELIVERED) == []
    assert next_states(S.CANCELLED) == []


def test_every_status_has_a_row():
    """The table covers every order status."""
    assert set(TRANSITIONS) == set(OrderStatus)


def test_terminal_states():
    """DELIVERED and CANCELLED are the only terminal states."""
    assert TERMINAL_STATES == {S.DELIVERED, S.CANCELLED}
    assert is_terminal(S.DELIVERED)
    assert not is_terminal(S.SHIPPED)


@pytest.mark.parametrize(
    "status, expected",
    [
        (S.PENDING, True),
        (S.CONFIRMED, True),
        (S.PROCESSING, False),
        (S.SHIPPED, False),
        (S.DELIVERED, False),
        (S.CANCELLED, False),
    ],
)
def test_can_customer_cancel(status, expected):
    """Customers may cancel only before processing starts."""
    assert can_customer_cancel(status) is expected


def test_next_states_returns_fresh_list():
    """Callers cannot change the table through the returned list."""
    states = next_states(S.PENDING)
    states.clear()

    assert next_states(S.PENDING) == [S.CONFIRMED, S.CANCELLED]


def test_shipped_never_offers_confirmed():
    """A shipped order cannot go back to CONFIRMED."""
    assert S.CONFIRMED not in next_states(S.SHIPPED)


def test_illegal_transition_raises_before_network(lifecycle, admin_orders, order, journal):
    """Asking for SHIPPED -> CONFIRMED is a caller bug and never reaches the server."""
    with pytest.raises(IllegalTransitionError):
        lifecycle.request_transition(order.id, S.SHIPPED, S.CONFIRMED)

    assert admin_orders.get_order(order.id).status == S.PENDING
    assert journal.matching("TRANSITION") == []


def test_server_rejection_is_authoritative(lifecycle, admin_orders, order):
    """Forcing SHIPPED -> CONFIRMED through the service is rejected by the server."""
    shipped = _advance(lifecycle, order, S.CONFIRMED, S.PROCESSING, S.SHIPPED)

    with pytest.raises(ServiceError) as rejected:
        admin_orders.set_order_status(shipped.id, S.CONFIRMED)

    assert "Invalid status transition" in str(rejected.value)
    assert admin_orders.get_order(shipped.id).status == S.SHIPPED


def test_admin_walks_order_to_delivered(lifecycle, order):
    """An admin can take an order all the way to DELIVERED, which marks it paid."""
    delivered = _advance(lifecycle, order, S.CONFIRMED, S.PROCESSING, S.SHIPPED, S.DELIVERED)

    assert delivered.status == S.DELIVERED
    assert delivered.payment_status == PaymentStatus.PAID
    assert delivered.delivery_date is not None
    assert lifecycle.admin_options(delivered) == []


def test_transition_returns_refetched_order(lifecycle, order, journal):
    """A successful transition returns the order as the server now holds it."""
    result = lifecycle.request_transition(order.id, order.status, S.CONFIRMED)

    assert result.value.status == S.CONFIRMED
    assert result.value is not order
    assert journal.matching(f"[order={order.id}] TRANSITION OK")


def test_stale_view_rejected_and_refetched(lifecycle, admin_orders, admin, journal, order):
    """Another admin cancels first; our CONFIRM is rejected and we get the real state back."""
    other = OrderLifecycle(admin_orders.acting_as(signed_in("other", "ROLE_SELLER")), signed_in("other", "ROLE_SELLER"))
    assert other.request_transition(order.id, S.PENDING, S.CANCELLED).ok

    result = lifecycle.request_transition(order.id, S.PENDING, S.CONFIRMED)

    assert result.ok is False
    assert result.kind == ErrorKind.TRANSITION
    assert result.message == "Invalid status transition from CANCELLED to CONFIRMED"
    assert result.order.status == S.CANCELLED
    assert journal.matching("REJECTED")


def test_admin_cancel_restores_stock(lifecycle, order, catalog, journal):
    """An admin cancellation puts the units back and journals each one."""
    assert catalog.products[1].stock_quantity == 8

    _advance(lifecycle, order, S.CANCELLED)

    assert catalog.products[1].stock_quantity == 10
    assert journal.matching(f"[order={order.id}] stock restored: 1 qty=2 (on_hand=10)")


def test_customer_cannot_change_status(customer_lifecycle, order, orders):
    """A customer session gets no admin options and cannot change status."""
    assert customer_lifecycle.admin_options(order) == []

    result = customer_lifecycle.request_transition(order.id, S.PENDING, S.CONFIRMED)

    assert result.kind == ErrorKind.UNAUTHORIZED
    assert orders.get_order(order.id).status == S.PENDING


def test_admin_options_for_privileged_session(lifecycle, order):
    """Privileged sessions see the next states as their options."""
    assert lifecycle.admin_options(order) == [S.CONFIRMED, S.CANCELLED]


def test_customer_cancel_restores_stock(customer_lifecycle, order, catalog):
    """A customer cancellation puts the units back in stock."""
    result = customer_lifecycle.cancel(order.id, order.status)

    assert result.ok is True
    assert result.value.status == S.CANCELLED
    assert catalog.products[1].stock_quantity == 10


def test_customer_cancel_after_processing_raises(customer_lifecycle, order):
    """Asking to cancel a processing order is a caller error."""
    with pytest.raises(IllegalTransitionError):
        customer_lifecycle.cancel(order.id, S.PROCESSING)


def test_customer_cancel_when_server_moved_on(customer_lifecycle, lifecycle, order):
    """The customer's view says CONFIRMED but an admin already started processing."""
    _advance(lifecycle, order, S.CONFIRMED, S.PROCESSING)

    result = customer_lifecycle.cancel(order.id, S.CONFIRMED)

    assert result.ok is False
    assert result.kind == ErrorKind.TRANSITION
    assert result.message == "Order cannot be cancelled. Current status: PROCESSING"
    assert result.order.status == S.PROCESSING


def test_customer_can_cancel_view_helper(customer_lifecycle, order, orders):
    """The cancel button is offered only to signed-in users."""
    assert customer_lifecycle.customer_can_cancel(order) is True

    anon = OrderLifecycle(orders, anonymous())
    assert anon.customer_can_cancel(order) is False


def test_anonymous_cancel_is_unauthorized(orders, order):
    """Anonymous sessions cannot cancel."""
    result = OrderLifecycle(orders, anonymous()).cancel(order.id, order.status)

    assert result.kind == ErrorKind.UNAUTHORIZED
    assert orders.get_order(order.id).status == S.PENDING


class FlakyOrders:
    """Delegates to a real service but drops the status call on the floor."""

    def __init__(self, inner):
        self.inner = inner

    def set_order_status(self, order_id, status):
        raise TransportError("update order status", "connection reset")

    def get_order(self, order_id):
        return self.inner.get_order(order_id)


def test_transport_failure_during_transition(admin, admin_orders, order):
    """A lost status call is reported as a transport failure with the current order."""
    lifecycle = OrderLifecycle(FlakyOrders(admin_orders), admin)

    result = lifecycle.request_transition(order.id, S.PENDING, S.CONFIRMED)

    assert result.kind == ErrorKind.TRANSPORT
    assert result.order.status == S.PENDING
