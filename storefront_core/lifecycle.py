"""
Order status lifecycle.

TRANSITIONS is the one table every "what comes next" and "may the customer
cancel" question is answered from: the admin status selector, the customer
cancel button, and the in-memory backend all read it.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Tuple

from storefront_core.errors import IllegalTransitionError, ServiceError, TransportError
from storefront_core.journal import Journal
from storefront_core.models import Order, OrderStatus
from storefront_core.results import Err, ErrorKind, Ok, Result
from storefront_core.session import SessionGate, is_privileged

if TYPE_CHECKING:
    from storefront_core.orders import OrderService


TRANSITIONS: Dict[OrderStatus, Tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    OrderStatus.PROCESSING: (OrderStatus.SHIPPED,),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

TERMINAL_STATES: FrozenSet[OrderStatus] = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

CUSTOMER_CANCELLABLE: FrozenSet[OrderStatus] = frozenset([OrderStatus.PENDING, OrderStatus.CONFIRMED])


def next_states(current: OrderStatus) -> List[OrderStatus]:
    return list(TRANSITIONS.get(current, ()))


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATES


def can_customer_cancel(current: OrderStatus) -> bool:
    # Narrower than "has a transition": customers only ever move an order to CANCELLED.
    return current in CUSTOMER_CANCELLABLE


def is_legal(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS.get(current, ())


class OrderLifecycle:
    """
    Gatekeeper for order status changes requested from the client.

    Legality is checked locally before anything is sent; an illegal request is a
    bug in the caller and raises IllegalTransitionError. Legal requests go to
    the OrderService, and the order is always re-fetched afterwards because
    the server, not this client, decides the final state.
    """

    def __init__(self, orders: "OrderService", session: SessionGate, journal: Optional[Journal] = None) -> None:
        self.orders = orders
        self.session = session
        self.journal = journal if journal is not None else Journal()

    next_states = staticmethod(next_states)
    can_customer_cancel = staticmethod(can_customer_cancel)
    is_terminal = staticmethod(is_terminal)

    def admin_options(self, order: Order) -> List[OrderStatus]:
        """Targets for the admin status selector; empty means the control is hidden or disabled."""
        if not is_privileged(self.session):
            return []
        return next_states(order.status)

    def customer_can_cancel(self, order: Order) -> bool:
        return self.session.is_authenticated and can_customer_cancel(order.status)

    def request_transition(self, order_id: int, current: OrderStatus, target: OrderStatus) -> Result[Order]:
        if not is_legal(current, target):
            raise IllegalTransitionError(current, target)
        if not is_privileged(self.session):
            return Err(ErrorKind.UNAUTHORIZED, "Only admins and sellers can change order status")

        self.journal.log(f"[order={order_id}] TRANSITION {current.value} -> {target.value}")
        try:
            self.orders.set_order_status(order_id, target)
        except (ServiceError, TransportError) as e:
            return self._rejected(order_id, e)
        return self._refetch(order_id, "TRANSITION OK")

    def cancel(self, order_id: int, current: OrderStatus) -> Result[Order]:
        """Customer cancellation; only offered while can_customer_cancel(current) holds."""
        if not can_customer_cancel(current):
            raise IllegalTransitionError(current, OrderStatus.CANCELLED)
        if not self.session.is_authenticated:
            return Err(ErrorKind.UNAUTHORIZED, "Sign in to cancel an order")

        self.journal.log(f"[order={order_id}] CANCEL from {current.value}")
        try:
            self.orders.cancel_order(order_id)
        except (ServiceError, TransportError) as e:
            return self._rejected(order_id, e)
        return self._refetch(order_id, "CANCEL OK")

    def _rejected(self, order_id: int, error: Exception) -> Err:
        kind = ErrorKind.TRANSPORT if isinstance(error, TransportError) else ErrorKind.TRANSITION
        message = error.message if isinstance(error, ServiceError) else str(error)
        self.journal.warn(f"[order={order_id}] REJECTED: {message}")
        fresh = None
        try:
            fresh = self.orders.get_order(order_id)
        except (ServiceError, TransportError) as e:
            self.journal.warn(f"[order={order_id}] re-fetch after rejection failed: {e}")
        return Err(kind, message, order=fresh)

    def _refetch(self, order_id: int, done: str) -> Result[Order]:
        self.journal.log(f"[order={order_id}] {done}")
        try:
            order = self.orders.get_order(order_id)
        except (ServiceError, TransportError) as e:
            # The change went through; only the refreshed view is missing.
            self.journal.warn(f"[order={order_id}] re-fetch failed: {e}")
            return Err(ErrorKind.TRANSPORT, f"Order updated, but reloading it failed: {e}")
        return Ok(order)
