from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from storefront_core.errors import ServiceError, SubmissionError, TransportError
from storefront_core.journal import Journal
from storefront_core.models import CartSnapshot, CheckoutForm, CreateOrderRequest, Order, OrderItemRequest
from storefront_core.orders import OrderService
from storefront_core.results import Err, ErrorKind, Ok, Result
from storefront_core.session import SessionGate
from storefront_core.store import CartStore
from storefront_core.validator import StockValidator

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Failed to create order"

_PHONE_RE = re.compile(r"^[0-9]{10}$")


def validate_checkout_form(form: CheckoutForm) -> Dict[str, str]:
    """Field-level problems with the checkout form, keyed by field name."""
    errors: Dict[str, str] = {}
    if not form.shipping_address.strip():
        errors["shipping_address"] = "Shipping address is required"
    phone = form.phone_number.strip()
    if not phone:
        errors["phone_number"] = "Phone number is required"
    elif not _PHONE_RE.match(phone):
        errors["phone_number"] = "Phone number must be 10 digits"
    return errors


def build_order_request(snapshot: CartSnapshot, form: CheckoutForm) -> CreateOrderRequest:
    return CreateOrderRequest(
        items=[OrderItemRequest(product_id=item.product_id, quantity=item.quantity) for item in snapshot],
        shipping_address=form.shipping_address,
        billing_address=form.billing_address or form.shipping_address,
        phone_number=form.phone_number,
        notes=form.notes or None,
        payment_method=form.payment_method,
    )


class Step(ABC):
    def __init__(self, journal: Journal, tag: str):
        self.journal = journal
        self.tag = tag

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def execute(self, ctx: "SubmissionContext") -> None: ...

    def run(self, ctx: "SubmissionContext") -> None:
        self.journal.log(f"[{self.tag}] STEP {self.name()}")
        self.execute(ctx)
        self.journal.log(f"[{self.tag}] STEP {self.name()} OK")


class SubmissionContext:
    def __init__(self, snapshot: CartSnapshot, form: CheckoutForm):
        self.snapshot = snapshot
        self.form = form
        self.request: Optional[CreateOrderRequest] = None
        self.order: Optional[Order] = None


class Revalidate(Step):
    def __init__(self, journal: Journal, tag: str, validator: StockValidator):
        super().__init__(journal, tag)
        self.validator = validator

    def name(self) -> str:
        return "Revalidate"

    def execute(self, ctx: SubmissionContext) -> None:
        result = self.validator.validate(ctx.snapshot)
        if not result.ok:
            raise SubmissionError(result.kind, result.message, result.details)


class BuildRequest(Step):
    def name(self) -> str:
        return "BuildRequest"

    def execute(self, ctx: SubmissionContext) -> None:
        ctx.request = build_order_request(ctx.snapshot, ctx.form)


class CreateOrder(Step):
    def __init__(self, journal: Journal, tag: str, orders: OrderService):
        super().__init__(journal, tag)
        self.orders = orders

    def name(self) -> str:
        return "CreateOrder"

    def execute(self, ctx: SubmissionContext) -> None:
        try:
            ctx.order = self.orders.create_order(ctx.request)
        except ServiceError as e:
            raise SubmissionError(ErrorKind.SUBMISSION, e.message or DEFAULT_FAILURE_MESSAGE) from e
        except TransportError as e:
            raise SubmissionError(ErrorKind.TRANSPORT, f"{DEFAULT_FAILURE_MESSAGE}: {e.reason}") from e


class ClearCart(Step):
    def __init__(self, journal: Journal, tag: str, cart: CartStore):
        super().__init__(journal, tag)
        self.cart = cart

    def name(self) -> str:
        return "ClearCart"

    def execute(self, ctx: SubmissionContext) -> None:
        # Only reached once CreateOrder returned an order.
        self.cart.clear()


class OrderSubmissionPipeline:
    """
    The only path from a cart to an order.

    Steps run in order and stop at the first failure. There is nothing to
    compensate: the cart is cleared by the last step, after the server has
    acknowledged the order, so a failure anywhere leaves it exactly as it was.
    Failures are never retried here.
    """

    def __init__(
        self,
        cart: CartStore,
        orders: OrderService,
        session: SessionGate,
        journal: Optional[Journal] = None,
        validator: Optional[StockValidator] = None,
    ) -> None:
        self.cart = cart
        self.orders = orders
        self.session = session
        self.journal = journal if journal is not None else cart.journal
        # Only set when re-validation at submit time is wanted.
        self.validator = validator

    def submit(
        self,
        form: CheckoutForm,
        snapshot: Optional[CartSnapshot] = None,
        on_success: Optional[Callable[[Order], None]] = None,
    ) -> Result[Order]:
        snapshot = snapshot if snapshot is not None else self.cart.snapshot()
        tag = "checkout"
        self.journal.log(f"[{tag}] SUBMIT START lines={len(snapshot)} units={snapshot.item_count}")

        if not self.session.is_authenticated:
            self.journal.log(f"[{tag}] SUBMIT REFUSED: not signed in")
            return Err(ErrorKind.UNAUTHORIZED, "Sign in to place an order")
        if not len(snapshot):
            self.journal.log(f"[{tag}] SUBMIT REFUSED: empty cart")
            return Err(ErrorKind.VALIDATION, "Cart is empty")

        steps: List[Step] = []
        if self.validator is not None:
            steps.append(Revalidate(self.journal, tag, self.validator))
        steps.append(BuildRequest(self.journal, tag))
        steps.append(CreateOrder(self.journal, tag, self.orders))
        steps.append(ClearCart(self.journal, tag, self.cart))

        ctx = SubmissionContext(snapshot, form)
        try:
            for step in steps:
                step.run(ctx)
        except SubmissionError as e:
            self.journal.log(f"[{tag}] SUBMIT FAILED: {e.message}")
            return Err(e.kind, e.message, details=e.details)

        order = ctx.order
        self.journal.log(f"[order={order.id}] SUBMIT OK total={order.total_amount}")
        if on_success is not None:
            # The caller may be gone by now; its callback must not undo a placed order.
            try:
                on_success(order)
            except Exception:
                logger.warning("on_success callback failed for order %s", order.id, exc_info=True)
        return Ok(order)
