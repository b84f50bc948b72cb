"""Pytest fixtures: an in-memory backend, a signed-in shopper and an admin."""

from decimal import Decimal

import pytest

from storefront_core.catalog import InMemoryCatalog
from storefront_core.journal import Journal
from storefront_core.lifecycle import OrderLifecycle
from storefront_core.models import CheckoutForm
from storefront_core.orders import InMemoryOrderService
from storefront_core.persistence import InMemoryCartMirror
from storefront_core.pipeline import OrderSubmissionPipeline
from storefront_core.session import ROLE_ADMIN, signed_in
from storefront_core.store import CartStore
from storefront_core.validator import StockValidator


@pytest.fixture
def catalog() -> InMemoryCatalog:
    catalog = InMemoryCatalog()

    catalog.add_product(1, "Headphones", price=Decimal("10.00"), stock_quantity=10, brand="SoundMax")
    catalog.add_product(2, "Cookware", price=Decimal("5.00"), stock_quantity=5, brand="ChefPro")
    catalog.add_product(3, "Serum", price=Decimal("24.50"), stock_quantity=0, available=False)  # Switched off
    catalog.add_product(4, "Lamp", price=Decimal("30.00"), stock_quantity=2)

    return catalog


@pytest.fixture
def journal() -> Journal:
    return Journal()


@pytest.fixture
def customer():
    return signed_in("alice")


@pytest.fixture
def admin():
    return signed_in("root", ROLE_ADMIN)


@pytest.fixture
def mirror() -> InMemoryCartMirror:
    return InMemoryCartMirror()


@pytest.fixture
def cart(mirror, journal) -> CartStore:
    return CartStore(mirror, journal)


@pytest.fixture
def orders(catalog, journal, customer) -> InMemoryOrderService:
    return InMemoryOrderService(catalog, journal, session=customer)


@pytest.fixture
def validator(catalog) -> StockValidator:
    return StockValidator(catalog)


@pytest.fixture
def pipeline(cart, orders, customer, journal) -> OrderSubmissionPipeline:
    return OrderSubmissionPipeline(cart, orders, customer, journal=journal)


@pytest.fixture
def admin_orders(orders, admin) -> InMemoryOrderService:
    return orders.acting_as(admin)


@pytest.fixture
def lifecycle(admin_orders, admin, journal) -> OrderLifecycle:
    return OrderLifecycle(admin_orders, admin, journal)


@pytest.fixture
def customer_lifecycle(orders, customer, journal) -> OrderLifecycle:
    return OrderLifecycle(orders, customer, journal)


@pytest.fixture
def form() -> CheckoutForm:
    return CheckoutForm(shipping_address="1 Main St", phone_number="5551234567")
