from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"
    CREDIT_CARD = "CREDIT_CARD"


@dataclass(slots=True)
class Product:
    """Catalog truth for one product, as the server reports it."""

    product_id: int
    name: str
    price: Decimal
    stock_quantity: int
    available: bool = True
    brand: str = ""


@dataclass(frozen=True, slots=True)
class CartItem:
    """
    One cart line.

    `stock_quantity` and `available` are the last values the client saw for the
    product; they are only a hint for the cart view, never a guarantee.
    """

    product_id: int
    name: str
    price: Decimal
    quantity: int = 1
    stock_quantity: int = 0
    available: bool = True
    brand: str = ""

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartItem":
        return cls(
            product_id=product.product_id,
            name=product.name,
            brand=product.brand,
            price=product.price,
            quantity=quantity,
            stock_quantity=product.stock_quantity,
            available=product.available,
        )


@dataclass(frozen=True, slots=True)
class CartSnapshot:
    items: Tuple[CartItem, ...] = ()

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def get(self, product_id: int) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    @property
    def total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0.00"))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(slots=True)
class CheckoutForm:
    shipping_address: str
    phone_number: str
    billing_address: str = ""
    notes: str = ""
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY


@dataclass(frozen=True, slots=True)
class OrderItemRequest:
    product_id: int
    quantity: int


@dataclass(slots=True)
class CreateOrderRequest:
    """
    Payload for order creation.

    Carries no prices: the server decides `price_at_order` from its own catalog.
    """

    items: List[OrderItemRequest]
    shipping_address: str
    phone_number: str
    billing_address: Optional[str] = None
    notes: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY


@dataclass(slots=True)
class OrderLine:
    product_id: int
    product_name: str
    quantity: int
    price_at_order: Decimal
    subtotal: Decimal


@dataclass(slots=True)
class Order:
    id: int
    status: OrderStatus
    payment_status: PaymentStatus
    items: List[OrderLine]
    total_amount: Decimal
    shipping_address: str
    phone_number: str
    billing_address: Optional[str] = None
    notes: Optional[str] = None
    order_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    username: Optional[str] = None


@dataclass(slots=True)
class OrderFilter:
    page: int = 0
    size: int = 10
    sort_by: str = "orderDate"
    status: Optional[OrderStatus] = None
    # Admin listing spans all users; the customer listing is scoped to the session user.
    all_users: bool = False


@dataclass(slots=True)
class Page(Generic[T]):
    content: List[T] = field(default_factory=list)
    page: int = 0
    size: int = 10
    total_elements: int = 0
    total_pages: int = 0
