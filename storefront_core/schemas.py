"""
Wire schemas for the storefront backend and the cart mirror.

Each Pydantic model mirrors one JSON document the backend (or the cart mirror)
exchanges. Field names are camelCase on the wire and snake_case in Python.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from storefront_core.models import (
    CartItem,
    CreateOrderRequest,
    Order,
    OrderLine,
    OrderStatus,
    Page,
    PaymentMethod,
    PaymentStatus,
    Product,
)


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ProductSchema(WireModel):
    id: int = Field(..., description="Product id")
    name: str = Field(..., description="Product name")
    brand: Optional[str] = Field(None, description="Brand name")
    price: Decimal = Field(..., ge=0, description="Current unit price")
    stock_quantity: int = Field(0, description="Units in stock")
    product_available: bool = Field(True, description="Whether the product can be ordered")

    def to_domain(self) -> Product:
        return Product(
            product_id=self.id,
            name=self.name,
            brand=self.brand or "",
            price=self.price,
            stock_quantity=self.stock_quantity,
            available=self.product_available,
        )


class ProductPageSchema(WireModel):
    content: List[ProductSchema] = Field(default_factory=list)


class CartItemSchema(WireModel):
    """One entry of the cart mirror: the product as last seen plus the chosen quantity."""

    id: int
    name: str
    brand: Optional[str] = None
    price: Decimal
    quantity: int = Field(1, ge=1)
    stock_quantity: int = 0
    product_available: bool = True

    @classmethod
    def from_domain(cls, item: CartItem) -> "CartItemSchema":
        return cls(
            id=item.product_id,
            name=item.name,
            brand=item.brand or None,
            price=item.price,
            quantity=item.quantity,
            stock_quantity=item.stock_quantity,
            product_available=item.available,
        )

    def to_domain(self) -> CartItem:
        return CartItem(
            product_id=self.id,
            name=self.name,
            brand=self.brand or "",
            price=self.price,
            quantity=self.quantity,
            stock_quantity=self.stock_quantity,
            available=self.product_available,
        )


CartMirrorAdapter = TypeAdapter(List[CartItemSchema])


def dump_cart(items: List[CartItem]) -> str:
    payload = [CartItemSchema.from_domain(item) for item in items]
    return CartMirrorAdapter.dump_json(payload, by_alias=True).decode("utf-8")


def load_cart(data: str) -> List[CartItem]:
    """Parse a mirror payload. Raises pydantic.ValidationError on anything malformed."""
    return [entry.to_domain() for entry in CartMirrorAdapter.validate_json(data)]


class OrderItemRequestSchema(WireModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class CreateOrderRequestSchema(WireModel):
    items: List[OrderItemRequestSchema] = Field(..., min_length=1)
    shipping_address: str
    billing_address: Optional[str] = None
    phone_number: str
    notes: Optional[str] = None
    payment_method: PaymentMethod

    @classmethod
    def from_domain(cls, request: CreateOrderRequest) -> "CreateOrderRequestSchema":
        return cls(
            items=[OrderItemRequestSchema(product_id=i.product_id, quantity=i.quantity) for i in request.items],
            shipping_address=request.shipping_address,
            billing_address=request.billing_address,
            phone_number=request.phone_number,
            notes=request.notes,
            payment_method=request.payment_method,
        )


class UpdateOrderStatusSchema(WireModel):
    status: OrderStatus
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None


class OrderItemSchema(WireModel):
    product_id: int
    product_name: str
    quantity: int
    price_at_order: Decimal
    subtotal: Decimal


class OrderSchema(WireModel):
    id: int
    order_date: Optional[datetime] = None
    status: OrderStatus
    total_amount: Decimal
    shipping_address: str
    billing_address: Optional[str] = None
    phone_number: str
    notes: Optional[str] = None
    delivery_date: Optional[datetime] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[PaymentMethod] = None
    items: List[OrderItemSchema] = Field(default_factory=list)
    username: Optional[str] = None

    def to_domain(self) -> Order:
        return Order(
            id=self.id,
            status=self.status,
            payment_status=self.payment_status,
            items=[
                OrderLine(
                    product_id=i.product_id,
                    product_name=i.product_name,
                    quantity=i.quantity,
                    price_at_order=i.price_at_order,
                    subtotal=i.subtotal,
                )
                for i in self.items
            ],
            total_amount=self.total_amount,
            shipping_address=self.shipping_address,
            billing_address=self.billing_address,
            phone_number=self.phone_number,
            notes=self.notes,
            order_date=self.order_date,
            delivery_date=self.delivery_date,
            payment_method=self.payment_method,
            username=self.username,
        )


class OrderPageSchema(WireModel):
    content: List[OrderSchema] = Field(default_factory=list)
    number: int = 0
    size: int = 10
    total_elements: int = 0
    total_pages: int = 0

    def to_domain(self) -> Page[Order]:
        return Page(
            content=[o.to_domain() for o in self.content],
            page=self.number,
            size=self.size,
            total_elements=self.total_elements,
            total_pages=self.total_pages,
        )
