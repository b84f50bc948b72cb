from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Protocol

from pydantic import ValidationError

from storefront_core.api_client import ApiClient
from storefront_core.errors import NotFoundError, TransportError
from storefront_core.models import Product
from storefront_core.schemas import ProductPageSchema, ProductSchema


class Catalog(Protocol):
    def list_products(self) -> List[Product]: ...

    def get_product(self, product_id: int) -> Product: ...


class InMemoryCatalog:
    """Catalog held in a dict; also the stock ledger for InMemoryOrderService."""

    def __init__(self) -> None:
        self.products: Dict[int, Product] = {}
        self.list_calls = 0
        # Set to an exception instance to make the next listings fail.
        self.fail_with: Exception | None = None

    def add_product(
        self,
        product_id: int,
        name: str,
        price: Decimal,
        stock_quantity: int,
        available: bool = True,
        brand: str = "",
    ) -> Product:
        product = Product(
            product_id=product_id,
            name=name,
            brand=brand,
            price=price,
            stock_quantity=stock_quantity,
            available=available,
        )
        self.products[product_id] = product
        return product

    def list_products(self) -> List[Product]:
        self.list_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return [
            Product(
                product_id=p.product_id,
                name=p.name,
                brand=p.brand,
                price=p.price,
                stock_quantity=p.stock_quantity,
                available=p.available,
            )
            for p in self.products.values()
        ]

    def get_product(self, product_id: int) -> Product:
        product = self.products.get(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product


class HttpCatalog:
    def __init__(self, api: ApiClient, page_size: int = 1000) -> None:
        self.api = api
        self.page_size = page_size

    def list_products(self) -> List[Product]:
        body = self.api.request(
            "GET", "/products", "list products", params={"page": 0, "size": self.page_size}
        )
        try:
            # Paginated endpoints wrap the list in `content`; older ones return it bare.
            if isinstance(body, dict):
                products = ProductPageSchema.model_validate(body).content
            elif isinstance(body, list):
                products = [ProductSchema.model_validate(p) for p in body]
            else:
                raise TransportError("list products", "unexpected response shape")
        except ValidationError as e:
            raise TransportError("list products", f"malformed product list ({e.error_count()} errors)") from e
        return [p.to_domain() for p in products]

    def get_product(self, product_id: int) -> Product:
        body = self.api.request("GET", f"/product/{product_id}", "get product")
        try:
            return ProductSchema.model_validate(body).to_domain()
        except ValidationError as e:
            raise TransportError("get product", f"malformed product ({e.error_count()} errors)") from e
