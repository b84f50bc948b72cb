from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from storefront_core.api_client import ApiClient
from storefront_core.catalog import Catalog, HttpCatalog, InMemoryCatalog
from storefront_core.config import Settings
from storefront_core.journal import Journal
from storefront_core.lifecycle import OrderLifecycle
from storefront_core.orders import HttpOrderService, InMemoryOrderService, OrderService
from storefront_core.persistence import CartMirror, InMemoryCartMirror, JsonFileCartMirror
from storefront_core.pipeline import OrderSubmissionPipeline
from storefront_core.session import SessionGate
from storefront_core.store import CartStore
from storefront_core.validator import StockValidator


@dataclass(slots=True)
class Storefront:
    """The four core components wired to one set of collaborators."""

    cart: CartStore
    validator: StockValidator
    pipeline: OrderSubmissionPipeline
    lifecycle: OrderLifecycle
    catalog: Catalog
    orders: OrderService
    journal: Journal

    @classmethod
    def assemble(
        cls,
        catalog: Catalog,
        orders: OrderService,
        mirror: CartMirror,
        session: SessionGate,
        settings: Optional[Settings] = None,
        journal: Optional[Journal] = None,
    ) -> "Storefront":
        settings = settings if settings is not None else Settings()
        journal = journal if journal is not None else Journal()
        cart = CartStore(mirror, journal)
        validator = StockValidator(catalog, low_stock_threshold=settings.low_stock_threshold)
        pipeline = OrderSubmissionPipeline(
            cart,
            orders,
            session,
            journal=journal,
            validator=validator if settings.revalidate_on_submit else None,
        )
        lifecycle = OrderLifecycle(orders, session, journal)
        return cls(
            cart=cart,
            validator=validator,
            pipeline=pipeline,
            lifecycle=lifecycle,
            catalog=catalog,
            orders=orders,
            journal=journal,
        )

    @classmethod
    def from_settings(cls, settings: Settings, session: SessionGate) -> "Storefront":
        api = ApiClient.from_settings(settings)
        return cls.assemble(
            catalog=HttpCatalog(api, page_size=settings.catalog_page_size),
            orders=HttpOrderService(api),
            mirror=JsonFileCartMirror(settings.cart_path),
            session=session,
            settings=settings,
        )

    @classmethod
    def in_memory(
        cls,
        catalog: InMemoryCatalog,
        session: SessionGate,
        settings: Optional[Settings] = None,
        mirror: Optional[CartMirror] = None,
    ) -> "Storefront":
        journal = Journal()
        return cls.assemble(
            catalog=catalog,
            orders=InMemoryOrderService(catalog, journal, session=session),
            mirror=mirror if mirror is not None else InMemoryCartMirror(),
            session=session,
            settings=settings,
            journal=journal,
        )
