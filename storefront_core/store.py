from __future__ import annotations

import dataclasses
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import ValidationError

from storefront_core.errors import MirrorError
from storefront_core.journal import Journal
from storefront_core.models import CartItem, CartSnapshot, Product
from storefront_core.persistence import CartMirror
from storefront_core.schemas import dump_cart, load_cart

logger = logging.getLogger(__name__)


class CartStore:
    """
    The shopper's cart and its durable mirror.

    The store is the only writer of the cart. Every mutation is written to the
    mirror before the method returns; nothing here raises. Other components
    work on `snapshot()` copies and ask the store for changes.
    """

    def __init__(self, mirror: CartMirror, journal: Optional[Journal] = None) -> None:
        self.mirror = mirror
        self.journal = journal if journal is not None else Journal()
        self._items: Dict[int, CartItem] = {}
        self._restore()

    def _restore(self) -> None:
        data = self.mirror.load()
        if data is None:
            return
        try:
            items = load_cart(data)
        except ValidationError as e:
            # The corrupt slot stays as it is until the next mutation overwrites it.
            self.journal.warn(f"[cart] corrupt mirror ignored, starting empty ({e.error_count()} errors)")
            return
        for item in items:
            # Duplicate ids in a hand-edited mirror: last one wins.
            self._items[item.product_id] = item
        self.journal.log(f"[cart] restored {len(self._items)} line(s)")

    def _persist(self) -> None:
        try:
            if self._items:
                self.mirror.save(dump_cart(list(self._items.values())))
            else:
                self.mirror.clear()
        except MirrorError as e:
            logger.error("Cart change kept in memory only: %s", e)

    # Mutations
    def add_item(self, product: Product) -> CartItem:
        existing = self._items.get(product.product_id)
        quantity = existing.quantity + 1 if existing else 1
        item = CartItem.from_product(product, quantity=quantity)
        self._items[product.product_id] = item
        self._persist()
        self.journal.log(f"[cart] add {product.product_id} qty={quantity}")
        return item

    def remove_item(self, product_id: int) -> None:
        if product_id not in self._items:
            return
        del self._items[product_id]
        self._persist()
        self.journal.log(f"[cart] remove {product_id}")

    def set_quantity(self, product_id: int, quantity: int) -> None:
        item = self._items.get(product_id)
        if item is None:
            return
        quantity = max(1, int(quantity))
        self._items[product_id] = dataclasses.replace(item, quantity=quantity)
        self._persist()
        self.journal.log(f"[cart] set {product_id} qty={quantity}")

    def clear(self) -> None:
        self._items.clear()
        self._persist()
        self.journal.log("[cart] cleared")

    # Cart view helpers
    def can_increment(self, product_id: int) -> bool:
        item = self._items.get(product_id)
        return item is not None and item.quantity < item.stock_quantity

    def increment(self, product_id: int) -> bool:
        """+1 bounded by the last known stock. Returns False when refused."""
        if not self.can_increment(product_id):
            return False
        self.set_quantity(product_id, self._items[product_id].quantity + 1)
        return True

    def decrement(self, product_id: int) -> None:
        item = self._items.get(product_id)
        if item is not None and item.quantity > 1:
            self.set_quantity(product_id, item.quantity - 1)

    # Queries
    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(items=tuple(self._items.values()))

    def items(self) -> List[CartItem]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._items

    @property
    def total(self) -> Decimal:
        return self.snapshot().total
