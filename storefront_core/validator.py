from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from storefront_core.catalog import Catalog
from storefront_core.errors import ServiceError, TransportError
from storefront_core.models import CartSnapshot, Product
from storefront_core.results import Err, ErrorKind, Ok, Result
from storefront_core.store import CartStore

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Failed to validate stock availability. Please try again."


class DiscrepancyKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    UNAVAILABLE = "UNAVAILABLE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    VALIDATION_UNAVAILABLE = "VALIDATION_UNAVAILABLE"


@dataclass(frozen=True, slots=True)
class StockDiscrepancy:
    kind: DiscrepancyKind
    message: str
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    available_stock: Optional[int] = None
    requested_quantity: Optional[int] = None

    @property
    def remediation_quantity(self) -> Optional[int]:
        """Quantity the line can be reduced to, or None when only removal (or a retry) helps."""
        if self.kind == DiscrepancyKind.INSUFFICIENT_STOCK and self.available_stock:
            return self.available_stock
        return None


@dataclass(frozen=True, slots=True)
class StockWarning:
    product_id: int
    product_name: str
    available_stock: int
    requested_quantity: int
    message: str


@dataclass(frozen=True, slots=True)
class ValidationReport:
    snapshot: CartSnapshot
    warnings: Tuple[StockWarning, ...] = field(default_factory=tuple)


class StockValidator:
    """
    Checks a cart snapshot against one fresh listing of the catalog.

    The whole catalog is fetched once per pass, never per line. Nothing here
    touches the cart; see apply_remediation for the explicit follow-up.
    """

    def __init__(self, catalog: Catalog, low_stock_threshold: int = 0) -> None:
        self.catalog = catalog
        self.low_stock_threshold = low_stock_threshold

    def validate(self, snapshot: CartSnapshot) -> Result[ValidationReport]:
        if not len(snapshot):
            return Err(ErrorKind.VALIDATION, "Cart is empty")

        try:
            products = self.catalog.list_products()
        except (TransportError, ServiceError) as e:
            logger.warning("Stock validation unavailable: %s", e)
            unavailable = StockDiscrepancy(kind=DiscrepancyKind.VALIDATION_UNAVAILABLE, message=RETRY_MESSAGE)
            return Err(ErrorKind.TRANSPORT, RETRY_MESSAGE, details=(unavailable,))

        by_id: Dict[int, Product] = {p.product_id: p for p in products}
        discrepancies: List[StockDiscrepancy] = []
        warnings: List[StockWarning] = []

        for line in snapshot:
            product = by_id.get(line.product_id)
            if product is None:
                discrepancies.append(
                    StockDiscrepancy(
                        kind=DiscrepancyKind.NOT_FOUND,
                        message="Product no longer available",
                        product_id=line.product_id,
                        product_name=line.name,
                    )
                )
            elif not product.available:
                discrepancies.append(
                    StockDiscrepancy(
                        kind=DiscrepancyKind.UNAVAILABLE,
                        message="Product is currently unavailable",
                        product_id=line.product_id,
                        product_name=line.name,
                    )
                )
            elif product.stock_quantity < line.quantity:
                discrepancies.append(
                    StockDiscrepancy(
                        kind=DiscrepancyKind.INSUFFICIENT_STOCK,
                        message=f"Insufficient stock. Available: {product.stock_quantity}, Requested: {line.quantity}",
                        product_id=line.product_id,
                        product_name=line.name,
                        available_stock=product.stock_quantity,
                        requested_quantity=line.quantity,
                    )
                )
            elif 0 < product.stock_quantity <= line.quantity + self.low_stock_threshold:
                warnings.append(
                    StockWarning(
                        product_id=line.product_id,
                        product_name=line.name,
                        available_stock=product.stock_quantity,
                        requested_quantity=line.quantity,
                        message="Limited availability. Please proceed to checkout soon.",
                    )
                )

        if discrepancies:
            logger.info("Cart failed stock validation: %d issue(s)", len(discrepancies))
            return Err(
                ErrorKind.VALIDATION,
                f"{len(discrepancies)} item(s) in your cart need attention",
                details=tuple(discrepancies),
            )
        return Ok(ValidationReport(snapshot=snapshot, warnings=tuple(warnings)))


def apply_remediation(store: CartStore, discrepancy: StockDiscrepancy) -> bool:
    """
    Apply the one-click fix for a discrepancy: reduce the line to the available
    stock, or drop it when nothing can be bought. Returns False when there is
    no fix (a failed validation pass can only be retried).
    """
    if discrepancy.product_id is None:
        return False
    quantity = discrepancy.remediation_quantity
    if quantity is not None:
        store.set_quantity(discrepancy.product_id, quantity)
    else:
        store.remove_item(discrepancy.product_id)
    return True
