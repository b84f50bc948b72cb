from __future__ import annotations

import argparse
import logging
from decimal import Decimal
from pathlib import Path
from typing import List

from storefront_core.app import Storefront
from storefront_core.catalog import InMemoryCatalog
from storefront_core.config import Settings
from storefront_core.models import CheckoutForm, OrderStatus
from storefront_core.persistence import JsonFileCartMirror
from storefront_core.session import ROLE_ADMIN, signed_in
from storefront_core.validator import apply_remediation


def seed(catalog: InMemoryCatalog) -> None:
    catalog.add_product(1, "Wireless Headphones", price=Decimal("129.99"), stock_quantity=10, brand="SoundMax")
    catalog.add_product(2, "Cookware Set", price=Decimal("89.00"), stock_quantity=2, brand="ChefPro")
    catalog.add_product(3, "Face Serum", price=Decimal("24.50"), stock_quantity=0, available=False, brand="GlowLab")


def parse_product_ids(raw: str) -> List[int]:
    return [int(part) for part in raw.split(",") if part.strip()]


def main() -> None:
    settings = Settings.from_env()

    p = argparse.ArgumentParser(description="Fill a cart, validate it, place the order and walk it through its lifecycle.")
    p.add_argument("--add", type=str, default="1,1,2", help="Comma separated product ids; repeat an id to add another unit")
    p.add_argument("--cart-file", type=Path, default=None, help="Persist the cart to this JSON file instead of memory")
    p.add_argument("--fix", action="store_true", help="Apply the suggested fix for every stock discrepancy")
    p.add_argument("--advance-to", type=str, default=None, help="Admin: move the order forward until this status")
    p.add_argument("--cancel", action="store_true", help="Customer: cancel the order after placing it")
    p.add_argument("--revalidate", action="store_true", default=settings.revalidate_on_submit)
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(message)s")
    settings.revalidate_on_submit = args.revalidate

    catalog = InMemoryCatalog()
    seed(catalog)
    session = signed_in("demo", ROLE_ADMIN)
    mirror = JsonFileCartMirror(args.cart_file) if args.cart_file else None
    shop = Storefront.in_memory(catalog, session, settings=settings, mirror=mirror)

    for product_id in parse_product_ids(args.add):
        shop.cart.add_item(catalog.get_product(product_id))

    result = shop.validator.validate(shop.cart.snapshot())
    if not result.ok:
        print("validation:", result.message)
        for issue in result.details:
            print(f"  - {issue.product_name or '-'}: {issue.message}")
            if args.fix:
                apply_remediation(shop.cart, issue)
        if not args.fix:
            return
        result = shop.validator.validate(shop.cart.snapshot())
        if not result.ok:
            print("still blocked:", result.message)
            return
    for warning in result.value.warnings:
        print(f"  ! {warning.product_name}: {warning.message}")

    form = CheckoutForm(shipping_address="1 Main St", phone_number="5551234567")
    placed = shop.pipeline.submit(form)
    if not placed.ok:
        print("checkout failed:", placed.message)
        return
    order = placed.value

    if args.cancel:
        outcome = shop.lifecycle.cancel(order.id, order.status)
        order = outcome.value if outcome.ok else (outcome.order or order)
    elif args.advance_to:
        target = OrderStatus(args.advance_to.upper())
        while order.status != target:
            options = shop.lifecycle.admin_options(order)
            forward = [s for s in options if s != OrderStatus.CANCELLED]
            if target in options:
                step = target
            elif forward:
                step = forward[0]
            else:
                break
            outcome = shop.lifecycle.request_transition(order.id, order.status, step)
            if not outcome.ok:
                print("transition failed:", outcome.message)
                break
            order = outcome.value

    print("\n=== RESULT ===")
    print("order:", order.id, order.status.value, order.payment_status.value, order.total_amount)
    print("cart lines left:", len(shop.cart))
    print("stock:", {p.product_id: p.stock_quantity for p in catalog.products.values()})
    print("journal:")
    for line in shop.journal.lines:
        print("  ", line)


if __name__ == "__main__":
    main()
