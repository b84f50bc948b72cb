"""Runtime settings for the storefront core."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_API_URL = "http://localhost:8080/api"
DEFAULT_CART_PATH = Path.home() / ".storefront" / "cart.json"

_TRUE = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    cart_path: Path = DEFAULT_CART_PATH
    timeout: float = 10.0
    # One request is expected to return the whole catalog.
    catalog_page_size: int = 1000
    low_stock_threshold: int = 0
    revalidate_on_submit: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            api_url=env.get("STOREFRONT_API_URL", defaults.api_url).rstrip("/"),
            cart_path=Path(env.get("STOREFRONT_CART_PATH", defaults.cart_path)),
            timeout=float(env.get("STOREFRONT_TIMEOUT", defaults.timeout)),
            catalog_page_size=int(env.get("STOREFRONT_CATALOG_PAGE_SIZE", defaults.catalog_page_size)),
            low_stock_threshold=int(env.get("STOREFRONT_LOW_STOCK_THRESHOLD", defaults.low_stock_threshold)),
            revalidate_on_submit=env.get("STOREFRONT_REVALIDATE_ON_SUBMIT", "").strip().lower() in _TRUE,
        )
