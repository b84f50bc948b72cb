from __future__ import annotations

import logging
from typing import List

logger = logging.getLogger(__name__)


class Journal:
    """
    Ordered record of what the storefront core did, line by line.

    Every line is also sent to the module logger. Tests and the demo CLI read
    `lines` to check the order in which things happened (for example that the
    cart is cleared only after the server acknowledged an order).
    """

    def __init__(self) -> None:
        self.lines: List[str] = []

    def log(self, message: str) -> None:
        self.lines.append(message)
        logger.info(message)

    def warn(self, message: str) -> None:
        self.lines.append(message)
        logger.warning(message)

    def matching(self, needle: str) -> List[str]:
        return [line for line in self.lines if needle in line]
