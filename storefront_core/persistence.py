"""Durable slots for the cart mirror."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from storefront_core.errors import MirrorError

logger = logging.getLogger(__name__)

DEFAULT_SLOT = "cart"


class CartMirror(Protocol):
    def load(self) -> Optional[str]: ...

    def save(self, data: str) -> None: ...

    def clear(self) -> None: ...


class InMemoryCartMirror:
    """Single named slot kept in a dict. Handy for tests and for sharing one slot between stores."""

    def __init__(self, slots: Optional[dict] = None, slot: str = DEFAULT_SLOT) -> None:
        self.slots = slots if slots is not None else {}
        self.slot = slot
        self.writes = 0

    def load(self) -> Optional[str]:
        return self.slots.get(self.slot)

    def save(self, data: str) -> None:
        self.slots[self.slot] = data
        self.writes += 1

    def clear(self) -> None:
        self.slots.pop(self.slot, None)
        self.writes += 1


class JsonFileCartMirror:
    """
    Cart mirror backed by one JSON file.

    Writes go to a temp file in the same directory and are renamed over the
    slot, so a reader never sees a half-written cart.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            logger.warning("Cannot read cart mirror %s: %s", self.path, e)
            return None
        # Undecodable bytes are kept as replacement characters so the store sees a corrupt slot.
        return raw.decode("utf-8", errors="replace")

    def save(self, data: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise MirrorError(str(self.path), str(e)) from e

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise MirrorError(str(self.path), str(e)) from e
