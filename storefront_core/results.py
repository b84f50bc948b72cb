from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, Tuple, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    SUBMISSION = "SUBMISSION"
    TRANSITION = "TRANSITION"
    TRANSPORT = "TRANSPORT"
    UNAUTHORIZED = "UNAUTHORIZED"


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    """
    Expected failure of validate/submit/transition.

    `details` holds structured data for the caller (stock discrepancies);
    `order` is the re-fetched order after a rejected transition, when available.
    """

    kind: ErrorKind
    message: str
    details: Tuple[Any, ...] = ()
    order: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
