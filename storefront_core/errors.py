"""Exceptions raised by storefront collaborators and components."""

from __future__ import annotations

from typing import Any, Optional, Tuple

from storefront_core.models import OrderStatus
from storefront_core.results import ErrorKind


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    pass


class TransportError(StorefrontError):
    """Raised when a backend cannot be reached or does not answer in time."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}")


class ServiceError(StorefrontError):
    """Raised when the backend answers with a rejection.

    `message` is the server's own text and is shown to the user as is.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(ServiceError):
    def __init__(self, what: str, ident: object):
        super().__init__(f"{what} not found with id: {ident}", status_code=404)


class IllegalTransitionError(StorefrontError):
    """Raised when a caller asks for a status change the lifecycle never offers."""

    def __init__(self, current: OrderStatus, target: OrderStatus):
        self.current = current
        self.target = target
        super().__init__(f"Illegal order transition {current.value} -> {target.value}")


class MirrorError(StorefrontError):
    """Raised by a cart mirror whose slot cannot be written."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Cart mirror {location} unusable: {reason}")


class SubmissionError(StorefrontError):
    """A checkout step could not complete; carries the message shown to the shopper."""

    def __init__(self, kind: ErrorKind, message: str, details: Tuple[Any, ...] = ()):
        self.kind = kind
        self.message = message
        self.details = details
        super().__init__(message)
