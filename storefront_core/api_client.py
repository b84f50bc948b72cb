from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from storefront_core.config import Settings
from storefront_core.errors import ServiceError, TransportError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or default
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    if isinstance(body, str) and body:
        return body
    return default


class ApiClient:
    """
    Thin JSON wrapper over one httpx.Client for the storefront backend.

    Network failures become TransportError, non-2xx answers become ServiceError
    carrying the server's own message.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.Client] = None) -> None:
        self.client = client if client is not None else httpx.Client(base_url=base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApiClient":
        return cls(settings.api_url, timeout=settings.timeout)

    def request(self, method: str, path: str, operation: str, **kwargs: Any) -> Any:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(operation, f"timed out ({e})") from e
        except httpx.RequestError as e:
            raise TransportError(operation, str(e) or e.__class__.__name__) from e

        if response.is_error:
            message = _error_message(response, f"{operation} failed with HTTP {response.status_code}")
            logger.info("%s rejected (%s): %s", operation, response.status_code, message)
            raise ServiceError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(operation, "response is not JSON") from e

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
