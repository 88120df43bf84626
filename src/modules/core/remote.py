"""Synchronous HTTP transport for remote collaborator services.

``ServiceClient`` is the base for the catalog and inventory clients.  It
owns one ``httpx.Client`` with bounded connect/read timeouts and turns every
transport-level outcome into one of two failure kinds:

- ``RemoteNotFound``: the remote service answered 404.
- ``RemoteUnavailable``: the call could not complete (timeout, connection
  failure, 5xx, unexpected status, or a body that does not decode into the
  expected DTO).

A failed call never yields defaulted or zero values.  JSON numbers are
decoded as ``Decimal`` so prices survive the wire exactly.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from modules.core.middleware import REQUEST_ID_HEADER, get_correlation_id

logger = structlog.get_logger(__name__)

DTO = TypeVar("DTO", bound=BaseModel)


class RemoteServiceError(Exception):
    """Base class for failures talking to a remote service."""

    def __init__(
        self,
        message: str,
        *,
        service: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class RemoteNotFound(RemoteServiceError):
    """The remote service has no record for the requested resource (404)."""


class RemoteUnavailable(RemoteServiceError):
    """The remote call could not complete."""


def sku_path(sku: str, suffix: str = "") -> str:
    """Build ``/sku/{sku}{suffix}`` with the SKU percent-encoded."""
    return f"/sku/{quote(sku, safe='')}{suffix}"


class ServiceClient:
    """Base client for one remote service.

    Subclasses set ``service_name`` and build their operations on top of
    ``_request`` / ``_ensure_success`` / ``_decode``.  An ``httpx.Client``
    may be injected (tests, shared pools); otherwise one is created for
    ``base_url`` and released by ``close()``.
    """

    service_name = "remote"

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        connect_timeout: float = 2.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
        )
        self._log = logger.bind(service=self.service_name)

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, forwarding the correlation ID.

        Raises ``RemoteUnavailable`` for timeouts, transport errors and
        5xx answers, ``RemoteNotFound`` for 404.  Any other status is
        returned to the caller.
        """
        headers = dict(kwargs.pop("headers", None) or {})
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[REQUEST_ID_HEADER] = correlation_id

        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            self._log.error("remote.timeout", method=method, path=path, error=str(exc))
            raise RemoteUnavailable(
                f"{self.service_name} service timed out on {method} {path}.",
                service=self.service_name,
            ) from exc
        except httpx.TransportError as exc:
            self._log.error(
                "remote.transport_error", method=method, path=path, error=str(exc)
            )
            raise RemoteUnavailable(
                f"Could not reach {self.service_name} service on {method} {path}: {exc}",
                service=self.service_name,
            ) from exc

        if response.status_code == 404:
            self._log.warning("remote.not_found", method=method, path=path)
            raise RemoteNotFound(
                f"{self.service_name} service has no record at {path}.",
                service=self.service_name,
                status_code=404,
            )
        if response.is_server_error:
            self._log.error(
                "remote.server_error",
                method=method,
                path=path,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise RemoteUnavailable(
                f"{self.service_name} service error {response.status_code} on {method} {path}.",
                service=self.service_name,
                status_code=response.status_code,
            )
        return response

    def _ensure_success(self, response: httpx.Response) -> httpx.Response:
        """Treat any remaining non-2xx answer as an incomplete call."""
        if not response.is_success:
            self._log.error(
                "remote.unexpected_status",
                path=response.request.url.path,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise RemoteUnavailable(
                f"{self.service_name} service rejected the call with "
                f"{response.status_code}: {response.text[:200]}",
                service=self.service_name,
                status_code=response.status_code,
            )
        return response

    def _decode(self, response: httpx.Response, dto_cls: Type[DTO]) -> DTO:
        """Decode a JSON body into ``dto_cls`` or raise ``RemoteUnavailable``."""
        try:
            payload = json.loads(response.content, parse_float=Decimal)
            return dto_cls.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            self._log.error(
                "remote.malformed_response",
                path=response.request.url.path,
                error=str(exc),
            )
            raise RemoteUnavailable(
                f"{self.service_name} service returned a malformed response.",
                service=self.service_name,
                status_code=response.status_code,
            ) from exc
