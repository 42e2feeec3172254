"""JSON request helpers on top of the authenticating transport.

:class:`KeyVaultClient` wraps an :class:`httpx.Client` whose transport is
usually an :class:`~kvault.auth.transport.AuthenticatingTransport`. It adds:

- **JSON encoding** of request bodies and decoding of 200 responses.
- **Error mapping** -- non-200 responses become :class:`KeyVaultError` when
  they carry the vault's error payload, otherwise
  :class:`AuthError` / :class:`NotFoundError` / :class:`ServerError` by
  status.
- **Scoped responses** -- every response is read and closed before the
  helper returns or raises.
- **Network errors** -- :class:`httpx.TransportError` becomes
  :class:`~kvault.exceptions.ConnectionError_`.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import ValidationError

from kvault.exceptions import (
    AuthError,
    ConnectionError_,
    KeyVaultError,
    KvaultError,
    NotFoundError,
    ServerError,
)
from kvault.models import ErrorDetail, ErrorResponse
from kvault.output import debug

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class KeyVaultClient:
    """Synchronous JSON client for vault endpoints.

    Args:
        transport: Transport used for every request, typically from
            :func:`~kvault.auth.create_default_transport`.
        timeout: Request timeout in seconds.

    Example::

        with KeyVaultClient(transport) as client:
            page = client.get_json(url, params={"api-version": "2016-10-01"})
    """

    def __init__(self, transport: httpx.BaseTransport, timeout: float = 30.0) -> None:
        self._client = httpx.Client(
            transport=transport,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> KeyVaultClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client and its transport."""
        self._client.close()

    def send_json(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, str]] = None,
        body: Any = None,
    ) -> Any:
        """Send a request and decode the JSON reply.

        Args:
            method: HTTP method.
            url: Absolute URL.
            params: Query parameters.
            body: JSON-serialisable request body, or ``None`` for no body.

        Returns:
            The decoded JSON document of a 200 response.

        Raises:
            KeyVaultError: Non-200 with a vault error payload.
            AuthError: 401/403 without an error payload.
            NotFoundError: 404 without an error payload.
            ServerError: Any other non-200 without an error payload.
            ConnectionError_: Network failure.
            KvaultError: A 200 response whose body is not JSON.
        """
        kwargs: dict[str, Any] = {"params": params}
        if body is not None:
            kwargs["json"] = body
            kwargs["headers"] = {"Content-Type": JSON_CONTENT_TYPE}

        debug(f"{method.upper()} {url}")
        try:
            with self._client.stream(method.upper(), url, **kwargs) as response:
                response.read()
                if response.status_code != 200:
                    raise _error_from_response(response)
                try:
                    return response.json()
                except ValueError as exc:
                    raise KvaultError(f"Invalid JSON response from {url}: {exc}") from exc
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Request to {url} failed: {exc}") from exc

    def get_json(self, url: str, params: Optional[dict[str, str]] = None) -> Any:
        return self.send_json("GET", url, params=params)

    def put_json(self, url: str, body: Any, params: Optional[dict[str, str]] = None) -> Any:
        return self.send_json("PUT", url, params=params, body=body)

    def patch_json(self, url: str, body: Any, params: Optional[dict[str, str]] = None) -> Any:
        return self.send_json("PATCH", url, params=params, body=body)


def _error_from_response(response: httpx.Response) -> KvaultError:
    """Build the exception for a non-200 response whose body has been read."""
    status = response.status_code
    try:
        payload = ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        payload = None

    if payload is not None:
        return _to_keyvault_error(payload.error, status)

    message = f"HTTP {status} {response.reason_phrase}".strip()
    if status in (401, 403):
        return AuthError(message, status_code=status)
    if status == 404:
        return NotFoundError(message)
    return ServerError(message)


def _to_keyvault_error(detail: ErrorDetail, status: int) -> KeyVaultError:
    inner = _to_keyvault_error(detail.inner_error, status) if detail.inner_error else None
    return KeyVaultError(detail.code, detail.message, status_code=status, inner_error=inner)
