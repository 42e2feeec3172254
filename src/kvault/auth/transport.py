"""Authenticating transport -- challenge-driven bearer auth around any httpx transport.

:class:`AuthenticatingTransport` decorates an :class:`httpx.BaseTransport`.
For every request it:

1. attaches the cached token when one is present and valid,
2. sends the request through the wrapped transport,
3. on a ``401`` to the first attempt, parses the ``WWW-Authenticate``
   challenge, exchanges the client credentials for a new token, stores it,
4. replays the original request once with the new token.

The two attempts form a tiny state machine, :class:`AttemptState`; the
transition rule lives in :func:`should_reauthenticate`. Whatever the second
attempt returns, including another 401, goes back to the caller, so a
misconfigured server can never cause a retry loop.

Token refresh is single-flight: concurrent requests that are rejected at the
same time serialise on a lock, and only the first performs the exchange.

Install it on a client like any other transport::

    transport = create_default_transport(client_id, client_secret)
    with httpx.Client(transport=transport) as client:
        client.get("https://myvault.vault.azure.net/secrets", params={"api-version": "2016-10-01"})
"""

from __future__ import annotations

import enum
import threading
from typing import Optional

import httpx

from kvault.auth.acquirer import TokenAcquirer
from kvault.auth.cache import MemoryTokenCache, TokenCache
from kvault.auth.challenge import WWW_AUTHENTICATE, parse_challenge
from kvault.auth.token import Token
from kvault.exceptions import NonReplayableBodyError
from kvault.output import debug


class AttemptState(str, enum.Enum):
    """Position of a request in the authenticate-and-retry cycle."""

    FIRST = "first"
    RETRIED = "retried"


def should_reauthenticate(attempt: AttemptState, status_code: int) -> bool:
    """Return ``True`` only for a 401 answering the first attempt."""
    return attempt is AttemptState.FIRST and status_code == 401


class AuthenticatingTransport(httpx.BaseTransport):
    """Transport that answers bearer challenges with a client-credentials token.

    All collaborators are injected; see :func:`create_default_transport` for
    the standard wiring.

    Args:
        transport: The transport that actually sends requests.
        acquirer: Performs the token exchange.
        cache: Holds the current token between requests.
        client_id: OAuth2 client ID sent to the token endpoint.
        client_secret: OAuth2 client secret sent to the token endpoint.
    """

    def __init__(
        self,
        transport: httpx.BaseTransport,
        acquirer: TokenAcquirer,
        cache: TokenCache,
        client_id: str,
        client_secret: str,
    ) -> None:
        self._transport = transport
        self._acquirer = acquirer
        self._cache = cache
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_lock = threading.Lock()

    @property
    def cache(self) -> TokenCache:
        """The token cache used by this transport."""
        return self._cache

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Send *request*, re-authenticating once if the vault demands it.

        Raises:
            ChallengeError: If a 401 carries no usable challenge.
            AuthError: If the token exchange fails.
            NonReplayableBodyError: If a retry is needed but the request body
                was a one-shot stream.
            httpx.TransportError: Network failures, propagated unchanged.
        """
        attempt = AttemptState.FIRST
        token = self._cache.get()
        outbound = _authorize(request, token)

        while True:
            response = self._transport.handle_request(outbound)
            if not should_reauthenticate(attempt, response.status_code):
                return response

            try:
                header = response.headers.get(WWW_AUTHENTICATE)
            finally:
                response.close()
            debug(f"401 from {request.method} {request.url}; re-authenticating")

            token = self._refresh(header, rejected=token)
            if not _is_replayable(request):
                raise NonReplayableBodyError(
                    f"Cannot retry {request.method} {request.url}: request body "
                    "is a stream that was already consumed"
                )

            attempt = AttemptState.RETRIED
            outbound = _authorize(request, token)

    def close(self) -> None:
        self._acquirer.close()
        self._transport.close()

    def _refresh(self, header: Optional[str], rejected: Optional[Token]) -> Token:
        """Parse the challenge and acquire a token, collapsing concurrent refreshes."""
        challenge = parse_challenge(header)
        with self._refresh_lock:
            current = self._cache.get()
            if current is not None and current != rejected and current.is_valid():
                debug("Using token refreshed by a concurrent request")
                return current
            token = self._acquirer.acquire(challenge, self._client_id, self._client_secret)
            self._cache.store(token)
            return token


def create_default_transport(
    client_id: str,
    client_secret: str,
    *,
    transport: Optional[httpx.BaseTransport] = None,
    cache: Optional[TokenCache] = None,
    verify: bool = True,
    timeout: float = 30.0,
) -> AuthenticatingTransport:
    """Build an :class:`AuthenticatingTransport` with the standard collaborators.

    Token requests go through the same inner transport as vault requests.

    Args:
        client_id: OAuth2 client ID.
        client_secret: OAuth2 client secret.
        transport: Inner transport. Defaults to :class:`httpx.HTTPTransport`.
        cache: Token cache. Defaults to a new :class:`MemoryTokenCache`.
        verify: Verify TLS certificates (only used for the default transport).
        timeout: Timeout in seconds for token requests.

    Returns:
        A ready-to-use transport.
    """
    inner = transport if transport is not None else httpx.HTTPTransport(verify=verify)
    acquirer = TokenAcquirer(httpx.Client(transport=inner, timeout=timeout))
    return AuthenticatingTransport(
        inner,
        acquirer,
        cache if cache is not None else MemoryTokenCache(),
        client_id,
        client_secret,
    )


def _authorize(request: httpx.Request, token: Optional[Token]) -> httpx.Request:
    """Return a token-bearing copy of *request*, or *request* itself without a valid token."""
    if token is not None and token.is_valid():
        return token.apply(request)
    return request


def _is_replayable(request: httpx.Request) -> bool:
    """In-memory bodies (and streams already read into memory) can be sent twice."""
    return isinstance(request.stream, httpx.ByteStream)
