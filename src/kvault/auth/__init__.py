"""Challenge-driven bearer authentication for vault requests.

The pieces, leaf first:

- :func:`parse_challenge` / :class:`AuthChallenge` -- read the token endpoint
  and resource from a ``WWW-Authenticate`` header.
- :class:`Token` -- an immutable bearer credential with an expiry.
- :class:`TokenCache` / :class:`MemoryTokenCache` -- single-slot token storage.
- :class:`TokenAcquirer` -- the OAuth2 client-credentials exchange.
- :class:`AuthenticatingTransport` -- ties them together around an
  :class:`httpx.BaseTransport`; :func:`create_default_transport` wires the
  defaults.

Typical usage::

    from kvault.auth import create_default_transport

    transport = create_default_transport("client-id", "client-secret")
    with httpx.Client(transport=transport) as client:
        response = client.get(secret_url, params={"api-version": "2016-10-01"})
"""

from kvault.auth.acquirer import TokenAcquirer
from kvault.auth.cache import MemoryTokenCache, TokenCache
from kvault.auth.challenge import AuthChallenge, parse_challenge
from kvault.auth.token import Token
from kvault.auth.transport import (
    AttemptState,
    AuthenticatingTransport,
    create_default_transport,
    should_reauthenticate,
)

__all__ = [
    "AttemptState",
    "AuthChallenge",
    "AuthenticatingTransport",
    "MemoryTokenCache",
    "Token",
    "TokenAcquirer",
    "TokenCache",
    "create_default_transport",
    "parse_challenge",
    "should_reauthenticate",
]
