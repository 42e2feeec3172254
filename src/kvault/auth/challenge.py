"""Parsing of ``WWW-Authenticate`` bearer challenges.

A vault answers an unauthenticated request with::

    HTTP/1.1 401 Unauthorized
    WWW-Authenticate: Bearer authorization="https://login.example.com/tenant", resource="https://vault.example.com"

:func:`parse_challenge` extracts the token endpoint (``authorization``) and
the resource identifier (``resource``) from that header. Parameter order is
not significant and unknown parameters are ignored.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from kvault.exceptions import ChallengeError

WWW_AUTHENTICATE = "WWW-Authenticate"
BEARER_SCHEME = "Bearer"


class AuthChallenge(BaseModel):
    """Where to obtain a token, and for which resource.

    Produced once per rejected request and never persisted.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str
    resource: str


def parse_challenge(header: Optional[str]) -> AuthChallenge:
    """Parse a ``WWW-Authenticate`` header value into an :class:`AuthChallenge`.

    Args:
        header: The raw header value, or ``None`` when the response had none.

    Returns:
        The endpoint and resource advertised by the challenge.

    Raises:
        ChallengeError: If the header is missing, the scheme is not exactly
            ``Bearer``, or either ``authorization`` or ``resource`` is absent
            or empty.
    """
    if not header or not header.strip():
        raise ChallengeError(f"Missing {WWW_AUTHENTICATE} header in response")

    parts = header.strip().split(None, 1)
    if len(parts) != 2 or parts[0] != BEARER_SCHEME:
        raise ChallengeError(
            f"Unsupported authentication scheme in {WWW_AUTHENTICATE}: "
            f"expected {BEARER_SCHEME}"
        )

    params = _parse_params(parts[1])
    endpoint = params.get("authorization", "")
    resource = params.get("resource", "")

    if not endpoint:
        raise ChallengeError("Empty endpoint URI in authentication challenge")
    if not resource:
        raise ChallengeError("Empty resource URI in authentication challenge")

    return AuthChallenge(endpoint=endpoint, resource=resource)


def _parse_params(raw: str) -> dict[str, str]:
    """Split ``k1="v1", k2=v2`` into a dict, stripping whitespace and quotes."""
    params: dict[str, str] = {}
    for item in raw.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        params[key.strip()] = value.strip().strip('"')
    return params
