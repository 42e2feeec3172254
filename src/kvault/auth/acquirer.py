"""OAuth2 client-credentials exchange against a challenge-advertised endpoint.

:class:`TokenAcquirer` performs the non-interactive Client Credentials grant
(:rfc:`6749` section 4.4). Unlike a statically configured token URL, the
endpoint and resource come from the vault's own 401 challenge (see
:func:`~kvault.auth.challenge.parse_challenge`)::

    POST {endpoint}/oauth2/token?api-version=1.0
    Content-Type: application/x-www-form-urlencoded

    grant_type=client_credentials&client_id=...&resource=...&client_secret=...

The expiry of the resulting token is computed from ``expires_in`` at the
moment the response is decoded, so the network round trip slightly shortens
the usable lifetime.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Union

import httpx
from pydantic import BaseModel, ValidationError, field_validator

from kvault.auth.challenge import AuthChallenge
from kvault.auth.token import Token, utcnow
from kvault.exceptions import AuthError
from kvault.output import debug

TOKEN_PATH = "/oauth2/token"
OAUTH_API_VERSION = "1.0"


class TokenResponse(BaseModel):
    """Successful token endpoint payload. Extra fields are ignored."""

    access_token: str = ""
    expires_in: int = 0

    @field_validator("expires_in", mode="before")
    @classmethod
    def _parse_expires_in(cls, value: Union[int, str, Any]) -> int:
        # Accepts 3600 and "3600"; rejects bools, floats and anything else.
        if isinstance(value, bool):
            raise ValueError("expires_in must be an integer")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            return int(value.strip())
        raise ValueError("expires_in must be an integer")


class TokenAcquirer:
    """Exchange client credentials for a bearer token.

    Args:
        client: HTTP client used for the token request. It is owned by the
            acquirer and closed by :meth:`close`.

    Example::

        acquirer = TokenAcquirer(httpx.Client(timeout=30.0))
        token = acquirer.acquire(challenge, "my-client-id", "my-client-secret")
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def acquire(
        self,
        challenge: AuthChallenge,
        client_id: str,
        client_secret: str,
    ) -> Token:
        """POST the client-credentials grant and return the issued token.

        Args:
            challenge: Endpoint and resource parsed from the vault's 401.
            client_id: OAuth2 client ID.
            client_secret: OAuth2 client secret.

        Returns:
            A fresh :class:`~kvault.auth.token.Token`.

        Raises:
            AuthError: If the endpoint is unreachable, answers with a
                non-200 status (message is the status line), or returns a
                payload without a usable ``access_token`` / ``expires_in``.
            httpx.TimeoutException: Propagated unchanged.
        """
        url = f"{challenge.endpoint}{TOKEN_PATH}"
        data = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "resource": challenge.resource,
            "client_secret": client_secret,
        }
        debug(f"Requesting token from {url} for resource {challenge.resource}")

        try:
            with self._client.stream(
                "POST",
                url,
                params={"api-version": OAUTH_API_VERSION},
                data=data,
                headers={"Accept": "application/json"},
            ) as response:
                if response.status_code != 200:
                    raise AuthError(
                        f"{response.status_code} {response.reason_phrase}".strip(),
                        status_code=response.status_code,
                    )
                response.read()
                token = _decode_token(response)
        except httpx.TimeoutException:
            raise
        except httpx.TransportError as exc:
            raise AuthError(f"Token endpoint unreachable: {exc}") from exc

        debug(f"Acquired token valid until {token.expires_at.isoformat()}")
        return token

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()


def _decode_token(response: httpx.Response) -> Token:
    """Build a :class:`Token` from a 200 token response."""
    try:
        payload = TokenResponse.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise AuthError("Invalid token response") from exc

    if payload.expires_in <= 0 or not payload.access_token:
        raise AuthError("Invalid token response")

    try:
        return Token(
            secret=payload.access_token,
            expires_at=utcnow() + timedelta(seconds=payload.expires_in),
        )
    except (ValidationError, OverflowError) as exc:
        raise AuthError("Invalid token response") from exc
