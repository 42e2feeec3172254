"""Exception hierarchy for kvault.

All exceptions inherit from :class:`KvaultError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`kvault.exit_codes`.
The CLI entry point in :func:`kvault.app.main` catches ``KvaultError`` and
exits with the matching code.

Subclass hierarchy::

    KvaultError               (exit 1)
    +-- InvalidUsageError     (exit 2)
    +-- AuthError             (exit 3)
    |   +-- ChallengeError    (exit 3)
    +-- NotFoundError         (exit 4)
    +-- ServerError           (exit 5)
    +-- ConnectionError_      (exit 6)
    +-- NonReplayableBodyError (exit 1)
    +-- KeyVaultError         (exit derived from HTTP status)
    +-- ConfigError           (exit 1)

Responses with a non-401 status (or a second 401) are not exceptions at the
transport level: :class:`~kvault.auth.transport.AuthenticatingTransport`
hands them back unchanged and the JSON helpers in
:mod:`kvault.client.json_client` turn them into :class:`KeyVaultError` or one
of the status-mapped errors above.
"""

from __future__ import annotations

from typing import Optional

from kvault.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class KvaultError(Exception):
    """Base exception for all kvault errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(KvaultError):
    """Raised for invalid CLI arguments (e.g. a malformed ``--tag``)."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(KvaultError):
    """Raised when the token exchange fails.

    Covers an unreachable token endpoint, a non-200 status from it, and a
    token payload with an empty ``access_token`` or unusable ``expires_in``.

    Args:
        message: Error description. For non-200 token responses this is the
            HTTP status line, e.g. ``"400 Bad Request"``.
        status_code: HTTP status of the token response, when there was one.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ChallengeError(AuthError):
    """Raised when a 401 carries a missing or malformed ``WWW-Authenticate`` header."""


class NotFoundError(KvaultError):
    """Raised when the vault returns HTTP 404 without an error payload."""

    exit_code = EXIT_NOT_FOUND


class ServerError(KvaultError):
    """Raised for other non-200 statuses that carry no error payload."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(KvaultError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class NonReplayableBodyError(KvaultError):
    """Raised when a request must be retried but its body was a one-shot stream.

    The token obtained from the challenge is still stored in the cache, so
    re-issuing the request with a fresh body succeeds without another
    exchange.
    """


class KeyVaultError(KvaultError):
    """Error payload returned by the vault for a non-200 response.

    Mirrors ``{"error": {"code": ..., "message": ..., "innererror": {...}}}``.
    The exit code follows the HTTP status: 401/403 map to
    :data:`~kvault.exit_codes.EXIT_AUTH_FAILURE`, 404 to
    :data:`~kvault.exit_codes.EXIT_NOT_FOUND`, anything else to
    :data:`~kvault.exit_codes.EXIT_SERVER_ERROR`.

    Args:
        code: Service error code, e.g. ``"SecretNotFound"``.
        message: Service error message.
        status_code: HTTP status of the response.
        inner_error: Nested error with the same shape, if present.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int,
        inner_error: Optional[KeyVaultError] = None,
    ):
        super().__init__(f"KeyVault: {code}: {message}", exit_code=_exit_code_for(status_code))
        self.code = code
        self.message = message
        self.status_code = status_code
        self.inner_error = inner_error


class ConfigError(KvaultError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


def _exit_code_for(status_code: int) -> int:
    if status_code in (401, 403):
        return EXIT_AUTH_FAILURE
    if status_code == 404:
        return EXIT_NOT_FOUND
    return EXIT_SERVER_ERROR
