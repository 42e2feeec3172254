"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to an error category and is referenced by the
corresponding :class:`~kvault.exceptions.KvaultError` subclass, so shell
scripts can branch on ``$?`` without parsing stderr.

Example::

    $ kvault secrets show db-password
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the token exchange was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""The challenge could not be parsed or the token exchange failed."""

EXIT_NOT_FOUND = 4
"""The secret or version does not exist (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The vault returned an unexpected error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
