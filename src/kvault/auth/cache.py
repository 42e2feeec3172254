"""Token cache abstraction and the default in-memory implementation.

A cache holds at most one :class:`~kvault.auth.token.Token`. Entries are
replaced wholesale and never evicted on expiry: a stale token is discovered
lazily, when the vault rejects it with a 401. Subclass :class:`TokenCache`
to plug in shared or persistent storage.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Optional

from kvault.auth.token import Token


class TokenCache(ABC):
    """Single-slot storage for the most recently acquired token."""

    @abstractmethod
    def get(self) -> Optional[Token]:
        """Return the stored token, or ``None`` if nothing has been stored.

        Callers must still check :meth:`Token.is_valid`; a stored token may
        have expired.
        """
        ...

    @abstractmethod
    def store(self, token: Token) -> None:
        """Replace the stored token with *token*."""
        ...


class MemoryTokenCache(TokenCache):
    """Process-local cache, the default for :func:`~kvault.auth.create_default_transport`."""

    def __init__(self) -> None:
        self._token: Optional[Token] = None
        self._lock = threading.Lock()

    def get(self) -> Optional[Token]:
        with self._lock:
            return self._token

    def store(self, token: Token) -> None:
        with self._lock:
            self._token = token
