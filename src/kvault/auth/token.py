"""Bearer token value type.

A :class:`Token` is an immutable credential with an expiry instant. Validity
is derived on every check (``now < expires_at``), never stored. "No
credential known" is represented by ``None`` wherever a token is optional:
an absent token is never valid and never touches a request.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

AUTHORIZATION = "Authorization"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Token(BaseModel):
    """A bearer credential valid until :attr:`expires_at`.

    Construction fails with :class:`pydantic.ValidationError` when
    ``secret`` is empty or ``expires_at`` is not in the future. Naive
    datetimes are interpreted as UTC.

    Example::

        token = Token(secret="abc", expires_at=utcnow() + timedelta(hours=1))
        authed = token.apply(request)
        assert authed.headers["Authorization"] == "Bearer abc"
    """

    model_config = ConfigDict(frozen=True)

    secret: str = Field(min_length=1, repr=False)
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def _must_be_in_future(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value <= utcnow():
            raise ValueError("token expiry must be in the future")
        return value

    @property
    def authorization(self) -> str:
        """Value for the ``Authorization`` header."""
        return f"Bearer {self.secret}"

    def is_valid(self, at: Optional[datetime] = None) -> bool:
        """Return ``True`` while the token has not expired.

        Args:
            at: Instant to check against. Defaults to now.
        """
        return (at or utcnow()) < self.expires_at

    def apply(self, request: httpx.Request) -> httpx.Request:
        """Return a copy of *request* carrying this token.

        The copy gets its own header map, so the caller's request object is
        left untouched. The body stream is shared with the original.
        """
        headers = request.headers.copy()
        headers[AUTHORIZATION] = self.authorization
        return httpx.Request(
            request.method,
            request.url,
            headers=headers,
            stream=request.stream,
            extensions=dict(request.extensions),
        )
