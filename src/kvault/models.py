"""Canonical Pydantic models shared across kvault modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`OutputConfig`, :class:`GlobalConfig`, and
    :class:`Profile`.

**Wire models** -- the vault's JSON payloads:
    :class:`SecretAttributes`, :class:`Secret`, :class:`SecretValue`,
    :class:`SecretListPage`, :class:`SecretSetRequest`,
    :class:`SecretUpdateRequest`, :class:`ErrorDetail`, and
    :class:`ErrorResponse`.

Wire models use the service's camelCase names as aliases and accept either
the alias or the Python name on input (``populate_by_name``). Timestamps in
``attributes`` travel as integer UNIX seconds; :data:`UnixTime` converts them
to timezone-aware datetimes and back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PlainSerializer


UnixTime = Annotated[
    datetime,
    PlainSerializer(lambda value: int(value.timestamp()), return_type=int),
]
"""A datetime that is read from and written as integer UNIX seconds."""


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every request made for a profile."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/kvault/config.json``.

    Loaded and saved by :func:`~kvault.config.load_global_config` and
    :func:`~kvault.config.save_global_config`. See
    :func:`~kvault.config.resolve_config` for how it combines with the
    environment and CLI flags.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """Connection settings for one vault.

    Credentials are never stored in the profile itself, only their
    *sources* (``env:VAR``, ``file:/path`` or ``prompt``), which
    :func:`~kvault.config.resolve_credential` turns into values at call time.

    Example::

        Profile(
            name="prod",
            vault_url="https://prod-vault.vault.azure.net",
            client_id_source="env:KVAULT_CLIENT_ID",
            client_secret_source="env:KVAULT_CLIENT_SECRET",
        )
    """

    name: str
    vault_url: str = Field(description="Base URL of the vault")
    api_version: str = Field(default="2016-10-01", description="Vault REST API version")
    client_id_source: str = Field(description="Credential source for the client ID")
    client_secret_source: str = Field(description="Credential source for the client secret")
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Wire models ---


class SecretAttributes(BaseModel):
    """Lifecycle attributes of a secret version."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: Optional[bool] = None
    created: Optional[UnixTime] = None
    updated: Optional[UnixTime] = None
    not_before: Optional[UnixTime] = Field(default=None, alias="nbf")
    expires: Optional[UnixTime] = Field(default=None, alias="exp")
    recovery_level: Optional[str] = Field(
        default=None,
        alias="recoveryLevel",
        validation_alias=AliasChoices("recoveryLevel", "recoverylevel", "recovery_level"),
    )


class Secret(BaseModel):
    """A secret (or one version of it) as returned by list operations.

    ``id`` is the full URL of the secret, optionally ending in a version
    segment: ``https://<vault>/secrets/<name>[/<version>]``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    attributes: Optional[SecretAttributes] = None
    tags: dict[str, str] = Field(default_factory=dict)
    content_type: Optional[str] = Field(default=None, alias="contentType")
    managed: bool = False

    @property
    def name(self) -> str:
        """The secret name parsed from :attr:`id`."""
        return _id_segments(self.id)[0]

    @property
    def version(self) -> Optional[str]:
        """The version segment of :attr:`id`, or ``None`` for an unversioned id."""
        return _id_segments(self.id)[1]


class SecretValue(Secret):
    """A secret version including its value."""

    value: str = ""
    kid: Optional[str] = None


class SecretListPage(BaseModel):
    """One page of a paged list response."""

    model_config = ConfigDict(populate_by_name=True)

    value: list[Secret] = Field(default_factory=list)
    next_link: Optional[str] = Field(default=None, alias="nextLink")


class SecretUpdateAttributes(BaseModel):
    """Attributes accepted by the set and update operations."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: Optional[bool] = None
    not_before: Optional[UnixTime] = Field(default=None, alias="nbf")
    expires: Optional[UnixTime] = Field(default=None, alias="exp")
    recovery_level: Optional[str] = Field(default=None, alias="recoveryLevel")


class SecretSetRequest(BaseModel):
    """PUT body creating a new secret version."""

    model_config = ConfigDict(populate_by_name=True)

    value: str
    content_type: Optional[str] = Field(default=None, alias="contentType")
    tags: Optional[dict[str, str]] = None
    attributes: Optional[SecretUpdateAttributes] = None


class SecretUpdateRequest(BaseModel):
    """PATCH body changing metadata of an existing secret version."""

    model_config = ConfigDict(populate_by_name=True)

    content_type: Optional[str] = Field(default=None, alias="contentType")
    tags: Optional[dict[str, str]] = None
    attributes: Optional[SecretUpdateAttributes] = None


class ErrorDetail(BaseModel):
    """The ``error`` object of a vault error response; nests recursively."""

    model_config = ConfigDict(populate_by_name=True)

    code: str = ""
    message: str = ""
    inner_error: Optional[ErrorDetail] = Field(default=None, alias="innererror")


class ErrorResponse(BaseModel):
    """Envelope of a vault error response."""

    error: ErrorDetail


def _id_segments(secret_id: str) -> tuple[str, Optional[str]]:
    """Split a secret id URL into ``(name, version)``."""
    path = secret_id.split("?", 1)[0].rstrip("/")
    parts = path.split("/")
    try:
        idx = len(parts) - 1 - parts[::-1].index("secrets")
    except ValueError:
        return parts[-1], None
    rest = parts[idx + 1:]
    name = rest[0] if rest else ""
    version = rest[1] if len(rest) > 1 else None
    return name, version
