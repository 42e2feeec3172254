"""Secret operations against a single vault.

:class:`KeyVault` maps the vault's secret endpoints onto methods::

    GET   {vault}/secrets                      list_secrets()
    GET   {vault}/secrets/{name}/versions      list_versions(name)
    GET   {vault}/secrets/{name}[/{version}]   get_secret(name, version)
    PUT   {vault}/secrets/{name}               set_secret(name, value, ...)
    PATCH {vault}/secrets/{name}[/{version}]   update_secret(name, ...)

Every call carries ``?api-version=``. List endpoints are paged: each page
holds ``value`` and an optional ``nextLink`` URL (which already includes the
API version) that is followed until it is empty.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx

from kvault.auth import create_default_transport
from kvault.client import KeyVaultClient
from kvault.config import resolve_credential
from kvault.models import (
    Profile,
    Secret,
    SecretAttributes,
    SecretListPage,
    SecretSetRequest,
    SecretUpdateAttributes,
    SecretUpdateRequest,
    SecretValue,
)

DEFAULT_API_VERSION = "2016-10-01"
API_VERSION_PARAM = "api-version"


class KeyVault:
    """A vault reachable through a :class:`~kvault.client.KeyVaultClient`.

    Args:
        client: JSON client, normally built on an authenticating transport.
        url: Vault base URL, e.g. ``https://myvault.vault.azure.net``.
        api_version: REST API version sent with every request.

    Example::

        with KeyVault(client, "https://myvault.vault.azure.net") as vault:
            value = vault.get_secret("db-password").value
    """

    def __init__(
        self,
        client: KeyVaultClient,
        url: str,
        api_version: str = DEFAULT_API_VERSION,
    ) -> None:
        self._client = client
        self.url = url.rstrip("/")
        self.api_version = api_version or DEFAULT_API_VERSION

    @classmethod
    def from_profile(
        cls,
        profile: Profile,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> KeyVault:
        """Open the vault described by *profile*.

        Resolves the client credentials from their configured sources and
        wires an authenticating transport with an in-memory token cache.

        Args:
            profile: Connection profile.
            transport: Inner transport override (tests use
                :class:`httpx.MockTransport`).

        Raises:
            ConfigError: If a credential source cannot be resolved.
        """
        client_id = resolve_credential(profile.client_id_source)
        client_secret = resolve_credential(profile.client_secret_source)
        auth_transport = create_default_transport(
            client_id,
            client_secret,
            transport=transport,
            verify=profile.request.verify_ssl,
            timeout=profile.request.timeout,
        )
        client = KeyVaultClient(auth_transport, timeout=profile.request.timeout)
        return cls(client, profile.vault_url, profile.api_version)

    def __enter__(self) -> KeyVault:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def secret_url(self, name: str, version: Optional[str] = None) -> str:
        """Absolute URL of a secret, or of one of its versions."""
        url = f"{self.url}/secrets/{quote(name, safe='')}"
        if version:
            url = f"{url}/{quote(version, safe='')}"
        return url

    def list_secrets(self) -> list[Secret]:
        """Return every secret in the vault (latest version metadata, no values)."""
        return self._list(f"{self.url}/secrets", SecretListPage.model_validate)

    def list_versions(self, name: str) -> list[Secret]:
        """Return every version of secret *name* (metadata only)."""
        return self._list(f"{self.secret_url(name)}/versions", SecretListPage.model_validate)

    def get_secret(self, name: str, version: Optional[str] = None) -> SecretValue:
        """Fetch a secret value; the latest version unless *version* is given."""
        data = self._client.get_json(self.secret_url(name, version), params=self._params())
        return SecretValue.model_validate(data)

    def set_secret(
        self,
        name: str,
        value: str,
        content_type: Optional[str] = None,
        tags: Optional[dict[str, str]] = None,
        attributes: Optional[SecretAttributes] = None,
    ) -> SecretValue:
        """Create a new version of *name* holding *value*.

        Only ``nbf``, ``exp`` and the recovery level are taken from
        *attributes*; the service assigns the rest.
        """
        request = SecretSetRequest(
            value=value,
            content_type=content_type,
            tags=tags,
            attributes=_settable_attributes(attributes),
        )
        data = self._client.put_json(
            self.secret_url(name), _dump(request), params=self._params()
        )
        return SecretValue.model_validate(data)

    def update_secret(
        self,
        name: str,
        version: Optional[str] = None,
        content_type: Optional[str] = None,
        tags: Optional[dict[str, str]] = None,
        attributes: Optional[SecretUpdateAttributes] = None,
    ) -> SecretValue:
        """Change metadata of an existing version without touching its value."""
        request = SecretUpdateRequest(
            content_type=content_type, tags=tags, attributes=attributes
        )
        data = self._client.patch_json(
            self.secret_url(name, version), _dump(request), params=self._params()
        )
        return SecretValue.model_validate(data)

    def _params(self) -> dict[str, str]:
        return {API_VERSION_PARAM: self.api_version}

    def _list(self, url: str, decode_page: Callable[[Any], SecretListPage]) -> list[Secret]:
        """Collect all pages starting at *url*."""
        items: list[Secret] = []
        next_url: Optional[str] = url
        params: Optional[dict[str, str]] = self._params()
        while next_url:
            page = decode_page(self._client.get_json(next_url, params=params))
            items.extend(page.value)
            next_url = page.next_link
            params = None
        return items


def _settable_attributes(
    attributes: Optional[SecretAttributes],
) -> Optional[SecretUpdateAttributes]:
    if attributes is None:
        return None
    settable = SecretUpdateAttributes(
        not_before=_non_epoch(attributes.not_before),
        expires=_non_epoch(attributes.expires),
        recovery_level=attributes.recovery_level or None,
    )
    if settable == SecretUpdateAttributes():
        return None
    return settable


def _non_epoch(value: Optional[datetime]) -> Optional[datetime]:
    """Treat the zero timestamp as unset."""
    if value is None or value.timestamp() == 0:
        return None
    return value


def _dump(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
