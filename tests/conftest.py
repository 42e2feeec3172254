"""Shared test fixtures for kvault.

Provides an isolated config environment, output reset between tests, a Typer
CLI runner, and :class:`FakeVault` -- an in-memory vault plus token endpoint
served through :class:`httpx.MockTransport`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from kvault.output import OutputFormat, OutputManager, reset_output, set_output


VAULT_URL = "https://myvault.vault.example.net"
LOGIN_ENDPOINT = "https://login.example.com/tenant-id"
RESOURCE = "https://vault.example.net"
CHALLENGE = f'Bearer authorization="{LOGIN_ENDPOINT}", resource="{RESOURCE}"'


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager caches sys.stdout/sys.stderr at creation time; CliRunner
    swaps those streams, so a stale manager would write to closed files.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format output manager."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG dirs at tmp_path, clear KVAULT_* env vars, chdir to tmp_path."""
    monkeypatch.setattr("kvault.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["KVAULT_PROFILE", "KVAULT_VAULT_URL"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


# ---------------------------------------------------------------------------
# Fake vault
# ---------------------------------------------------------------------------


class FakeVault:
    """In-memory vault and token endpoint behind one :class:`httpx.MockTransport`.

    Vault requests without ``Authorization: Bearer <issued token>`` get a 401
    with :data:`CHALLENGE`. Token requests to ``LOGIN_ENDPOINT/oauth2/token``
    issue ``token-1``, ``token-2``, ... Every request is recorded.

    Args:
        client_id: Client ID the token endpoint accepts.
        client_secret: Client secret the token endpoint accepts.
    """

    def __init__(self, client_id: str = "my-client", client_secret: str = "s3cret") -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.requests: list[httpx.Request] = []
        self.issued: list[str] = []
        self.expires_in: Any = 3600
        self.secrets: dict[str, list[dict[str, Any]]] = {}
        self.page_size = 25
        self.override: Optional[Callable[[httpx.Request], Optional[httpx.Response]]] = None

    @property
    def vault_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host != "login.example.com"]

    @property
    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "login.example.com"]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "login.example.com":
            return self._token(request)
        if self.override is not None:
            response = self.override(request)
            if response is not None:
                return response
        if request.headers.get("Authorization") not in {f"Bearer {t}" for t in self.issued}:
            return httpx.Response(
                401,
                headers={"WWW-Authenticate": CHALLENGE},
                json={"error": {"code": "Unauthorized", "message": "Request is missing a Bearer token."}},
            )
        return self._vault(request)

    def add_secret(self, name: str, value: str, **extra: Any) -> dict[str, Any]:
        versions = self.secrets.setdefault(name, [])
        version = f"v{len(versions) + 1}"
        item = {
            "id": f"{VAULT_URL}/secrets/{name}/{version}",
            "value": value,
            "attributes": {"enabled": True, "created": 1700000000, "updated": 1700000000},
            **extra,
        }
        versions.append(item)
        return item

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        if form.get("client_id") != self.client_id or form.get("client_secret") != self.client_secret:
            return httpx.Response(401, json={"error": "invalid_client"})
        token = f"token-{len(self.issued) + 1}"
        self.issued.append(token)
        return httpx.Response(200, json={"access_token": token, "expires_in": self.expires_in})

    def _vault(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")
        if parts == ["secrets"]:
            latest = [_metadata(v[-1]) for v in self.secrets.values()]
            return self._page(request, latest)
        if len(parts) >= 2 and parts[0] == "secrets":
            name = parts[1]
            if request.method == "PUT":
                body = json.loads(request.content)
                value = body.pop("value")
                return httpx.Response(200, json=self.add_secret(name, value, **body))
            versions = self.secrets.get(name)
            if not versions:
                return httpx.Response(
                    404,
                    json={"error": {"code": "SecretNotFound", "message": f"Secret not found: {name}"}},
                )
            if len(parts) == 3 and parts[2] == "versions":
                return self._page(request, [_metadata(v) for v in versions])
            item = versions[-1]
            if len(parts) == 3:
                matches = [v for v in versions if v["id"].endswith("/" + parts[2])]
                if not matches:
                    return httpx.Response(404, json={"error": {"code": "SecretNotFound", "message": "no version"}})
                item = matches[0]
            if request.method == "PATCH":
                item.update(json.loads(request.content))
            return httpx.Response(200, json=item)
        return httpx.Response(404)

    def _page(self, request: httpx.Request, items: list[dict[str, Any]]) -> httpx.Response:
        skip = int(request.url.params.get("$skip", "0"))
        page = items[skip:skip + self.page_size]
        body: dict[str, Any] = {"value": page}
        if skip + self.page_size < len(items):
            base = str(request.url).split("?", 1)[0]
            body["nextLink"] = str(
                httpx.URL(base, params={"api-version": "2016-10-01", "$skip": skip + self.page_size})
            )
        else:
            body["nextLink"] = None
        return httpx.Response(200, json=body)


def _metadata(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if k != "value"}


@pytest.fixture
def fake_vault() -> FakeVault:
    return FakeVault()
