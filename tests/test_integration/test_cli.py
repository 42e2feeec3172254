"""End-to-end CLI tests: config commands on disk, secret commands against FakeVault."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from conftest import VAULT_URL, FakeVault
from kvault import __version__
from kvault.app import app
from kvault.config import list_profiles, load_global_config, load_profile, save_profile
from kvault.exit_codes import EXIT_AUTH_FAILURE, EXIT_INVALID_USAGE, EXIT_NOT_FOUND
from kvault.models import Profile
from kvault.vault import KeyVault


@pytest.fixture
def vault_env(isolated_config: Path, fake_vault: FakeVault, monkeypatch: pytest.MonkeyPatch) -> FakeVault:
    """A saved ``prod`` profile whose vault is *fake_vault*."""
    monkeypatch.setenv("KV_CLIENT_ID", "my-client")
    monkeypatch.setenv("KV_CLIENT_SECRET", "s3cret")
    save_profile(
        Profile(
            name="prod",
            vault_url=VAULT_URL,
            client_id_source="env:KV_CLIENT_ID",
            client_secret_source="env:KV_CLIENT_SECRET",
        )
    )

    open_profile = KeyVault.from_profile
    monkeypatch.setattr(
        KeyVault,
        "from_profile",
        classmethod(lambda cls, profile, transport=None: open_profile(profile, transport=fake_vault.transport())),
    )
    return fake_vault


def test_version(cli_runner) -> None:
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"kvault {__version__}" in result.output


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    INIT = [
        "config", "init", "prod",
        "--vault-url", VAULT_URL,
        "--client-id-source", "env:KV_CLIENT_ID",
        "--client-secret-source", "file:~/.kv-secret",
    ]

    def test_init_saves_profile(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, self.INIT + ["--timeout", "5", "--insecure", "--default"])
        assert result.exit_code == 0, result.output

        profile = load_profile("prod")
        assert profile.vault_url == VAULT_URL
        assert profile.client_secret_source == "file:~/.kv-secret"
        assert profile.request.timeout == 5.0
        assert profile.request.verify_ssl is False
        assert load_global_config().default_profile == "prod"

    def test_init_refuses_overwrite(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, self.INIT)
        result = cli_runner.invoke(app, self.INIT)
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "already exists" in result.output

        result = cli_runner.invoke(app, self.INIT + ["--force", "--api-version", "7.4"])
        assert result.exit_code == 0, result.output
        assert load_profile("prod").api_version == "7.4"

    def test_init_rejects_bad_source(self, cli_runner, isolated_config: Path) -> None:
        args = list(self.INIT)
        args[args.index("env:KV_CLIENT_ID")] = "plaintext-id"
        result = cli_runner.invoke(app, args)
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "--client-id-source" in result.output
        assert list_profiles() == []

    def test_list_marks_default(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, self.INIT + ["--default"])
        cli_runner.invoke(app, ["config", "init", "dev", "--vault-url", "https://dev.example.net",
                                "--client-id-source", "prompt", "--client-secret-source", "prompt"])

        result = cli_runner.invoke(app, ["--plain", "-q", "config", "list"])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["DEFAULT\tNAME", "\tdev", "*\tprod"]

    def test_list_empty(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "list"])
        assert result.exit_code == 0
        assert "No profiles configured" in result.output

    def test_show_json(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, self.INIT)
        result = cli_runner.invoke(app, ["--json", "-q", "config", "show", "prod"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["name"] == "prod"
        assert data["vault_url"] == VAULT_URL

    def test_use_and_delete(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, self.INIT)
        assert cli_runner.invoke(app, ["config", "use", "prod"]).exit_code == 0
        assert load_global_config().default_profile == "prod"

        result = cli_runner.invoke(app, ["config", "delete", "prod"])
        assert result.exit_code == 0, result.output
        assert list_profiles() == []
        assert load_global_config().default_profile is None

    def test_use_unknown(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "use", "ghost"])
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "does not exist" in result.output


# ---------------------------------------------------------------------------
# secrets
# ---------------------------------------------------------------------------


class TestSecretCommands:
    def test_no_profile(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["secrets", "list"])
        assert result.exit_code == 1
        assert "No profile selected" in result.output

    def test_set_then_show_value(self, cli_runner, vault_env: FakeVault) -> None:
        result = cli_runner.invoke(app, ["secrets", "set", "db-password", "hunter2"])
        assert result.exit_code == 0, result.output
        assert "Stored db-password version v1" in result.output

        result = cli_runner.invoke(app, ["-q", "secrets", "show", "db-password", "--value-only"])
        assert result.exit_code == 0, result.output
        assert result.output == "hunter2\n"
        assert vault_env.token_requests

    def test_set_from_stdin(self, cli_runner, vault_env: FakeVault) -> None:
        result = cli_runner.invoke(app, ["-q", "secrets", "set", "cert", "-"], input="line-1\nline-2\n")
        assert result.exit_code == 0, result.output
        assert vault_env.secrets["cert"][-1]["value"] == "line-1\nline-2"

    def test_set_with_metadata(self, cli_runner, vault_env: FakeVault) -> None:
        result = cli_runner.invoke(
            app,
            ["-q", "secrets", "set", "api-key", "abc", "--content-type", "text/plain",
             "--tag", "env=prod", "--tag", "team=core", "--expires", "2030-01-01"],
        )
        assert result.exit_code == 0, result.output

        (put,) = [r for r in vault_env.vault_requests if r.method == "PUT" and "Authorization" in r.headers]
        assert json.loads(put.content) == {
            "value": "abc",
            "contentType": "text/plain",
            "tags": {"env": "prod", "team": "core"},
            "attributes": {"exp": int(datetime(2030, 1, 1, tzinfo=timezone.utc).timestamp())},
        }

    def test_set_bad_tag(self, cli_runner, vault_env: FakeVault) -> None:
        result = cli_runner.invoke(app, ["secrets", "set", "x", "y", "--tag", "novalue"])
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "KEY=VALUE" in result.output
        assert vault_env.requests == []

    def test_list_json(self, cli_runner, vault_env: FakeVault) -> None:
        vault_env.add_secret("db", "x", contentType="text/plain")
        vault_env.add_secret("api-key", "y")

        result = cli_runner.invoke(app, ["--json", "-q", "secrets", "list"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [item["id"] for item in data] == [f"{VAULT_URL}/secrets/db/v1", f"{VAULT_URL}/secrets/api-key/v1"]
        assert data[0]["contentType"] == "text/plain"
        assert all("value" not in item for item in data)

    def test_list_plain(self, cli_runner, vault_env: FakeVault) -> None:
        vault_env.add_secret("db", "x")

        result = cli_runner.invoke(app, ["--plain", "-q", "secrets", "list"])
        assert result.exit_code == 0, result.output
        header, row = result.output.splitlines()
        assert header == "NAME\tENABLED\tCONTENT TYPE\tUPDATED"
        assert row.startswith("db\ttrue\t\t2023-11-14")

    def test_versions(self, cli_runner, vault_env: FakeVault) -> None:
        vault_env.add_secret("db", "a")
        vault_env.add_secret("db", "b")

        result = cli_runner.invoke(app, ["--plain", "-q", "secrets", "versions", "db"])
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0].startswith("NAME\tVERSION\t")
        assert [line.split("\t")[1] for line in lines[1:]] == ["v1", "v2"]

    def test_show_missing(self, cli_runner, vault_env: FakeVault) -> None:
        result = cli_runner.invoke(app, ["secrets", "show", "missing"])
        assert result.exit_code == EXIT_NOT_FOUND
        assert "SecretNotFound" in result.output

    def test_show_version_json(self, cli_runner, vault_env: FakeVault) -> None:
        vault_env.add_secret("db", "old")
        vault_env.add_secret("db", "new")

        result = cli_runner.invoke(app, ["--json", "-q", "secrets", "show", "db", "--version", "v1"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["value"] == "old"

    def test_update_disable(self, cli_runner, vault_env: FakeVault) -> None:
        vault_env.add_secret("db", "x")

        result = cli_runner.invoke(app, ["--json", "-q", "secrets", "update", "db", "--disable"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["attributes"] == {"enabled": False}
        (patch_request,) = [r for r in vault_env.vault_requests if r.method == "PATCH" and "Authorization" in r.headers]
        assert json.loads(patch_request.content) == {"attributes": {"enabled": False}}

    def test_vault_url_override(self, cli_runner, vault_env: FakeVault) -> None:
        result = cli_runner.invoke(
            app, ["--vault-url", "https://other.vault.example.net", "-q", "secrets", "list"]
        )
        assert result.exit_code == 0, result.output
        assert vault_env.vault_requests[0].url.host == "other.vault.example.net"

    def test_bad_credentials(self, cli_runner, vault_env: FakeVault, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KV_CLIENT_SECRET", "wrong")

        result = cli_runner.invoke(app, ["secrets", "list"])
        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "401 Unauthorized" in result.output
