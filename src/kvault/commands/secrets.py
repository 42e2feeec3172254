"""Secret commands -- ``kvault secrets list | versions | show | set | update``.

Each command resolves the active profile (see
:func:`~kvault.config.resolve_config`), opens the vault with
:meth:`~kvault.vault.KeyVault.from_profile`, and prints the result through
the global output manager. Authentication is implicit: the first request
draws a 401 challenge and the transport exchanges the profile's client
credentials for a token.

Typical workflow::

    kvault secrets list
    kvault secrets set db-password - < password.txt
    kvault secrets show db-password --value-only
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

import typer

from kvault.exceptions import ConfigError, InvalidUsageError, KvaultError
from kvault.models import Secret, SecretAttributes, SecretUpdateAttributes
from kvault.output import (
    OutputFormat,
    error,
    format_response,
    get_output,
    print_data,
    print_table,
    success,
)
from kvault.vault import KeyVault


secrets_app = typer.Typer(no_args_is_help=True)


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Report :class:`KvaultError` on stderr and exit with its code."""
    try:
        yield
    except KvaultError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _open_vault(ctx: typer.Context) -> KeyVault:
    from kvault.config import resolve_config

    obj = ctx.obj or {}
    _, profile = resolve_config(obj.get("profile"), obj.get("vault_url"))
    if profile is None:
        raise ConfigError(
            "No profile selected. Create one with 'kvault config init' "
            "or pass --profile."
        )
    return KeyVault.from_profile(profile)


def _parse_tags(tags: Optional[list[str]]) -> Optional[dict[str, str]]:
    """Turn ``["env=prod", "team=core"]`` into a dict."""
    if not tags:
        return None
    parsed: dict[str, str] = {}
    for item in tags:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Invalid tag '{item}': expected KEY=VALUE")
        parsed[key] = value
    return parsed


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _dump(secret: Secret) -> dict:
    return secret.model_dump(mode="json", by_alias=True, exclude_none=True)


def _fmt_time(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def _print_secrets(secrets: list[Secret], title: str, with_version: bool = False) -> None:
    if get_output().format == OutputFormat.JSON:
        format_response([_dump(s) for s in secrets])
        return

    headers = ["NAME"] + (["VERSION"] if with_version else []) + ["ENABLED", "CONTENT TYPE", "UPDATED"]
    rows = []
    for s in secrets:
        attrs = s.attributes or SecretAttributes()
        enabled = "" if attrs.enabled is None else str(attrs.enabled).lower()
        row = [s.name] + ([s.version or ""] if with_version else [])
        row += [enabled, s.content_type or "", _fmt_time(attrs.updated)]
        rows.append(row)
    print_table(headers, rows, title=title)


@secrets_app.command("list")
def secrets_list(ctx: typer.Context) -> None:
    """List all secrets in the vault (metadata only).

    Example::

        kvault secrets list --json
    """
    with _handle_errors(), _open_vault(ctx) as vault:
        _print_secrets(vault.list_secrets(), title="Secrets")


@secrets_app.command("versions")
def secrets_versions(
    ctx: typer.Context,
    name: str = typer.Argument(help="Secret name."),
) -> None:
    """List every version of a secret."""
    with _handle_errors(), _open_vault(ctx) as vault:
        _print_secrets(vault.list_versions(name), title=f"Versions of {name}", with_version=True)


@secrets_app.command("show")
def secrets_show(
    ctx: typer.Context,
    name: str = typer.Argument(help="Secret name."),
    version: Optional[str] = typer.Option(None, "--version", help="Specific version."),
    value_only: bool = typer.Option(
        False, "--value-only", help="Print only the secret value."
    ),
) -> None:
    """Show a secret, including its value.

    Example::

        kvault secrets show db-password --value-only
    """
    with _handle_errors(), _open_vault(ctx) as vault:
        secret = vault.get_secret(name, version)
    if value_only:
        print_data(secret.value)
    else:
        format_response(_dump(secret))


@secrets_app.command("set")
def secrets_set(
    ctx: typer.Context,
    name: str = typer.Argument(help="Secret name."),
    value: str = typer.Argument(help="Secret value, or '-' to read it from stdin."),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="Content type."),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag as KEY=VALUE; repeatable."),
    expires: Optional[datetime] = typer.Option(None, "--expires", help="Expiry (UTC if no offset)."),
    not_before: Optional[datetime] = typer.Option(
        None, "--not-before", help="Activation time (UTC if no offset)."
    ),
) -> None:
    """Create a new version of a secret."""
    if value == "-":
        value = sys.stdin.read().rstrip("\n")

    with _handle_errors():
        attributes = None
        if expires or not_before:
            attributes = SecretAttributes(expires=_as_utc(expires), not_before=_as_utc(not_before))
        tags = _parse_tags(tag)
        with _open_vault(ctx) as vault:
            secret = vault.set_secret(
                name, value, content_type=content_type, tags=tags, attributes=attributes
            )
    success(f"Stored {secret.name} version {secret.version or '(latest)'}")


@secrets_app.command("update")
def secrets_update(
    ctx: typer.Context,
    name: str = typer.Argument(help="Secret name."),
    version: Optional[str] = typer.Option(None, "--version", help="Specific version."),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="Content type."),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag as KEY=VALUE; repeatable."),
    enabled: Optional[bool] = typer.Option(
        None, "--enable/--disable", help="Enable or disable the version."
    ),
    expires: Optional[datetime] = typer.Option(None, "--expires", help="Expiry (UTC if no offset)."),
) -> None:
    """Change metadata of a secret version; the value is left unchanged."""
    with _handle_errors():
        attributes = None
        if enabled is not None or expires is not None:
            attributes = SecretUpdateAttributes(enabled=enabled, expires=_as_utc(expires))
        tags = _parse_tags(tag)
        with _open_vault(ctx) as vault:
            secret = vault.update_secret(
                name,
                version=version,
                content_type=content_type,
                tags=tags,
                attributes=attributes,
            )
    format_response(_dump(secret))
