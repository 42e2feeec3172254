"""Config commands -- manage vault connection profiles.

Provides ``kvault config init | list | show | use | delete``. Profiles store
the vault URL and the *sources* of the client credentials, never the
credentials themselves.

Example::

    kvault config init prod \
        --vault-url https://prod-vault.vault.azure.net \
        --client-id-source env:KVAULT_CLIENT_ID \
        --client-secret-source file:~/.secrets/kvault-prod
"""

from __future__ import annotations

from typing import Optional

import typer

from kvault.output import error, format_response, info, print_table, success, suggest


config_app = typer.Typer(no_args_is_help=True)

_SOURCE_PREFIXES = ("env:", "file:")


def _check_source(option: str, source: str) -> None:
    if source != "prompt" and not source.startswith(_SOURCE_PREFIXES):
        error(f"{option} must be env:VAR, file:/path or prompt, got: {source}")
        raise typer.Exit(code=2)


@config_app.command("init")
def config_init(
    name: str = typer.Argument(help="Profile name."),
    vault_url: str = typer.Option(..., "--vault-url", help="Vault base URL."),
    client_id_source: str = typer.Option(
        ..., "--client-id-source", help="Client ID source: env:VAR, file:/path or prompt."
    ),
    client_secret_source: str = typer.Option(
        ..., "--client-secret-source", help="Client secret source: env:VAR, file:/path or prompt."
    ),
    api_version: str = typer.Option("2016-10-01", "--api-version", help="Vault REST API version."),
    timeout: float = typer.Option(30.0, "--timeout", help="Request timeout in seconds."),
    insecure: bool = typer.Option(False, "--insecure", help="Skip TLS certificate verification."),
    make_default: bool = typer.Option(False, "--default", help="Make this the default profile."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing profile."),
) -> None:
    """Create or overwrite a connection profile."""
    from kvault.config import load_global_config, profile_exists, save_global_config, save_profile
    from kvault.models import Profile, RequestConfig

    _check_source("--client-id-source", client_id_source)
    _check_source("--client-secret-source", client_secret_source)

    if profile_exists(name) and not force:
        error(f"Profile '{name}' already exists.")
        suggest("Use --force to overwrite it.")
        raise typer.Exit(code=2)

    profile = Profile(
        name=name,
        vault_url=vault_url,
        api_version=api_version,
        client_id_source=client_id_source,
        client_secret_source=client_secret_source,
        request=RequestConfig(timeout=timeout, verify_ssl=not insecure),
    )
    save_profile(profile)

    if make_default:
        config = load_global_config()
        config.default_profile = name
        save_global_config(config)

    success(f"Saved profile '{name}'.")
    suggest(f"Try: kvault -p {name} secrets list")


@config_app.command("list")
def config_list() -> None:
    """List profiles; the default is marked with ``*``."""
    from kvault.config import list_profiles, load_global_config

    names = list_profiles()
    if not names:
        info("No profiles configured.")
        suggest("Create one with: kvault config init NAME --vault-url URL ...")
        return
    default = load_global_config().default_profile
    print_table(
        ["DEFAULT", "NAME"],
        [["*" if n == default else "", n] for n in names],
        title="Profiles",
    )


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Profile name; defaults to the active one."),
) -> None:
    """Show a profile as JSON."""
    from kvault.config import resolve_config
    from kvault.exceptions import ConfigError

    obj = ctx.obj or {}
    try:
        _, profile = resolve_config(name or obj.get("profile"), obj.get("vault_url"))
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    if profile is None:
        error("No active profile.")
        raise typer.Exit(code=2)
    format_response(profile.model_dump(mode="json"))


@config_app.command("use")
def config_use(name: str = typer.Argument(help="Profile to make the default.")) -> None:
    """Set the default profile."""
    from kvault.config import load_global_config, profile_exists, save_global_config

    if not profile_exists(name):
        error(f"Profile '{name}' does not exist.")
        raise typer.Exit(code=2)
    config = load_global_config()
    config.default_profile = name
    save_global_config(config)
    success(f"Default profile is now '{name}'.")


@config_app.command("delete")
def config_delete(name: str = typer.Argument(help="Profile to delete.")) -> None:
    """Delete a profile, clearing it as default if needed."""
    from kvault.config import delete_profile, load_global_config, save_global_config
    from kvault.exceptions import ConfigError

    try:
        delete_profile(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None

    config = load_global_config()
    if config.default_profile == name:
        config.default_profile = None
        save_global_config(config)
    success(f"Deleted profile '{name}'.")
