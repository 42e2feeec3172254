"""kvault -- Key Vault secrets client with challenge-driven authentication.

The service answers unauthenticated requests with ``401`` and a
``WWW-Authenticate: Bearer authorization="...", resource="..."`` challenge.
kvault reads that challenge, exchanges client credentials for a bearer token
at the advertised endpoint, and replays the request once with the new token.

Typical library usage::

    from kvault.auth import create_default_transport
    from kvault.client import KeyVaultClient
    from kvault.vault import KeyVault

    transport = create_default_transport("client-id", "client-secret")
    with KeyVault(KeyVaultClient(transport), "https://myvault.vault.azure.net") as vault:
        for secret in vault.list_secrets():
            print(secret.name)

Modules:
    auth: Challenge parsing, tokens, token cache, acquisition, and the
        authenticating transport.
    client: JSON request helpers with typed error mapping.
    vault: Secret resource operations (list, versions, get, set, update).
    models: Pydantic models for configuration and wire payloads.
    config: XDG-aware profiles and credential source resolution.
    output: stdout/stderr formatting system with Rich support.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
