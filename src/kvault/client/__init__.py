"""JSON request helpers for vault endpoints.

See :class:`~kvault.client.json_client.KeyVaultClient`.
"""

from kvault.client.json_client import KeyVaultClient

__all__ = ["KeyVaultClient"]
