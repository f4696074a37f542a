"""
Optional secret stores - lazy loaded when needed.

These stores require additional client libraries:
- VaultSecretStore: hvac
"""

from __future__ import annotations

import os
from typing import Any

import structlog

from confseal.core.errors import SecretStoreError
from confseal.secrets import BaseSecretStore, _sanitize_path

logger = structlog.get_logger()

DEFAULT_MOUNT_POINT = "secret"


def _sanitize_error(exc: Exception) -> str:
    """Sanitize error message to avoid leaking sensitive details."""
    return type(exc).__name__


class VaultSecretStore(BaseSecretStore):
    """HashiCorp Vault (KV v2) secret store.

    The vault address and application come from the document's ``vault()`` section.
    ``svc/cluster/passphrase`` reads key ``passphrase`` of secret ``svc/cluster``.
    """

    def __init__(self, mount_point: str = DEFAULT_MOUNT_POINT, namespace: str | None = None):
        self.mount_point = mount_point
        self.namespace = namespace
        self.address: str | None = None
        self.application: str | None = None
        self._client: Any = None
        self._cache: dict[str, dict[str, Any] | None] = {}

    def configure(self, document: Any) -> None:
        vault_section = getattr(document, "vault", None)
        vault_config = vault_section() if callable(vault_section) else None
        if vault_config is None or not vault_config.address:
            raise SecretStoreError("Vault address is not configured")

        self.address = vault_config.address
        self.application = vault_config.application or None
        self._cache = {}
        self._client = self._connect()

    def _connect(self) -> Any:
        import hvac

        client = hvac.Client(url=self.address, namespace=self.namespace)

        token = os.environ.get("VAULT_TOKEN")
        try:
            if token:
                client.token = token
            elif self.application:
                secret_id = os.environ.get("VAULT_SECRET_ID")
                client.auth.approle.login(role_id=self.application, secret_id=secret_id)
            authenticated = client.is_authenticated()
        except Exception as e:
            raise SecretStoreError(
                "Vault authentication failed",
                {"address": self.address, "error": _sanitize_error(e)},
            ) from e

        if not authenticated:
            raise SecretStoreError("Vault authentication failed", {"address": self.address})

        logger.info("vault_store_configured", address=self.address)
        return client

    def _read(self, secret_path: str) -> dict[str, Any] | None:
        if secret_path in self._cache:
            return self._cache[secret_path]

        try:
            response = self._client.secrets.kv.v2.read_secret_version(
                path=secret_path,
                mount_point=self.mount_point,
                raise_on_deleted_version=True,
            )
            data = response.get("data", {}).get("data", {})
        except Exception as e:
            logger.debug(
                "vault_secret_not_found",
                path=_sanitize_path(secret_path),
                error=_sanitize_error(e),
            )
            data = None

        self._cache[secret_path] = data
        return data

    def get_secret(self, path: str) -> str | None:
        if self._client is None or "/" not in path:
            return None

        secret_path, key = path.rsplit("/", 1)
        data = self._read(secret_path)
        if not data or key not in data:
            return None

        value = data[key]
        return None if value is None else str(value)

    def list_secrets(self) -> list[str]:
        if self._client is None:
            return []
        try:
            response = self._client.secrets.kv.v2.list_secrets(
                path="", mount_point=self.mount_point
            )
            return response.get("data", {}).get("keys", [])
        except Exception as e:
            logger.warning("vault_list_secrets_failed", error=_sanitize_error(e))
            return []


__all__ = [
    "VaultSecretStore",
]
