"""
Secret stores consumed by declassification.

Core stores (always available):
- Environment variables
- Credentials file (YAML)

Optional stores (loaded on demand):
- HashiCorp Vault (hvac)
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog
import yaml

from confseal.core.errors import SecretStoreError

logger = structlog.get_logger()


def _sanitize_path(path: str) -> str:
    """Mask a secret path for logging, keeping only the first segment."""
    if not path or len(path) < 3:
        return "***"
    if "/" in path:
        return f"{path.split('/', 1)[0]}/***"
    return f"{path[:2]}***"


@runtime_checkable
class SecretStore(Protocol):
    """A store that can resolve secrets by their fully-qualified path."""

    def configure(self, document: Any) -> None:
        ...

    def get_secret(self, path: str) -> str | None:
        ...


class BaseSecretStore(ABC):
    """Base class for secret stores."""

    def configure(self, document: Any) -> None:
        """Prepare the store using the freshly loaded document."""

    @abstractmethod
    def get_secret(self, path: str) -> str | None:
        """Get a secret by path, or None when the store has no value for it."""
        pass

    def list_secrets(self) -> list[str]:
        """List available secret paths."""
        return []


class EnvSecretStore(BaseSecretStore):
    """Environment variable secret store.

    ``svc/cluster/passphrase`` is read from ``SVC_CLUSTER_PASSPHRASE``, optionally
    preceded by a variable prefix.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def get_secret(self, path: str) -> str | None:
        return os.environ.get(self._path_to_env(path))

    def list_secrets(self) -> list[str]:
        """List paths for variables carrying ``prefix``.

        Without a prefix nothing is listed, since every variable in the process would
        match. The mapping from path to variable is lossy: each ``_`` is read back as a
        ``/``, so tag names containing underscores or dashes are not reconstructed.
        """
        secrets = []
        for key in os.environ:
            if self.prefix and key.startswith(self.prefix):
                secrets.append(self._env_to_path(key))
        return secrets

    def _path_to_env(self, path: str) -> str:
        """Convert secret path to environment variable name."""
        normalized = path.replace("/", "_").replace("-", "_").upper()
        return f"{self.prefix}{normalized}"

    def _env_to_path(self, env_key: str) -> str:
        """Convert environment variable name to secret path."""
        without_prefix = env_key[len(self.prefix) :]
        return without_prefix.lower().replace("_", "/")


class FileSecretStore(BaseSecretStore):
    """File-based secret store using a YAML credentials file."""

    def __init__(self, credentials_file: Path):
        self.credentials_file = Path(credentials_file)
        self._cache: dict[str, Any] | None = None

    def configure(self, document: Any) -> None:
        if not self.credentials_file.exists():
            raise SecretStoreError(
                "Credentials file not found", {"file": str(self.credentials_file)}
            )
        try:
            with open(self.credentials_file, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SecretStoreError(
                "Credentials file could not be read", {"file": str(self.credentials_file)}
            ) from e
        if not isinstance(data, dict):
            raise SecretStoreError(
                "Credentials file must contain a mapping", {"file": str(self.credentials_file)}
            )
        self._cache = data

    def _load_credentials(self) -> dict[str, Any]:
        if self._cache is not None:
            return self._cache

        if not self.credentials_file.exists():
            self._cache = {}
            return self._cache

        try:
            with open(self.credentials_file, encoding="utf-8") as f:
                self._cache = yaml.safe_load(f) or {}
        except Exception as e:
            logger.warning(
                "failed_to_load_credentials",
                file=str(self.credentials_file),
                error=str(e),
            )
            self._cache = {}

        return self._cache

    def get_secret(self, path: str) -> str | None:
        current: Any = self._load_credentials()
        for part in path.split("/"):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return None

        if current is None or isinstance(current, (dict, list)):
            return None
        return str(current)

    def list_secrets(self) -> list[str]:
        return self._flatten_keys(self._load_credentials())

    def _flatten_keys(self, data: dict, prefix: str = "") -> list[str]:
        keys = []
        for k, v in data.items():
            path = f"{prefix}/{k}" if prefix else str(k)
            if isinstance(v, dict):
                keys.extend(self._flatten_keys(v, path))
            else:
                keys.append(path)
        return keys


def __getattr__(name: str):
    """Lazy load optional stores to keep their client libraries off the import path."""
    if name == "VaultSecretStore":
        from confseal.secrets.backends import VaultSecretStore

        return VaultSecretStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "SecretStore",
    "BaseSecretStore",
    "EnvSecretStore",
    "FileSecretStore",
]
# VaultSecretStore available via __getattr__
