"""
Standard configuration sections shared by services.

Field tags double as the persisted key and as the secret path segment, so
``ServiceConfig().cluster.passphrase`` is looked up as ``<prefix>/cluster/passphrase``.
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from confseal.document import tls
from confseal.document.fields import config_field
from confseal.providers import registry
from confseal.providers.base import Provider


@dataclass
class VaultConfig:
    """Vault configuration."""

    address: str = config_field("address", default="")
    application: str = config_field("app", default="")


@runtime_checkable
class Config(Protocol):
    """A document that can tell secret stores where the vault lives."""

    def vault(self) -> VaultConfig | None:
        ...


@dataclass
class TLSConfig:
    """TLS listener configuration."""

    listen_addr: str = config_field("listen", default=":443")
    # Inline PEM text or a path to the file
    certificate: str = config_field("certificate", default="")
    private_key: str = config_field("private", default="")

    def materialize(self, directory: Path) -> tuple[Path, Path]:
        return tls.materialize(self.certificate, self.private_key, directory)

    def load(self, directory: Path | None = None) -> ssl.SSLContext:
        return tls.load_context(self.certificate, self.private_key, directory)


@dataclass
class ProviderConfig:
    """Declarative reference to a provider.

    ``provider`` names either a built-in or, when ``plugin`` is set, the attribute of
    the extension module at that location. ``config`` is handed to the provider's
    ``configure()`` call.
    """

    provider: str = config_field("provider", default="")
    plugin: str = config_field("plugin", default="", omitempty=True)
    config: dict[str, Any] = config_field("config", default_factory=dict, omitempty=True)

    def load(self, *builtins: Provider) -> Provider:
        return registry.load(self, *builtins)

    def load_or_panic(self, *builtins: Provider) -> Provider:
        return registry.load_or_panic(self, *builtins)


@dataclass
class ClusterConfig:
    """Cluster membership configuration."""

    # Must be unique in the cluster; defaults to the node's external address when empty
    node_name: str = config_field("name", default="", omitempty=True)
    listen_addr: str = config_field("listen", default=":4000")
    advertise_addr: str = config_field("advertise", default="public:4000")
    seed: str = config_field("seed", default="")
    # Primary gossip encryption key
    passphrase: str = config_field("passphrase", default="", omitempty=True)


@dataclass
class ServiceConfig:
    """Default document for a service bootstrapped by confseal."""

    name: str = config_field("name", default="")
    listen_addr: str = config_field("listen", default=":8080")
    license: str = config_field("license", default="")
    debug: bool = config_field("debug", default=False, omitempty=True)
    tls: TLSConfig | None = config_field("tls", default=None, omitempty=True)
    cluster: ClusterConfig | None = config_field("cluster", default=None, omitempty=True)
    storage: ProviderConfig | None = config_field("storage", default=None, omitempty=True)
    vault_config: VaultConfig = config_field("vault", default_factory=VaultConfig)
    tags: list[str] = field(default_factory=list)

    def vault(self) -> VaultConfig | None:
        return self.vault_config
