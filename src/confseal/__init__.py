"""
confseal - configuration bootstrapping for networked services.

Provides:
- Load-or-create of a persisted configuration document
- Declassification: overlaying secret store values onto string/integer fields
- Provider resolution from built-ins or extension modules
"""

from confseal.core.errors import (
    ConfigurationError,
    ConfsealError,
    ContractViolationError,
    ModuleOpenError,
    ParseError,
    PersistenceError,
    ProviderError,
    ProviderNotFoundError,
    ReadError,
    SecretStoreError,
    SymbolNotFoundError,
    UnrecoverableError,
)
from confseal.document.fields import config_field, field_name
from confseal.document.lifecycle import ConfigLifecycle, LifecycleState, read_or_create
from confseal.document.models import (
    ClusterConfig,
    Config,
    ProviderConfig,
    ServiceConfig,
    TLSConfig,
    VaultConfig,
)
from confseal.providers import (
    Provider,
    ProviderRegistry,
    load_provider,
    provider_registry,
    register_provider,
)
from confseal.secrets import BaseSecretStore, EnvSecretStore, FileSecretStore, SecretStore
from confseal.secrets.declassify import declassify

__version__ = "0.1.0"

__all__ = [
    # Document
    "config_field",
    "field_name",
    "ConfigLifecycle",
    "LifecycleState",
    "read_or_create",
    "Config",
    "ServiceConfig",
    "TLSConfig",
    "VaultConfig",
    "ProviderConfig",
    "ClusterConfig",
    # Secrets
    "SecretStore",
    "BaseSecretStore",
    "EnvSecretStore",
    "FileSecretStore",
    "declassify",
    # Providers
    "Provider",
    "ProviderRegistry",
    "provider_registry",
    "register_provider",
    "load_provider",
    # Errors
    "ConfsealError",
    "ProviderError",
    "ProviderNotFoundError",
    "ModuleOpenError",
    "SymbolNotFoundError",
    "ContractViolationError",
    "ConfigurationError",
    "UnrecoverableError",
    "ReadError",
    "ParseError",
    "PersistenceError",
    "SecretStoreError",
]
