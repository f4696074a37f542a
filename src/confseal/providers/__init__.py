"""Provider contract, built-in registry and extension loading."""

from confseal.providers.base import Provider, ProviderSpec
from confseal.providers.registry import (
    ProviderRegistry,
    list_providers,
    load,
    load_or_panic,
    load_provider,
    provider_registry,
    register_provider,
)

__all__ = [
    "Provider",
    "ProviderSpec",
    "ProviderRegistry",
    "provider_registry",
    "register_provider",
    "list_providers",
    "load",
    "load_or_panic",
    "load_provider",
]
