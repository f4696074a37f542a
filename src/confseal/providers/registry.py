from __future__ import annotations

from importlib.metadata import entry_points
from typing import TYPE_CHECKING, List

import structlog

from confseal.core.errors import (
    ConfigurationError,
    ContractViolationError,
    ProviderError,
    ProviderNotFoundError,
    UnrecoverableError,
)
from confseal.providers import loader
from confseal.providers.base import Provider, ProviderSpec, satisfies_contract

if TYPE_CHECKING:
    from confseal.document.models import ProviderConfig

logger = structlog.get_logger()

ENTRY_POINT_GROUP = "confseal.providers"


def _names_match(provider: Provider, name: str) -> bool:
    return provider.name.casefold() == name.casefold()


def _load_builtin(reference: "ProviderConfig", builtins: tuple[Provider, ...]) -> Provider:
    for builtin in builtins:
        if not _names_match(builtin, reference.provider):
            continue
        try:
            builtin.configure(reference.config)
        except Exception as e:
            logger.debug(
                "builtin_provider_configure_failed",
                provider=builtin.name,
                error=type(e).__name__,
            )
            continue
        return builtin

    raise ProviderNotFoundError(reference.provider)


def _load_plugin(reference: "ProviderConfig") -> Provider:
    module = loader.open_module(reference.plugin)
    symbol = loader.lookup(module, reference.provider, reference.plugin)

    if isinstance(symbol, type):
        try:
            symbol = symbol()
        except Exception as e:
            raise ContractViolationError(reference.provider) from e

    if not satisfies_contract(symbol):
        raise ContractViolationError(reference.provider)

    try:
        symbol.configure(reference.config)
    except Exception as e:
        raise ConfigurationError(reference.provider) from e

    return symbol


def load(reference: "ProviderConfig", *builtins: Provider) -> Provider:
    """Resolve a provider reference into a configured provider.

    Without a plugin location the built-ins are tried in order; the first whose name
    matches (case-insensitively) and which accepts the configuration wins. With a
    plugin location the named symbol is taken from that extension module.

    Raises:
        ProviderNotFoundError: no built-in matched and configured
        ModuleOpenError: the plugin location could not be opened
        SymbolNotFoundError: the plugin does not export the provider
        ContractViolationError: the export is not a provider
        ConfigurationError: the plugin provider rejected its configuration
    """
    if not reference.plugin:
        provider = _load_builtin(reference, builtins)
    else:
        provider = _load_plugin(reference)

    logger.debug("provider_loaded", provider=provider.name, plugin=reference.plugin or None)
    return provider


def load_or_panic(reference: "ProviderConfig", *builtins: Provider) -> Provider:
    """Like ``load`` but escalates any failure as ``UnrecoverableError``."""
    try:
        return load(reference, *builtins)
    except ProviderError as e:
        logger.critical("provider_unavailable", **e.details)
        raise UnrecoverableError(e.message, e.details) from e


def load_provider(reference: "ProviderConfig | None", *providers: Provider) -> Provider:
    """Load the configured provider, defaulting to the first one when unconfigured."""
    if reference is None:
        if not providers:
            raise ValueError("At least one default provider is required")
        return providers[0]

    return load_or_panic(reference, *providers)


class ProviderRegistry:
    """Ordered in-memory registry of built-in providers."""

    def __init__(self) -> None:
        self._providers: List[ProviderSpec] = []
        self._discovered: set[str] = set()

    def register(
        self,
        provider: Provider,
        *,
        version: str | None = None,
        description: str | None = None,
    ) -> None:
        if not satisfies_contract(provider):
            raise TypeError(f"{provider!r} does not implement Provider interface")
        if not provider.name:
            raise ValueError("Provider name is required")
        spec = ProviderSpec(
            name=provider.name,
            provider=provider,
            version=version,
            description=description,
        )
        self._providers.append(spec)

    def discover(self, group: str = ENTRY_POINT_GROUP) -> int:
        """Register providers advertised by installed packages; returns how many."""
        if group in self._discovered:
            return 0
        self._discovered.add(group)

        count = 0
        for ep in entry_points(group=group):
            try:
                candidate = ep.load()
                if isinstance(candidate, type):
                    candidate = candidate()
                self.register(candidate, version=ep.dist.version if ep.dist else None)
            except Exception as e:
                logger.warning("provider_entry_point_failed", entry_point=ep.name, error=str(e))
                continue
            count += 1
        return count

    def builtins(self) -> tuple[Provider, ...]:
        return tuple(spec.provider for spec in self._providers)

    def list(self) -> List[ProviderSpec]:
        return list(self._providers)

    def resolve(self, reference: "ProviderConfig") -> Provider:
        return load(reference, *self.builtins())

    def resolve_or_panic(self, reference: "ProviderConfig") -> Provider:
        return load_or_panic(reference, *self.builtins())


provider_registry = ProviderRegistry()


def register_provider(
    provider: Provider,
    *,
    version: str | None = None,
    description: str | None = None,
) -> None:
    provider_registry.register(provider, version=version, description=description)


def list_providers() -> List[ProviderSpec]:
    return provider_registry.list()
