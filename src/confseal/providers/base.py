from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class Provider(Protocol):
    """Minimal provider interface: a name and a way to configure it.

    ``configure`` raises when the given parameters cannot be applied.
    """

    @property
    def name(self) -> str:
        ...

    def configure(self, config: Mapping[str, Any]) -> None:
        ...


def satisfies_contract(candidate: Any) -> bool:
    """Whether ``candidate`` is a usable provider instance."""
    if isinstance(candidate, type) or not isinstance(candidate, Provider):
        return False
    return isinstance(getattr(candidate, "name", None), str) and callable(candidate.configure)


@dataclass(frozen=True)
class ProviderSpec:
    """Metadata describing a registered built-in provider."""

    name: str
    provider: Provider
    version: str | None = None
    description: str | None = None
