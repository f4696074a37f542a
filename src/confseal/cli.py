"""
Command line interface.

Commands:
    confseal init                 - Create the default configuration file if missing
    confseal show                 - Load, declassify and print the configuration
    confseal providers list       - List registered built-in providers
    confseal providers resolve    - Resolve and configure a provider reference
"""

from __future__ import annotations

import argparse
import importlib
from pathlib import Path
from typing import Any, Callable, Sequence

from rich.console import Console
from rich.table import Table

from confseal.core.errors import main_with_error_handling
from confseal.document import codec
from confseal.document.lifecycle import ConfigLifecycle
from confseal.document.models import ProviderConfig
from confseal.logging import configure_logging
from confseal.providers.registry import provider_registry
from confseal.secrets import EnvSecretStore, FileSecretStore, SecretStore
from confseal.settings import Settings, get_settings

console = Console()

MASK = "****"


def _import_factory(reference: str) -> Callable[[], Any]:
    module_name, _, attr = reference.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Factory must look like 'package.module:callable', got '{reference}'")
    factory = getattr(importlib.import_module(module_name), attr)
    if not callable(factory):
        raise ValueError(f"Factory '{reference}' is not callable")
    return factory


def _parse_params(values: Sequence[str]) -> dict[str, str]:
    params = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"Parameter must look like key=value, got '{item}'")
        params[key] = value
    return params


def _build_stores(args: argparse.Namespace, settings: Settings) -> list[SecretStore]:
    """Stores in application order: credentials file, vault, environment."""
    stores: list[SecretStore] = []

    credentials = args.credentials or settings.credentials_file
    if credentials:
        stores.append(FileSecretStore(Path(credentials)))

    if args.vault or settings.vault_enabled:
        from confseal.secrets.backends import VaultSecretStore

        stores.append(
            VaultSecretStore(
                mount_point=settings.vault_mount_point,
                namespace=settings.vault_namespace,
            )
        )

    if settings.env_secrets and not args.no_env:
        stores.append(EnvSecretStore(prefix=settings.env_secrets_prefix))

    return stores


def mask_changes(before: Any, after: Any) -> Any:
    """Mask every leaf of ``after`` whose value differs from ``before``."""
    if isinstance(after, dict):
        previous = before if isinstance(before, dict) else {}
        return {k: mask_changes(previous.get(k), v) for k, v in after.items()}
    if isinstance(after, list):
        return after
    return after if after == before else MASK


def _lifecycle(args: argparse.Namespace, settings: Settings) -> ConfigLifecycle:
    return ConfigLifecycle(
        args.prefix or settings.prefix,
        args.config or settings.config_path,
        _import_factory(args.factory or settings.factory),
    )


@main_with_error_handling()
def init_command(args: argparse.Namespace, settings: Settings) -> int:
    lifecycle = _lifecycle(args, settings)
    lifecycle.load()
    console.print(f"[bold]{lifecycle.path}[/bold]: {lifecycle.state.value}")
    return 0


@main_with_error_handling()
def show_command(args: argparse.Namespace, settings: Settings) -> int:
    lifecycle = _lifecycle(args, settings)
    document = lifecycle.load()
    before = codec.to_data(document)

    lifecycle.declassify(*_build_stores(args, settings))
    after = codec.to_data(lifecycle.document)

    console.print_json(data=after if args.reveal else mask_changes(before, after))
    return 0


@main_with_error_handling()
def providers_list_command(args: argparse.Namespace, settings: Settings) -> int:
    provider_registry.discover()

    table = Table(title="Providers")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Description")
    for spec in provider_registry.list():
        table.add_row(spec.name, spec.version or "unknown", spec.description or "")
    console.print(table)
    return 0


@main_with_error_handling()
def providers_resolve_command(args: argparse.Namespace, settings: Settings) -> int:
    provider_registry.discover()

    reference = ProviderConfig(
        provider=args.name,
        plugin=args.plugin or "",
        config=_parse_params(args.param),
    )
    provider = provider_registry.resolve(reference)
    console.print(f"Resolved provider [bold]{provider.name}[/bold]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="confseal", description="Configuration bootstrapping")
    parser.add_argument("--log-level", default=None, help="Logging level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command")

    def add_document_args(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--config", default=None, help="Path to the configuration file")
        sub.add_argument("--prefix", default=None, help="Namespace prefix of secret paths")
        sub.add_argument(
            "--factory", default=None, help="Default document factory, as module:callable"
        )

    init_parser = subparsers.add_parser("init", help="Create the default configuration file")
    add_document_args(init_parser)

    show_parser = subparsers.add_parser("show", help="Print the declassified configuration")
    add_document_args(show_parser)
    show_parser.add_argument("--credentials", default=None, help="YAML credentials file")
    show_parser.add_argument("--vault", action="store_true", help="Resolve secrets from Vault")
    show_parser.add_argument(
        "--no-env", action="store_true", help="Do not resolve secrets from the environment"
    )
    show_parser.add_argument(
        "--reveal", action="store_true", help="Print secret values instead of masking them"
    )

    providers_parser = subparsers.add_parser("providers", help="Provider tooling")
    providers_sub = providers_parser.add_subparsers(dest="providers_command")
    providers_sub.add_parser("list", help="List registered providers")
    resolve_parser = providers_sub.add_parser("resolve", help="Resolve and configure a provider")
    resolve_parser.add_argument("name", help="Provider name (or symbol in the plugin)")
    resolve_parser.add_argument("--plugin", default=None, help="Extension module location")
    resolve_parser.add_argument(
        "--param", action="append", default=[], help="Provider parameter as key=value"
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    if args.command == "init":
        return init_command(args, settings)
    if args.command == "show":
        return show_command(args, settings)
    if args.command == "providers":
        if args.providers_command == "list":
            return providers_list_command(args, settings)
        if args.providers_command == "resolve":
            return providers_resolve_command(args, settings)

    parser.print_help()
    return 1


if __name__ == "__main__":  # pragma: no cover - exercised via module entrypoint
    raise SystemExit(main())
