"""
Extension module loading.

A plugin location is either a path to a ``.py`` file, a path to a package
directory, or a dotted module path importable from ``sys.path``. Modules are never
unloaded; a file location that was already opened returns the cached module.
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

import structlog

from confseal.core.errors import ModuleOpenError, SymbolNotFoundError

logger = structlog.get_logger()

_MODULE_NAMESPACE = "confseal_ext"


def _module_name_for(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    stem = "".join(ch if ch.isalnum() else "_" for ch in path.stem)
    return f"{_MODULE_NAMESPACE}_{stem}_{digest}"


def _looks_like_path(location: str) -> bool:
    if location.endswith(".py") or "/" in location or "\\" in location:
        return True
    return Path(location).exists()


def _open_file(path: Path) -> ModuleType:
    path = path.resolve()
    if path.is_dir():
        init = path / "__init__.py"
        spec = importlib.util.spec_from_file_location(
            _module_name_for(path), init, submodule_search_locations=[str(path)]
        )
    else:
        spec = importlib.util.spec_from_file_location(_module_name_for(path), path)

    if spec is None or spec.loader is None:
        raise ImportError(f"no loader for {path}")

    cached = sys.modules.get(spec.name)
    if cached is not None:
        return cached

    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[spec.name]
        raise
    return module


def open_module(location: str) -> ModuleType:
    """Open the extension module at ``location``.

    Raises:
        ModuleOpenError: if the module cannot be found or fails to import
    """
    try:
        if _looks_like_path(location):
            module = _open_file(Path(location))
        else:
            module = importlib.import_module(location)
    except Exception as e:
        logger.warning("plugin_open_failed", plugin=location, error=type(e).__name__)
        raise ModuleOpenError(location) from e

    logger.debug("plugin_opened", plugin=location, module=module.__name__)
    return module


def lookup(module: ModuleType, symbol: str, location: str) -> Any:
    """Look up an exported symbol by its exact name."""
    try:
        return getattr(module, symbol)
    except AttributeError as e:
        raise SymbolNotFoundError(symbol, location) from e
