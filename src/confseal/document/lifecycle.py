"""
Configuration document lifecycle.

    ABSENT -> CREATED  (no file: default document persisted)
    ABSENT -> LOADED   (file present: read and decoded over a default document)
    CREATED/LOADED -> DECLASSIFIED  (secret stores applied in order)

Usage:
    from confseal.document.lifecycle import read_or_create
    from confseal.secrets import EnvSecretStore

    config = read_or_create("emitter", "emitter.conf", ServiceConfig, EnvSecretStore())
"""

from __future__ import annotations

import json
import os
import tempfile
from enum import StrEnum
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

import structlog
import yaml

from confseal.core.errors import ParseError, PersistenceError, ReadError
from confseal.document import codec
from confseal.secrets import SecretStore
from confseal.secrets.declassify import declassify

logger = structlog.get_logger()

T = TypeVar("T")


class LifecycleState(StrEnum):
    """Where a document is in its load sequence."""

    ABSENT = "absent"
    CREATED = "created"
    LOADED = "loaded"
    DECLASSIFIED = "declassified"


class ConfigLifecycle(Generic[T]):
    """Loads or creates a configuration document, then applies secret stores."""

    def __init__(self, prefix: str, path: str | Path, new_default: Callable[[], T]):
        if not prefix:
            raise ValueError("A namespace prefix is required")
        self.prefix = prefix
        self.path = Path(path)
        self.new_default = new_default
        self.format = codec.format_for(self.path)
        self.state = LifecycleState.ABSENT
        self.document: T | None = None

    def load(self) -> T:
        """Read the document from disk, or create and persist the default one."""
        if not self.path.exists():
            self.document = self._create_default()
            self.state = LifecycleState.CREATED
        else:
            self.document = self._read()
            self.state = LifecycleState.LOADED
        return self.document

    def declassify(self, *stores: SecretStore) -> T:
        """Apply each store in order; a store that fails to configure is skipped."""
        if self.document is None:
            raise RuntimeError("The document must be loaded before it is declassified")

        for store in stores:
            store_name = type(store).__name__
            try:
                store.configure(self.document)
            except Exception as e:
                logger.warning(
                    "secret_store_skipped",
                    store=store_name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue

            declassify(self.document, self.prefix, store)
            logger.debug("secret_store_applied", store=store_name, prefix=self.prefix)

        self.state = LifecycleState.DECLASSIFIED
        return self.document

    def run(self, *stores: SecretStore) -> T:
        self.load()
        return self.declassify(*stores)

    def _create_default(self) -> T:
        document = self.new_default()
        try:
            text = codec.dumps(document, self.format)
        except (TypeError, ValueError, yaml.YAMLError) as e:
            raise PersistenceError(
                f"Unable to serialize the default configuration: {e}", str(self.path)
            ) from e

        # Temp file in the target directory, renamed into place once synced
        tmp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise PersistenceError(
                f"Unable to write the default configuration: {e}", str(self.path)
            ) from e

        logger.info("created_default_config", path=str(self.path))
        return document

    def _read(self) -> T:
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(f"Unable to read the configuration: {e}", str(self.path)) from e

        try:
            data: Any = codec.loads(text, self.format)
            document = codec.decode_into(self.new_default(), data)
        except (json.JSONDecodeError, yaml.YAMLError, codec.DecodeError) as e:
            raise ParseError(f"Unable to parse the configuration: {e}", str(self.path)) from e

        logger.debug("loaded_config", path=str(self.path))
        return document


def read_or_create(
    prefix: str,
    path: str | Path,
    new_default: Callable[[], T],
    *stores: SecretStore,
) -> T:
    """Read or create the configuration document, then declassify it with each store.

    Args:
        prefix: Namespace root of every secret path
        path: Location of the persisted document
        new_default: Factory for the default document
        stores: Secret stores, applied in order (last write wins)

    Raises:
        ReadError, ParseError, PersistenceError: the document could not be obtained
    """
    return ConfigLifecycle(prefix, path, new_default).run(*stores)
