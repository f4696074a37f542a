"""
Declassification: overlay secret store values onto a loaded document.

The document is walked depth-first in declared field order. Every string and
integer leaf is looked up in the store under ``<prefix>/<field>/<field>...`` using
the fields' persisted names; a value found there replaces the leaf in place.
Other leaves (floats, booleans, enums, collections) are not looked up.
Fields that refuse assignment (frozen dataclasses or models) keep their value.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from confseal.document.fields import is_document, iter_fields
from confseal.secrets import SecretStore, _sanitize_path

logger = structlog.get_logger()

PATH_SEPARATOR = "/"

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def declassify(document: Any, prefix: str, store: SecretStore) -> None:
    """Resolve secrets for every string/integer leaf of ``document``, in place."""
    if not prefix:
        raise ValueError("A namespace prefix is required for declassification")
    if is_document(document):
        _declassify(document, prefix, store)


def parse_int(text: str) -> int | None:
    """Parse a base-10 signed 64-bit integer, or return None."""
    if not _INTEGER_PATTERN.fullmatch(text):
        return None
    value = int(text, 10)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def _is_overridable_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, (bool, Enum))


def _assign(owner: Any, attr: str, value: Any, path: str) -> None:
    # Frozen dataclasses and models keep their persisted value
    try:
        setattr(owner, attr, value)
    except (AttributeError, TypeError, PydanticValidationError) as e:
        logger.debug("secret_not_applied", path=_sanitize_path(path), error_type=type(e).__name__)
        return
    logger.debug("secret_applied", path=_sanitize_path(path))


def _declassify(owner: Any, path: str, store: SecretStore) -> None:
    for attr, name in iter_fields(owner):
        child_path = f"{path}{PATH_SEPARATOR}{name}"
        value = getattr(owner, attr)

        if value is None:
            continue

        if is_document(value):
            _declassify(value, child_path, store)
        elif isinstance(value, str) and not isinstance(value, Enum):
            secret = store.get_secret(child_path)
            if secret is not None:
                _assign(owner, attr, secret, child_path)
        elif _is_overridable_int(value):
            secret = store.get_secret(child_path)
            if secret is None:
                continue
            parsed = parse_int(secret)
            if parsed is None:
                logger.debug("secret_not_an_integer", path=_sanitize_path(child_path))
                continue
            _assign(owner, attr, parsed, child_path)
