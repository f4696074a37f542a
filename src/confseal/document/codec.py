"""
Persisted document format.

Documents are written as tab-indented JSON, or as YAML when the target file has a
``.yaml``/``.yml`` suffix. Field names come from the same tags used to build secret
paths (see ``confseal.document.fields``), so a secret path stays stable across
reloads of the file.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import json
import types
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Union, get_args, get_origin, get_type_hints

import yaml
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from confseal.document.fields import field_name, is_document, is_omitempty, model_field_name

Format = Literal["json", "yaml"]

YAML_SUFFIXES = {".yaml", ".yml"}

_SEQUENCE_TYPES = (list, tuple, set, frozenset, collections.abc.Sequence)
_MAPPING_TYPES = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


class DecodeError(ValueError):
    """Raised when decoded data does not fit the document's declared types."""

    def __init__(self, where: str, problem: str):
        super().__init__(f"{where or '<root>'}: {problem}")
        self.where = where
        self.problem = problem


def format_for(path: str | Path) -> Format:
    """Pick the persisted format from the file suffix."""
    return "yaml" if Path(path).suffix.lower() in YAML_SUFFIXES else "json"


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    if isinstance(value, (bool, int, float)):
        return not value
    return False


def to_data(value: Any) -> Any:
    """Convert a document into plain JSON/YAML-serializable data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)

    if is_document(value):
        data: dict[str, Any] = {}
        for f in dataclasses.fields(value):
            item = getattr(value, f.name)
            if is_omitempty(f) and _is_empty(item):
                continue
            data[field_name(f)] = to_data(item)
        return data

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, collections.abc.Mapping):
        return {str(k): to_data(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_data(v) for v in value]
    return value


def dumps(document: Any, fmt: Format = "json") -> str:
    """Serialize a document, human-readable and indented."""
    data = to_data(document)
    if fmt == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
    return json.dumps(data, indent="\t", ensure_ascii=False) + "\n"


def loads(text: str, fmt: Format = "json") -> Any:
    """Parse persisted text into plain data.

    Raises the underlying ``json.JSONDecodeError`` or ``yaml.YAMLError``.
    """
    if fmt == "yaml":
        return yaml.safe_load(text) or {}
    return json.loads(text)


def decode_into(document: Any, data: Any) -> Any:
    """Overlay decoded data onto an allocated document.

    Keys missing from ``data`` keep the document's current values; unknown keys are
    ignored. Dataclass documents are updated in place and returned; pydantic models
    are re-validated and the new instance is returned.

    Raises:
        DecodeError: if a value does not match the declared field type
    """
    return _decode(type(document), data, document, "")


def _unwrap_optional(tp: Any) -> tuple[Any, bool]:
    if get_origin(tp) in (Union, types.UnionType):
        args = get_args(tp)
        if type(None) in args:
            remaining = [a for a in args if a is not type(None)]
            if len(remaining) == 1:
                return remaining[0], True
            return Union[tuple(remaining)], True
    return tp, False


def _decode(tp: Any, data: Any, current: Any, where: str) -> Any:
    tp, optional = _unwrap_optional(tp)

    if data is None:
        return None if optional or tp is Any else current

    if isinstance(tp, type) and issubclass(tp, BaseModel):
        return _decode_model(tp, data, current, where)

    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        return _decode_dataclass(tp, data, current, where)

    origin = get_origin(tp) or tp
    args = get_args(tp)

    if origin in _MAPPING_TYPES:
        if not isinstance(data, collections.abc.Mapping):
            raise DecodeError(where, "expected an object")
        value_tp = args[1] if len(args) == 2 else Any
        return {k: _decode(value_tp, v, None, f"{where}/{k}") for k, v in data.items()}

    if origin in _SEQUENCE_TYPES:
        if not isinstance(data, list):
            raise DecodeError(where, "expected a list")
        item_tp = args[0] if args else Any
        items = [_decode(item_tp, item, None, f"{where}/{i}") for i, item in enumerate(data)]
        if origin in (tuple, set, frozenset):
            return origin(items)
        return items

    return _decode_scalar(tp, data, where)


def _is_document_type(tp: Any) -> bool:
    tp, _ = _unwrap_optional(tp)
    if not isinstance(tp, type):
        return False
    return issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp)


def _decode_model(tp: type[BaseModel], data: Any, current: Any, where: str) -> BaseModel:
    if not isinstance(data, collections.abc.Mapping):
        raise DecodeError(where, "expected an object")

    # Keyed by attribute name; persisted keys use the serialization name
    values: dict[str, Any] = {}
    if isinstance(current, BaseModel):
        values = {attr: getattr(current, attr) for attr in type(current).model_fields}

    for attr, info in tp.model_fields.items():
        name = model_field_name(attr, info)
        key = name if name in data else attr
        if key not in data:
            continue
        value = data[key]
        if _is_document_type(info.annotation):
            value = _decode(info.annotation, value, values.get(attr), f"{where}/{name}")
        values[attr] = value

    try:
        return tp.model_validate(values, by_name=True)
    except PydanticValidationError as e:
        raise DecodeError(where, str(e)) from e


def _decode_dataclass(tp: type, data: Any, current: Any, where: str) -> Any:
    if not isinstance(data, collections.abc.Mapping):
        raise DecodeError(where, "expected an object")

    hints = get_type_hints(tp)
    decoded: dict[str, Any] = {}
    for f in dataclasses.fields(tp):
        name = field_name(f)
        if name in data:
            existing = getattr(current, f.name) if current is not None else None
            decoded[f.name] = _decode(
                hints.get(f.name, Any), data[name], existing, f"{where}/{name}"
            )

    if current is None:
        init_fields = {f.name for f in dataclasses.fields(tp) if f.init}
        try:
            current = tp(**{k: v for k, v in decoded.items() if k in init_fields})
        except TypeError as e:
            raise DecodeError(where, str(e)) from e
        decoded = {k: v for k, v in decoded.items() if k not in init_fields}

    for attr, value in decoded.items():
        setattr(current, attr, value)
    return current


def _decode_scalar(tp: Any, data: Any, where: str) -> Any:
    if tp is bool:
        if not isinstance(data, bool):
            raise DecodeError(where, f"expected a boolean, got {type(data).__name__}")
        return data
    if tp is int:
        if isinstance(data, bool) or not isinstance(data, int):
            raise DecodeError(where, f"expected an integer, got {type(data).__name__}")
        return data
    if tp is float:
        if isinstance(data, bool) or not isinstance(data, (int, float)):
            raise DecodeError(where, f"expected a number, got {type(data).__name__}")
        return float(data)
    if tp is str:
        if not isinstance(data, str):
            raise DecodeError(where, f"expected a string, got {type(data).__name__}")
        return data
    if isinstance(tp, type) and issubclass(tp, Enum):
        try:
            return tp(data)
        except ValueError as e:
            raise DecodeError(where, str(e)) from e
    return data
