"""
Field naming for configuration documents.

A field's external name is the one used when the document is persisted and when
secret paths are built, so both always agree. Dataclass fields carry it as a tag
in their metadata::

    @dataclass
    class ClusterConfig:
        node_name: str = config_field("name", default="", omitempty=True)
        listen_addr: str = config_field("listen", default=":4000")

Pydantic models use the field's serialization alias or alias instead.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Iterator

from pydantic import BaseModel
from pydantic.fields import FieldInfo

TAG_KEY = "confseal"
OMITEMPTY = "omitempty"


def config_field(
    name: str | None = None,
    *,
    omitempty: bool = False,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
    **kwargs: Any,
) -> Any:
    """Declare a dataclass field with a persistence tag."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    if name is not None:
        metadata[TAG_KEY] = f"{name},{OMITEMPTY}" if omitempty else name
    elif omitempty:
        metadata[TAG_KEY] = f",{OMITEMPTY}"
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata=metadata,
        **kwargs,
    )


def parse_tag(tag: str) -> tuple[str, set[str]]:
    """Split a tag such as ``"name,omitempty"`` into its name and options."""
    name, _, options = tag.partition(",")
    return name.strip(), {opt.strip() for opt in options.split(",") if opt.strip()}


def field_name(f: dataclasses.Field) -> str:
    """External name of a dataclass field, falling back to the attribute name."""
    name, _ = parse_tag(f.metadata.get(TAG_KEY, ""))
    return name or f.name


def is_omitempty(f: dataclasses.Field) -> bool:
    _, options = parse_tag(f.metadata.get(TAG_KEY, ""))
    return OMITEMPTY in options


def model_field_name(attr: str, info: FieldInfo) -> str:
    """External name of a pydantic field: serialization alias, alias, then attribute."""
    return info.serialization_alias or info.alias or attr


def is_document(value: Any) -> bool:
    """Whether value is a structured record the walker can descend into."""
    if isinstance(value, BaseModel):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def iter_fields(document: Any) -> Iterator[tuple[str, str]]:
    """Yield ``(attribute, external_name)`` for each field in declared order."""
    if isinstance(document, BaseModel):
        for attr, info in type(document).model_fields.items():
            yield attr, model_field_name(attr, info)
        return

    for f in dataclasses.fields(document):
        yield f.name, field_name(f)
