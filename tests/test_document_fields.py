"""Tests for document/fields.py."""

import dataclasses
from dataclasses import dataclass

from confseal.document.fields import (
    TAG_KEY,
    config_field,
    field_name,
    is_document,
    is_omitempty,
    iter_fields,
    parse_tag,
)
from pydantic import BaseModel, Field


@dataclass
class Listener:
    address: str = config_field("listen", default=":4000")
    node: str = config_field("name", default="", omitempty=True)
    untagged: int = 0
    tags: list[str] = config_field("tags", default_factory=list)


class Database(BaseModel):
    url: str = Field(default="sqlite://", alias="dsn")
    pool_size: int = Field(default=5, serialization_alias="pool")
    timeout: int = 30


def _field(cls, name):
    return next(f for f in dataclasses.fields(cls) if f.name == name)


class TestParseTag:
    """Tests for parse_tag."""

    def test_plain_name(self):
        assert parse_tag("listen") == ("listen", set())

    def test_omitempty_is_stripped(self):
        assert parse_tag("name,omitempty") == ("name", {"omitempty"})

    def test_empty_tag(self):
        assert parse_tag("") == ("", set())


class TestConfigField:
    """Tests for config_field."""

    def test_stores_tag_in_metadata(self):
        assert _field(Listener, "address").metadata[TAG_KEY] == "listen"
        assert _field(Listener, "node").metadata[TAG_KEY] == "name,omitempty"

    def test_defaults_are_applied(self):
        listener = Listener()
        assert listener.address == ":4000"
        assert listener.tags == []

    def test_default_factory_not_shared(self):
        first, second = Listener(), Listener()
        first.tags.append("a")
        assert second.tags == []


class TestFieldName:
    """Tests for field_name and is_omitempty."""

    def test_uses_tag_name(self):
        assert field_name(_field(Listener, "address")) == "listen"

    def test_strips_omitempty(self):
        assert field_name(_field(Listener, "node")) == "name"

    def test_falls_back_to_attribute_name(self):
        assert field_name(_field(Listener, "untagged")) == "untagged"

    def test_is_omitempty(self):
        assert is_omitempty(_field(Listener, "node")) is True
        assert is_omitempty(_field(Listener, "address")) is False


class TestIterFields:
    """Tests for iter_fields and is_document."""

    def test_dataclass_fields_in_declared_order(self):
        assert list(iter_fields(Listener())) == [
            ("address", "listen"),
            ("node", "name"),
            ("untagged", "untagged"),
            ("tags", "tags"),
        ]

    def test_pydantic_aliases(self):
        assert list(iter_fields(Database())) == [
            ("url", "dsn"),
            ("pool_size", "pool"),
            ("timeout", "timeout"),
        ]

    def test_is_document(self):
        assert is_document(Listener())
        assert is_document(Database())
        assert not is_document(Listener)
        assert not is_document({"listen": ":4000"})
        assert not is_document("text")
