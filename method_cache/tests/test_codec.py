"""
Unit tests for argument and payload encoding.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional
from uuid import UUID

import pytest

from shared.errors import EncodingError
from method_cache.app.codec import PayloadCodec, encode_canonical, is_structured, to_canonical

from .services import Book, Opaque, UserQuery


class Level(IntEnum):
    LOW = 1
    HIGH = 2


class Status(str, Enum):
    ACTIVE = "active"


@dataclass
class Point:
    x: int
    y: int


class Slotted:
    __slots__ = ("x", "y", "_secret")

    def __init__(self, x, y):
        self.x = x
        self.y = y
        self._secret = "s"


class SlottedChild(Slotted):
    __slots__ = "z"

    def __init__(self, x, y, z):
        super().__init__(x, y)
        self.z = z


class TestCanonicalEncoding:
    """Test cases for canonical argument encoding."""

    def test_compact_sorted_json(self):
        """Test the canonical JSON layout."""
        assert encode_canonical({"b": 1, "a": [1, 2]}) == b'{"\\"a\\"":[1,2],"\\"b\\"":1}'

    def test_enum_by_name(self):
        """Test that enums, including int and str mixins, encode by name."""
        assert to_canonical(Level.HIGH) == "HIGH"
        assert to_canonical(Status.ACTIVE) == "ACTIVE"

    def test_value_types(self):
        """Test conversion of non-JSON value types."""
        assert to_canonical(b"\x00\x01") == {"$bytes": "AAE="}
        assert to_canonical(Decimal("1.10")) == {"$decimal": "1.10"}
        assert to_canonical(UUID(int=1)) == {"$uuid": "00000000-0000-0000-0000-000000000001"}
        assert to_canonical(datetime(2020, 1, 2, 3, 4, 5)) == {"$datetime": "2020-01-02T03:04:05"}
        assert to_canonical(date(2020, 1, 2)) == {"$date": "2020-01-02"}
        assert to_canonical(timedelta(minutes=1)) == {"$timedelta": 60.0}

    def test_value_types_differ_from_strings(self):
        """Test that tagged values never encode like their text."""
        assert encode_canonical(Decimal("1")) != encode_canonical("1")
        assert encode_canonical(date(2020, 1, 2)) != encode_canonical("2020-01-02")
        assert encode_canonical(UUID(int=1)) != encode_canonical(str(UUID(int=1)))

    def test_sets_sorted(self):
        """Test that sets encode in a fixed order."""
        assert to_canonical({3, 1, 2}) == {"$set": [1, 2, 3]}
        assert encode_canonical(frozenset({"b", "a"})) == encode_canonical(frozenset({"a", "b"}))

    def test_mapping_keys_are_json_tokens(self):
        """Test that mapping keys keep their type in the encoding."""
        assert to_canonical({1: "a", "1": "b", (1, 2): "c"}) == {"1": "a", '"1"': "b", "[1,2]": "c"}

    def test_mapping_does_not_look_like_tag(self):
        """Test that a mapping with a tag-like key stays a mapping."""
        assert encode_canonical({"$decimal": "1"}) != encode_canonical(Decimal("1"))

    def test_structured_values(self):
        """Test dataclasses and pydantic models as field maps."""
        book = Book(id=1, title="t", author="a", published=date(1870, 1, 1))

        assert to_canonical(Point(1, 2)) == {"x": 1, "y": 2}
        assert to_canonical(book) == {"id": 1, "title": "t", "author": "a", "published": {"$date": "1870-01-01"}}
        assert to_canonical(UserQuery("acme", frozenset({"b", "a"}))) == {"tenant": "acme", "tags": {"$set": ["a", "b"]}}
        assert is_structured(book)
        assert is_structured(Point(1, 2))
        assert not is_structured(Point)

    def test_plain_object_public_attributes(self):
        """Test plain objects encode their public attributes."""
        opaque = Opaque(4)
        opaque._hidden = "x"

        assert to_canonical(opaque) == {"value": 4}

    def test_slotted_object_attributes(self):
        """Test objects declaring __slots__ encode their public slots."""
        assert to_canonical(Slotted(1, 2)) == {"x": 1, "y": 2}
        assert to_canonical(SlottedChild(1, 2, 3)) == {"x": 1, "y": 2, "z": 3}
        assert encode_canonical(Slotted(1, 2)) != encode_canonical(Slotted(1, 3))

    def test_unset_slots_skipped(self):
        """Test that slots without a value are left out."""
        slotted = Slotted.__new__(Slotted)
        slotted.x = 1

        assert to_canonical(slotted) == {"x": 1}

    def test_bare_object_rejected(self):
        """Test that objects with no attributes at all cannot be encoded."""
        with pytest.raises(EncodingError):
            encode_canonical(object())

    def test_callable_rejected(self):
        """Test that callables cannot be encoded."""
        with pytest.raises(EncodingError):
            encode_canonical([lambda: None])

    def test_non_finite_float(self):
        """Test that non-finite floats use the json spelling."""
        assert encode_canonical(float("inf")) == b"Infinity"


class TestPayloadCodec:
    """Test cases for PayloadCodec."""

    @pytest.fixture
    def codec(self):
        return PayloadCodec()

    def test_none_is_a_payload(self, codec):
        """Test that None encodes to a non-empty payload."""
        payload = codec.encode(None)

        assert payload == b"null"
        assert codec.decode(payload) is None

    @pytest.mark.parametrize("value", [0, "", [], False])
    def test_falsy_values_are_payloads(self, codec, value):
        """Test that falsy values still produce payloads."""
        payload = codec.encode(value)

        assert payload
        assert codec.decode(payload) == value

    def test_typed_model(self, codec):
        """Test typed decode of a pydantic model."""
        book = Book(id=2, title="t", author="a", published=date(1997, 6, 26))

        payload = codec.encode(book, Book)

        assert json.loads(payload)["published"] == "1997-06-26"
        assert codec.decode(payload, Book) == book

    def test_untyped_decode(self, codec):
        """Test that untyped decode gives plain JSON data."""
        payload = codec.encode(Book(id=2, title="t", author="a", published=date(1997, 6, 26)))

        assert codec.decode(payload, Any) == {"id": 2, "title": "t", "author": "a", "published": "1997-06-26"}

    def test_generic_types(self, codec):
        """Test container type expressions."""
        value = {"a": [1, 2], "b": []}

        assert codec.decode(codec.encode(value, Dict[str, List[int]]), Dict[str, List[int]]) == value
        assert codec.decode(b"null", Optional[int]) is None

    def test_enum_payload_by_value(self, codec):
        """Test that enum payloads use the enum value."""
        assert codec.encode(Level.HIGH, Level) == b"2"
        assert codec.decode(b"2", Level) is Level.HIGH

    def test_decode_mismatch_raises(self, codec):
        """Test that a payload of the wrong shape raises EncodingError."""
        with pytest.raises(EncodingError):
            codec.decode(b'"not a number"', int)

    def test_decode_garbage_raises(self, codec):
        """Test that invalid JSON raises EncodingError."""
        with pytest.raises(EncodingError):
            codec.decode(b"{not json", Any)
