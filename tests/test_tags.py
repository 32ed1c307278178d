"""
Tests for bundlr.tags
"""

from __future__ import annotations

import pytest

from bundlr.errors import ConstructionError
from bundlr.tags import (
    MAX_TAG_NAME_BYTES,
    MAX_TAG_VALUE_BYTES,
    MAX_TAGS,
    Tag,
    deserialize_tags,
    serialize_tags,
    validate_tags,
)


def test_serialize_single_tag_matches_avro_encoding():
    # count=1 -> zigzag 2, len("a")=1 -> 2, then terminating zero block
    assert serialize_tags([Tag("a", "b")]) == b"\x02\x02a\x02b\x00"


def test_no_tags_encode_to_empty_bytes():
    assert serialize_tags([]) == b""
    assert deserialize_tags(b"") == []


def test_tag_order_is_preserved():
    tags = [
        Tag("Content-Type", "text/plain"),
        Tag("App-Name", "bundlr"),
        Tag("Content-Type", "application/json"),
        Tag("ünïcode", "värde ✓"),
    ]
    assert deserialize_tags(serialize_tags(tags)) == tags


def test_long_values_use_multibyte_lengths():
    tags = [Tag("name", "x" * 3000)]
    encoded = serialize_tags(tags)
    assert deserialize_tags(encoded) == tags


def test_deserialize_negative_block_count():
    # Block count -1 (zigzag 0x01) is followed by the block size in bytes
    data = b"\x01\x08\x02a\x02b\x00"
    assert deserialize_tags(data) == [Tag("a", "b")]


def test_deserialize_rejects_trailing_bytes():
    with pytest.raises(ValueError, match="Trailing"):
        deserialize_tags(serialize_tags([Tag("a", "b")]) + b"\x00")


def test_deserialize_rejects_truncated_data():
    with pytest.raises(ValueError):
        deserialize_tags(b"\x02\x02a\x08b")


class TestValidateTags:
    def test_valid_tags(self):
        validate_tags([Tag("a", "b")] * MAX_TAGS)

    def test_too_many_tags(self):
        with pytest.raises(ConstructionError, match="Too many tags"):
            validate_tags([Tag("a", "b")] * (MAX_TAGS + 1))

    def test_empty_name(self):
        with pytest.raises(ConstructionError, match="name"):
            validate_tags([Tag("", "b")])

    def test_empty_value(self):
        with pytest.raises(ConstructionError, match="value"):
            validate_tags([Tag("a", "")])

    def test_name_too_long(self):
        with pytest.raises(ConstructionError):
            validate_tags([Tag("n" * (MAX_TAG_NAME_BYTES + 1), "v")])

    def test_value_too_long_counts_bytes(self):
        # 2-byte UTF-8 characters push the byte length over the limit
        with pytest.raises(ConstructionError):
            validate_tags([Tag("n", "é" * (MAX_TAG_VALUE_BYTES // 2 + 1))])
