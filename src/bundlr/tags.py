"""
Bundle tags and their Avro encoding.

Tags are serialized as an Avro array of ``{name: bytes, value: bytes}``
records. Order is preserved because the encoded bytes are part of the signed
message.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from bundlr.errors import ConstructionError
from bundlr.utils import encode_zigzag_varint, read_zigzag_varint

MAX_TAGS = 128
MAX_TAG_NAME_BYTES = 1024
MAX_TAG_VALUE_BYTES = 3072


@dataclass(frozen=True)
class Tag:
    name: str
    value: str


def validate_tags(tags: Sequence[Tag]) -> None:
    if len(tags) > MAX_TAGS:
        raise ConstructionError(f"Too many tags: {len(tags)} > {MAX_TAGS}")

    for tag in tags:
        name_len = len(tag.name.encode("utf-8"))
        value_len = len(tag.value.encode("utf-8"))
        if not 0 < name_len <= MAX_TAG_NAME_BYTES:
            raise ConstructionError(
                f"Tag name must be 1-{MAX_TAG_NAME_BYTES} bytes, got {name_len}"
            )
        if not 0 < value_len <= MAX_TAG_VALUE_BYTES:
            raise ConstructionError(
                f"Tag value for '{tag.name}' must be 1-{MAX_TAG_VALUE_BYTES} bytes, got {value_len}"
            )


def _encode_avro_bytes(data: bytes) -> bytes:
    return encode_zigzag_varint(len(data)) + data


def serialize_tags(tags: Sequence[Tag]) -> bytes:
    """Encode tags as a single Avro array block. No tags encode to empty bytes."""
    if not tags:
        return b""

    out = bytearray(encode_zigzag_varint(len(tags)))
    for tag in tags:
        out += _encode_avro_bytes(tag.name.encode("utf-8"))
        out += _encode_avro_bytes(tag.value.encode("utf-8"))
    out += encode_zigzag_varint(0)
    return bytes(out)


def _read_avro_bytes(data: bytes, offset: int) -> tuple[bytes, int]:
    length, offset = read_zigzag_varint(data, offset)
    if length < 0 or offset + length > len(data):
        raise ValueError("Invalid Avro bytes length")
    return data[offset : offset + length], offset + length


def deserialize_tags(data: bytes) -> list[Tag]:
    """
    Decode an Avro tag array.

    Accepts multiple blocks and negative block counts (which are followed by
    the block's byte size), as Avro allows.
    """
    tags: list[Tag] = []
    if not data:
        return tags

    offset = 0
    while True:
        count, offset = read_zigzag_varint(data, offset)
        if count == 0:
            break
        if count < 0:
            count = -count
            _, offset = read_zigzag_varint(data, offset)

        for _ in range(count):
            name, offset = _read_avro_bytes(data, offset)
            value, offset = _read_avro_bytes(data, offset)
            tags.append(Tag(name.decode("utf-8"), value.decode("utf-8")))

    if offset != len(data):
        raise ValueError(f"Trailing bytes after tag array: {len(data) - offset}")

    return tags
