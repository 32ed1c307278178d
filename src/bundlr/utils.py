"""
Encoding helpers shared by signers, backends and the bundle format.
"""

from __future__ import annotations

import base64
import binascii
import re

B64URL_RE = re.compile(r"[A-Za-z0-9_-]*")


def b64url_encode(data: bytes) -> str:
    """Base64url without padding, as used by Arweave and ANS-104."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    # urlsafe_b64decode silently drops characters outside the alphabet
    if not B64URL_RE.fullmatch(value):
        raise ValueError(f"Invalid base64url string: {value!r}")
    padding = "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(value + padding)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64url string: {value!r}") from e


def encode_zigzag_varint(value: int) -> bytes:
    """Encode a signed integer as an Avro long (zigzag + LEB128 varint)."""
    n = (value << 1) ^ (value >> 63)
    out = bytearray()
    while n & ~0x7F:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def read_zigzag_varint(data: bytes, offset: int) -> tuple[int, int]:
    shift = 0
    n = 0
    while True:
        if offset >= len(data):
            raise ValueError("Truncated varint")
        byte = data[offset]
        offset += 1
        n |= (byte & 0x7F) << shift
        if not byte & 0x80:
            break
        shift += 7
    return (n >> 1) ^ -(n & 1), offset
