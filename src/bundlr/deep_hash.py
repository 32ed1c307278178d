"""
Arweave deep hash: recursive SHA-384 over nested lists of byte strings.

Used as the signed message for both ANS-104 data items and Arweave v2
transactions.
"""

from __future__ import annotations

import hashlib
from typing import Union

DeepHashChunk = Union[bytes, list["DeepHashChunk"]]


def _sha384(data: bytes) -> bytes:
    return hashlib.sha384(data).digest()


def deep_hash(chunk: DeepHashChunk) -> bytes:
    if isinstance(chunk, list):
        acc = _sha384(b"list" + str(len(chunk)).encode())
        for item in chunk:
            acc = _sha384(acc + deep_hash(item))
        return acc

    tag = b"blob" + str(len(chunk)).encode()
    return _sha384(_sha384(tag) + _sha384(chunk))
