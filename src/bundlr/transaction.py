"""
ANS-104 bundle transactions (data items).

Binary layout:
    signature type      u16 little-endian
    signature           signer.sig_length bytes
    owner               signer.pub_length bytes
    target              1 presence byte (+ 32 bytes)
    anchor              1 presence byte (+ 32 bytes)
    tag count           u64 little-endian
    tag bytes length    u64 little-endian
    tags                Avro-encoded tag array
    data                remaining bytes

The signature covers the deep hash of
["dataitem", "1", sig_type, owner, target, anchor, tags, data].
"""

from __future__ import annotations

import hashlib
import struct
from collections.abc import Sequence
from dataclasses import dataclass, field

from bundlr.deep_hash import deep_hash
from bundlr.errors import ConstructionError
from bundlr.signers import Signer, get_signer_class
from bundlr.tags import Tag, deserialize_tags, serialize_tags, validate_tags
from bundlr.utils import b64url_encode

TARGET_LENGTH = 32
ANCHOR_LENGTH = 32


def _encode_optional(value: bytes) -> bytes:
    if not value:
        return b"\x00"
    return b"\x01" + value


def _read_optional(raw: bytes, offset: int, length: int) -> tuple[bytes, int]:
    present = raw[offset]
    offset += 1
    if present == 0:
        return b"", offset
    if present != 1:
        raise ValueError(f"Invalid presence byte: {present}")
    value = raw[offset : offset + length]
    if len(value) != length:
        raise ValueError("Truncated optional field")
    return value, offset + length


@dataclass
class BundlrTx:
    """A signed (or not yet signed) bundle transaction."""

    signature_type: int
    owner: bytes
    data: bytes
    tags: list[Tag] = field(default_factory=list)
    target: bytes = b""
    anchor: bytes = b""
    signature: bytes = b""

    @classmethod
    def create_with_tags(
        cls,
        data: bytes,
        tags: Sequence[Tag],
        signer: Signer,
        target: bytes = b"",
        anchor: bytes = b"",
    ) -> BundlrTx:
        """Build a bundle transaction and sign it with ``signer``."""
        validate_tags(tags)
        if target and len(target) != TARGET_LENGTH:
            raise ConstructionError(f"Target must be {TARGET_LENGTH} bytes")
        if anchor and len(anchor) != ANCHOR_LENGTH:
            raise ConstructionError(f"Anchor must be {ANCHOR_LENGTH} bytes")

        tx = cls(
            signature_type=signer.sig_type,
            owner=signer.public_key,
            data=bytes(data),
            tags=list(tags),
            target=target,
            anchor=anchor,
        )
        tx.sign(signer)
        return tx

    def get_message(self) -> bytes:
        """The bytes a signer signs for this transaction."""
        return deep_hash(
            [
                b"dataitem",
                b"1",
                str(self.signature_type).encode(),
                self.owner,
                self.target,
                self.anchor,
                serialize_tags(self.tags),
                self.data,
            ]
        )

    def sign(self, signer: Signer) -> None:
        if signer.sig_type != self.signature_type or signer.public_key != self.owner:
            raise ConstructionError("Signer does not match transaction owner")
        signature = signer.sign(self.get_message())
        if len(signature) != signer.sig_length:
            raise ConstructionError(
                f"Signer returned {len(signature)} bytes, expected {signer.sig_length}"
            )
        self.signature = signature

    @property
    def is_signed(self) -> bool:
        return bool(self.signature)

    @property
    def id(self) -> str:
        if not self.signature:
            raise ConstructionError("Transaction is not signed")
        return b64url_encode(hashlib.sha256(self.signature).digest())

    def verify(self) -> bool:
        if not self.signature:
            return False
        signer_cls = get_signer_class(self.signature_type)
        return signer_cls.verify(self.owner, self.get_message(), self.signature)

    def to_bytes(self) -> bytes:
        """Serialize to the binary wire format posted to the relay."""
        if not self.signature:
            raise ConstructionError("Cannot serialize an unsigned transaction")

        tag_bytes = serialize_tags(self.tags)
        return b"".join(
            [
                struct.pack("<H", self.signature_type),
                self.signature,
                self.owner,
                _encode_optional(self.target),
                _encode_optional(self.anchor),
                struct.pack("<QQ", len(self.tags), len(tag_bytes)),
                tag_bytes,
                self.data,
            ]
        )

    @classmethod
    def from_bytes(cls, raw: bytes) -> BundlrTx:
        """
        Parse a serialized bundle transaction.

        Raises:
            ValueError: If the bytes are not a well-formed bundle transaction
        """
        if len(raw) < 2:
            raise ValueError("Bundle transaction too short")

        (signature_type,) = struct.unpack_from("<H", raw, 0)
        signer_cls = get_signer_class(signature_type)
        offset = 2

        signature = raw[offset : offset + signer_cls.sig_length]
        offset += signer_cls.sig_length
        owner = raw[offset : offset + signer_cls.pub_length]
        offset += signer_cls.pub_length
        if len(owner) != signer_cls.pub_length:
            raise ValueError("Truncated signature or owner")

        try:
            target, offset = _read_optional(raw, offset, TARGET_LENGTH)
            anchor, offset = _read_optional(raw, offset, ANCHOR_LENGTH)
            tag_count, tag_bytes_len = struct.unpack_from("<QQ", raw, offset)
        except (IndexError, struct.error) as e:
            raise ValueError(f"Truncated bundle header: {e}") from e
        offset += 16

        tag_bytes = raw[offset : offset + tag_bytes_len]
        if len(tag_bytes) != tag_bytes_len:
            raise ValueError("Truncated tag section")
        offset += tag_bytes_len

        tags = deserialize_tags(tag_bytes)
        if len(tags) != tag_count:
            raise ValueError(f"Tag count mismatch: header {tag_count}, decoded {len(tags)}")

        return cls(
            signature_type=signature_type,
            owner=owner,
            data=raw[offset:],
            tags=tags,
            target=target,
            anchor=anchor,
            signature=signature,
        )
