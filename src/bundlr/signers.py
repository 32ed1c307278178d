"""
Bundle signers.

A signer is the only object holding a backend's private key. Backends create
one signer and hand out that instance; the key itself is never exposed.

Supported ANS-104 signature types:
- 1: Arweave (RSA-PSS, SHA-256, 4096-bit keys)
- 3: Ethereum (secp256k1 over the EIP-191 personal message hash)
"""

from __future__ import annotations

import hashlib
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from coincurve import PrivateKey, PublicKey
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from eth_account import Account
from eth_utils import keccak, to_checksum_address

from bundlr.errors import ConfigurationError
from bundlr.utils import b64url_decode, b64url_encode

ARWEAVE_SALT_LENGTH = 32
ARWEAVE_PUBLIC_EXPONENT = 65537


class Signer(ABC):
    """Narrow signing capability: ``sign(bytes) -> signature``."""

    sig_type: int
    sig_length: int
    pub_length: int

    @property
    @abstractmethod
    def public_key(self) -> bytes:
        """Owner bytes embedded in signed bundles"""

    @abstractmethod
    def sign(self, message: bytes) -> bytes:
        """Sign message, returning exactly ``sig_length`` bytes"""

    @classmethod
    @abstractmethod
    def verify(cls, public_key: bytes, message: bytes, signature: bytes) -> bool:
        """Check a signature produced by this signer type"""


def _int_to_bytes(value: int, length: int) -> bytes:
    return value.to_bytes(length, "big")


def _b64url_int(value: str) -> int:
    return int.from_bytes(b64url_decode(value), "big")


def _pss() -> padding.PSS:
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=ARWEAVE_SALT_LENGTH)


class ArweaveSigner(Signer):
    sig_type = 1
    sig_length = 512
    pub_length = 512

    def __init__(self, private_key: rsa.RSAPrivateKey):
        if private_key.key_size != self.pub_length * 8:
            raise ConfigurationError(
                f"Arweave keys must be {self.pub_length * 8} bits, got {private_key.key_size}"
            )
        self._key = private_key
        self._owner = _int_to_bytes(
            private_key.public_key().public_numbers().n, self.pub_length
        )

    @classmethod
    def from_jwk(cls, jwk: dict[str, Any]) -> ArweaveSigner:
        try:
            public_numbers = rsa.RSAPublicNumbers(e=_b64url_int(jwk["e"]), n=_b64url_int(jwk["n"]))
            private_numbers = rsa.RSAPrivateNumbers(
                p=_b64url_int(jwk["p"]),
                q=_b64url_int(jwk["q"]),
                d=_b64url_int(jwk["d"]),
                dmp1=_b64url_int(jwk["dp"]),
                dmq1=_b64url_int(jwk["dq"]),
                iqmp=_b64url_int(jwk["qi"]),
                public_numbers=public_numbers,
            )
            return cls(private_numbers.private_key())
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid Arweave JWK: {e}") from e

    @classmethod
    def from_file(cls, path: Path) -> ArweaveSigner:
        try:
            jwk = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read Arweave wallet {path}: {e}") from e
        return cls.from_jwk(jwk)

    @property
    def public_key(self) -> bytes:
        return self._owner

    @property
    def address(self) -> str:
        return owner_to_arweave_address(self._owner)

    def sign(self, message: bytes) -> bytes:
        return self._key.sign(message, _pss(), hashes.SHA256())

    @classmethod
    def verify(cls, public_key: bytes, message: bytes, signature: bytes) -> bool:
        key = rsa.RSAPublicNumbers(
            e=ARWEAVE_PUBLIC_EXPONENT, n=int.from_bytes(public_key, "big")
        ).public_key()
        try:
            key.verify(signature, message, _pss(), hashes.SHA256())
        except InvalidSignature:
            return False
        return True


def owner_to_arweave_address(owner: bytes) -> str:
    return b64url_encode(hashlib.sha256(owner).digest())


def eth_personal_message_hash(message: bytes) -> bytes:
    """EIP-191 hash: keccak256("\\x19Ethereum Signed Message:\\n" + len + message)."""
    prefix = b"\x19Ethereum Signed Message:\n" + str(len(message)).encode()
    return keccak(prefix + message)


def pubkey_to_eth_address(public_key: bytes) -> str:
    """Checksummed address from a 65-byte uncompressed public key."""
    return to_checksum_address(keccak(public_key[1:])[-20:])


class EthereumSigner(Signer):
    sig_type = 3
    sig_length = 65
    pub_length = 65

    def __init__(self, private_key: bytes):
        if len(private_key) != 32:
            raise ConfigurationError("Ethereum private key must be 32 bytes")
        self._key = PrivateKey(private_key)

    @classmethod
    def from_hex(cls, private_key_hex: str) -> EthereumSigner:
        try:
            return cls(bytes.fromhex(private_key_hex.removeprefix("0x")))
        except ValueError as e:
            raise ConfigurationError(f"Invalid Ethereum private key: {e}") from e

    @property
    def public_key(self) -> bytes:
        return self._key.public_key.format(compressed=False)

    @property
    def address(self) -> str:
        return pubkey_to_eth_address(self.public_key)

    def sign(self, message: bytes) -> bytes:
        signature = self._key.sign_recoverable(eth_personal_message_hash(message), hasher=None)
        # coincurve returns r || s || recid; Ethereum expects v = recid + 27
        return signature[:64] + bytes([signature[64] + 27])

    def sign_transaction(self, transaction: dict[str, Any]) -> tuple[bytes, str]:
        """Sign an Ethereum chain transaction. Returns (raw bytes, 0x tx hash)."""
        signed = Account.sign_transaction(transaction, self._key.secret)
        return bytes(signed.raw_transaction), "0x" + bytes(signed.hash).hex()

    @classmethod
    def verify(cls, public_key: bytes, message: bytes, signature: bytes) -> bool:
        if len(signature) != cls.sig_length:
            return False
        recid = signature[64] - 27 if signature[64] >= 27 else signature[64]
        try:
            recovered = PublicKey.from_signature_and_message(
                signature[:64] + bytes([recid]),
                eth_personal_message_hash(message),
                hasher=None,
            )
        except Exception:
            return False
        return recovered.format(compressed=False) == public_key


SIGNER_TYPES: dict[int, type[Signer]] = {
    ArweaveSigner.sig_type: ArweaveSigner,
    EthereumSigner.sig_type: EthereumSigner,
}


def get_signer_class(sig_type: int) -> type[Signer]:
    try:
        return SIGNER_TYPES[sig_type]
    except KeyError:
        raise ValueError(f"Unsupported signature type: {sig_type}") from None
