"""
Test configuration for bundlr tests.
"""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from bundlr.signers import ArweaveSigner, EthereumSigner

from helpers import TEST_ETH_KEY


@pytest.fixture
def eth_signer() -> EthereumSigner:
    return EthereumSigner.from_hex(TEST_ETH_KEY)


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """4096-bit RSA key, as Arweave wallets require (slow to generate)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=4096)


@pytest.fixture(scope="session")
def arweave_signer(rsa_key: rsa.RSAPrivateKey) -> ArweaveSigner:
    return ArweaveSigner(rsa_key)
