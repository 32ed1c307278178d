"""
bundlr - Client for Bundlr relay nodes.

Builds and signs ANS-104 bundle transactions, submits them to a relay, and
funds relay-held balances through pluggable currency backends.

Usage:
    client = await BundlrClient.connect("https://node1.bundlr.network", currency)
    tx = client.create_transaction_with_tags(b"hello", [Tag("Content-Type", "text/plain")])
    await client.send_transaction(tx)
    await client.fund(1_000_000)
"""

__version__ = "0.1.0"

from bundlr.client import BundlrClient
from bundlr.currency import Arweave, Currency, CurrencyType, Ethereum, Tx, TxStatus
from bundlr.errors import (
    BundlrError,
    ChainError,
    ChainUnavailableError,
    ConfigurationError,
    ConfirmationTimeoutError,
    ConstructionError,
    FundingError,
    FundingStep,
    InsufficientFundsError,
    RelayError,
    TxNotFoundError,
    TxRejectedError,
)
from bundlr.models import PubInfo
from bundlr.poll import await_confirmation
from bundlr.signers import ArweaveSigner, EthereumSigner, Signer
from bundlr.tags import Tag
from bundlr.transaction import BundlrTx

__all__ = [
    "__version__",
    "Arweave",
    "ArweaveSigner",
    "BundlrClient",
    "BundlrError",
    "BundlrTx",
    "ChainError",
    "ChainUnavailableError",
    "ConfigurationError",
    "ConfirmationTimeoutError",
    "ConstructionError",
    "Currency",
    "CurrencyType",
    "Ethereum",
    "EthereumSigner",
    "FundingError",
    "FundingStep",
    "InsufficientFundsError",
    "PubInfo",
    "RelayError",
    "Signer",
    "Tag",
    "Tx",
    "TxNotFoundError",
    "TxRejectedError",
    "TxStatus",
    "await_confirmation",
]
