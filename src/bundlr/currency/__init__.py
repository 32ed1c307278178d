"""
Currency backend implementations.

Available backends:
- Arweave: Arweave gateway HTTP API, JWK wallet
- Ethereum: Ethereum node JSON-RPC, hex private key

Each backend carries its own confirmation policy (min_confirmations,
poll_interval, max_poll_attempts) used by the confirmation poller.
"""

from bundlr.currency.arweave import Arweave
from bundlr.currency.base import Currency, CurrencyType, Tx, TxStatus
from bundlr.currency.ethereum import Ethereum

__all__ = [
    "Arweave",
    "Currency",
    "CurrencyType",
    "Ethereum",
    "Tx",
    "TxStatus",
]
