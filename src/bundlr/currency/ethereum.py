"""
Ethereum currency backend over JSON-RPC.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal
from typing import Any

import httpx
from eth_utils import is_address, to_checksum_address
from loguru import logger

from bundlr.currency.base import Currency, CurrencyType, Tx, TxStatus
from bundlr.errors import (
    ChainError,
    ChainUnavailableError,
    ConstructionError,
    InsufficientFundsError,
    TxNotFoundError,
    TxRejectedError,
)
from bundlr.signers import EthereumSigner

# Timeout for regular RPC calls (seconds)
DEFAULT_RPC_TIMEOUT = 30.0

# Plain value transfer
TRANSFER_GAS = 21_000


def _parse_quantity(value: Any, field: str) -> int:
    """Parse a JSON-RPC hex quantity such as ``"0x1a"``."""
    try:
        return int(value, 16)
    except (TypeError, ValueError) as e:
        raise ChainUnavailableError(f"Invalid {field} from node: {value!r}") from e


class Ethereum(Currency):
    """
    Ethereum backend using a node's JSON-RPC interface.
    Funding transactions are legacy value transfers signed locally.
    """

    min_confirmations = 3
    poll_interval = 5.0
    max_poll_attempts = 360

    def __init__(
        self,
        private_key: str,
        rpc_url: str = "http://127.0.0.1:8545",
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self._signer = EthereumSigner.from_hex(private_key)
        self.client = client or httpx.AsyncClient(timeout=DEFAULT_RPC_TIMEOUT)
        self._request_id = 0
        self._chain_id: int | None = None

    async def _rpc_call(self, method: str, params: list | None = None) -> Any:
        """
        Make a JSON-RPC call to the Ethereum node.

        Raises:
            ChainUnavailableError: On connection or decoding errors, 429 and 5xx
            ChainError: On other HTTP errors and RPC errors returned by the node
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            response = await self.client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"RPC call failed: {method} - {e}")
            raise ChainUnavailableError(f"RPC call failed: {method} - {e}") from e

        if not response.is_success:
            message = f"RPC call failed: {method} - HTTP {response.status_code}"
            logger.error(message)
            if response.status_code == 429 or response.status_code >= 500:
                raise ChainUnavailableError(message)
            # Other 4xx (auth, wrong endpoint) is fatal
            raise ChainError(message)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"RPC call returned invalid JSON: {method} - {e}")
            raise ChainUnavailableError(f"Invalid RPC response for {method}") from e
        if not isinstance(data, dict):
            raise ChainUnavailableError(f"Invalid RPC response for {method}: {data!r}")

        if "error" in data and data["error"]:
            error_info = data["error"]
            if not isinstance(error_info, dict):
                raise ChainError(f"RPC error: {error_info}")
            error_code = error_info.get("code", "unknown")
            error_msg = error_info.get("message", str(error_info))
            raise ChainError(f"RPC error {error_code}: {error_msg}")

        return data.get("result")

    async def _rpc_quantity(self, method: str, params: list | None = None) -> int:
        return _parse_quantity(await self._rpc_call(method, params), method)

    async def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._rpc_quantity("eth_chainId")
        return self._chain_id

    def get_type(self) -> CurrencyType:
        return CurrencyType.ETHEREUM

    def needs_fee(self) -> bool:
        return True

    async def get_fee(self, amount: int, recipient: str, multiplier: float) -> int:
        gas_price = await self._rpc_quantity("eth_gasPrice")
        fee = int(Decimal(TRANSFER_GAS * gas_price) * Decimal(str(multiplier)))
        logger.debug(f"Estimated fee to {recipient}: {fee} wei (gas price {gas_price})")
        return fee

    async def create_tx(self, amount: int, recipient: str, fee: int) -> Tx:
        if amount <= 0:
            raise ConstructionError(f"Amount must be positive, got {amount}")
        if fee < 0:
            raise ConstructionError(f"Fee must not be negative, got {fee}")
        if not is_address(recipient):
            raise ConstructionError(f"Invalid Ethereum address: {recipient}")

        sender = self.get_address()
        nonce = await self._rpc_quantity("eth_getTransactionCount", [sender, "pending"])
        chain_id = await self._get_chain_id()

        raw, tx_hash = self._signer.sign_transaction(
            {
                "nonce": nonce,
                "gasPrice": fee // TRANSFER_GAS,
                "gas": TRANSFER_GAS,
                "to": to_checksum_address(recipient),
                "value": amount,
                "data": b"",
                "chainId": chain_id,
            }
        )

        return Tx(
            id=tx_hash,
            from_address=sender,
            to_address=to_checksum_address(recipient),
            amount=amount,
            fee=fee,
            raw=raw,
        )

    async def send_tx(self, tx: Tx) -> Tx:
        try:
            tx_hash = await self._rpc_call("eth_sendRawTransaction", ["0x" + tx.raw.hex()])
        except ChainError as e:
            if e.transient:
                raise
            logger.error(f"Failed to broadcast transaction: {e}")
            if "insufficient funds" in str(e).lower():
                raise InsufficientFundsError(str(e)) from e
            raise TxRejectedError(f"Broadcast failed: {e}") from e

        if not isinstance(tx_hash, str) or not tx_hash:
            logger.warning(f"Node returned no hash for {tx.id}: {tx_hash!r}")
            tx_hash = tx.id

        logger.info(f"Broadcast transaction: {tx_hash}")
        return dataclasses.replace(tx, id=tx_hash, pending=True)

    async def get_tx_status(self, tx_id: str) -> TxStatus:
        receipt = await self._rpc_call("eth_getTransactionReceipt", [tx_id])
        if not receipt:
            raise TxNotFoundError(f"Transaction {tx_id} not mined yet")
        if not isinstance(receipt, dict):
            raise ChainUnavailableError(f"Invalid receipt for {tx_id}: {receipt!r}")
        if receipt.get("blockNumber") is None:
            raise TxNotFoundError(f"Transaction {tx_id} not mined yet")

        if _parse_quantity(receipt.get("status", "0x1"), "receipt status") == 0:
            raise TxRejectedError(f"Transaction {tx_id} reverted")

        height = _parse_quantity(receipt["blockNumber"], "receipt blockNumber")
        tip_height = await self._rpc_quantity("eth_blockNumber")

        return TxStatus(
            confirmations=max(0, tip_height - height + 1),
            height=height,
            block_hash=receipt.get("blockHash", ""),
        )

    def get_signer(self) -> EthereumSigner:
        return self._signer

    def get_address(self) -> str:
        return self._signer.address

    async def close(self) -> None:
        await self.client.aclose()
