"""
Arweave currency backend using the gateway HTTP API.

Funding transactions are format 2 Arweave transactions without data. They are
signed with RSA-PSS over the deep hash of:
    ["2", owner, target, quantity, reward, last_tx, tags, data_size, data_root]
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from bundlr.currency.base import Currency, CurrencyType, Tx, TxStatus
from bundlr.deep_hash import deep_hash
from bundlr.errors import (
    ChainError,
    ChainUnavailableError,
    ConstructionError,
    InsufficientFundsError,
    TxNotFoundError,
    TxRejectedError,
)
from bundlr.signers import ArweaveSigner
from bundlr.utils import b64url_decode, b64url_encode

DEFAULT_GATEWAY_URL = "https://arweave.net"
DEFAULT_TIMEOUT = 60.0

# Anchors are a recent block hash (48 bytes) or transaction id (32 bytes)
MAX_ANCHOR_BYTES = 48

ADDRESS_RE = re.compile(r"^[A-Za-z0-9_-]{43}$")


def is_valid_arweave_address(address: str) -> bool:
    return bool(ADDRESS_RE.match(address)) and len(b64url_decode(address)) == 32


class Arweave(Currency):
    """
    Arweave backend.

    Blocks are mined roughly every two minutes, so status is polled slowly and
    the attempt budget covers about an hour.
    """

    min_confirmations = 1
    poll_interval = 15.0
    max_poll_attempts = 240

    def __init__(
        self,
        signer: ArweaveSigner,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        client: httpx.AsyncClient | None = None,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self._signer = signer
        self.client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    @classmethod
    def from_wallet(cls, wallet_path: Path, gateway_url: str = DEFAULT_GATEWAY_URL) -> Arweave:
        """Load a JWK wallet file."""
        return cls(ArweaveSigner.from_file(wallet_path), gateway_url=gateway_url)

    async def _api_call(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Make a request to the gateway.

        Status codes are left for the caller to interpret; only transport
        failures raise here.
        """
        url = f"{self.gateway_url}/{endpoint}"

        try:
            if method == "GET":
                return await self.client.get(url)
            elif method == "POST":
                return await self.client.post(url, json=data)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")
        except httpx.HTTPError as e:
            logger.error(f"Arweave gateway call failed: {endpoint} - {e}")
            raise ChainUnavailableError(f"Gateway unreachable: {endpoint} - {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, endpoint: str) -> None:
        if response.is_success:
            return
        message = f"Gateway returned {response.status_code} for {endpoint}: {response.text}"
        if response.status_code == 429 or response.status_code >= 500:
            raise ChainUnavailableError(message)
        raise ChainError(message)

    def get_type(self) -> CurrencyType:
        return CurrencyType.ARWEAVE

    def needs_fee(self) -> bool:
        return True

    async def get_fee(self, amount: int, recipient: str, multiplier: float) -> int:
        endpoint = f"price/0/{recipient}"
        response = await self._api_call("GET", endpoint)
        self._raise_for_status(response, endpoint)

        try:
            base_fee = Decimal(response.text.strip())
        except InvalidOperation as e:
            raise ChainUnavailableError(f"Invalid price response: {response.text!r}") from e

        fee = int(base_fee * Decimal(str(multiplier)))
        logger.debug(f"Estimated fee to {recipient}: {fee} winston (base {base_fee})")
        return fee

    async def _get_anchor(self) -> str:
        response = await self._api_call("GET", "tx_anchor")
        self._raise_for_status(response, "tx_anchor")
        anchor = response.text.strip()
        try:
            decoded = b64url_decode(anchor)
        except ValueError as e:
            raise ChainUnavailableError(f"Invalid tx anchor from gateway: {anchor[:80]!r}") from e
        if not 0 < len(decoded) <= MAX_ANCHOR_BYTES:
            raise ChainUnavailableError(f"Invalid tx anchor length: {len(decoded)} bytes")
        return anchor

    async def create_tx(self, amount: int, recipient: str, fee: int) -> Tx:
        if amount <= 0:
            raise ConstructionError(f"Amount must be positive, got {amount}")
        if fee < 0:
            raise ConstructionError(f"Fee must not be negative, got {fee}")
        if not is_valid_arweave_address(recipient):
            raise ConstructionError(f"Invalid Arweave address: {recipient}")

        last_tx = await self._get_anchor()
        owner = self._signer.public_key
        quantity = str(amount)
        reward = str(fee)

        message = deep_hash(
            [
                b"2",
                owner,
                b64url_decode(recipient),
                quantity.encode(),
                reward.encode(),
                b64url_decode(last_tx),
                [],
                b"0",
                b"",
            ]
        )
        signature = self._signer.sign(message)
        tx_id = b64url_encode(hashlib.sha256(signature).digest())

        body = {
            "format": 2,
            "id": tx_id,
            "last_tx": last_tx,
            "owner": b64url_encode(owner),
            "tags": [],
            "target": recipient,
            "quantity": quantity,
            "data": "",
            "data_size": "0",
            "data_root": "",
            "reward": reward,
            "signature": b64url_encode(signature),
        }

        return Tx(
            id=tx_id,
            from_address=self.get_address(),
            to_address=recipient,
            amount=amount,
            fee=fee,
            raw=json.dumps(body).encode(),
        )

    async def send_tx(self, tx: Tx) -> Tx:
        response = await self._api_call("POST", "tx", data=json.loads(tx.raw))

        if response.status_code in (200, 208):
            logger.info(f"Broadcast transaction: {tx.id}")
            return dataclasses.replace(tx, pending=True)

        message = f"Broadcast of {tx.id} failed ({response.status_code}): {response.text}"
        logger.error(message)
        if response.status_code == 429 or response.status_code >= 500:
            raise ChainUnavailableError(message)
        if "enough tokens" in response.text.lower() or "insufficient" in response.text.lower():
            raise InsufficientFundsError(message)
        raise TxRejectedError(message)

    async def get_tx_status(self, tx_id: str) -> TxStatus:
        endpoint = f"tx/{tx_id}/status"
        response = await self._api_call("GET", endpoint)

        if response.status_code == 202:
            # Known to the gateway but not mined yet
            return TxStatus(confirmations=0, height=0, block_hash="")
        if response.status_code == 404:
            raise TxNotFoundError(f"Transaction {tx_id} not found")
        if response.status_code == 429 or response.status_code >= 500:
            raise ChainUnavailableError(f"Gateway returned {response.status_code} for {endpoint}")
        if not response.is_success:
            raise TxRejectedError(f"Transaction {tx_id} invalid: {response.text}")

        try:
            data = response.json()
            return TxStatus(
                confirmations=int(data["number_of_confirmations"]),
                height=int(data["block_height"]),
                block_hash=data.get("block_indep_hash", ""),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise ChainUnavailableError(f"Invalid status response for {tx_id}: {e}") from e

    def get_signer(self) -> ArweaveSigner:
        return self._signer

    def get_address(self) -> str:
        return self._signer.address

    async def close(self) -> None:
        await self.client.aclose()
