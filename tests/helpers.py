"""
Shared test doubles and HTTP stubs for bundlr tests.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
from cryptography.hazmat.primitives.asymmetric import rsa

from bundlr.currency.base import Currency, CurrencyType, Tx, TxStatus
from bundlr.signers import EthereumSigner
from bundlr.utils import b64url_encode

# Test key (not for production use!)
TEST_ETH_KEY = "0x" + "11" * 32

RELAY_URL = "http://relay.test"
PUB_INFO = {"version": "0", "gateway": "g", "addresses": {"arweave": "addr1"}}


class StubCurrency(Currency):
    """
    Scripted currency backend.

    ``statuses`` is consumed one entry per status query: an int is returned as
    the confirmation count, an exception instance is raised. The last entry
    repeats once the script is exhausted.
    """

    min_confirmations = 3
    poll_interval = 0.0
    max_poll_attempts = 50

    def __init__(
        self,
        statuses: list[int | Exception] | None = None,
        needs_fee: bool = False,
        fee: int = 0,
        events: list[str] | None = None,
        send_error: Exception | None = None,
        local_id: str = "",
    ):
        self.statuses = list(statuses if statuses is not None else [3])
        self._needs_fee = needs_fee
        self.fee = fee
        self.events = events if events is not None else []
        self.send_error = send_error
        self.local_id = local_id
        self.status_calls = 0
        self.fee_calls: list[tuple[int, str, float]] = []
        self.created: list[Tx] = []
        self.closed = False
        self._signer = EthereumSigner.from_hex(TEST_ETH_KEY)

    def get_type(self) -> CurrencyType:
        return CurrencyType.ARWEAVE

    def needs_fee(self) -> bool:
        return self._needs_fee

    async def get_fee(self, amount: int, recipient: str, multiplier: float) -> int:
        self.fee_calls.append((amount, recipient, multiplier))
        self.events.append("fee")
        return self.fee

    async def create_tx(self, amount: int, recipient: str, fee: int) -> Tx:
        tx = Tx(
            id=self.local_id,
            from_address="stub-address",
            to_address=recipient,
            amount=amount,
            fee=fee,
        )
        self.created.append(tx)
        self.events.append("create")
        return tx

    async def send_tx(self, tx: Tx) -> Tx:
        self.events.append("send")
        if self.send_error is not None:
            raise self.send_error
        tx.id = "chain-tx-1"
        return tx

    async def get_tx_status(self, tx_id: str) -> TxStatus:
        index = min(self.status_calls, len(self.statuses) - 1)
        self.status_calls += 1
        step = self.statuses[index]
        if isinstance(step, Exception):
            self.events.append(f"status:{type(step).__name__}")
            raise step
        self.events.append(f"status:{step}")
        return TxStatus(confirmations=step, height=100, block_hash="hash")

    def get_signer(self) -> EthereumSigner:
        return self._signer

    def get_address(self) -> str:
        return "stub-address"

    async def close(self) -> None:
        self.closed = True


Handler = Callable[[httpx.Request], httpx.Response]


def mock_client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def relay_handler(
    routes: dict[tuple[str, str], httpx.Response | Callable[[httpx.Request], httpx.Response]],
    requests: list[httpx.Request] | None = None,
) -> Handler:
    """Route (method, path) to a canned response; /info answers PUB_INFO by default."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        route = routes.get((request.method, request.url.path))
        if route is None:
            if (request.method, request.url.path) == ("GET", "/info"):
                return httpx.Response(200, json=PUB_INFO)
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        return route

    return handler


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content)


def rsa_to_jwk(key: rsa.RSAPrivateKey) -> dict[str, str]:
    numbers = key.private_numbers()

    def enc(value: int) -> str:
        return b64url_encode(value.to_bytes((value.bit_length() + 7) // 8, "big"))

    return {
        "kty": "RSA",
        "e": enc(numbers.public_numbers.e),
        "n": enc(numbers.public_numbers.n),
        "d": enc(numbers.d),
        "p": enc(numbers.p),
        "q": enc(numbers.q),
        "dp": enc(numbers.dmp1),
        "dq": enc(numbers.dmq1),
        "qi": enc(numbers.iqmp),
    }

