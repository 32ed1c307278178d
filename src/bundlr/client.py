"""
Client for a Bundlr relay node.

Submits signed bundle transactions, queries relay-held balances and runs the
funding workflow: pay the relay's deposit address on-chain, wait for the
payment to confirm, then ask the relay to credit it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from bundlr.currency.base import Currency
from bundlr.errors import (
    BundlrError,
    ConfigurationError,
    ConfirmationTimeoutError,
    FundingError,
    FundingStep,
    RelayError,
)
from bundlr.models import BalanceResponse, FundBody, PubInfo
from bundlr.poll import await_confirmation
from bundlr.tags import Tag
from bundlr.transaction import BundlrTx

DEFAULT_TIMEOUT = 30.0

JSON_HEADERS = {"Content-Type": "application/json"}
BINARY_HEADERS = {"Content-Type": "application/octet-stream"}

ModelT = TypeVar("ModelT", bound=BaseModel)


def _join(url: str, path: str) -> str:
    return f"{url.rstrip('/')}/{path}"


async def _request(
    client: httpx.AsyncClient, method: str, url: str, **kwargs: Any
) -> httpx.Response:
    try:
        return await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.error(f"Relay request failed: {method} {url} - {e}")
        raise RelayError(f"Relay request failed: {method} {url} - {e}") from e


def _check_response(response: httpx.Response) -> None:
    if not response.is_success:
        raise RelayError(
            f"Relay returned {response.status_code} for {response.request.url}",
            status_code=response.status_code,
            body=response.text,
        )


def _check_and_parse(response: httpx.Response, model: type[ModelT]) -> ModelT:
    _check_response(response)
    try:
        return model.model_validate_json(response.content)
    except ValidationError as e:
        raise RelayError(
            f"Invalid response from {response.request.url}: {e}",
            status_code=response.status_code,
            body=response.text,
        ) from e


@contextmanager
def _funding_step(step: FundingStep, tx_id: str | None = None) -> Iterator[None]:
    # CancelledError is a BaseException and passes through
    try:
        yield
    except Exception as e:
        if not isinstance(e, BundlrError):
            logger.exception(f"Unexpected error during funding step {step.value}")
        raise FundingError(step, e, tx_id=tx_id) from e


class BundlrClient:
    """
    Client bound to one relay node and one currency backend.

    Use ``await BundlrClient.connect(url, currency)`` to fetch the relay's
    public info and build a client. ``pub_info`` is never refreshed
    implicitly; call ``refresh_pub_info()`` to re-fetch it.
    """

    def __init__(
        self,
        url: str,
        currency: Currency,
        pub_info: PubInfo,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url.rstrip("/")
        self.currency = currency
        self.pub_info = pub_info
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    @classmethod
    async def connect(
        cls,
        url: str,
        currency: Currency,
        client: httpx.AsyncClient | None = None,
    ) -> BundlrClient:
        """
        Fetch the relay's public info and create a client.

        Raises:
            RelayError: If the relay is unreachable or its info is invalid.
                There is no retry.
        """
        owns_client = client is None
        http = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
        try:
            pub_info = await cls.get_pub_info(url, http)
        except RelayError:
            logger.error(f"Could not fetch public info from {url}")
            if owns_client:
                await http.aclose()
            raise

        logger.info(
            f"Connected to relay {url} (version {pub_info.version}, gateway {pub_info.gateway})"
        )
        instance = cls(url, currency, pub_info, http)
        instance._owns_client = owns_client
        return instance

    @staticmethod
    async def get_pub_info(url: str, client: httpx.AsyncClient | None = None) -> PubInfo:
        if client is None:
            async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as temp_client:
                return await BundlrClient.get_pub_info(url, temp_client)

        response = await _request(client, "GET", _join(url, "info"), headers=JSON_HEADERS)
        return _check_and_parse(response, PubInfo)

    async def refresh_pub_info(self) -> PubInfo:
        self.pub_info = await self.get_pub_info(self.url, self.client)
        return self.pub_info

    @property
    def currency_type(self) -> str:
        return self.currency.get_type().value

    def create_transaction_with_tags(self, data: bytes, tags: Sequence[Tag]) -> BundlrTx:
        return BundlrTx.create_with_tags(data, tags, self.currency.get_signer())

    async def send_transaction(self, tx: BundlrTx) -> Any:
        """
        Post a signed bundle transaction to the relay.

        Returns the relay's JSON acknowledgment. Failed submissions are not
        retried.
        """
        url = _join(self.url, f"tx/{self.currency_type}")
        response = await _request(
            self.client, "POST", url, content=tx.to_bytes(), headers=BINARY_HEADERS
        )
        _check_response(response)

        try:
            ack = response.json()
        except ValueError as e:
            raise RelayError(
                f"Invalid acknowledgment for bundle {tx.id}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        logger.info(f"Relay accepted bundle {tx.id} ({len(tx.data)} bytes)")
        return ack

    @staticmethod
    async def get_balance_public(
        url: str,
        currency: Currency,
        address: str,
        client: httpx.AsyncClient,
    ) -> int:
        response = await _request(
            client,
            "GET",
            _join(url, f"account/balance/{currency.get_type().value}"),
            params={"address": address},
            headers=JSON_HEADERS,
        )
        return _check_and_parse(response, BalanceResponse).as_int()

    async def get_balance(self, address: str | None = None) -> int:
        """Relay-held balance of ``address`` (defaults to the backend's wallet)."""
        address = address or self.currency.get_address()
        balance = await self.get_balance_public(self.url, self.currency, address, self.client)
        logger.debug(f"Fetched {self.currency_type} balance for {address}")
        return balance

    async def notify_funding(self, tx_id: str) -> bool:
        """
        Ask the relay to credit a confirmed funding transaction.

        Safe to call again after a funding attempt failed at this step.
        """
        url = _join(self.url, f"account/balance/{self.currency_type}")
        response = await _request(
            self.client, "POST", url, json=FundBody(tx_id=tx_id).model_dump()
        )
        _check_response(response)
        logger.info(f"Relay acknowledged funding transaction {tx_id}")
        return True

    async def _await_confirmation(self, tx_id: str, timeout: float | None) -> None:
        if timeout is None:
            await await_confirmation(tx_id, self.currency)
            return

        # The wall-clock limit replaces the backend's attempt budget
        try:
            await asyncio.wait_for(
                await_confirmation(tx_id, self.currency, max_attempts=None), timeout
            )
        except asyncio.TimeoutError as e:
            raise ConfirmationTimeoutError(
                f"Transaction {tx_id} not confirmed within {timeout}s"
            ) from e

    async def fund(
        self,
        amount: int,
        multiplier: float | None = None,
        confirmation_timeout: float | None = None,
    ) -> bool:
        """
        Fund the relay balance of the backend's wallet.

        Steps: resolve the deposit address, estimate the fee, build and send
        the chain transaction, wait for confirmation, notify the relay. The
        relay is never notified before the transaction reaches the backend's
        confirmation threshold.

        Args:
            amount: Amount in the chain's base unit
            multiplier: Fee multiplier (default 1.0)
            confirmation_timeout: Optional wall-clock limit (seconds) for the
                confirmation step

        Returns:
            True once the relay acknowledged the funding transaction

        Raises:
            FundingError: With the failing step, the cause and, once the chain
                transaction is signed, its id
        """
        multiplier = 1.0 if multiplier is None else multiplier
        currency_type = self.currency_type

        with _funding_step(FundingStep.RESOLVE_ADDRESS):
            to = self.pub_info.deposit_address(currency_type)
            if not to:
                raise ConfigurationError(f"Relay has no deposit address for {currency_type}")

        with _funding_step(FundingStep.FEE):
            fee = 0
            if self.currency.needs_fee():
                fee = await self.currency.get_fee(amount, to, multiplier)

        with _funding_step(FundingStep.CREATE_TX):
            tx = await self.currency.create_tx(amount, to, fee)

        # Chain id is known from signing; a failed send may still have broadcast
        with _funding_step(FundingStep.SEND_TX, tx.id or None):
            tx = await self.currency.send_tx(tx)
        logger.info(f"Sent funding transaction {tx.id}: {amount} to {to} (fee {fee})")

        with _funding_step(FundingStep.CONFIRMATION, tx.id):
            await self._await_confirmation(tx.id, confirmation_timeout)

        with _funding_step(FundingStep.NOTIFY_RELAY, tx.id):
            return await self.notify_funding(tx.id)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
        await self.currency.close()

    async def __aenter__(self) -> BundlrClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
